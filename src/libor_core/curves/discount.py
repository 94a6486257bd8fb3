# src/libor_core/curves/discount.py

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Tuple

import numpy as np

from .types import ForwardCurve

if TYPE_CHECKING:
    from .analytic_model import AnalyticModel


@dataclass(frozen=True)
class DiscountCurveInterpolation:
    """
    Discount curve given by discount factors on a set of times.

    Interpolation is linear in log(DF) (piecewise flat continuously
    compounded forward). Beyond the last point the last segment's rate is
    extrapolated; before the first point the first segment's rate is used.
    A time-0 point with DF = 1 is added when missing.
    """

    name: str
    times: Tuple[float, ...]
    discount_factors: Tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.times) != len(self.discount_factors):
            raise ValueError(
                f"times and discount_factors differ in length: "
                f"{len(self.times)} vs {len(self.discount_factors)}"
            )
        pairs = sorted(zip((float(t) for t in self.times), (float(d) for d in self.discount_factors)))
        if not pairs or pairs[0][0] > 0.0:
            pairs.insert(0, (0.0, 1.0))
        for t, df in pairs:
            if df <= 0.0:
                raise ValueError(f"Non-positive discount factor {df} at t={t}")
        if len(pairs) == 1:
            # A single point carries no rate information: treat as flat 0.
            pairs.append((1.0, 1.0))
        object.__setattr__(self, "times", tuple(t for t, _ in pairs))
        object.__setattr__(self, "discount_factors", tuple(d for _, d in pairs))

    # ---------- constructors ----------

    @classmethod
    def from_zero_rates(
        cls,
        name: str,
        times: Sequence[float],
        zero_rates: Sequence[float],
    ) -> "DiscountCurveInterpolation":
        """Continuously compounded zero rates -> discount factors."""
        dfs = [math.exp(-float(r) * float(t)) for t, r in zip(times, zero_rates)]
        return cls(name=name, times=tuple(float(t) for t in times), discount_factors=tuple(dfs))

    @classmethod
    def flat(cls, name: str, rate: float, last_time: float = 100.0) -> "DiscountCurveInterpolation":
        return cls.from_zero_rates(name, [0.0, float(last_time)], [float(rate), float(rate)])

    # ---------- curve interface ----------

    def get_discount_factor(self, time: float, model: Optional["AnalyticModel"] = None) -> float:
        t = float(time)
        times = np.asarray(self.times)
        log_dfs = np.log(self.discount_factors)
        if times[0] <= t <= times[-1]:
            return float(np.exp(np.interp(t, times, log_dfs)))

        # Flat rate of the end segment beyond the points.
        i = 0 if t < times[0] else len(times) - 2
        slope = (log_dfs[i + 1] - log_dfs[i]) / (times[i + 1] - times[i])
        return float(np.exp(log_dfs[i] + slope * (t - times[i])))

    def get_zero_rate(self, time: float) -> float:
        if time <= 0.0:
            # Short rate of the first segment.
            return -math.log(self.discount_factors[1] / self.discount_factors[0]) / (self.times[1] - self.times[0])
        return -math.log(self.get_discount_factor(time)) / time


@dataclass(frozen=True)
class DiscountCurveFromForwardCurve:
    """
    Discount factors implied by a forward curve.

    DF(T) compounds the simply compounded forwards period by period, with the
    forward curve's payment offset as period length and a short last period:

        DF(T) = prod_k 1 / (1 + F(t_k) * (t_{k+1} - t_k))
    """

    forward_curve: ForwardCurve
    period_length: float = 0.5
    name: str = ""

    def __post_init__(self) -> None:
        if self.period_length <= 0.0:
            raise ValueError(f"period_length must be > 0, got {self.period_length}")
        if not self.name:
            object.__setattr__(self, "name", f"DiscountCurveFromForwardCurve({self.forward_curve.name})")

    def get_discount_factor(self, time: float, model: Optional["AnalyticModel"] = None) -> float:
        t_end = float(time)
        if t_end == 0.0:
            return 1.0
        sign = 1.0 if t_end > 0.0 else -1.0
        df = 1.0
        t = 0.0
        while sign * (t_end - t) > 1e-12:
            step = min(self.period_length, abs(t_end - t))
            start = t if sign > 0 else t - step
            forward = self.forward_curve.get_forward(start, step, model)
            if sign > 0:
                df /= 1.0 + forward * step
            else:
                df *= 1.0 + forward * step
            t += sign * step
        return df


def flat_discount_curve(rate: float, name: str = "discount") -> DiscountCurveInterpolation:
    """Convenience: flat continuously compounded discount curve."""
    return DiscountCurveInterpolation.flat(name, rate)


def discount_curve_from_pairs(name: str, pairs: Iterable[Tuple[float, float]]) -> DiscountCurveInterpolation:
    """Build from (time, discount factor) pairs."""
    pts = list(pairs)
    return DiscountCurveInterpolation(
        name=name,
        times=tuple(float(t) for t, _ in pts),
        discount_factors=tuple(float(d) for _, d in pts),
    )
