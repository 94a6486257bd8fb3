# src/libor_core/curves/forward.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple, Union

import numpy as np

from .types import DiscountCurve

if TYPE_CHECKING:
    from .analytic_model import AnalyticModel


@dataclass(frozen=True)
class ForwardCurveInterpolation:
    """
    Forward curve given by simply compounded forward rates on fixing times.

    get_forward(t, period_length) interpolates linearly in the fixing time and
    extrapolates flat. The period length is not used: the curve describes
    forwards of one fixed tenor (``payment_offset``), which is how the model
    reads it to set the initial forward-rate state.
    """

    name: str
    fixing_times: Tuple[float, ...]
    forwards: Tuple[float, ...]
    payment_offset: float = 0.5

    def __post_init__(self) -> None:
        if len(self.fixing_times) != len(self.forwards):
            raise ValueError(
                f"fixing_times and forwards differ in length: "
                f"{len(self.fixing_times)} vs {len(self.forwards)}"
            )
        if not self.fixing_times:
            raise ValueError("ForwardCurveInterpolation requires at least one point")
        pairs = sorted(zip((float(t) for t in self.fixing_times), (float(f) for f in self.forwards)))
        object.__setattr__(self, "fixing_times", tuple(t for t, _ in pairs))
        object.__setattr__(self, "forwards", tuple(f for _, f in pairs))

    @classmethod
    def from_forwards(
        cls,
        name: str,
        fixing_times: Sequence[float],
        forwards: Sequence[float],
        payment_offset: float = 0.5,
    ) -> "ForwardCurveInterpolation":
        return cls(
            name=name,
            fixing_times=tuple(float(t) for t in fixing_times),
            forwards=tuple(float(f) for f in forwards),
            payment_offset=float(payment_offset),
        )

    @classmethod
    def flat(cls, name: str, rate: float, payment_offset: float = 0.5) -> "ForwardCurveInterpolation":
        return cls.from_forwards(name, [0.0], [rate], payment_offset)

    def get_forward(
        self,
        time: float,
        period_length: Optional[float] = None,
        model: Optional["AnalyticModel"] = None,
    ) -> float:
        return float(np.interp(float(time), self.fixing_times, self.forwards))


@dataclass(frozen=True)
class ForwardCurveFromDiscountCurve:
    """
    Forward rates implied by a discount curve:

        F(t, p) = (DF(t) / DF(t + p) - 1) / p

    The discount curve is either held directly or looked up by name in the
    AnalyticModel passed to get_forward.
    """

    discount_curve: Union[DiscountCurve, str]
    payment_offset: float = 0.5
    name: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            ref = self.discount_curve if isinstance(self.discount_curve, str) else self.discount_curve.name
            object.__setattr__(self, "name", f"ForwardCurveFromDiscountCurve({ref})")

    def _resolve(self, model: Optional["AnalyticModel"]) -> DiscountCurve:
        if isinstance(self.discount_curve, str):
            if model is None:
                raise ValueError(
                    f"Forward curve '{self.name}' references discount curve "
                    f"'{self.discount_curve}' by name but no AnalyticModel was given."
                )
            return model.get_discount_curve(self.discount_curve)
        return self.discount_curve

    def get_forward(
        self,
        time: float,
        period_length: Optional[float] = None,
        model: Optional["AnalyticModel"] = None,
    ) -> float:
        p = self.payment_offset if period_length is None else float(period_length)
        if p <= 0.0:
            raise ValueError(f"period_length must be > 0, got {p}")
        curve = self._resolve(model)
        df_start = curve.get_discount_factor(time, model)
        df_end = curve.get_discount_factor(time + p, model)
        return (df_start / df_end - 1.0) / p


def flat_forward_curve(rate: float, payment_offset: float = 0.5, name: str = "forward") -> ForwardCurveInterpolation:
    """Convenience: flat forward curve."""
    return ForwardCurveInterpolation.flat(name, rate, payment_offset)
