# src/libor_core/models/hull_white.py

"""
Hull-White short-rate model in the same process-model shape as the LIBOR
market model.

    dr(t) = [theta(t) - a(t) r(t)] dt + sigma(t) dW(t)

The process simulates two components,

    0: x(t)  short-rate offset (r = x + alpha(t) + f(0, t))
    1: y(t)  integrated short rate (log numeraire)

with the exact one-step moments for piecewise constant a and sigma. All
integrals of a and sigma are closed form per constant segment of the
volatility model:

    MR(t, T)  = int_t^T a(s) ds
    B(t, T)   = int_t^T exp(-MR(s, T)) ds
    V(t, T)   = int_t^T sigma(s)^2 B(s, T)^2 ds
    DV(t, T)  = int_t^T sigma(s)^2 exp(-MR(s, T)) B(s, T) ds
    Var(s, t) = int_s^t sigma(u)^2 exp(-2 MR(u, t)) du
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from libor_core.curves import DiscountCurveFromForwardCurve
from libor_core.errors import CalculationError, ConfigurationError
from libor_core.models.cache import LazyValue, ProcessScopedCache
from libor_core.models.drift import Drift, average_drifts
from libor_core.models.enums import DriftApproximation, ModelFamily
from libor_core.stochastic import RandomVariable, TimeDiscretization

logger = logging.getLogger(__name__)


def _log_linear(grid: TimeDiscretization, values: Sequence[float], time: float) -> float:
    times = grid.as_array()
    log_values = np.log(np.asarray(values, dtype=float))
    if times[0] <= time <= times[-1]:
        return float(np.exp(np.interp(time, times, log_values)))
    # Extrapolate the end segment.
    i = 0 if time < times[0] else len(times) - 2
    slope = (log_values[i + 1] - log_values[i]) / (times[i + 1] - times[i])
    return float(np.exp(log_values[i] + slope * (time - times[i])))


class HullWhiteModel:
    family = ModelFamily.HULL_WHITE

    def __init__(
        self,
        libor_period_discretization: TimeDiscretization,
        forward_curve,
        volatility_model,
        *,
        discount_curve=None,
        analytic_model=None,
        drift_approximation: DriftApproximation = DriftApproximation.EULER,
    ) -> None:
        if libor_period_discretization.number_of_time_steps < 1:
            raise ConfigurationError("The tenor grid needs at least two times.")
        drift_approximation = DriftApproximation.parse(drift_approximation)
        if drift_approximation is DriftApproximation.LINE_INTEGRAL:
            raise ConfigurationError("HullWhiteModel supports EULER and PREDICTOR_CORRECTOR drift only.")

        self.libor_period_discretization = libor_period_discretization
        self.forward_curve = forward_curve
        self.volatility_model = volatility_model
        self.discount_curve = discount_curve
        self.analytic_model = analytic_model
        self.drift_approximation = drift_approximation
        self._discount_curve_from_forward_curve = DiscountCurveFromForwardCurve(forward_curve)

        self._numeraires: ProcessScopedCache[RandomVariable] = ProcessScopedCache("hull-white numeraire")
        self._forward_curve_table: LazyValue[dict] = LazyValue("hull-white forward discount factors")
        self._numeraire_adjustments: LazyValue[dict] = LazyValue("hull-white numeraire adjustments")

    # ---------- sizes ----------

    @property
    def number_of_components(self) -> int:
        return 2

    @property
    def number_of_factors(self) -> int:
        return 2

    @property
    def number_of_libors(self) -> int:
        return self.libor_period_discretization.number_of_time_steps

    def get_libor_period(self, index: int) -> float:
        tenor = self.libor_period_discretization
        if index < 0 or index >= tenor.number_of_times:
            raise IndexError(f"Index for libor period discretization out of bounds: {index}.")
        return tenor.get_time(index)

    # ---------- state ----------

    def get_initial_state(self, process) -> List[RandomVariable]:
        zero = process.get_random_variable_for_constant(0.0)
        return [zero, zero]

    def apply_state_space_transform(self, process, time_index: int, component: int, value: RandomVariable) -> RandomVariable:
        return value

    def apply_state_space_transform_inverse(
        self,
        process,
        time_index: int,
        component: int,
        value: RandomVariable,
    ) -> RandomVariable:
        return value

    # ---------- coefficient segments ----------

    def _volatility_index(self, time: float) -> int:
        td = self.volatility_model.time_discretization
        return max(td.get_time_index_nearest_less_or_equal(time), 0)

    def _mean_reversion(self, index: int) -> float:
        return self.volatility_model.get_mean_reversion(index).double_value()

    def _volatility(self, index: int) -> float:
        return self.volatility_model.get_volatility(index).double_value()

    def _segments(self, time: float, maturity: float) -> Iterator[Tuple[float, float, int]]:
        """Pieces (start, end, coefficient index) of [time, maturity] with constant a and sigma."""
        td = self.volatility_model.time_discretization
        first = self._volatility_index(time)
        last = self._volatility_index(maturity)
        previous = time
        for index in range(first + 1, last + 1):
            following = td.get_time(index)
            yield previous, following, index - 1
            previous = following
        yield previous, maturity, last

    # ---------- closed-form integrals ----------

    def get_mr_time(self, time: float, maturity: float) -> float:
        return sum(self._mean_reversion(k) * (end - start) for start, end, k in self._segments(time, maturity))

    def get_b(self, time: float, maturity: float) -> float:
        integral = 0.0
        for start, end, k in self._segments(time, maturity):
            a = self._mean_reversion(k)
            exp_next = math.exp(-self.get_mr_time(end, maturity))
            exp_prev = math.exp(-self.get_mr_time(start, maturity))
            integral += (exp_next - exp_prev) / a
        return integral

    def get_v(self, time: float, maturity: float) -> float:
        if time == maturity:
            return 0.0
        integral = 0.0
        for start, end, k in self._segments(time, maturity):
            a = self._mean_reversion(k)
            sigma = self._volatility(k)
            exp_next = math.exp(-self.get_mr_time(end, maturity))
            exp_prev = math.exp(-self.get_mr_time(start, maturity))
            integral += sigma * sigma / (a * a) * (
                -2.0 * (exp_next - exp_prev) / a
                + (exp_next * exp_next - exp_prev * exp_prev) / (2.0 * a)
                + (end - start)
            )
        return integral

    def get_dv(self, time: float, maturity: float) -> float:
        if time == maturity:
            return 0.0
        integral = 0.0
        for start, end, k in self._segments(time, maturity):
            a = self._mean_reversion(k)
            sigma = self._volatility(k)
            exp_next = math.exp(-self.get_mr_time(end, maturity))
            exp_prev = math.exp(-self.get_mr_time(start, maturity))
            integral += sigma * sigma / (a * a) * (
                (exp_next - exp_prev) - (exp_next * exp_next - exp_prev * exp_prev) / 2.0
            )
        return integral

    def get_short_rate_conditional_variance(self, time: float, maturity: float) -> float:
        """Var(r(maturity) | r(time))."""
        integral = 0.0
        for start, end, k in self._segments(time, maturity):
            a = self._mean_reversion(k)
            sigma = self._volatility(k)
            exp_next = math.exp(-2.0 * self.get_mr_time(end, maturity))
            exp_prev = math.exp(-2.0 * self.get_mr_time(start, maturity))
            integral += sigma * sigma / a * (exp_next - exp_prev) / 2.0
        return integral

    def get_integrated_bond_squared_volatility(self, time: float, maturity: float) -> float:
        return self.get_short_rate_conditional_variance(0.0, time) * self.get_b(time, maturity) ** 2

    # ---------- drift / factor loading ----------

    def get_drift(
        self,
        process,
        time_index: int,
        realization: Sequence[RandomVariable],
        predictor: Optional[Sequence[RandomVariable]] = None,
    ) -> Drift:
        drift = self._drift(process, time_index, realization)
        if predictor is not None and self.drift_approximation is DriftApproximation.PREDICTOR_CORRECTOR:
            drift = average_drifts(drift, self._drift(process, time_index, predictor))
        return drift

    def _drift(self, process, time_index: int, realization: Sequence[RandomVariable]) -> Drift:
        time = process.get_time(time_index)
        time_next = process.get_time(time_index + 1)
        dt = time_next - time
        a = self._mean_reversion(self._volatility_index(time))
        b = self.get_b(time, time_next)

        drift_short_rate = realization[0].mult(a * b / -dt)
        drift_log_numeraire = realization[0].mult(b / dt)
        return [drift_short_rate, drift_log_numeraire]

    def get_factor_loading(
        self,
        process,
        time_index: int,
        component: int,
        realization: Optional[Sequence[RandomVariable]] = None,
    ) -> List[RandomVariable]:
        time = process.get_time(time_index)
        time_next = process.get_time(time_index + 1)
        dt = time_next - time
        index = self._volatility_index(time)
        a = self._mean_reversion(index)

        mean_reversion_times_time = -2.0 * a * dt
        scaling = math.sqrt((math.exp(mean_reversion_times_time) - 1.0) / mean_reversion_times_time)
        volatility_effective = scaling * self._volatility(index)

        if component == 0:
            loading = [volatility_effective, 0.0]
        elif component == 1:
            volatility_log_numeraire = math.sqrt(self.get_v(time, time_next) / dt)
            denominator = volatility_effective * volatility_log_numeraire
            rho = 0.0 if denominator == 0.0 else self.get_dv(time, time_next) / dt / denominator
            loading = [
                volatility_log_numeraire * rho,
                volatility_log_numeraire * math.sqrt(max(1.0 - rho * rho, 0.0)),
            ]
        else:
            raise IndexError(f"Component index {component} out of bounds for the Hull-White model.")

        return [process.get_random_variable_for_constant(value) for value in loading]

    # ---------- curve tables ----------

    def _build_forward_curve_table(self) -> dict:
        tenor = self.libor_period_discretization
        forwards = [
            self.forward_curve.get_forward(tenor.get_time(i), tenor.get_time_step(i), self.analytic_model)
            for i in range(tenor.number_of_time_steps)
        ]
        df = self._discount_curve_from_forward_curve.get_discount_factor(tenor.get_time(0), self.analytic_model)
        discount_factors = [df]
        for i, forward in enumerate(forwards):
            df = df / (1.0 + forward * tenor.get_time_step(i))
            discount_factors.append(df)
        return {"forwards": forwards, "discount_factors": discount_factors}

    def _build_numeraire_adjustments(self) -> Dict[float, float]:
        tenor = self.libor_period_discretization
        curve = self.discount_curve
        forward_rates: Dict[float, float] = {}
        for i in range(tenor.number_of_time_steps):
            df_prev = curve.get_discount_factor(tenor.get_time(i), self.analytic_model)
            df_next = curve.get_discount_factor(tenor.get_time(i + 1), self.analytic_model)
            forward_rates[tenor.get_time(i)] = (df_prev / df_next - 1.0) / tenor.get_time_step(i)
        return forward_rates

    def get_discount_factor_from_forward_curve(self, time: float) -> float:
        """P_f(time): the forward curve's initial values compounded on the tenor grid."""
        table = self._forward_curve_table.get(self._build_forward_curve_table)
        return _log_linear(self.libor_period_discretization, table["discount_factors"], time)

    def get_discount_factor(self, time: float) -> float:
        """P_d(time) from the discount curve."""
        return self.discount_curve.get_discount_factor(time, self.analytic_model)

    def get_forward_rate_initial_values(self) -> List[float]:
        return list(self._forward_curve_table.get(self._build_forward_curve_table)["forwards"])

    def get_numeraire_adjustments(self) -> Dict[float, float]:
        if self.discount_curve is None:
            return {}
        return dict(self._numeraire_adjustments.get(self._build_numeraire_adjustments))

    # ---------- numeraire ----------

    def get_numeraire(self, process, time: float) -> RandomVariable:
        if time < 0:
            curve = self.discount_curve or self._discount_curve_from_forward_curve
            return process.get_random_variable_for_constant(curve.get_discount_factor(time, self.analytic_model))

        td = process.time_discretization
        time_index = td.get_time_index(time)
        if time_index == 0:
            return process.get_random_variable_for_constant(1.0)

        if time_index < 0:
            previous = td.get_time_index_nearest_less_or_equal(time)
            if previous < 0 or previous + 1 >= td.number_of_times:
                raise CalculationError(f"Numeraire requested for time {time} outside the simulation grid.")
            # Linear in 1/N between the bracketing grid times.
            time_prev = td.get_time(previous)
            time_next = td.get_time(previous + 1)
            return (
                self.get_numeraire(process, time_prev).invert().mult(time_next - time)
                .add(self.get_numeraire(process, time_next).invert().mult(time - time_prev))
                .div(time_next - time_prev)
                .invert()
            )

        return self._numeraires.get_or_compute(
            process, time_index, lambda: self._compute_numeraire(process, time_index)
        )

    def _compute_numeraire(self, process, time_index: int) -> RandomVariable:
        time = process.get_time(time_index)
        log_numeraire = process.get_process_value(time_index, 1).add(0.5 * self.get_v(0.0, time))
        numeraire = log_numeraire.exp()

        # Control variate on the zero bond.
        numeraire = numeraire.mult(numeraire.invert().average())

        if self.discount_curve is not None:
            discount_factor = self.get_discount_factor(time)
        else:
            discount_factor = self.get_discount_factor_from_forward_curve(time)
        return numeraire.div(discount_factor)

    def ensure_cache_consistency(self, process) -> None:
        self._numeraires.ensure_consistency(process)

    # ---------- bonds / rates ----------

    def _step_zero_rate(self, process, time_index: int) -> float:
        td = process.time_discretization
        step_index = min(time_index, td.number_of_time_steps - 1)
        time = td.get_time(step_index)
        time_next = td.get_time(step_index + 1)
        return math.log(
            self.get_discount_factor_from_forward_curve(time) / self.get_discount_factor_from_forward_curve(time_next)
        ) / (time_next - time)

    def get_short_rate(self, process, time_index: int) -> RandomVariable:
        """r(t_i) over [t_i, t_{i+1}] (the last index uses the previous step)."""
        time = process.get_time(time_index)
        return (
            process.get_process_value(time_index, 0)
            .add(self.get_dv(0.0, time))
            .add(self._step_zero_rate(process, time_index))
        )

    def _get_a(self, process, time_index: int, maturity: float) -> float:
        time = process.get_time(time_index)
        b = self.get_b(time, maturity)
        forward_bond = math.log(
            self.get_discount_factor_from_forward_curve(maturity) / self.get_discount_factor_from_forward_curve(time)
        )
        log_a = (
            b * self._step_zero_rate(process, time_index)
            - b * b * self.get_short_rate_conditional_variance(0.0, time) / 2.0
            + forward_bond
        )
        return math.exp(log_a)

    def get_zero_coupon_bond(self, process, time: float, maturity: float) -> RandomVariable:
        td = process.time_discretization
        time_index = td.get_time_index(time)
        if time_index < 0:
            lower = td.get_time_index_nearest_less_or_equal(time)
            if lower < 0:
                raise CalculationError(f"Zero bond requested at time {time} before the simulation start.")
            time_lower = td.get_time(lower)
            return self.get_zero_coupon_bond(process, time_lower, maturity).div(
                self.get_zero_coupon_bond(process, time_lower, time)
            )

        short_rate = self.get_short_rate(process, time_index)
        b = self.get_b(time, maturity)
        return short_rate.mult(-b).exp().mult(self._get_a(process, time_index, maturity))

    def get_forward_rate(self, process, time: float, period_start: float, period_end: float) -> RandomVariable:
        if period_end <= period_start:
            raise ConfigurationError(f"period_end ({period_end}) must be after period_start ({period_start}).")
        return (
            self.get_zero_coupon_bond(process, time, period_start)
            .div(self.get_zero_coupon_bond(process, time, period_end))
            .sub(1.0)
            .div(period_end - period_start)
        )

    def get_libor(self, process, time_index: int, libor_index: int) -> RandomVariable:
        return self.get_forward_rate(
            process,
            process.get_time(time_index),
            self.get_libor_period(libor_index),
            self.get_libor_period(libor_index + 1),
        )

    # ---------- parameters / clones ----------

    def get_model_parameters(self) -> Dict[str, object]:
        get_parameter = getattr(self.volatility_model, "get_parameter", None)
        return {
            "forward_initial_values": np.array(self.get_forward_rate_initial_values()),
            "volatility_model_parameters": None if get_parameter is None else get_parameter(),
            "numeraire_adjustments": self.get_numeraire_adjustments(),
        }

    def get_clone_with_modified_volatility_model(self, volatility_model) -> "HullWhiteModel":
        return HullWhiteModel(
            self.libor_period_discretization,
            self.forward_curve,
            volatility_model,
            discount_curve=self.discount_curve,
            analytic_model=self.analytic_model,
            drift_approximation=self.drift_approximation,
        )

    def __repr__(self) -> str:
        return (
            f"HullWhiteModel(libors={self.number_of_libors}, "
            f"volatility_segments={self.volatility_model.time_discretization.number_of_times})"
        )


__all__ = ["HullWhiteModel"]
