# src/libor_core/models/tenor_interpolation.py

"""
Forward rates for periods that are not aligned to the tenor grid.

For S in [T_j, T_{j+1}] the quantity 1 + (T_{j+1} - S) F(t; S, T_{j+1}) is
interpolated from the simulated 1 + delta_j L_j(t):

    LINEAR                  alpha * long + 1 - alpha
    LOG_LINEAR_UNCORRECTED  long ** alpha
    LOG_LINEAR_CORRECTED    long ** alpha * exp(-adj * (T_{j+1}-S)(T_j-S) / 2)

with alpha = (T_{j+1} - S) / delta_j. The result is rescaled by the ratio of
the forward curve value to the same interpolation applied to the curve, so
at t = 0 every period reprices the input forward curve.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Sequence

from libor_core.errors import ConfigurationError
from libor_core.models.cache import ProcessScopedCache
from libor_core.models.enums import InterpolationMethod, SimulationTimeInterpolationMethod, StateSpace
from libor_core.stochastic import RandomVariable, TimeDiscretization

logger = logging.getLogger(__name__)

FactorLoading = Callable[[object, int, int, Sequence[RandomVariable]], List[RandomVariable]]


def fixing_time_index(process, tenor_time: float) -> int:
    """
    Simulation index holding the fixed value of a rate that fixes at
    ``tenor_time``: the first grid time >= ``tenor_time``, or the last grid
    time when the fixing lies beyond the grid.
    """
    td = process.time_discretization
    return min(td.get_time_index_nearest_greater_or_equal(tenor_time), td.number_of_times - 1)


class TenorInterpolator:
    def __init__(
        self,
        libor_period_discretization: TimeDiscretization,
        forward_curve,
        factor_loading: FactorLoading,
        *,
        interpolation_method: InterpolationMethod = InterpolationMethod.LOG_LINEAR_UNCORRECTED,
        simulation_time_interpolation_method: SimulationTimeInterpolationMethod = (
            SimulationTimeInterpolationMethod.ROUND_DOWN
        ),
        state_space: StateSpace = StateSpace.LOGNORMAL,
        analytic_model=None,
    ) -> None:
        self.libor_period_discretization = libor_period_discretization
        self.forward_curve = forward_curve
        self.factor_loading = factor_loading
        self.interpolation_method = InterpolationMethod.parse(interpolation_method)
        self.simulation_time_interpolation_method = SimulationTimeInterpolationMethod.parse(
            simulation_time_interpolation_method
        )
        self.state_space = StateSpace.parse(state_space)
        self.analytic_model = analytic_model
        self._drift_adjustments: ProcessScopedCache[RandomVariable] = ProcessScopedCache(
            "interpolation drift adjustment"
        )

    @property
    def caches(self) -> List[ProcessScopedCache]:
        return [self._drift_adjustments]

    # ---------- index helpers ----------

    def _libor_period(self, index: int) -> float:
        tenor = self.libor_period_discretization
        if index < 0 or index >= tenor.number_of_times:
            raise IndexError(f"Index for libor period discretization out of bounds: {index}.")
        return tenor.get_time(index)

    def _previous_tenor_index(self, time: float) -> int:
        tenor = self.libor_period_discretization
        index = tenor.get_time_index_nearest_less_or_equal(time)
        if index < 0 or index + 1 >= tenor.number_of_times:
            raise ConfigurationError(
                f"Time {time} outside the tenor grid [{tenor.get_time(0)}, {tenor.get_time(tenor.number_of_times - 1)}]."
            )
        return index

    def process_time_index(self, process, time: float) -> int:
        """Simulation index used for ``time`` (previous point, or nearest with ROUND_NEAREST)."""
        td = process.time_discretization
        index = td.get_time_index(time)
        if index >= 0:
            return index

        index = td.get_time_index_nearest_less_or_equal(time)
        if index < 0:
            raise ConfigurationError(f"Time {time} precedes the simulation start {td.get_time(0)}.")
        if (
            self.simulation_time_interpolation_method is SimulationTimeInterpolationMethod.ROUND_NEAREST
            and index + 1 < td.number_of_times
            and time - td.get_time(index) > td.get_time(index + 1) - time
        ):
            index += 1
        return index

    # ---------- forward rates ----------

    def get_forward_rate(self, process, time: float, period_start: float, period_end: float) -> RandomVariable:
        if period_end <= period_start:
            raise ConfigurationError(f"period_end ({period_end}) must be after period_start ({period_start}).")

        tenor = self.libor_period_discretization
        start_index = tenor.get_time_index(period_start)
        end_index = tenor.get_time_index(period_end)

        # After the fixing the rate no longer moves.
        time = min(time, period_start)
        time_index = self.process_time_index(process, time)

        if end_index < 0:
            previous_end_index = self._previous_tenor_index(period_end)
            next_end_time = self._libor_period(previous_end_index + 1)
            one_plus_long = (
                self.get_forward_rate(process, time, period_start, next_end_time)
                .mult(next_end_time - period_start)
                .add(1.0)
            )
            one_plus_interpolated = self.get_one_plus_interpolated_libor_dt(
                process, time_index, period_end, previous_end_index
            )
            return one_plus_long.div(one_plus_interpolated).sub(1.0).div(period_end - period_start)

        if start_index < 0:
            previous_start_index = self._previous_tenor_index(period_start)
            next_start_time = self._libor_period(previous_start_index + 1)
            if next_start_time > period_end:
                raise ConfigurationError(
                    f"Cannot interpolate period [{period_start}, {period_end}] inside one tenor period."
                )
            one_plus_interpolated = self.get_one_plus_interpolated_libor_dt(
                process, time_index, period_start, previous_start_index
            )
            if next_start_time == period_end:
                return one_plus_interpolated.sub(1.0).div(period_end - period_start)
            one_plus_long = (
                self.get_forward_rate(process, time, next_start_time, period_end)
                .mult(period_end - next_start_time)
                .add(1.0)
            )
            return one_plus_long.mult(one_plus_interpolated).sub(1.0).div(period_end - period_start)

        if start_index + 1 == end_index:
            return process.get_process_value(time_index, start_index)

        accrual: Optional[RandomVariable] = None
        for period_index in range(start_index, end_index):
            sub_period_length = tenor.get_time_step(period_index)
            libor = process.get_process_value(time_index, period_index)
            if accrual is None:
                accrual = libor.mult(sub_period_length).add(1.0)
            else:
                accrual = accrual.accrue(libor, sub_period_length)
        return accrual.sub(1.0).div(period_end - period_start)

    def get_one_plus_interpolated_libor_dt(
        self,
        process,
        time_index: int,
        period_start: float,
        libor_index: int,
    ) -> RandomVariable:
        """1 + (T_{j+1} - S) F(t_i; S, T_{j+1}) for S in [T_j, T_{j+1}]."""
        tenor_start = self._libor_period(libor_index)
        tenor_end = self._libor_period(libor_index + 1)
        tenor_dt = tenor_end - tenor_start

        if tenor_start < process.get_time(time_index):
            # The long rate fixed at its period start.
            time_index = min(time_index, fixing_time_index(process, tenor_start))

        one_plus_long = process.get_process_value(time_index, libor_index).mult(tenor_dt).add(1.0)

        small_dt = tenor_end - period_start
        alpha = small_dt / tenor_dt

        method = self.interpolation_method
        if method is InterpolationMethod.LINEAR:
            interpolated = one_plus_long.mult(alpha).add(1.0 - alpha)
        elif method is InterpolationMethod.LOG_LINEAR_UNCORRECTED:
            interpolated = one_plus_long.log().mult(alpha).exp()
        elif method is InterpolationMethod.LOG_LINEAR_CORRECTED:
            coefficient = 0.5 * small_dt * (tenor_start - period_start)
            adjustment = self.get_interpolation_drift_adjustment(process, time_index, libor_index)
            interpolated = one_plus_long.log().mult(alpha).sub(adjustment.mult(coefficient)).exp()
        else:
            raise ConfigurationError(f"Interpolation method {method!r} not implemented.")

        analytic_long = 1.0 + self.forward_curve.get_forward(tenor_start, tenor_dt, self.analytic_model) * tenor_dt
        analytic_short = 1.0 + self.forward_curve.get_forward(period_start, small_dt, self.analytic_model) * small_dt
        if method is InterpolationMethod.LINEAR:
            analytic_interpolated = analytic_long * alpha + (1.0 - alpha)
        else:
            analytic_interpolated = math.exp(math.log(analytic_long) * alpha)

        return interpolated.mult(analytic_short / analytic_interpolated)

    # ---------- drift adjustment ----------

    def get_interpolation_drift_adjustment(
        self,
        process,
        evaluation_time_index: int,
        libor_index: int,
    ) -> Optional[RandomVariable]:
        if self.interpolation_method is not InterpolationMethod.LOG_LINEAR_CORRECTED:
            return None

        tenor_start = self._libor_period(libor_index)
        if evaluation_time_index == fixing_time_index(process, tenor_start):
            return self._drift_adjustments.get_or_compute(
                process,
                libor_index,
                lambda: self._evaluate_drift_adjustment(process, evaluation_time_index, libor_index),
            )
        return self._evaluate_drift_adjustment(process, evaluation_time_index, libor_index)

    def _realizations(self, process, time_index: int) -> List[RandomVariable]:
        tenor = self.libor_period_discretization
        realizations = []
        for k in range(tenor.number_of_time_steps):
            fixing_index = fixing_time_index(process, tenor.get_time(k))
            realizations.append(process.get_process_value(min(time_index, fixing_index), k))
        return realizations

    def _integrand(self, process, time_index: int, libor_index: int, tenor_dt: float) -> RandomVariable:
        realizations = self._realizations(process, time_index)
        loading = self.factor_loading(process, time_index, libor_index, realizations)
        integrand = RandomVariable.constant(0.0)
        for factor in loading:
            integrand = integrand.add(factor.squared())
        libor = realizations[libor_index]
        integrand = integrand.div(libor.mult(tenor_dt).add(1.0).squared())
        if self.state_space is StateSpace.LOGNORMAL:
            integrand = integrand.mult(libor.squared())
        return integrand

    def _evaluate_drift_adjustment(self, process, evaluation_time_index: int, libor_index: int) -> RandomVariable:
        tenor_dt = self.libor_period_discretization.get_time_step(libor_index)

        adjustment = RandomVariable.constant(0.0)
        previous_integrand = self._integrand(process, 0, libor_index, tenor_dt)
        for step in range(1, evaluation_time_index + 1):
            integrand = self._integrand(process, step, libor_index, tenor_dt)
            half_dt = 0.5 * (process.get_time(step) - process.get_time(step - 1))
            adjustment = adjustment.add(integrand.add(previous_integrand).mult(half_dt))
            previous_integrand = integrand

        if adjustment.has_nan():
            raise ConfigurationError(
                f"Interpolation drift adjustment for libor {libor_index} at time index "
                f"{evaluation_time_index} is NaN."
            )
        logger.debug(
            "Interpolation drift adjustment: libor=%d eval_index=%d mean=%.6g",
            libor_index, evaluation_time_index, adjustment.average(),
        )
        return adjustment

    def clear(self) -> None:
        for cache in self.caches:
            cache.clear()


__all__ = ["TenorInterpolator"]
