# src/libor_core/models/libor_market_model.py

"""
LIBOR market model on a tenor grid T_0 < T_1 < ... < T_n.

Component j is the forward rate L_j = L(T_j, T_{j+1}). The model supplies
drift, factor loadings and state-space transform to a process (see
``libor_core.process``) and answers numeraire / forward-rate queries from the
simulated values. The process is passed into every call; the model keeps no
reference to it, only process-scoped caches keyed by ``process.process_id``.

Numeraire
---------
SPOT      N(T_i) = prod_{k<i} (1 + delta_k L_k(T_k))
TERMINAL  N(T_i) = prod_{k>=i} 1 / (1 + delta_k L_k(T_i)) / P(T_0, T_n)

so N(T_0) = 1 under both measures.

Between tenor points the numeraire of the next tenor point is discounted
with the interpolated forward rate over the stub. With a discount curve
P_d the numeraire is rescaled so that E[N(0)/N(t)] = P_d(t), with P_d taken
from the curve at t itself.

A rate that fixes at T_k is read at the first simulation time >= T_k
(``fixing_time_index``), so the tenor grid need not be part of the
simulation grid.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from libor_core.curves import DiscountCurveFromForwardCurve
from libor_core.errors import CalculationError, ConfigurationError
from libor_core.models.cache import KeyedLRUCache, ProcessScopedCache
from libor_core.models.drift import (
    Drift,
    apply_ito_correction,
    average_drifts,
    euler_step_factor,
    line_integral_step_factor,
    running_sum_drift,
)
from libor_core.models.enums import (
    DriftApproximation,
    InterpolationMethod,
    Measure,
    ModelFamily,
    SimulationTimeInterpolationMethod,
    StateSpace,
)
from libor_core.models.tenor_interpolation import TenorInterpolator, fixing_time_index
from libor_core.stochastic import RandomVariable, TimeDiscretization

logger = logging.getLogger(__name__)

DEFAULT_LIBOR_CAP = 1e5


class LIBORMarketModel:
    family = ModelFamily.LIBOR_MARKET_MODEL

    def __init__(
        self,
        libor_period_discretization: TimeDiscretization,
        forward_curve,
        covariance_model,
        *,
        discount_curve=None,
        analytic_model=None,
        measure: Measure = Measure.SPOT,
        state_space: StateSpace = StateSpace.LOGNORMAL,
        drift_approximation: DriftApproximation = DriftApproximation.EULER,
        interpolation_method: InterpolationMethod = InterpolationMethod.LOG_LINEAR_UNCORRECTED,
        simulation_time_interpolation_method: SimulationTimeInterpolationMethod = (
            SimulationTimeInterpolationMethod.ROUND_DOWN
        ),
        libor_cap: float = DEFAULT_LIBOR_CAP,
    ) -> None:
        if libor_period_discretization.number_of_time_steps < 1:
            raise ConfigurationError("The tenor grid needs at least two times.")
        cov_tenor = getattr(covariance_model, "libor_period_discretization", None)
        if cov_tenor is not None and cov_tenor != libor_period_discretization:
            raise ConfigurationError(
                "Covariance model and market model use different libor period discretizations."
            )
        if not libor_cap > 0.0:
            raise ConfigurationError(f"libor_cap must be > 0, got {libor_cap}")

        self.libor_period_discretization = libor_period_discretization
        self.forward_curve = forward_curve
        self.covariance_model = covariance_model
        self.discount_curve = discount_curve
        self.analytic_model = analytic_model
        self.measure = Measure.parse(measure)
        self.state_space = StateSpace.parse(state_space)
        self.drift_approximation = DriftApproximation.parse(drift_approximation)
        self.interpolation_method = InterpolationMethod.parse(interpolation_method)
        self.simulation_time_interpolation_method = SimulationTimeInterpolationMethod.parse(
            simulation_time_interpolation_method
        )
        self.libor_cap = float(libor_cap)

        self._numeraires: ProcessScopedCache[RandomVariable] = ProcessScopedCache("numeraire")
        self._numeraire_discount_factors: ProcessScopedCache[object] = ProcessScopedCache(
            "numeraire discount factors"
        )
        self._integrated_covariance: KeyedLRUCache[np.ndarray] = KeyedLRUCache(maxsize=4)
        self._interpolator = TenorInterpolator(
            libor_period_discretization,
            forward_curve,
            self.get_factor_loading,
            interpolation_method=self.interpolation_method,
            simulation_time_interpolation_method=self.simulation_time_interpolation_method,
            state_space=self.state_space,
            analytic_model=analytic_model,
        )

    # ---------- sizes / grid ----------

    @property
    def number_of_components(self) -> int:
        return self.libor_period_discretization.number_of_time_steps

    @property
    def number_of_libors(self) -> int:
        return self.number_of_components

    @property
    def number_of_factors(self) -> int:
        return self.covariance_model.number_of_factors

    def get_libor_period(self, index: int) -> float:
        tenor = self.libor_period_discretization
        if index < 0 or index >= tenor.number_of_times:
            raise IndexError(f"Index for libor period discretization out of bounds: {index}.")
        return tenor.get_time(index)

    def get_libor_period_index(self, time: float) -> int:
        return self.libor_period_discretization.get_time_index(time)

    # ---------- state ----------

    def get_initial_state(self, process) -> List[RandomVariable]:
        tenor = self.libor_period_discretization
        states = []
        for j in range(self.number_of_components):
            rate = self.forward_curve.get_forward(tenor.get_time(j), tenor.get_time_step(j), self.analytic_model)
            if self.state_space is StateSpace.LOGNORMAL:
                state = math.log(rate) if rate > 0.0 else float("-inf")
            else:
                state = rate
            states.append(process.get_random_variable_for_constant(state))
        return states

    def apply_state_space_transform(self, process, time_index: int, component: int, value: RandomVariable) -> RandomVariable:
        if self.state_space is StateSpace.LOGNORMAL:
            value = value.exp()
        if not math.isinf(self.libor_cap):
            value = value.cap(self.libor_cap)
        return value

    def apply_state_space_transform_inverse(
        self,
        process,
        time_index: int,
        component: int,
        value: RandomVariable,
    ) -> RandomVariable:
        if self.state_space is StateSpace.LOGNORMAL:
            value = value.log()
        return value

    # ---------- drift / factor loading ----------

    def get_factor_loading(
        self,
        process,
        time_index: int,
        component: int,
        realization: Optional[Sequence[RandomVariable]] = None,
    ) -> List[RandomVariable]:
        if component < 0 or component >= self.number_of_components:
            raise IndexError(f"Component index {component} out of bounds for {self.number_of_components} libors.")
        return self.covariance_model.get_factor_loading(process.get_time(time_index), component, realization)

    def get_drift(
        self,
        process,
        time_index: int,
        realization: Sequence[RandomVariable],
        predictor: Optional[Sequence[RandomVariable]] = None,
    ) -> Drift:
        time = process.get_time(time_index)
        first = self.libor_period_discretization.get_time_index_nearest_less_or_equal(time) + 1

        if predictor is not None and self.drift_approximation is DriftApproximation.LINE_INTEGRAL:
            factors = self._step_factors(first, realization, predictor)
            return self._assemble_drift(process, time_index, first, factors, realization)

        drift = self._assemble_drift(process, time_index, first, self._step_factors(first, realization), realization)
        if predictor is not None and self.drift_approximation is DriftApproximation.PREDICTOR_CORRECTOR:
            drift_at_predictor = self._assemble_drift(
                process, time_index, first, self._step_factors(first, predictor), predictor
            )
            drift = average_drifts(drift, drift_at_predictor)
        return drift

    def _step_factors(
        self,
        first: int,
        realization: Sequence[RandomVariable],
        predictor: Optional[Sequence[RandomVariable]] = None,
    ) -> List[Optional[RandomVariable]]:
        tenor = self.libor_period_discretization
        factors: List[Optional[RandomVariable]] = [None] * first
        for j in range(first, self.number_of_components):
            delta = tenor.get_time_step(j)
            if predictor is None:
                factors.append(euler_step_factor(realization[j], delta, self.state_space))
            else:
                factors.append(line_integral_step_factor(realization[j], predictor[j], delta, self.state_space))
        return factors

    def _assemble_drift(
        self,
        process,
        time_index: int,
        first: int,
        factors: Sequence[Optional[RandomVariable]],
        realization: Sequence[RandomVariable],
    ) -> Drift:
        loadings = [None] * first + [
            self.get_factor_loading(process, time_index, j, realization)
            for j in range(first, self.number_of_components)
        ]
        drift = running_sum_drift(self.measure, first, factors, loadings, self.number_of_factors)

        if self.state_space is StateSpace.LOGNORMAL:
            time = process.get_time(time_index)
            variances = [
                None if d is None else self.covariance_model.get_covariance(time, j, j, realization)
                for j, d in enumerate(drift)
            ]
            drift = apply_ito_correction(drift, variances)
        return drift

    # ---------- numeraire ----------

    def get_numeraire(self, process, time: float) -> RandomVariable:
        if time < 0:
            curve = self.discount_curve or DiscountCurveFromForwardCurve(self.forward_curve)
            return process.get_random_variable_for_constant(curve.get_discount_factor(time, self.analytic_model))

        self.ensure_cache_consistency(process)
        numeraire = self._get_unadjusted_numeraire(process, time)
        if self.discount_curve is not None:
            # Rescale so that E[N(0)/N(t)] reproduces the discount curve.
            discount_factor = self._get_numeraire_discount_factor(process, time)
            zero_bond = numeraire.invert().mult(self._get_unadjusted_numeraire(process, 0.0)).average()
            numeraire = numeraire.mult(zero_bond).div(discount_factor)
        return numeraire

    def _get_unadjusted_numeraire(self, process, time: float) -> RandomVariable:
        tenor = self.libor_period_discretization
        libor_index = tenor.get_time_index(time)
        if libor_index >= 0:
            return self._get_unadjusted_numeraire_at_libor_index(process, libor_index)

        upper_index = tenor.get_time_index_nearest_greater_or_equal(time)
        if upper_index - 1 < 0:
            raise CalculationError(f"Numeraire requested for time {time} before the first tenor point.")
        if upper_index >= tenor.number_of_times:
            raise CalculationError(f"Numeraire requested for time {time} after the last tenor point.")
        upper_time = tenor.get_time(upper_index)

        if self.measure is Measure.TERMINAL:
            numeraire = process.get_random_variable_for_constant(1.0)
            time_index = self._interpolator.process_time_index(process, time)
            for k in range(upper_index, self.number_of_components):
                numeraire = numeraire.discount(self.get_libor(process, time_index, k), tenor.get_time_step(k))
            numeraire = numeraire.div(self._get_terminal_normalization(process))
        elif self.measure is Measure.SPOT:
            numeraire = self._get_unadjusted_numeraire_at_libor_index(process, upper_index)
        else:
            raise CalculationError(f"Numeraire not implemented for measure {self.measure!r}.")

        stub_rate = self.get_forward_rate(process, time, time, upper_time)
        return numeraire.discount(stub_rate, upper_time - time)

    def _get_unadjusted_numeraire_at_libor_index(self, process, libor_index: int) -> RandomVariable:
        return self._numeraires.get_or_compute(
            process,
            libor_index,
            lambda: self._compute_numeraire_at_libor_index(process, libor_index),
        )

    def _compute_numeraire_at_libor_index(self, process, libor_index: int) -> RandomVariable:
        tenor = self.libor_period_discretization

        if self.measure is Measure.TERMINAL:
            if libor_index == 0:
                return process.get_random_variable_for_constant(1.0)
            time_index = fixing_time_index(process, tenor.get_time(libor_index))
            numeraire = self._terminal_bond(process, time_index, libor_index)
            return numeraire.div(self._get_terminal_normalization(process))

        if self.measure is Measure.SPOT:
            if libor_index == 0:
                return process.get_random_variable_for_constant(1.0)
            previous = libor_index - 1
            time_index = fixing_time_index(process, tenor.get_time(previous))
            libor = self.get_libor(process, time_index, previous)
            return self._get_unadjusted_numeraire_at_libor_index(process, previous).accrue(
                libor, tenor.get_time_step(previous)
            )

        raise CalculationError(f"Numeraire not implemented for measure {self.measure!r}.")

    def _terminal_bond(self, process, time_index: int, libor_index: int) -> RandomVariable:
        """P(t_i, T_n) / P(t_i, T_j) = prod_{k>=j} 1/(1 + delta_k L_k(t_i))."""
        tenor = self.libor_period_discretization
        bond = process.get_random_variable_for_constant(1.0)
        for k in range(libor_index, self.number_of_components):
            bond = bond.discount(self.get_libor(process, time_index, k), tenor.get_time_step(k))
        return bond

    def _get_terminal_normalization(self, process) -> RandomVariable:
        """P(T_0, T_n): the terminal bond is scaled by it so that N(T_0) = 1."""
        time_index = fixing_time_index(process, self.libor_period_discretization.get_time(0))
        return self._numeraires.get_or_compute(
            process, "terminal_normalization", lambda: self._terminal_bond(process, time_index, 0)
        )

    # ---------- discount curve adjustment ----------

    def _numeraire_adjustment_table(self) -> Dict[float, float]:
        tenor = self.libor_period_discretization
        curve = self.discount_curve
        forward_rates: Dict[float, float] = {}
        for i in range(tenor.number_of_time_steps):
            df_prev = curve.get_discount_factor(tenor.get_time(i), self.analytic_model)
            df_next = curve.get_discount_factor(tenor.get_time(i + 1), self.analytic_model)
            forward_rates[tenor.get_time(i)] = (df_prev / df_next - 1.0) / tenor.get_time_step(i)
        logger.debug("Numeraire adjustments built on %d tenor periods", len(forward_rates))
        return forward_rates

    def _get_numeraire_discount_factor(self, process, time: float) -> RandomVariable:
        """P_d(time) from the discount curve, cached per time."""
        self._numeraire_discount_factors.get_or_compute(process, "adjustments", self._numeraire_adjustment_table)
        discount_factor = self._numeraire_discount_factors.get_or_compute(
            process, time, lambda: self.discount_curve.get_discount_factor(time, self.analytic_model)
        )
        return process.get_random_variable_for_constant(discount_factor)

    def get_numeraire_adjustments(self) -> Dict[float, float]:
        adjustments = self._numeraire_discount_factors.snapshot().get("adjustments")
        if adjustments is None:
            return {}
        return dict(adjustments)

    def get_forward_discount_bond(self, process, time: float, maturity: float) -> RandomVariable:
        """P(t, T) consistent with the model forwards and the discount curve."""
        if maturity <= time:
            raise ConfigurationError(f"maturity ({maturity}) must be after time ({time}).")
        inverse_bond_at_time = self.get_forward_rate(process, time, time, maturity).mult(maturity - time).add(1.0)
        inverse_bond_at_zero = self.get_forward_rate(process, 0.0, time, maturity).mult(maturity - time).add(1.0)
        if self.discount_curve is not None:
            bond_at_zero = self._get_numeraire_discount_factor(process, maturity).div(
                self._get_numeraire_discount_factor(process, time)
            )
        else:
            bond_at_zero = inverse_bond_at_zero.invert()
        return bond_at_zero.mult(inverse_bond_at_zero).div(inverse_bond_at_time)

    def ensure_cache_consistency(self, process) -> None:
        for cache in (self._numeraires, self._numeraire_discount_factors, *self._interpolator.caches):
            cache.ensure_consistency(process)

    # ---------- forward rates ----------

    def get_forward_rate(self, process, time: float, period_start: float, period_end: float) -> RandomVariable:
        return self._interpolator.get_forward_rate(process, time, period_start, period_end)

    def get_libor(self, process, time_index: int, libor_index: int) -> RandomVariable:
        return process.get_process_value(time_index, libor_index)

    # ---------- analytic inputs ----------

    def get_integrated_libor_covariance(
        self,
        simulation_time_discretization: Optional[TimeDiscretization] = None,
    ) -> np.ndarray:
        """
        C[i, j, k] = sum_{l <= i} lambda_j(t_l) . lambda_k(t_l) dt_l, with
        terms dropped once the earlier of T_j, T_k has been reached.
        """
        td = simulation_time_discretization or self.covariance_model.time_discretization
        return self._integrated_covariance.get_or_compute(td, lambda: self._build_integrated_covariance(td))

    def _build_integrated_covariance(self, td: TimeDiscretization) -> np.ndarray:
        tenor = self.libor_period_discretization
        n = self.number_of_components
        tenor_starts = tenor.as_array()[:-1]
        result = np.zeros((td.number_of_time_steps, n, n))

        for i in range(td.number_of_time_steps):
            time = td.get_time(i)
            dt = td.get_time_step(i)
            loadings = np.array(
                [
                    [factor.get(0) for factor in self.covariance_model.get_factor_loading(time, tenor.get_time(c), None)]
                    for c in range(n)
                ]
            )
            live = (tenor_starts > time).astype(float)
            result[i] = (loadings @ loadings.T) * dt * np.outer(live, live)

        result = np.cumsum(result, axis=0)
        result.setflags(write=False)
        logger.debug("Integrated libor covariance built: %d steps x %d libors", td.number_of_time_steps, n)
        return result

    def get_model_parameters(self) -> Dict[str, object]:
        tenor = self.libor_period_discretization
        forwards = np.array(
            [
                self.forward_curve.get_forward(tenor.get_time(j), tenor.get_time_step(j), self.analytic_model)
                for j in range(self.number_of_components)
            ]
        )
        get_parameter = getattr(self.covariance_model, "get_parameter", None)
        return {
            "forward_initial_values": forwards,
            "covariance_model_parameters": None if get_parameter is None else get_parameter(),
            "numeraire_adjustments": self.get_numeraire_adjustments(),
        }

    # ---------- clones ----------

    def _settings(self) -> dict:
        return {
            "discount_curve": self.discount_curve,
            "analytic_model": self.analytic_model,
            "measure": self.measure,
            "state_space": self.state_space,
            "drift_approximation": self.drift_approximation,
            "interpolation_method": self.interpolation_method,
            "simulation_time_interpolation_method": self.simulation_time_interpolation_method,
            "libor_cap": self.libor_cap,
        }

    def get_clone_with_modified_covariance_model(self, covariance_model) -> "LIBORMarketModel":
        return LIBORMarketModel(
            self.libor_period_discretization, self.forward_curve, covariance_model, **self._settings()
        )

    def get_clone_with_modified_covariance_parameters(self, parameters: Sequence[float]) -> "LIBORMarketModel":
        clone = getattr(self.covariance_model, "get_clone_with_modified_parameters", None)
        if clone is None:
            raise CalculationError(
                f"Covariance model {type(self.covariance_model).__name__} is not parametric."
            )
        return self.get_clone_with_modified_covariance_model(clone(parameters))

    def get_clone_with_modified_data(self, **changes) -> "LIBORMarketModel":
        """New model with some of the curves / settings replaced."""
        settings = self._settings()
        libor_period_discretization = changes.pop("libor_period_discretization", self.libor_period_discretization)
        forward_curve = changes.pop("forward_curve", self.forward_curve)
        covariance_model = changes.pop("covariance_model", self.covariance_model)
        unknown = set(changes) - set(settings)
        if unknown:
            raise ConfigurationError(f"Unknown model settings: {sorted(unknown)}")
        settings.update(changes)
        return LIBORMarketModel(libor_period_discretization, forward_curve, covariance_model, **settings)

    def __repr__(self) -> str:
        return (
            f"LIBORMarketModel(libors={self.number_of_components}, factors={self.number_of_factors}, "
            f"measure={self.measure.name}, state_space={self.state_space.name})"
        )


__all__ = ["LIBORMarketModel", "DEFAULT_LIBOR_CAP"]
