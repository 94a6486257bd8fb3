# src/libor_core/pricing/swaption.py

"""
European payer swaption on a LIBOR tenor.

Two valuations of the same product:

  * SwaptionAnalyticApproximation - freezes the log swap-rate sensitivities
    to the forwards at time 0 and contracts them with the model's integrated
    LIBOR covariance up to the option maturity; Black formula on the result.
  * SwaptionMonteCarlo            - pathwise payoff on the simulation,
    discounted with the numeraire.

The swap tenor is T_0 < T_1 < ... < T_m; T_0 is the option maturity.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Dict, Sequence, Tuple, Union

import numpy as np
from scipy.stats import norm

from libor_core.curves import DiscountCurveFromForwardCurve
from libor_core.errors import CalculationError, ConfigurationError
from libor_core.models.cache import KeyedLRUCache
from libor_core.models.enums import ModelFamily
from libor_core.stochastic import TimeDiscretization

logger = logging.getLogger(__name__)

SwapTenor = Union[TimeDiscretization, Sequence[float]]


class ValueUnit(Enum):
    VALUE = "value"
    VOLATILITY = "volatility"
    INTEGRATED_VARIANCE = "integrated_variance"


def _as_tenor(swap_tenor: SwapTenor) -> Tuple[float, ...]:
    times = tuple(float(t) for t in swap_tenor)
    if len(times) < 2:
        raise ConfigurationError(f"Swap tenor needs at least two times, got {len(times)}")
    if any(b <= a for a, b in zip(times, times[1:])):
        raise ConfigurationError(f"Swap tenor must be strictly increasing: {times}")
    return times


# ---------- Black ----------

def black_swaption_value(
    forward_swaprate: float,
    volatility: float,
    option_maturity: float,
    strike: float,
    swap_annuity: float,
) -> float:
    """Black (lognormal) payer swaption value."""
    intrinsic = max(forward_swaprate - strike, 0.0) * swap_annuity
    if option_maturity <= 0.0 or volatility <= 0.0:
        return intrinsic
    if forward_swaprate <= 0.0 or strike <= 0.0:
        return intrinsic

    std_dev = volatility * math.sqrt(option_maturity)
    d1 = (math.log(forward_swaprate / strike) + 0.5 * std_dev * std_dev) / std_dev
    d2 = d1 - std_dev
    return swap_annuity * (forward_swaprate * norm.cdf(d1) - strike * norm.cdf(d2))


def forward_swaprate_and_annuity(
    swap_tenor: SwapTenor,
    forward_curve,
    discount_curve=None,
    analytic_model=None,
) -> Tuple[float, float]:
    """Par swap rate and annuity of the swap from the time-0 curves."""
    times = _as_tenor(swap_tenor)
    discount_curve = discount_curve or DiscountCurveFromForwardCurve(forward_curve)

    float_leg = 0.0
    annuity = 0.0
    for start, end in zip(times, times[1:]):
        period_length = end - start
        df_end = discount_curve.get_discount_factor(end, analytic_model)
        float_leg += forward_curve.get_forward(start, period_length, analytic_model) * period_length * df_end
        annuity += period_length * df_end
    return float_leg / annuity, annuity


# ---------- analytic approximation ----------

class SwaptionAnalyticApproximation:
    """
    Integrated swap-rate variance

        Var = sum_{i,j} w_i w_j C_{ij}(T_0)

    with w_i = d log S / d log L_i at time 0 and C the integrated LIBOR
    covariance of the model. The weights only depend on the tenor grid and
    the curves, so they are shared across instances in a small LRU.
    """

    _weights_cache: KeyedLRUCache[Dict[str, np.ndarray]] = KeyedLRUCache(maxsize=32)

    def __init__(
        self,
        swaprate: float,
        swap_tenor: SwapTenor,
        value_unit: ValueUnit = ValueUnit.VALUE,
    ) -> None:
        self.swaprate = float(swaprate)
        self.swap_tenor = _as_tenor(swap_tenor)
        self.value_unit = value_unit if isinstance(value_unit, ValueUnit) else ValueUnit(str(value_unit).lower())

    @classmethod
    def weights_cache(cls) -> KeyedLRUCache:
        return cls._weights_cache

    def get_value(self, simulation, evaluation_time: float = 0.0) -> float:
        model = simulation.model
        if model.family is not ModelFamily.LIBOR_MARKET_MODEL:
            raise CalculationError(
                f"SwaptionAnalyticApproximation requires a LIBOR market model, got {model.family.name}."
            )
        return self.get_value_for_model(model, simulation.time_discretization, evaluation_time)

    def get_value_for_model(
        self,
        model,
        time_discretization: TimeDiscretization,
        evaluation_time: float = 0.0,
    ) -> float:
        if evaluation_time > 0:
            raise CalculationError("Forward start evaluation is not supported.")

        tenor = model.libor_period_discretization
        swap_start = self.swap_tenor[0]
        swap_end = self.swap_tenor[-1]
        swap_start_index = tenor.get_time_index(swap_start)
        swap_end_index = tenor.get_time_index(swap_end)
        if swap_start_index < 0 or swap_end_index < 0:
            raise ConfigurationError(
                f"Swap tenor [{swap_start}, {swap_end}] is not aligned to the libor period discretization."
            )

        option_maturity_index = time_discretization.get_time_index(swap_start) - 1
        if option_maturity_index < 0:
            raise CalculationError(
                f"Option maturity {swap_start} is not a positive time of the simulation time discretization."
            )

        weights = self.get_log_swaprate_derivative(
            tenor, model.discount_curve, model.forward_curve, model.analytic_model
        )["values"]
        covariance = model.get_integrated_libor_covariance(time_discretization)[option_maturity_index]
        block = covariance[swap_start_index:swap_end_index, swap_start_index:swap_end_index]
        integrated_variance = float(weights @ block @ weights)

        if self.value_unit is ValueUnit.INTEGRATED_VARIANCE:
            return integrated_variance

        volatility = math.sqrt(integrated_variance / swap_start)
        if self.value_unit is ValueUnit.VOLATILITY:
            return volatility

        forward_swaprate, annuity = forward_swaprate_and_annuity(
            self.swap_tenor, model.forward_curve, model.discount_curve, model.analytic_model
        )
        value = black_swaption_value(forward_swaprate, volatility, swap_start, self.swaprate, annuity)
        logger.debug(
            "Swaption analytic approximation: S=%.6g K=%.6g vol=%.6g annuity=%.6g value=%.6g",
            forward_swaprate, self.swaprate, volatility, annuity, value,
        )
        return value

    def get_log_swaprate_derivative(
        self,
        libor_period_discretization: TimeDiscretization,
        discount_curve,
        forward_curve,
        analytic_model=None,
    ) -> Dict[str, np.ndarray]:
        """Weights, discount factors and swap annuities (see class doc)."""
        discount_curve = discount_curve or DiscountCurveFromForwardCurve(forward_curve)
        key = (libor_period_discretization, discount_curve, forward_curve, self.swap_tenor)
        return self._weights_cache.get_or_compute(
            key,
            lambda: self._compute_log_swaprate_derivative(
                libor_period_discretization, discount_curve, forward_curve, analytic_model
            ),
        )

    def _compute_log_swaprate_derivative(
        self,
        tenor: TimeDiscretization,
        discount_curve,
        forward_curve,
        analytic_model,
    ) -> Dict[str, np.ndarray]:
        swap_tenor = self.swap_tenor
        start_index = tenor.get_time_index(swap_tenor[0])
        end_index = tenor.get_time_index(swap_tenor[-1])
        n = end_index - start_index

        forwards = np.empty(n)
        discount_factors = np.empty(n + 1)
        discount_factors[0] = discount_curve.get_discount_factor(swap_tenor[0], analytic_model)
        for k in range(n):
            i = start_index + k
            forwards[k] = forward_curve.get_forward(tenor.get_time(i), tenor.get_time_step(i), analytic_model)
            discount_factors[k + 1] = discount_curve.get_discount_factor(tenor.get_time(i + 1), analytic_model)

        # Annuity of the remaining swap from each swap period on.
        swap_annuities = np.empty(len(swap_tenor) - 1)
        annuity = 0.0
        for p in range(len(swap_tenor) - 2, -1, -1):
            period_end_index = tenor.get_time_index(swap_tenor[p + 1])
            if period_end_index < 0:
                raise ConfigurationError(f"Swap period end {swap_tenor[p + 1]} is not a libor period time.")
            annuity += discount_factors[period_end_index - start_index] * (swap_tenor[p + 1] - swap_tenor[p])
            swap_annuities[p] = annuity

        period_lengths = np.array([tenor.get_time_step(start_index + k) for k in range(n)])
        value_float_leg = float(np.sum(forwards * discount_factors[1:] * period_lengths))

        weights = np.empty(n)
        swap_period = 0
        value_float_leg_up_to = 0.0
        for k in range(n):
            i = start_index + k
            if tenor.get_time(i) >= swap_tenor[swap_period + 1]:
                swap_period += 1
            libor = forwards[k]
            period_length = period_lengths[k]
            value_float_leg_up_to += libor * discount_factors[k + 1] * period_length

            derivative_float_leg = (
                (discount_factors[k + 1] + value_float_leg_up_to - value_float_leg)
                * period_length / (1.0 + libor * period_length) / value_float_leg
            )
            derivative_fix_leg = (
                -swap_annuities[swap_period] / annuity * period_length / (1.0 + libor * period_length)
            )
            weights[k] = (derivative_float_leg - derivative_fix_leg) * libor

        for arr in (weights, discount_factors, swap_annuities):
            arr.setflags(write=False)
        return {"values": weights, "discount_factors": discount_factors, "swap_annuities": swap_annuities}


# ---------- Monte Carlo ----------

class SwaptionMonteCarlo:
    """
    Payer swaption exercised at T_0:

        V(0) = N(0) E[ max(sum_k delta_k (F_k(T_0) - K) P(T_0, T_{k+1}), 0) / N(T_0) ]

    with F_k the model forward over the k-th swap period and P(T_0, .)
    compounded from the same forwards.
    """

    def __init__(self, swaprate: float, swap_tenor: SwapTenor) -> None:
        self.swaprate = float(swaprate)
        self.swap_tenor = _as_tenor(swap_tenor)

    def get_value(self, simulation, evaluation_time: float = 0.0) -> float:
        if evaluation_time > self.swap_tenor[0]:
            raise CalculationError(
                f"Evaluation time {evaluation_time} is after the exercise date {self.swap_tenor[0]}."
            )
        exercise = self.swap_tenor[0]

        swap_value = simulation.get_random_variable_for_constant(0.0)
        discount_factor = simulation.get_random_variable_for_constant(1.0)
        for start, end in zip(self.swap_tenor, self.swap_tenor[1:]):
            period_length = end - start
            forward = simulation.get_forward_rate(exercise, start, end)
            discount_factor = discount_factor.discount(forward, period_length)
            swap_value = swap_value.add(forward.sub(self.swaprate).mult(period_length).mult(discount_factor))

        payoff = swap_value.floor(0.0)
        value = payoff.div(simulation.get_numeraire(exercise)).mult(simulation.get_numeraire(evaluation_time))
        return value.average()


def value_swaption(simulation, swaprate: float, swap_tenor: SwapTenor, model_config=None) -> float:
    """
    Analytic approximation for a LIBOR market model when
    ``model_config.use_analytic_approximation`` is set, Monte Carlo otherwise.
    """
    use_analytic = True if model_config is None else model_config.use_analytic_approximation
    if use_analytic and simulation.model.family is ModelFamily.LIBOR_MARKET_MODEL:
        return SwaptionAnalyticApproximation(swaprate, swap_tenor).get_value(simulation)
    return SwaptionMonteCarlo(swaprate, swap_tenor).get_value(simulation)


__all__ = [
    "ValueUnit",
    "SwaptionAnalyticApproximation",
    "SwaptionMonteCarlo",
    "black_swaption_value",
    "forward_swaprate_and_annuity",
    "value_swaption",
]
