# src/libor_core/models/drift.py

"""
Drift math shared by the model families.

The LIBOR market model drift under a measure is built from a running
per-factor sum ("covariance factor sums") so that a full drift vector costs
O(components x factors):

    SPOT      mu_j =  sum_{k=m(t)}^{j}     s_k <lambda_k, lambda_j>
    TERMINAL  mu_j = -sum_{k=j+1}^{n-1}    s_k <lambda_k, lambda_j>

with s_k the one-step measure transform delta_k/(1+delta_k L_k), times L_k
in log-normal state space. The functions here only see RandomVariables and
plain lists; the models decide which factors and loadings go in.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from libor_core.errors import CalculationError
from libor_core.models.enums import Measure, StateSpace
from libor_core.stochastic import RandomVariable

# Below this state-space distance the line integral is replaced by its limit.
LINE_INTEGRAL_TOLERANCE = 1e-12

Drift = List[Optional[RandomVariable]]


# ---------------------------------------------------------------------------
# One-step measure transforms
# ---------------------------------------------------------------------------

def euler_step_factor(
    libor: RandomVariable,
    period_length: float,
    state_space: StateSpace,
) -> RandomVariable:
    """delta/(1+delta L), times L in log-normal state space."""
    factor = RandomVariable.constant(period_length).discount(libor, period_length)
    if state_space is StateSpace.LOGNORMAL:
        factor = factor.mult(libor)
    return factor


def line_integral_step_factor(
    libor_start: RandomVariable,
    libor_end: RandomVariable,
    period_length: float,
    state_space: StateSpace,
) -> RandomVariable:
    """
    Average of the Euler factor along the straight line from the start to the
    end state (x = log L in log-normal, x = L in normal state space):

        [log(1+delta L_end) - log(1+delta L_start)] / (x_end - x_start)

    Paths where the two states (nearly) coincide use the Euler factor.
    """
    n = max(libor_start.size, libor_end.size)
    start = libor_start.as_array(n)
    end = libor_end.as_array(n)

    with np.errstate(divide="ignore", invalid="ignore"):
        if state_space is StateSpace.LOGNORMAL:
            dx = np.log(end) - np.log(start)
        else:
            dx = end - start
        integral = np.log1p(period_length * end) - np.log1p(period_length * start)
        averaged = integral / dx

    euler = euler_step_factor(libor_start, period_length, state_space).as_array(n)
    use_euler = (np.abs(dx) < LINE_INTEGRAL_TOLERANCE) | ~np.isfinite(averaged)
    values = np.where(use_euler, euler, averaged)

    time = max(libor_start.time, libor_end.time)
    if libor_start.is_deterministic and libor_end.is_deterministic:
        return RandomVariable(float(values[0]), time)
    return RandomVariable(values, time)


# ---------------------------------------------------------------------------
# Drift assembly
# ---------------------------------------------------------------------------

def running_sum_drift(
    measure: Measure,
    first_component: int,
    step_factors: Sequence[Optional[RandomVariable]],
    factor_loadings: Sequence[Optional[Sequence[RandomVariable]]],
    number_of_factors: int,
) -> Drift:
    """
    Drift vector from one-step factors and factor loadings.

    Components before ``first_component`` are frozen and get ``None``.
    """
    number_of_components = len(step_factors)
    zero = RandomVariable.constant(0.0)
    drift: Drift = [None] * number_of_components
    factor_sums = [zero] * number_of_factors

    if measure is Measure.SPOT:
        for j in range(first_component, number_of_components):
            loading = factor_loadings[j]
            factor_sums = [s.add_product(step_factors[j], lam) for s, lam in zip(factor_sums, loading)]
            drift[j] = zero.add_sum_product(factor_sums, loading)
    elif measure is Measure.TERMINAL:
        for j in range(number_of_components - 1, first_component - 1, -1):
            loading = factor_loadings[j]
            drift[j] = zero.add_sum_product(factor_sums, loading)
            negative_step = step_factors[j].mult(-1.0)
            factor_sums = [s.add_product(negative_step, lam) for s, lam in zip(factor_sums, loading)]
    else:
        raise CalculationError(f"Drift not implemented for measure {measure!r}.")

    return drift


def apply_ito_correction(drift: Drift, variances: Sequence[Optional[RandomVariable]]) -> Drift:
    """drift_j - variance_j / 2 for every live component."""
    return [
        d if d is None else d.add_product(variance, -0.5)
        for d, variance in zip(drift, variances)
    ]


def average_drifts(drift: Drift, drift_at_predictor: Drift) -> Drift:
    """Component-wise mean of two drift vectors (predictor-corrector)."""
    if len(drift) != len(drift_at_predictor):
        raise CalculationError(
            f"Drift vectors differ in length ({len(drift)} vs {len(drift_at_predictor)})"
        )
    averaged: Drift = []
    for d, p in zip(drift, drift_at_predictor):
        if d is None or p is None:
            averaged.append(None)
        else:
            averaged.append(d.add(p).mult(0.5))
    return averaged


__all__ = [
    "Drift",
    "LINE_INTEGRAL_TOLERANCE",
    "euler_step_factor",
    "line_integral_step_factor",
    "running_sum_drift",
    "apply_ito_correction",
    "average_drifts",
]
