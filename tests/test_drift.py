from __future__ import annotations

import pytest

from libor_core.errors import CalculationError
from libor_core.models.drift import (
    apply_ito_correction,
    average_drifts,
    euler_step_factor,
    line_integral_step_factor,
    running_sum_drift,
)
from libor_core.models.enums import Measure, StateSpace
from libor_core.stochastic import RandomVariable


def rv(x):
    return RandomVariable.constant(x)


def test_euler_step_factor_by_state_space():
    libor = rv(0.04)
    assert euler_step_factor(libor, 0.5, StateSpace.NORMAL).double_value() == pytest.approx(0.5 / 1.02)
    assert euler_step_factor(libor, 0.5, StateSpace.LOGNORMAL).double_value() == pytest.approx(0.04 * 0.5 / 1.02)


@pytest.mark.parametrize("state_space", [StateSpace.NORMAL, StateSpace.LOGNORMAL])
def test_line_integral_reduces_to_euler_without_move(state_space):
    libor = RandomVariable([0.02, 0.03, 0.05])
    euler = euler_step_factor(libor, 1.0, state_space)
    line = line_integral_step_factor(libor, libor, 1.0, state_space)
    assert line.as_array().tolist() == pytest.approx(euler.as_array().tolist())


@pytest.mark.parametrize("state_space", [StateSpace.NORMAL, StateSpace.LOGNORMAL])
def test_line_integral_is_between_endpoint_factors(state_space):
    start, end = rv(0.03), rv(0.035)
    line = line_integral_step_factor(start, end, 1.0, state_space).double_value()
    a = euler_step_factor(start, 1.0, state_space).double_value()
    b = euler_step_factor(end, 1.0, state_space).double_value()
    assert min(a, b) <= line <= max(a, b)


def test_running_sum_spot_and_terminal():
    # One factor, unit loadings: drift_j is a partial sum of the step factors.
    steps = [rv(1.0), rv(2.0), rv(3.0)]
    loadings = [[rv(1.0)]] * 3

    spot = running_sum_drift(Measure.SPOT, 1, steps, loadings, 1)
    assert spot[0] is None
    assert [d.double_value() for d in spot[1:]] == [2.0, 5.0]

    terminal = running_sum_drift(Measure.TERMINAL, 0, steps, loadings, 1)
    assert [d.double_value() for d in terminal] == [-5.0, -3.0, 0.0]


def test_running_sum_rejects_unknown_measure():
    with pytest.raises(CalculationError):
        running_sum_drift("ANNUITY", 0, [rv(1.0)], [[rv(1.0)]], 1)


def test_ito_correction_and_averaging_keep_frozen_components():
    drift = [None, rv(1.0), rv(2.0)]
    corrected = apply_ito_correction(drift, [None, rv(0.5), rv(1.0)])
    assert corrected[0] is None
    assert [d.double_value() for d in corrected[1:]] == [0.75, 1.5]

    averaged = average_drifts(drift, [rv(9.0), rv(3.0), None])
    assert averaged[0] is None
    assert averaged[1].double_value() == 2.0
    assert averaged[2] is None

    with pytest.raises(CalculationError):
        average_drifts(drift, drift[:2])
