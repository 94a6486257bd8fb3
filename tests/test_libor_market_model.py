from __future__ import annotations

import math
from types import SimpleNamespace

import numpy as np
import pytest

from libor_core.curves import discount_curve_from_pairs
from libor_core.errors import CalculationError, ConfigurationError
from libor_core.models import (
    DriftApproximation,
    InterpolationMethod,
    LIBORCorrelationModelExponentialDecay,
    LIBORCovarianceModelFromVolatilityAndCorrelation,
    LIBORMarketModel,
    LIBORVolatilityModelFromGivenMatrix,
    Measure,
    StateSpace,
)
from libor_core.models.tenor_interpolation import fixing_time_index
from libor_core.stochastic import RandomVariable, TimeDiscretization


# ---------- numeraire ----------

@pytest.mark.parametrize("measure", [Measure.SPOT, Measure.TERMINAL])
def test_numeraire_is_one_at_start(make_lmm, make_simulation, measure):
    simulation = make_simulation(make_lmm(volatility=0.2, measure=measure))
    numeraire = simulation.get_numeraire(0.0)
    assert numeraire.min() == pytest.approx(1.0)
    assert numeraire.max() == pytest.approx(1.0)


@pytest.mark.parametrize("measure", [Measure.SPOT, Measure.TERMINAL])
def test_zero_volatility_reproduces_flat_curve(make_lmm, make_simulation, measure):
    simulation = make_simulation(make_lmm(volatility=0.0, measure=measure), number_of_paths=4)

    assert simulation.get_libor(4, 2).average() == pytest.approx(0.03)
    assert simulation.get_forward_rate(0.0, 1.0, 2.0).average() == pytest.approx(0.03)
    assert simulation.get_forward_rate(0.0, 1.0, 3.0).average() == pytest.approx((1.03 ** 2 - 1.0) / 2.0)
    assert simulation.get_numeraire(5.0).average() == pytest.approx(1.03 ** 5)
    # Between tenor points: N(3) discounted over the stub.
    assert simulation.get_numeraire(2.5).average() == pytest.approx(1.03 ** 3 / 1.015)


@pytest.mark.parametrize("method", list(InterpolationMethod))
@pytest.mark.parametrize(
    "period, expected",
    [
        ((1.0, 2.0), 0.03),
        ((0.5, 1.0), 0.03),
        ((0.5, 1.5), 0.03),
        ((1.5, 3.0), (1.03 * 1.015 - 1.0) / 1.5),
    ],
)
def test_forward_rates_reprice_curve_for_every_interpolation(make_lmm, make_simulation, method, period, expected):
    simulation = make_simulation(make_lmm(volatility=0.0, interpolation_method=method), number_of_paths=4)
    start, end = period
    assert simulation.get_forward_rate(0.0, start, end).average() == pytest.approx(expected)


def test_spot_and_terminal_bonds_agree_without_volatility(make_lmm, make_simulation):
    spot = make_simulation(make_lmm(volatility=0.0, measure=Measure.SPOT), number_of_paths=4)
    terminal = make_simulation(make_lmm(volatility=0.0, measure=Measure.TERMINAL), number_of_paths=4)
    for time in (1.0, 2.5, 4.0):
        assert spot.get_numeraire(time).average() == pytest.approx(terminal.get_numeraire(time).average())


@pytest.mark.parametrize("measure", [Measure.SPOT, Measure.TERMINAL])
def test_monte_carlo_zero_bonds_match_curve(make_lmm, make_simulation, measure):
    simulation = make_simulation(make_lmm(volatility=0.2, measure=measure), number_of_paths=2000)
    for maturity in (1.0, 3.0, 5.0):
        bond = simulation.get_numeraire(maturity).invert().average()
        assert bond == pytest.approx(1.03 ** -maturity, rel=2e-2)


def test_discount_curve_rescales_numeraire(make_lmm, make_simulation, flat_discount_2pct):
    simulation = make_simulation(make_lmm(volatility=0.2, discount_curve=flat_discount_2pct), number_of_paths=500)
    for maturity in (1.0, 2.0, 3.5, 5.0):
        bond = simulation.get_numeraire(0.0).div(simulation.get_numeraire(maturity)).average()
        assert bond == pytest.approx(math.exp(-0.02 * maturity), rel=1e-10)

    adjustments = simulation.model.get_numeraire_adjustments()
    assert sorted(adjustments) == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert adjustments[2.0] == pytest.approx(math.exp(0.02) - 1.0)


def test_numeraire_adjustments_empty_before_use(make_lmm, flat_discount_2pct):
    assert make_lmm(discount_curve=flat_discount_2pct).get_numeraire_adjustments() == {}


@pytest.fixture
def kinked_discount_curve():
    # Node at 2.5 breaks log-linearity between the tenor points 2 and 3.
    return discount_curve_from_pairs(
        "kinked",
        [(1.0, math.exp(-0.02)), (2.0, math.exp(-0.05)), (2.5, math.exp(-0.09)), (3.0, math.exp(-0.10)), (5.0, math.exp(-0.2))],
    )


@pytest.mark.parametrize("volatility", [0.0, 0.2])
def test_discount_curve_matched_between_tenor_points(make_lmm, make_simulation, kinked_discount_curve, volatility):
    simulation = make_simulation(
        make_lmm(volatility=volatility, discount_curve=kinked_discount_curve), number_of_paths=200
    )
    numeraire_0 = simulation.get_numeraire(0.0)
    for time in (0.5, 1.5, 2.0, 2.5, 2.75, 4.5):
        bond = numeraire_0.div(simulation.get_numeraire(time)).average()
        assert bond == pytest.approx(kinked_discount_curve.get_discount_factor(time), rel=1e-10), time

    assert simulation.get_forward_discount_bond(0.0, 2.5).average() == pytest.approx(math.exp(-0.09), rel=1e-10)


@pytest.mark.parametrize("measure", [Measure.SPOT, Measure.TERMINAL])
def test_tenor_grid_off_the_simulation_grid(make_lmm, make_simulation, measure):
    # 0, 0.3, ..., 5.1: the tenor times 1, 2, 4, 5 are not simulation times.
    grid = TimeDiscretization.from_equidistant(0.0, 17, 0.3)
    simulation = make_simulation(
        make_lmm(volatility=0.0, measure=measure), number_of_paths=4, time_discretization=grid
    )

    assert simulation.get_numeraire(0.0).average() == pytest.approx(1.0)
    assert simulation.get_numeraire(1.0).average() == pytest.approx(1.03)
    assert simulation.get_numeraire(1.5).average() == pytest.approx(1.03 ** 2 / 1.015)
    assert simulation.get_numeraire(2.5).average() == pytest.approx(1.03 ** 3 / 1.015)
    assert simulation.get_numeraire(3.0).average() == pytest.approx(1.03 ** 3)
    assert simulation.get_forward_rate(2.5, 1.5, 3.0).average() == pytest.approx((1.03 * 1.015 - 1.0) / 1.5)


def test_fixing_index_is_first_simulation_time_on_or_after_tenor_time(make_lmm, make_simulation):
    grid = TimeDiscretization.from_equidistant(0.0, 17, 0.3)
    simulation = make_simulation(make_lmm(volatility=0.0), number_of_paths=4, time_discretization=grid)
    process = simulation.process
    assert fixing_time_index(process, 0.0) == 0
    assert fixing_time_index(process, 1.0) == 4
    assert fixing_time_index(process, 1.2) == 4
    assert fixing_time_index(process, 6.0) == grid.number_of_times - 1


def test_numeraire_before_start_uses_curve(make_lmm, make_simulation, flat_discount_2pct):
    simulation = make_simulation(make_lmm(), number_of_paths=4)
    # Implied from the forwards in half-year steps.
    assert simulation.get_numeraire(-1.0).average() == pytest.approx(1.015 ** 2)

    with_curve = make_simulation(make_lmm(discount_curve=flat_discount_2pct), number_of_paths=4)
    assert with_curve.get_numeraire(-1.0).average() == pytest.approx(math.exp(0.02))


def test_numeraire_after_last_tenor_point_raises(make_lmm, make_simulation):
    simulation = make_simulation(make_lmm(), number_of_paths=4)
    with pytest.raises(CalculationError):
        simulation.get_numeraire(5.5)


# ---------- caching ----------

def test_numeraire_is_cached_per_process(make_lmm, make_simulation):
    simulation = make_simulation(make_lmm(volatility=0.2), number_of_paths=50)
    first = simulation.get_numeraire(3.0)
    assert simulation.get_numeraire(3.0) is first

    other = simulation.get_clone_with_modified_seed(99)
    assert other.model is simulation.model
    reseeded = other.get_numeraire(3.0)
    assert reseeded is not first
    assert not np.allclose(reseeded.as_array(), first.as_array())


def test_integrated_covariance(make_lmm, half_year_grid):
    model = make_lmm(volatility=0.2)
    covariance = model.get_integrated_libor_covariance()

    assert covariance.shape == (half_year_grid.number_of_time_steps, 5, 5)
    assert not covariance.flags.writeable
    assert model.get_integrated_libor_covariance() is covariance
    # L_0 fixes at 0 and never accumulates variance.
    assert np.all(covariance[:, 0, :] == 0.0)
    # L_1 is live on [0, 1): two half-year steps.
    assert covariance[-1, 1, 1] == pytest.approx(0.04)
    assert covariance[-1, 4, 4] == pytest.approx(0.04 * 4.0)
    assert np.allclose(covariance[-1], covariance[-1].T)


# ---------- drift ----------

def _flat_realization(rate=0.03, n=5):
    return [RandomVariable.constant(rate) for _ in range(n)]


def test_drift_freezes_fixed_libors(make_lmm, make_simulation):
    simulation = make_simulation(make_lmm(volatility=0.2), number_of_paths=4)
    drift = simulation.model.get_drift(simulation.process, 3, _flat_realization())
    # t = 1.5: L_0 and L_1 have fixed.
    assert drift[0] is None and drift[1] is None
    assert all(d is not None for d in drift[2:])


def test_terminal_drift_of_last_libor_is_ito_term(make_lmm, make_simulation):
    simulation = make_simulation(make_lmm(volatility=0.2, measure=Measure.TERMINAL), number_of_paths=4)
    drift = simulation.model.get_drift(simulation.process, 0, _flat_realization())
    assert drift[-1].average() == pytest.approx(-0.02)


def test_spot_drift_of_first_live_libor(make_lmm, make_simulation):
    simulation = make_simulation(make_lmm(volatility=0.2, measure=Measure.SPOT), number_of_paths=4)
    drift = simulation.model.get_drift(simulation.process, 0, _flat_realization())
    assert drift[0] is None
    assert drift[1].average() == pytest.approx(0.03 / 1.03 * 0.04 - 0.02)


def test_normal_state_space_has_no_ito_term(make_lmm, make_simulation):
    model = make_lmm(volatility=0.01, measure=Measure.TERMINAL, state_space=StateSpace.NORMAL)
    simulation = make_simulation(model, number_of_paths=4)
    drift = model.get_drift(simulation.process, 0, _flat_realization())
    assert drift[-1].average() == pytest.approx(0.0)


@pytest.mark.parametrize(
    "approximation", [DriftApproximation.LINE_INTEGRAL, DriftApproximation.PREDICTOR_CORRECTOR]
)
def test_drift_approximations_agree_when_predictor_equals_state(make_lmm, make_simulation, approximation):
    euler = make_lmm(volatility=0.2)
    other = make_lmm(volatility=0.2, drift_approximation=approximation)
    simulation = make_simulation(euler, number_of_paths=4)
    realization = _flat_realization()

    expected = euler.get_drift(simulation.process, 0, realization)
    actual = other.get_drift(simulation.process, 0, realization, realization)
    for e, a in zip(expected[1:], actual[1:]):
        assert a.average() == pytest.approx(e.average())


def test_factor_loading_out_of_range(make_lmm, make_simulation):
    simulation = make_simulation(make_lmm(volatility=0.2), number_of_paths=4)
    with pytest.raises(IndexError):
        simulation.model.get_factor_loading(simulation.process, 0, 5)


# ---------- bonds and forwards ----------

def test_forward_discount_bond(make_lmm, make_simulation, flat_discount_2pct):
    simulation = make_simulation(make_lmm(), number_of_paths=4)
    bond = simulation.get_forward_discount_bond(1.0, 3.0)
    assert bond.average() == pytest.approx(1.03 ** -2)

    with_curve = make_simulation(make_lmm(discount_curve=flat_discount_2pct), number_of_paths=4)
    # Time-0 forwards match the model, so the curve ratio comes through.
    assert with_curve.get_forward_discount_bond(1.0, 3.0).average() == pytest.approx(math.exp(-0.04))

    with pytest.raises(ConfigurationError):
        simulation.get_forward_discount_bond(3.0, 1.0)


def test_forward_rate_rejects_empty_period(make_lmm, make_simulation):
    simulation = make_simulation(make_lmm(), number_of_paths=4)
    with pytest.raises(ConfigurationError):
        simulation.get_forward_rate(0.0, 2.0, 2.0)


def test_libor_period_lookup(make_lmm):
    model = make_lmm()
    assert model.get_libor_period(5) == 5.0
    assert model.get_libor_period_index(3.0) == 3
    assert model.get_libor_period_index(3.5) < 0
    with pytest.raises(IndexError):
        model.get_libor_period(6)


# ---------- construction ----------

def test_rejects_non_positive_cap(make_lmm):
    with pytest.raises(ConfigurationError):
        make_lmm(libor_cap=0.0)


def test_rejects_covariance_on_other_tenor(half_year_grid, annual_tenor, flat_forward_3pct):
    other_tenor = TimeDiscretization.from_equidistant(0.0, 4, 1.0)
    volatility = LIBORVolatilityModelFromGivenMatrix.constant(half_year_grid, other_tenor, 0.2)
    correlation = LIBORCorrelationModelExponentialDecay(half_year_grid, other_tenor, 2, 0.1)
    covariance = LIBORCovarianceModelFromVolatilityAndCorrelation(half_year_grid, other_tenor, volatility, correlation)
    with pytest.raises(ConfigurationError):
        LIBORMarketModel(annual_tenor, flat_forward_3pct, covariance)


def test_settings_accept_names(make_lmm):
    model = make_lmm(measure="terminal", state_space="normal", interpolation_method="linear")
    assert model.measure is Measure.TERMINAL
    assert model.state_space is StateSpace.NORMAL
    assert model.interpolation_method is InterpolationMethod.LINEAR
    with pytest.raises(ConfigurationError):
        make_lmm(measure="annuity")


# ---------- parameters and clones ----------

def test_model_parameters(make_lmm):
    params = make_lmm(volatility=0.2).get_model_parameters()
    assert np.allclose(params["forward_initial_values"], 0.03)
    # Constant volatility matrix: 11 times x 5 libors, correlation not calibrated.
    assert len(params["covariance_model_parameters"]) == 55
    assert params["numeraire_adjustments"] == {}


def test_clone_with_modified_covariance_parameters(make_lmm):
    model = make_lmm(volatility=0.2, measure=Measure.TERMINAL)
    parameters = model.get_model_parameters()["covariance_model_parameters"]
    clone = model.get_clone_with_modified_covariance_parameters(parameters * 0.5)

    assert clone is not model
    assert clone.measure is Measure.TERMINAL
    covariance = clone.covariance_model.get_covariance(0.0, 1, 1)
    assert covariance.average() == pytest.approx(0.01)


def test_clone_requires_parametric_covariance(make_lmm):
    model = make_lmm()
    model.covariance_model = SimpleNamespace(number_of_factors=2)
    with pytest.raises(CalculationError):
        model.get_clone_with_modified_covariance_parameters([0.1])


def test_clone_with_modified_data(make_lmm, flat_discount_2pct):
    model = make_lmm(volatility=0.2)
    clone = model.get_clone_with_modified_data(discount_curve=flat_discount_2pct, measure=Measure.TERMINAL)
    assert clone.discount_curve is flat_discount_2pct
    assert clone.measure is Measure.TERMINAL
    assert clone.covariance_model is model.covariance_model

    with pytest.raises(ConfigurationError):
        model.get_clone_with_modified_data(colour="blue")
