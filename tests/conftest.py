from __future__ import annotations

from pathlib import Path

import pytest

from libor_core.curves import flat_discount_curve, flat_forward_curve
from libor_core.models import (
    HullWhiteModel,
    LIBORCorrelationModelExponentialDecay,
    LIBORCovarianceModelFromVolatilityAndCorrelation,
    LIBORMarketModel,
    LIBORVolatilityModelFromGivenMatrix,
    ShortRateVolatilityModelPiecewiseConstant,
)
from libor_core.process import BrownianMotion, EulerSchemeFromProcessModel
from libor_core.simulation import TermStructureMonteCarloSimulation
from libor_core.stochastic import TimeDiscretization


@pytest.fixture(scope="session")
def repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


@pytest.fixture(scope="session")
def annual_tenor() -> TimeDiscretization:
    # 0, 1, ..., 5
    return TimeDiscretization.from_equidistant(0.0, 5, 1.0)


@pytest.fixture(scope="session")
def half_year_grid() -> TimeDiscretization:
    # 0, 0.5, ..., 5
    return TimeDiscretization.from_equidistant(0.0, 10, 0.5)


@pytest.fixture(scope="session")
def flat_forward_3pct():
    return flat_forward_curve(0.03, payment_offset=1.0)


@pytest.fixture(scope="session")
def make_lmm(annual_tenor, half_year_grid, flat_forward_3pct):
    """Factory: LMM on the annual tenor with a constant volatility matrix."""

    def _make(volatility: float = 0.0, number_of_factors: int = 2, **model_kwargs):
        volatility_model = LIBORVolatilityModelFromGivenMatrix.constant(half_year_grid, annual_tenor, volatility)
        correlation_model = LIBORCorrelationModelExponentialDecay(
            half_year_grid, annual_tenor, number_of_factors, 0.1
        )
        covariance_model = LIBORCovarianceModelFromVolatilityAndCorrelation(
            half_year_grid, annual_tenor, volatility_model, correlation_model
        )
        model_kwargs.setdefault("forward_curve", flat_forward_3pct)
        forward_curve = model_kwargs.pop("forward_curve")
        return LIBORMarketModel(annual_tenor, forward_curve, covariance_model, **model_kwargs)

    return _make


@pytest.fixture(scope="session")
def make_hull_white(annual_tenor):
    """Factory: Hull-White with constant a, sigma on a flat forward curve."""

    def _make(volatility: float = 0.01, mean_reversion: float = 0.1, rate: float = 0.02, **model_kwargs):
        volatility_model = ShortRateVolatilityModelPiecewiseConstant.constant(volatility, mean_reversion)
        return HullWhiteModel(
            annual_tenor, flat_forward_curve(rate, payment_offset=1.0), volatility_model, **model_kwargs
        )

    return _make


@pytest.fixture(scope="session")
def make_simulation(half_year_grid):
    """Factory: bind a model to an Euler scheme on the half-year grid."""

    def _make(model, number_of_paths: int = 200, seed: int = 3141, time_discretization=None, **process_kwargs):
        td = time_discretization or half_year_grid
        brownian_motion = BrownianMotion(td, model.number_of_factors, number_of_paths, seed)
        process = EulerSchemeFromProcessModel(model, brownian_motion, **process_kwargs)
        return TermStructureMonteCarloSimulation(model, process)

    return _make


@pytest.fixture(scope="session")
def flat_discount_2pct():
    return flat_discount_curve(0.02)
