# src/libor_core/simulation.py

"""
Model + process bundled into one valuation object.

A model never holds its process; the simulation is where the two meet so
that products can ask ``simulation.get_numeraire(t)`` without passing the
process around themselves.
"""

from __future__ import annotations

import logging
from typing import Optional

from libor_core.config import AppConfig
from libor_core.curves import (
    flat_discount_curve,
    flat_forward_curve,
    load_discount_curve,
    load_forward_curve,
)
from libor_core.models import (
    HullWhiteModel,
    LIBORCorrelationModelExponentialDecay,
    LIBORCovarianceModelFromVolatilityAndCorrelation,
    LIBORMarketModel,
    LIBORVolatilityModelFourParameterExponentialForm,
    ModelFamily,
    ShortRateVolatilityModelPiecewiseConstant,
)
from libor_core.process import BrownianMotion, EulerSchemeFromProcessModel
from libor_core.stochastic import RandomVariable, TimeDiscretization

logger = logging.getLogger(__name__)


class TermStructureMonteCarloSimulation:
    def __init__(self, model, process: EulerSchemeFromProcessModel) -> None:
        if process.model is not model:
            raise ValueError("process must be built on the same model instance")
        self.model = model
        self.process = process

    # ---------- grid ----------

    @property
    def time_discretization(self) -> TimeDiscretization:
        return self.process.time_discretization

    @property
    def libor_period_discretization(self) -> TimeDiscretization:
        return self.model.libor_period_discretization

    @property
    def number_of_paths(self) -> int:
        return self.process.number_of_paths

    @property
    def family(self) -> ModelFamily:
        return self.model.family

    def get_time(self, time_index: int) -> float:
        return self.process.get_time(time_index)

    def get_time_index(self, time: float) -> int:
        return self.process.get_time_index(time)

    # ---------- valuation queries ----------

    def get_numeraire(self, time: float) -> RandomVariable:
        return self.model.get_numeraire(self.process, time)

    def get_forward_rate(self, time: float, period_start: float, period_end: float) -> RandomVariable:
        return self.model.get_forward_rate(self.process, time, period_start, period_end)

    def get_libor(self, time_index: int, libor_index: int) -> RandomVariable:
        return self.model.get_libor(self.process, time_index, libor_index)

    def get_forward_discount_bond(self, time: float, maturity: float) -> RandomVariable:
        """P(t, T) from the model; Hull-White answers with its zero bond."""
        if self.model.family is ModelFamily.HULL_WHITE:
            return self.model.get_zero_coupon_bond(self.process, time, maturity)
        return self.model.get_forward_discount_bond(self.process, time, maturity)

    def get_random_variable_for_constant(self, value: float) -> RandomVariable:
        return self.process.get_random_variable_for_constant(value)

    # ---------- clones ----------

    def get_clone_with_modified_seed(self, seed: int) -> "TermStructureMonteCarloSimulation":
        return TermStructureMonteCarloSimulation(self.model, self.process.get_clone_with_modified_seed(seed))

    def get_clone_with_modified_model(self, model) -> "TermStructureMonteCarloSimulation":
        return TermStructureMonteCarloSimulation(model, self.process.get_clone_with_modified_model(model))

    def __repr__(self) -> str:
        return f"TermStructureMonteCarloSimulation({self.model!r}, {self.process!r})"


# ---------- builders ----------

def _equidistant(last_time: float, dt: float) -> TimeDiscretization:
    return TimeDiscretization.from_equidistant(0.0, int(round(last_time / dt)), dt)


def build_curves(app_config: AppConfig):
    """(forward_curve, discount_curve or None) from the curves section."""
    curves = app_config.curves
    period_length = app_config.tenor.period_length

    if curves.forward_file is not None:
        forward_curve = load_forward_curve(curves.forward_file, payment_offset=period_length)
    else:
        forward_curve = flat_forward_curve(curves.flat_forward_rate, payment_offset=period_length)

    discount_curve = None
    if curves.discount_file is not None:
        discount_curve = load_discount_curve(curves.discount_file)
    elif curves.flat_discount_rate is not None:
        discount_curve = flat_discount_curve(curves.flat_discount_rate)

    return forward_curve, discount_curve


def build_model(
    app_config: AppConfig,
    simulation_time_discretization: Optional[TimeDiscretization] = None,
):
    """LIBORMarketModel or HullWhiteModel as configured."""
    tenor = _equidistant(app_config.tenor.last_time, app_config.tenor.period_length)
    td = simulation_time_discretization or _equidistant(app_config.simulation.last_time, app_config.simulation.dt)
    forward_curve, discount_curve = build_curves(app_config)
    model_cfg = app_config.model
    vol_cfg = app_config.volatility

    if model_cfg.family is ModelFamily.HULL_WHITE:
        volatility_model = ShortRateVolatilityModelPiecewiseConstant.constant(
            vol_cfg.short_rate_volatility, vol_cfg.mean_reversion
        )
        return HullWhiteModel(
            tenor,
            forward_curve,
            volatility_model,
            discount_curve=discount_curve,
            drift_approximation=model_cfg.drift_approximation,
        )

    volatility_model = LIBORVolatilityModelFourParameterExponentialForm(
        td, tenor, vol_cfg.a, vol_cfg.b, vol_cfg.c, vol_cfg.d
    )
    correlation_model = LIBORCorrelationModelExponentialDecay(
        td, tenor, app_config.simulation.number_of_factors, vol_cfg.correlation_decay
    )
    covariance_model = LIBORCovarianceModelFromVolatilityAndCorrelation(
        td, tenor, volatility_model, correlation_model
    )
    return LIBORMarketModel(
        tenor,
        forward_curve,
        covariance_model,
        discount_curve=discount_curve,
        measure=model_cfg.measure,
        state_space=model_cfg.state_space,
        drift_approximation=model_cfg.drift_approximation,
        interpolation_method=model_cfg.interpolation_method,
        simulation_time_interpolation_method=model_cfg.simulation_time_interpolation_method,
        libor_cap=model_cfg.libor_cap,
    )


def build_simulation(
    app_config: AppConfig,
    *,
    number_of_paths: Optional[int] = None,
    seed: Optional[int] = None,
) -> TermStructureMonteCarloSimulation:
    """Curves, model, Brownian motion and Euler scheme from one AppConfig."""
    sim_cfg = app_config.simulation
    td = _equidistant(sim_cfg.last_time, sim_cfg.dt)
    model = build_model(app_config, td)

    brownian_motion = BrownianMotion(
        td,
        model.number_of_factors,
        number_of_paths or sim_cfg.number_of_paths,
        sim_cfg.seed if seed is None else seed,
    )
    process = EulerSchemeFromProcessModel(model, brownian_motion, sim_cfg.scheme)
    logger.info(
        "Built %s simulation: %d steps, %d paths, %d factors",
        model.family.name, td.number_of_time_steps, brownian_motion.number_of_paths, model.number_of_factors,
    )
    return TermStructureMonteCarloSimulation(model, process)


__all__ = [
    "TermStructureMonteCarloSimulation",
    "build_curves",
    "build_model",
    "build_simulation",
]
