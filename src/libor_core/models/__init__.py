"""
Term-structure models: LIBOR market model, Hull-White, and their inputs
(covariance, volatility, correlation) and shared machinery.
"""

from .cache import KeyedLRUCache, LazyValue, ProcessScopedCache
from .correlation import LIBORCorrelationModelExponentialDecay, factor_reduction
from .covariance import LIBORCovarianceModel, LIBORCovarianceModelFromVolatilityAndCorrelation
from .enums import (
    DriftApproximation,
    InterpolationMethod,
    Measure,
    ModelFamily,
    Scheme,
    SimulationTimeInterpolationMethod,
    StateSpace,
)
from .hull_white import HullWhiteModel
from .libor_market_model import DEFAULT_LIBOR_CAP, LIBORMarketModel
from .short_rate_volatility import ShortRateVolatilityModelPiecewiseConstant
from .tenor_interpolation import TenorInterpolator
from .volatility import (
    LIBORVolatilityModelFourParameterExponentialForm,
    LIBORVolatilityModelFromGivenMatrix,
)

__all__ = [
    # models
    "LIBORMarketModel",
    "HullWhiteModel",
    "DEFAULT_LIBOR_CAP",

    # model inputs
    "LIBORCovarianceModel",
    "LIBORCovarianceModelFromVolatilityAndCorrelation",
    "LIBORVolatilityModelFromGivenMatrix",
    "LIBORVolatilityModelFourParameterExponentialForm",
    "LIBORCorrelationModelExponentialDecay",
    "ShortRateVolatilityModelPiecewiseConstant",
    "factor_reduction",

    # enums
    "Measure",
    "StateSpace",
    "DriftApproximation",
    "InterpolationMethod",
    "SimulationTimeInterpolationMethod",
    "ModelFamily",
    "Scheme",

    # machinery
    "TenorInterpolator",
    "ProcessScopedCache",
    "LazyValue",
    "KeyedLRUCache",
]
