# src/libor_core/models/enums.py

from __future__ import annotations

from enum import Enum
from typing import Type, TypeVar, Union

from libor_core.errors import ConfigurationError

E = TypeVar("E", bound="_ParsableEnum")


class _ParsableEnum(Enum):
    @classmethod
    def parse(cls: Type[E], value: Union[str, E]) -> E:
        """Accept an enum member or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls[key]
        except KeyError:
            allowed = ", ".join(m.name for m in cls)
            raise ConfigurationError(
                f"Unknown {cls.__name__} '{value}'. Expected one of: {allowed}."
            ) from None


class Measure(_ParsableEnum):
    SPOT = "spot"
    TERMINAL = "terminal"


class StateSpace(_ParsableEnum):
    NORMAL = "normal"
    LOGNORMAL = "lognormal"


class DriftApproximation(_ParsableEnum):
    EULER = "euler"
    LINE_INTEGRAL = "line_integral"
    PREDICTOR_CORRECTOR = "predictor_corrector"


class InterpolationMethod(_ParsableEnum):
    LINEAR = "linear"
    LOG_LINEAR_UNCORRECTED = "log_linear_uncorrected"
    LOG_LINEAR_CORRECTED = "log_linear_corrected"


class SimulationTimeInterpolationMethod(_ParsableEnum):
    ROUND_DOWN = "round_down"
    ROUND_NEAREST = "round_nearest"


class ModelFamily(_ParsableEnum):
    LIBOR_MARKET_MODEL = "libor_market_model"
    HULL_WHITE = "hull_white"


class Scheme(_ParsableEnum):
    """Time-stepping scheme of the Euler process."""

    EULER = "euler"
    PREDICTOR_CORRECTOR = "predictor_corrector"


__all__ = [
    "Measure",
    "StateSpace",
    "DriftApproximation",
    "InterpolationMethod",
    "SimulationTimeInterpolationMethod",
    "ModelFamily",
    "Scheme",
]
