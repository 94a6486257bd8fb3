"""
Configuration loading for libor_core.
"""

from .loader import (
    AppConfig,
    CurvesConfig,
    ModelConfig,
    SimulationConfig,
    TenorConfig,
    VolatilityConfig,
)

__all__ = [
    "AppConfig",
    "ModelConfig",
    "SimulationConfig",
    "TenorConfig",
    "CurvesConfig",
    "VolatilityConfig",
]
