"""
libor_core: LIBOR market model and Hull-White Monte Carlo engine.
"""

from .errors import CalculationError, ConfigurationError
from .simulation import TermStructureMonteCarloSimulation, build_simulation

__all__ = [
    "CalculationError",
    "ConfigurationError",
    "TermStructureMonteCarloSimulation",
    "build_simulation",
]
