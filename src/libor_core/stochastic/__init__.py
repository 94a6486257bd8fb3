"""
Time grids and per-path random variables.
"""

from .random_variable import RandomVariable
from .time_discretization import DEFAULT_TICK_SIZE, TimeDiscretization

__all__ = [
    "DEFAULT_TICK_SIZE",
    "RandomVariable",
    "TimeDiscretization",
]
