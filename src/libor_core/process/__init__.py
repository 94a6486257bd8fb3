"""
Stochastic drivers: Brownian increments and the Euler scheme that evolves a
model's state.
"""

from .brownian_motion import BrownianMotion
from .euler_scheme import EulerSchemeFromProcessModel

__all__ = ["BrownianMotion", "EulerSchemeFromProcessModel"]
