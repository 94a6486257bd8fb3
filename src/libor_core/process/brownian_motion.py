# src/libor_core/process/brownian_motion.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

import numpy as np

from libor_core.models.cache import LazyValue
from libor_core.stochastic import RandomVariable, TimeDiscretization

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrownianMotion:
    """
    Independent Brownian increments on a time grid.

    Increment (i, f) is dW_f over [t_i, t_{i+1}], i.e. sqrt(dt_i) * Z with
    Z standard normal. Increments are drawn once, on first use, from
    ``numpy.random.default_rng(seed)`` as one array of shape
    (time steps, factors, paths).
    """

    time_discretization: TimeDiscretization
    number_of_factors: int
    number_of_paths: int
    seed: int = 3141
    _increments: LazyValue = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.number_of_factors < 1:
            raise ValueError(f"number_of_factors must be >= 1, got {self.number_of_factors}")
        if self.number_of_paths < 1:
            raise ValueError(f"number_of_paths must be >= 1, got {self.number_of_paths}")
        object.__setattr__(self, "_increments", LazyValue("brownian increments"))

    def _generate(self) -> np.ndarray:
        steps = self.time_discretization.number_of_time_steps
        logger.debug(
            "Drawing Brownian increments: steps=%d factors=%d paths=%d seed=%d",
            steps, self.number_of_factors, self.number_of_paths, self.seed,
        )
        rng = np.random.default_rng(self.seed)
        normals = rng.standard_normal((steps, self.number_of_factors, self.number_of_paths))
        dt = np.diff(self.time_discretization.as_array())
        increments = normals * np.sqrt(dt)[:, None, None]
        increments.setflags(write=False)
        return increments

    def get_brownian_increment(self, time_index: int, factor: int) -> RandomVariable:
        increments = self._increments.get(self._generate)
        if time_index < 0 or time_index >= increments.shape[0]:
            raise IndexError(f"Time index {time_index} out of bounds for {increments.shape[0]} increments.")
        return RandomVariable(increments[time_index, factor], self.time_discretization.get_time(time_index + 1))

    def get_random_variable_for_constant(self, value: float) -> RandomVariable:
        return RandomVariable.constant(value)

    def get_clone_with_modified_seed(self, seed: int) -> "BrownianMotion":
        return replace(self, seed=int(seed))


__all__ = ["BrownianMotion"]
