# src/libor_core/models/volatility.py

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Sequence, Tuple

import numpy as np

from libor_core.stochastic import RandomVariable, TimeDiscretization


@dataclass(frozen=True)
class LIBORVolatilityModelFromGivenMatrix:
    """
    Instantaneous forward-rate volatility read from a matrix

        sigma(t_i, T_j) = volatility[i][j]

    with i a simulation (covariance) time index and j a tenor index.
    """

    time_discretization: TimeDiscretization
    libor_period_discretization: TimeDiscretization
    volatility: Tuple[Tuple[float, ...], ...]
    is_calibrateable: bool = True
    _matrix: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        matrix = np.array(self.volatility, dtype=float)
        n_libors = self.libor_period_discretization.number_of_time_steps
        if matrix.ndim != 2 or matrix.shape[0] < 1 or matrix.shape[1] != n_libors:
            raise ValueError(
                f"volatility matrix has shape {matrix.shape}, expected (time index, {n_libors})"
            )
        matrix.setflags(write=False)
        object.__setattr__(self, "volatility", tuple(tuple(float(v) for v in row) for row in matrix))
        object.__setattr__(self, "_matrix", matrix)

    @classmethod
    def constant(
        cls,
        time_discretization: TimeDiscretization,
        libor_period_discretization: TimeDiscretization,
        volatility: float,
    ) -> "LIBORVolatilityModelFromGivenMatrix":
        rows = time_discretization.number_of_times
        cols = libor_period_discretization.number_of_time_steps
        matrix = tuple(tuple(float(volatility) for _ in range(cols)) for _ in range(rows))
        return cls(time_discretization, libor_period_discretization, matrix)

    def get_volatility(self, time_index: int, libor_index: int) -> RandomVariable:
        time_index = min(time_index, self._matrix.shape[0] - 1)
        return RandomVariable.constant(self._matrix[time_index, libor_index])

    def get_parameter(self) -> np.ndarray:
        if not self.is_calibrateable:
            return np.array([])
        return self._matrix.reshape(-1).copy()

    def get_clone_with_modified_parameters(self, parameters: Sequence[float]) -> "LIBORVolatilityModelFromGivenMatrix":
        if not self.is_calibrateable:
            return self
        matrix = np.asarray(parameters, dtype=float).reshape(self._matrix.shape)
        return replace(self, volatility=tuple(tuple(row) for row in matrix))


@dataclass(frozen=True)
class LIBORVolatilityModelFourParameterExponentialForm:
    """
    sigma(t, T) = (a + b * (T - t)) * exp(-c * (T - t)) + d  for T > t, else 0.
    """

    time_discretization: TimeDiscretization
    libor_period_discretization: TimeDiscretization
    a: float
    b: float
    c: float
    d: float
    is_calibrateable: bool = True

    def get_volatility(self, time_index: int, libor_index: int) -> RandomVariable:
        time = self.time_discretization.get_time(time_index)
        maturity = self.libor_period_discretization.get_time(libor_index)
        tau = maturity - time
        if tau <= 0.0:
            return RandomVariable.constant(0.0)
        return RandomVariable.constant((self.a + self.b * tau) * math.exp(-self.c * tau) + self.d)

    def get_parameter(self) -> np.ndarray:
        if not self.is_calibrateable:
            return np.array([])
        return np.array([self.a, self.b, self.c, self.d])

    def get_clone_with_modified_parameters(
        self,
        parameters: Sequence[float],
    ) -> "LIBORVolatilityModelFourParameterExponentialForm":
        if not self.is_calibrateable:
            return self
        a, b, c, d = (float(p) for p in parameters)
        return replace(self, a=a, b=b, c=c, d=d)
