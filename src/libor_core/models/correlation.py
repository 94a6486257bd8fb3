# src/libor_core/models/correlation.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Sequence

import numpy as np

from libor_core.stochastic import TimeDiscretization


def factor_reduction(correlation: np.ndarray, number_of_factors: int) -> np.ndarray:
    """
    Rank-reduce a correlation matrix to ``number_of_factors`` factors.

    Keeps the largest eigenvalues and rescales rows so the reduced matrix
    still has a unit diagonal. Returns the factor matrix F (components x
    factors) with correlation ~ F @ F.T.
    """
    n = correlation.shape[0]
    k = max(1, min(int(number_of_factors), n))
    eigenvalues, eigenvectors = np.linalg.eigh(correlation)
    order = np.argsort(eigenvalues)[::-1][:k]
    values = np.clip(eigenvalues[order], 0.0, None)
    factors = eigenvectors[:, order] * np.sqrt(values)
    norms = np.linalg.norm(factors, axis=1)
    norms[norms == 0.0] = 1.0
    return factors / norms[:, None]


@dataclass(frozen=True)
class LIBORCorrelationModelExponentialDecay:
    """
    rho(T_i, T_j) = exp(-decay * |T_i - T_j|), reduced to ``number_of_factors``.
    """

    time_discretization: TimeDiscretization
    libor_period_discretization: TimeDiscretization
    number_of_factors: int
    decay: float
    is_calibrateable: bool = False
    _factors: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.number_of_factors < 1:
            raise ValueError(f"number_of_factors must be >= 1, got {self.number_of_factors}")
        if self.decay < 0.0:
            raise ValueError(f"decay must be >= 0, got {self.decay}")
        tenor = self.libor_period_discretization.as_array()[:-1]
        corr = np.exp(-self.decay * np.abs(tenor[:, None] - tenor[None, :]))
        factors = factor_reduction(corr, self.number_of_factors)
        factors.setflags(write=False)
        object.__setattr__(self, "_factors", factors)
        object.__setattr__(self, "number_of_factors", factors.shape[1])

    def get_factor_loading(self, time_index: int, factor: int, component: int) -> float:
        return float(self._factors[component, factor])

    def get_correlation(self, time_index: int, component1: int, component2: int) -> float:
        if component1 == component2:
            return 1.0
        return float(self._factors[component1] @ self._factors[component2])

    def get_parameter(self) -> np.ndarray:
        if not self.is_calibrateable:
            return np.array([])
        return np.array([self.decay])

    def get_clone_with_modified_parameters(self, parameters: Sequence[float]) -> "LIBORCorrelationModelExponentialDecay":
        if not self.is_calibrateable:
            return self
        return replace(self, decay=float(parameters[0]))
