# src/libor_core/models/short_rate_volatility.py

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence, Tuple

import numpy as np

from libor_core.stochastic import RandomVariable, TimeDiscretization


@dataclass(frozen=True)
class ShortRateVolatilityModelPiecewiseConstant:
    """
    Piecewise constant Hull-White coefficients.

        dr(t) = [theta(t) - a(t) r(t)] dt + sigma(t) dW(t)

    ``volatility[i]`` and ``mean_reversion[i]`` apply on
    [t_i, t_{i+1}); the last entry applies from the last grid time onwards.
    """

    time_discretization: TimeDiscretization
    volatility: Tuple[float, ...]
    mean_reversion: Tuple[float, ...]
    is_calibrateable: bool = True

    def __post_init__(self) -> None:
        n = self.time_discretization.number_of_times
        vol = tuple(float(v) for v in self.volatility)
        mr = tuple(float(a) for a in self.mean_reversion)
        if len(vol) == 1 and n > 1:
            vol = vol * n
        if len(mr) == 1 and n > 1:
            mr = mr * n
        if len(vol) != n or len(mr) != n:
            raise ValueError(
                f"volatility ({len(vol)}) and mean_reversion ({len(mr)}) must have one entry "
                f"per grid time ({n})"
            )
        for a in mr:
            if a <= 0.0:
                raise ValueError("ShortRateVolatilityModel: mean reversion must be positive")
        for s in vol:
            if s < 0.0:
                raise ValueError("ShortRateVolatilityModel: volatility must be non-negative")
        object.__setattr__(self, "volatility", vol)
        object.__setattr__(self, "mean_reversion", mr)

    @classmethod
    def constant(cls, volatility: float, mean_reversion: float) -> "ShortRateVolatilityModelPiecewiseConstant":
        """Constant coefficients (single segment starting at 0)."""
        return cls(TimeDiscretization.of([0.0]), (float(volatility),), (float(mean_reversion),))

    def get_volatility(self, time_index: int) -> RandomVariable:
        return RandomVariable.constant(self.volatility[time_index])

    def get_mean_reversion(self, time_index: int) -> RandomVariable:
        return RandomVariable.constant(self.mean_reversion[time_index])

    def get_parameter(self) -> np.ndarray:
        if not self.is_calibrateable:
            return np.array([])
        return np.array(self.volatility + self.mean_reversion)

    def get_clone_with_modified_parameters(
        self,
        parameters: Sequence[float],
    ) -> "ShortRateVolatilityModelPiecewiseConstant":
        if not self.is_calibrateable:
            return self
        n = self.time_discretization.number_of_times
        params = [float(p) for p in parameters]
        return replace(self, volatility=tuple(params[:n]), mean_reversion=tuple(params[n:2 * n]))
