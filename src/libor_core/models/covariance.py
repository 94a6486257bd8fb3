# src/libor_core/models/covariance.py

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Protocol, Sequence, Union

import numpy as np

from libor_core.errors import CalculationError
from libor_core.stochastic import RandomVariable, TimeDiscretization


class LIBORCovarianceModel(Protocol):
    """The narrow interface the LIBOR market model consumes."""

    time_discretization: TimeDiscretization
    libor_period_discretization: TimeDiscretization

    @property
    def number_of_factors(self) -> int:
        ...

    def get_factor_loading(
        self,
        time: float,
        component: Union[int, float],
        realization: Optional[Sequence[RandomVariable]],
    ) -> List[RandomVariable]:
        ...

    def get_covariance(
        self,
        time: float,
        component1: int,
        component2: int,
        realization: Optional[Sequence[RandomVariable]],
    ) -> RandomVariable:
        ...


@dataclass(frozen=True)
class LIBORCovarianceModelFromVolatilityAndCorrelation:
    """
    Covariance built as volatility x correlation:

        lambda_{j,f}(t) = sigma_j(t) * F_{j,f}
        Cov_{ij}(t)     = sigma_i(t) * sigma_j(t) * rho_{ij}

    Times are mapped to the covariance grid with the "previous point" rule;
    a float component is a tenor time and is mapped to the tenor period that
    contains it.
    """

    time_discretization: TimeDiscretization
    libor_period_discretization: TimeDiscretization
    volatility_model: object
    correlation_model: object

    @property
    def number_of_factors(self) -> int:
        return self.correlation_model.number_of_factors

    # ---------- index mapping ----------

    def _time_index(self, time: float) -> int:
        return max(self.time_discretization.get_time_index_nearest_less_or_equal(time), 0)

    def _component_index(self, component: Union[int, float]) -> int:
        if isinstance(component, (int, np.integer)):
            return int(component)
        idx = self.libor_period_discretization.get_time_index_nearest_less_or_equal(component)
        if idx < 0 or idx >= self.libor_period_discretization.number_of_time_steps:
            raise IndexError(f"Tenor time {component} outside the libor period discretization.")
        return idx

    # ---------- loadings / covariance ----------

    def get_factor_loading_at_index(
        self,
        time_index: int,
        component: int,
        realization: Optional[Sequence[RandomVariable]] = None,
    ) -> List[RandomVariable]:
        volatility = self.volatility_model.get_volatility(time_index, component)
        return [
            volatility.mult(self.correlation_model.get_factor_loading(time_index, factor, component))
            for factor in range(self.number_of_factors)
        ]

    def get_factor_loading(
        self,
        time: float,
        component: Union[int, float],
        realization: Optional[Sequence[RandomVariable]] = None,
    ) -> List[RandomVariable]:
        try:
            return self.get_factor_loading_at_index(
                self._time_index(time), self._component_index(component), realization
            )
        except IndexError:
            raise
        except Exception as exc:
            raise CalculationError(f"Factor loading lookup failed at t={time}, component={component}") from exc

    def get_covariance(
        self,
        time: float,
        component1: int,
        component2: int,
        realization: Optional[Sequence[RandomVariable]] = None,
    ) -> RandomVariable:
        time_index = self._time_index(time)
        vol1 = self.volatility_model.get_volatility(time_index, component1)
        vol2 = self.volatility_model.get_volatility(time_index, component2)
        correlation = self.correlation_model.get_correlation(time_index, component1, component2)
        return vol1.mult(vol2).mult(correlation)

    # ---------- parameters ----------

    def get_parameter(self) -> np.ndarray:
        return np.concatenate(
            [
                np.asarray(self.volatility_model.get_parameter(), dtype=float),
                np.asarray(self.correlation_model.get_parameter(), dtype=float),
            ]
        )

    def get_clone_with_modified_parameters(
        self,
        parameters: Sequence[float],
    ) -> "LIBORCovarianceModelFromVolatilityAndCorrelation":
        parameters = np.asarray(parameters, dtype=float)
        n_vol = len(self.volatility_model.get_parameter())
        n_corr = len(self.correlation_model.get_parameter())
        if len(parameters) != n_vol + n_corr:
            raise ValueError(f"Expected {n_vol + n_corr} parameters, got {len(parameters)}")

        volatility_model = self.volatility_model
        correlation_model = self.correlation_model
        if n_vol and not np.array_equal(parameters[:n_vol], volatility_model.get_parameter()):
            volatility_model = volatility_model.get_clone_with_modified_parameters(parameters[:n_vol])
        if n_corr and not np.array_equal(parameters[n_vol:], correlation_model.get_parameter()):
            correlation_model = correlation_model.get_clone_with_modified_parameters(parameters[n_vol:])
        return replace(self, volatility_model=volatility_model, correlation_model=correlation_model)
