# src/libor_core/process/euler_scheme.py

from __future__ import annotations

import itertools
import logging
import threading
import time as _time
from typing import List, Optional, Sequence

from libor_core.errors import CalculationError
from libor_core.models.enums import Scheme
from libor_core.stochastic import RandomVariable, TimeDiscretization

from .brownian_motion import BrownianMotion

logger = logging.getLogger(__name__)

_process_ids = itertools.count(1)


class EulerSchemeFromProcessModel:
    """
    Euler-Maruyama discretization of a model's state equation

        dX_j = mu_j dt + sum_f lambda_{j,f} dW_f,      value_j = f(X_j)

    where mu, lambda, f and its inverse are supplied by ``model``. The model
    is called with this process as its first argument at every step; the
    process is the only place that holds simulated values.

    Paths are built once, on first access, under a re-entrant lock: model
    callbacks may read time indices that have already been built.

    With ``Scheme.PREDICTOR_CORRECTOR`` an Euler predictor of the end state
    is computed first and passed to ``model.get_drift`` as the predictor;
    what the model does with it is the model's drift approximation.
    """

    def __init__(
        self,
        model,
        brownian_motion: BrownianMotion,
        scheme: Scheme = Scheme.EULER,
    ) -> None:
        if model.number_of_factors > brownian_motion.number_of_factors:
            raise ValueError(
                f"Model needs {model.number_of_factors} factors, Brownian motion "
                f"provides {brownian_motion.number_of_factors}"
            )
        self.model = model
        self.brownian_motion = brownian_motion
        self.scheme = Scheme.parse(scheme)
        self.process_id = next(_process_ids)

        self._lock = threading.RLock()
        self._values: Optional[List[List[RandomVariable]]] = None
        self._partial: Optional[List[List[RandomVariable]]] = None

    # ---------- grid / sizes ----------

    @property
    def time_discretization(self) -> TimeDiscretization:
        return self.brownian_motion.time_discretization

    @property
    def number_of_paths(self) -> int:
        return self.brownian_motion.number_of_paths

    @property
    def number_of_factors(self) -> int:
        return self.model.number_of_factors

    @property
    def number_of_components(self) -> int:
        return self.model.number_of_components

    def get_time(self, time_index: int) -> float:
        return self.time_discretization.get_time(time_index)

    def get_time_index(self, time: float) -> int:
        return self.time_discretization.get_time_index(time)

    def get_random_variable_for_constant(self, value: float) -> RandomVariable:
        return self.brownian_motion.get_random_variable_for_constant(value)

    # ---------- values ----------

    def get_process_value(self, time_index: int, component: int) -> RandomVariable:
        values = self._values
        if values is None:
            values = self._precalculate()
        return values[time_index][component]

    def get_process_values(self, time_index: int) -> List[RandomVariable]:
        values = self._values
        if values is None:
            values = self._precalculate()
        return list(values[time_index])

    def _precalculate(self) -> List[List[RandomVariable]]:
        with self._lock:
            if self._values is not None:
                return self._values
            if self._partial is not None:
                # Called back from the model while the paths are being built.
                return self._partial

            started = _time.perf_counter()
            partial: List[List[RandomVariable]] = []
            self._partial = partial
            try:
                self._build(partial)
            finally:
                self._partial = None
            self._values = partial

            logger.debug(
                "Process %d: built %d time steps x %d components x %d paths in %.3fs",
                self.process_id,
                self.time_discretization.number_of_time_steps,
                self.number_of_components,
                self.number_of_paths,
                _time.perf_counter() - started,
            )
            return partial

    def _build(self, values: List[List[RandomVariable]]) -> None:
        model = self.model
        td = self.time_discretization
        n_components = model.number_of_components

        initial_state = model.get_initial_state(self)
        values.append(
            [model.apply_state_space_transform(self, 0, c, initial_state[c]) for c in range(n_components)]
        )

        for i in range(td.number_of_time_steps):
            previous = values[i]
            dt = td.get_time_step(i)
            increments = [
                self.brownian_motion.get_brownian_increment(i, f) for f in range(self.number_of_factors)
            ]

            drift = self._get_drift(i, previous, None)
            loadings = [
                None if drift[c] is None else model.get_factor_loading(self, i, c, previous)
                for c in range(n_components)
            ]

            if self.scheme is Scheme.PREDICTOR_CORRECTOR:
                predictor = self._step(i, previous, drift, loadings, dt, increments)
                drift = self._get_drift(i, previous, predictor)

            values.append(self._step(i, previous, drift, loadings, dt, increments))

    def _get_drift(
        self,
        time_index: int,
        realization: Sequence[RandomVariable],
        predictor: Optional[Sequence[RandomVariable]],
    ) -> List[Optional[RandomVariable]]:
        try:
            return self.model.get_drift(self, time_index, realization, predictor)
        except Exception as exc:
            raise CalculationError(
                f"Drift calculation failed at time index {time_index} "
                f"(t={self.get_time(time_index)})"
            ) from exc

    def _step(
        self,
        time_index: int,
        previous: Sequence[RandomVariable],
        drift: Sequence[Optional[RandomVariable]],
        loadings: Sequence[Optional[Sequence[RandomVariable]]],
        dt: float,
        increments: Sequence[RandomVariable],
    ) -> List[RandomVariable]:
        model = self.model
        next_values: List[RandomVariable] = []
        for c, value in enumerate(previous):
            if drift[c] is None:
                next_values.append(value)
                continue
            state = model.apply_state_space_transform_inverse(self, time_index, c, value)
            state = state.add_product(drift[c], dt).add_sum_product(loadings[c], increments)
            next_values.append(model.apply_state_space_transform(self, time_index + 1, c, state))
        return next_values

    # ---------- clones ----------

    def get_clone_with_modified_seed(self, seed: int) -> "EulerSchemeFromProcessModel":
        return EulerSchemeFromProcessModel(
            self.model, self.brownian_motion.get_clone_with_modified_seed(seed), self.scheme
        )

    def get_clone_with_modified_model(self, model) -> "EulerSchemeFromProcessModel":
        return EulerSchemeFromProcessModel(model, self.brownian_motion, self.scheme)

    def __repr__(self) -> str:
        return (
            f"EulerSchemeFromProcessModel(id={self.process_id}, scheme={self.scheme.name}, "
            f"steps={self.time_discretization.number_of_time_steps}, paths={self.number_of_paths})"
        )


__all__ = ["EulerSchemeFromProcessModel"]
