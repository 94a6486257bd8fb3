# src/libor_core/stochastic/time_discretization.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Tuple

import numpy as np

from libor_core.errors import ConfigurationError

# One hour, measured in years (ACT/365).
DEFAULT_TICK_SIZE = 1.0 / (365.0 * 24.0)


def _round_to_tick(time: float, tick_size: float) -> float:
    value = round(float(time) / tick_size) * tick_size
    # Strip the representation noise of n * tick (1.0000000000000002 -> 1.0).
    return round(value, 12)


@dataclass(frozen=True)
class TimeDiscretization:
    """
    Immutable, strictly increasing time grid.

    Lookups follow the binary-search convention: a time on the grid returns
    its index, a time off the grid returns ``-(insertion_index) - 1``. The
    two named helpers below apply the offset rule for "previous point" and
    "next point" so call sites never redo the arithmetic by hand.

    Times are rounded to ``tick_size`` on construction and on lookup, so that
    e.g. ``0.1 * 3`` and ``0.3`` land on the same grid point.
    """

    times: Tuple[float, ...]
    tick_size: float = DEFAULT_TICK_SIZE
    _array: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.tick_size <= 0.0:
            raise ConfigurationError(f"tick_size must be > 0, got {self.tick_size}")
        rounded = sorted({_round_to_tick(t, self.tick_size) for t in self.times})
        if not rounded:
            raise ConfigurationError("TimeDiscretization requires at least one time")
        if any(math.isnan(t) for t in rounded):
            raise ConfigurationError("TimeDiscretization times must not be NaN")
        object.__setattr__(self, "times", tuple(rounded))
        arr = np.asarray(rounded, dtype=float)
        arr.setflags(write=False)
        object.__setattr__(self, "_array", arr)

    # ---------- constructors ----------

    @classmethod
    def of(cls, times: Iterable[float], tick_size: float = DEFAULT_TICK_SIZE) -> "TimeDiscretization":
        return cls(times=tuple(float(t) for t in times), tick_size=tick_size)

    @classmethod
    def from_equidistant(
        cls,
        initial: float,
        number_of_time_steps: int,
        dt: float,
    ) -> "TimeDiscretization":
        """Grid ``initial, initial + dt, ..., initial + n*dt``."""
        if number_of_time_steps < 0:
            raise ConfigurationError(f"number_of_time_steps must be >= 0, got {number_of_time_steps}")
        if dt <= 0.0:
            raise ConfigurationError(f"dt must be > 0, got {dt}")
        return cls.of(initial + n * dt for n in range(number_of_time_steps + 1))

    @classmethod
    def from_stub(
        cls,
        initial: float,
        last: float,
        dt: float,
        *,
        short_period_at_end: bool = True,
    ) -> "TimeDiscretization":
        """
        Equidistant grid from ``initial`` to ``last`` with a short stub
        period either at the end (default) or at the start.
        """
        if dt <= 0.0:
            raise ConfigurationError(f"dt must be > 0, got {dt}")
        n_plus_one = int(math.ceil((last - initial) / dt)) + 1
        if short_period_at_end:
            return cls.of(min(last, initial + n * dt) for n in range(n_plus_one))
        return cls.of(max(initial, last - n * dt) for n in range(n_plus_one))

    # ---------- basic accessors ----------

    @property
    def number_of_times(self) -> int:
        return len(self.times)

    @property
    def number_of_time_steps(self) -> int:
        return len(self.times) - 1

    def get_time(self, time_index: int) -> float:
        if time_index < 0 or time_index >= len(self.times):
            raise IndexError(
                f"Time index {time_index} out of bounds for grid with {len(self.times)} times."
            )
        return self.times[time_index]

    def get_time_step(self, time_index: int) -> float:
        return self.get_time(time_index + 1) - self.get_time(time_index)

    def as_array(self) -> np.ndarray:
        return self._array.copy()

    def __len__(self) -> int:
        return len(self.times)

    def __iter__(self) -> Iterator[float]:
        return iter(self.times)

    # ---------- index lookup ----------

    def get_time_index(self, time: float) -> int:
        """Index of ``time`` on the grid, or ``-(insertion_index) - 1``."""
        t = _round_to_tick(time, self.tick_size)
        idx = int(np.searchsorted(self._array, t, side="left"))
        if idx < len(self.times) and self.times[idx] == t:
            return idx
        return -idx - 1

    def get_time_index_nearest_less_or_equal(self, time: float) -> int:
        """Index of the last grid time <= ``time`` (-1 if ``time`` precedes the grid)."""
        idx = self.get_time_index(time)
        if idx < 0:
            idx = -idx - 2
        return idx

    def get_time_index_nearest_greater_or_equal(self, time: float) -> int:
        """Index of the first grid time >= ``time`` (len(grid) if past the grid)."""
        idx = self.get_time_index(time)
        if idx < 0:
            idx = -idx - 1
        return idx

    # ---------- set operations ----------

    def union(self, other: "TimeDiscretization") -> "TimeDiscretization":
        return TimeDiscretization(
            times=self.times + other.times,
            tick_size=min(self.tick_size, other.tick_size),
        )

    def intersect(self, other: "TimeDiscretization") -> "TimeDiscretization":
        common = set(self.times) & set(other.times)
        return TimeDiscretization(times=tuple(common), tick_size=max(self.tick_size, other.tick_size))

    def time_shifted(self, shift: float) -> "TimeDiscretization":
        return TimeDiscretization(times=tuple(t + shift for t in self.times), tick_size=self.tick_size)
