# src/libor_core/stochastic/random_variable.py

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np

from libor_core.errors import CalculationError

Operand = Union["RandomVariable", float, int]


def _values_of(x: Operand):
    if isinstance(x, RandomVariable):
        return x._values
    return float(x)


def _time_of(x: Operand) -> float:
    if isinstance(x, RandomVariable):
        return x._time
    return float("-inf")


class RandomVariable:
    """
    A per-path vector of Monte Carlo realizations, or a broadcast constant.

    Deterministic values are stored as a plain float, stochastic ones as a
    read-only 1-D numpy array (one entry per path). Every operation returns a
    new instance, so instances can be shared freely between caches and
    threads.

    ``time`` is the filtration time of the value (the time at which it is
    known); binary operations keep the later of the two.
    """

    __slots__ = ("_values", "_time")

    def __init__(self, values, time: float = float("-inf")) -> None:
        if isinstance(values, RandomVariable):
            self._values = values._values
            self._time = values._time if time == float("-inf") else float(time)
            return

        if np.ndim(values) == 0:
            self._values = float(values)
        else:
            arr = np.array(values, dtype=float).reshape(-1)
            arr.setflags(write=False)
            self._values = arr
        self._time = float(time)

    # ---------- constructors ----------

    @classmethod
    def constant(cls, value: float, time: float = float("-inf")) -> "RandomVariable":
        return cls(float(value), time)

    @classmethod
    def _wrap(cls, values, time: float) -> "RandomVariable":
        rv = cls.__new__(cls)
        if np.ndim(values) == 0:
            rv._values = float(values)
        else:
            arr = np.asarray(values, dtype=float)
            arr.setflags(write=False)
            rv._values = arr
        rv._time = time
        return rv

    # ---------- inspection ----------

    @property
    def time(self) -> float:
        return self._time

    @property
    def is_deterministic(self) -> bool:
        return not isinstance(self._values, np.ndarray)

    @property
    def size(self) -> int:
        return 1 if self.is_deterministic else int(self._values.shape[0])

    def get(self, path: int) -> float:
        if self.is_deterministic:
            return self._values
        return float(self._values[path])

    def double_value(self) -> float:
        if not self.is_deterministic:
            raise CalculationError("double_value() requested for a stochastic random variable.")
        return self._values

    def as_array(self, number_of_paths: Optional[int] = None) -> np.ndarray:
        if self.is_deterministic:
            n = 1 if number_of_paths is None else int(number_of_paths)
            return np.full(n, self._values)
        return np.array(self._values)

    def has_nan(self) -> bool:
        return bool(np.any(np.isnan(self._values)))

    def average(self) -> float:
        if self.is_deterministic:
            return self._values
        return float(np.mean(self._values))

    def variance(self) -> float:
        if self.is_deterministic:
            return 0.0
        return float(np.var(self._values))

    def min(self) -> float:
        return float(np.min(self._values))

    def max(self) -> float:
        return float(np.max(self._values))

    # ---------- arithmetic ----------

    def _binary(self, other: Operand, values) -> "RandomVariable":
        return RandomVariable._wrap(values, max(self._time, _time_of(other)))

    def add(self, other: Operand) -> "RandomVariable":
        return self._binary(other, self._values + _values_of(other))

    def sub(self, other: Operand) -> "RandomVariable":
        return self._binary(other, self._values - _values_of(other))

    def bus(self, other: Operand) -> "RandomVariable":
        """``other - self``."""
        return self._binary(other, _values_of(other) - self._values)

    def mult(self, other: Operand) -> "RandomVariable":
        return self._binary(other, self._values * _values_of(other))

    def div(self, other: Operand) -> "RandomVariable":
        return self._binary(other, self._values / _values_of(other))

    def vid(self, other: Operand) -> "RandomVariable":
        """``other / self``."""
        return self._binary(other, _values_of(other) / self._values)

    def pow(self, exponent: float) -> "RandomVariable":
        return RandomVariable._wrap(np.power(self._values, float(exponent)), self._time)

    def exp(self) -> "RandomVariable":
        return RandomVariable._wrap(np.exp(self._values), self._time)

    def log(self) -> "RandomVariable":
        return RandomVariable._wrap(np.log(self._values), self._time)

    def sqrt(self) -> "RandomVariable":
        return RandomVariable._wrap(np.sqrt(self._values), self._time)

    def squared(self) -> "RandomVariable":
        return RandomVariable._wrap(self._values * self._values, self._time)

    def invert(self) -> "RandomVariable":
        return RandomVariable._wrap(1.0 / self._values, self._time)

    def abs(self) -> "RandomVariable":
        return RandomVariable._wrap(np.abs(self._values), self._time)

    def cap(self, cap: Operand) -> "RandomVariable":
        return self._binary(cap, np.minimum(self._values, _values_of(cap)))

    def floor(self, floor: Operand) -> "RandomVariable":
        return self._binary(floor, np.maximum(self._values, _values_of(floor)))

    def accrue(self, rate: Operand, period_length: float) -> "RandomVariable":
        """``self * (1 + rate * period_length)``."""
        return self._binary(rate, self._values * (1.0 + _values_of(rate) * period_length))

    def discount(self, rate: Operand, period_length: float) -> "RandomVariable":
        """``self / (1 + rate * period_length)``."""
        return self._binary(rate, self._values / (1.0 + _values_of(rate) * period_length))

    def add_product(self, factor1: Operand, factor2: Operand) -> "RandomVariable":
        values = self._values + _values_of(factor1) * _values_of(factor2)
        time = max(self._time, _time_of(factor1), _time_of(factor2))
        return RandomVariable._wrap(values, time)

    def add_sum_product(
        self,
        factors1: Sequence[Operand],
        factors2: Sequence[Operand],
    ) -> "RandomVariable":
        result = self
        for f1, f2 in zip(factors1, factors2):
            result = result.add_product(f1, f2)
        return result

    # ---------- operators ----------

    def __add__(self, other: Operand) -> "RandomVariable":
        return self.add(other)

    __radd__ = __add__

    def __sub__(self, other: Operand) -> "RandomVariable":
        return self.sub(other)

    def __rsub__(self, other: Operand) -> "RandomVariable":
        return self.bus(other)

    def __mul__(self, other: Operand) -> "RandomVariable":
        return self.mult(other)

    __rmul__ = __mul__

    def __truediv__(self, other: Operand) -> "RandomVariable":
        return self.div(other)

    def __rtruediv__(self, other: Operand) -> "RandomVariable":
        return self.vid(other)

    def __neg__(self) -> "RandomVariable":
        return RandomVariable._wrap(-self._values, self._time)

    def __pow__(self, exponent: float) -> "RandomVariable":
        return self.pow(exponent)

    def __repr__(self) -> str:
        if self.is_deterministic:
            return f"RandomVariable({self._values!r})"
        return f"RandomVariable(paths={self.size}, mean={self.average():.6g})"


__all__ = ["RandomVariable"]
