# src/libor_core/models/cache.py

"""
Thread-safe memoization used by the models.

Every cache owns its own lock and follows check -> lock -> check -> populate,
so a value is computed at most once per key.

  * ProcessScopedCache - values that depend on the simulated paths. Tied to
                         one process (by its ``process_id`` token) and emptied
                         when a different process shows up.
  * LazyValue          - a single value that does not depend on the process.
  * KeyedLRUCache      - bounded LRU with an explicit invalidation key.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

_MISSING = object()


def process_token(process: Any) -> int:
    """Identity token of a process (assigned once at construction)."""
    return process.process_id


class ProcessScopedCache(Generic[V]):
    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.RLock()
        # (owner token, entries). Replaced as a whole on invalidation so a
        # lock-free reader never sees entries of another process.
        self._state: Tuple[Optional[int], Dict[Hashable, V]] = (None, {})

    def ensure_consistency(self, process: Any) -> None:
        token = process_token(process)
        with self._lock:
            owner, entries = self._state
            if owner != token:
                if owner is not None:
                    logger.debug(
                        "Cache '%s': process changed (%s -> %s), dropping %d entries",
                        self.name, owner, token, len(entries),
                    )
                self._state = (token, {})

    def get_or_compute(self, process: Any, key: Hashable, factory: Callable[[], V]) -> V:
        token = process_token(process)

        owner, entries = self._state
        if owner == token:
            value = entries.get(key, _MISSING)
            if value is not _MISSING:
                return value

        with self._lock:
            self.ensure_consistency(process)
            _, entries = self._state
            value = entries.get(key, _MISSING)
            if value is _MISSING:
                value = factory()
                entries[key] = value
            return value

    def peek(self, process: Any, key: Hashable) -> Optional[V]:
        owner, entries = self._state
        if owner != process_token(process):
            return None
        return entries.get(key)

    def snapshot(self) -> Dict[Hashable, V]:
        with self._lock:
            return dict(self._state[1])

    def clear(self) -> None:
        with self._lock:
            self._state = (None, {})

    def __len__(self) -> int:
        return len(self._state[1])


class LazyValue(Generic[V]):
    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._value: Any = _MISSING

    def get(self, factory: Callable[[], V]) -> V:
        value = self._value
        if value is not _MISSING:
            return value
        with self._lock:
            if self._value is _MISSING:
                logger.debug("Lazy value '%s': initializing", self.name)
                self._value = factory()
            return self._value

    @property
    def is_initialized(self) -> bool:
        return self._value is not _MISSING


class KeyedLRUCache(Generic[V]):
    """
    Small LRU keyed by hashable keys.

    ``invalidation_key`` identifies the inputs the entries were computed from
    (e.g. tenor grid and curves). A call with a different invalidation key
    empties the cache first.
    """

    def __init__(self, maxsize: int = 32) -> None:
        if maxsize <= 0:
            raise ValueError(f"maxsize must be > 0, got {maxsize}")
        self.maxsize = maxsize
        self._lock = threading.Lock()
        self._entries: "OrderedDict[Hashable, V]" = OrderedDict()
        self._invalidation_key: Optional[Hashable] = None
        self.hits = 0
        self.misses = 0

    def get_or_compute(
        self,
        key: Hashable,
        factory: Callable[[], V],
        invalidation_key: Optional[Hashable] = None,
    ) -> V:
        with self._lock:
            if invalidation_key != self._invalidation_key:
                self._entries.clear()
                self._invalidation_key = invalidation_key
            if key in self._entries:
                self._entries.move_to_end(key)
                self.hits += 1
                return self._entries[key]

            self.misses += 1
            value = factory()
            self._entries[key] = value
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)
            return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._invalidation_key = None

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["ProcessScopedCache", "LazyValue", "KeyedLRUCache", "process_token"]
