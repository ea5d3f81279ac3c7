from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry(Generic[T]):
    value: T
    fetched_at: float


class StatusCache(Generic[T]):
    """Single-slot cache whose entry expires by wall-clock age.

    The clock is injectable so expiry can be driven deterministically in tests.
    Nothing invalidates an entry early; writers simply replace it.
    """

    def __init__(self, ttl: float = 300.0, *, clock: Optional[Clock] = None) -> None:
        self.ttl = ttl
        self._clock: Clock = clock or time.time
        self._entry: Optional[CacheEntry[T]] = None

    def get(self) -> Optional[T]:
        entry = self._entry
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self.ttl:
            return None
        return entry.value

    def set(self, value: T) -> None:
        self._entry = CacheEntry(value=value, fetched_at=self._clock())

    def age(self) -> Optional[float]:
        if self._entry is None:
            return None
        return self._clock() - self._entry.fetched_at

    def clear(self) -> None:
        self._entry = None
