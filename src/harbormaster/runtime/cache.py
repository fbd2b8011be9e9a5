"""Detection result cache with TTL."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from harbormaster.runtime.types import DetectionResult, RuntimeKind


@dataclass(frozen=True)
class CacheEntry:
    result: DetectionResult
    expires_at: float


class DetectionCache:
    """Maps runtime kind to its last detection result.

    Expiry is lazy: stale entries stay stored until overwritten or cleared,
    but get() never returns one.
    """

    def __init__(self, ttl_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_s
        self._clock = clock
        self._entries: dict[RuntimeKind, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, kind: RuntimeKind) -> DetectionResult | None:
        with self._lock:
            entry = self._entries.get(kind)
        if entry is None or not self._clock() < entry.expires_at:
            return None
        return entry.result.model_copy(deep=True)

    def set(self, kind: RuntimeKind, result: DetectionResult) -> None:
        entry = CacheEntry(result=result.model_copy(deep=True), expires_at=self._clock() + self._ttl)
        with self._lock:
            self._entries[kind] = entry

    def clear(self, kind: RuntimeKind) -> None:
        with self._lock:
            self._entries.pop(kind, None)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()
