"""Status polling: periodically re-probes known runtimes and emits updates."""

from __future__ import annotations

import random
import threading
from typing import Protocol

from harbormaster.events import EventSink, emit_to
from harbormaster.infrastructure.config import EVENT_STATUS_UPDATE, MAX_FAILURE_COUNT, POLL_INTERVAL
from harbormaster.infrastructure.logger import logger
from harbormaster.infrastructure.poll_loop import AlreadyRunningError, PollLoop
from harbormaster.runtime.status import StatusProber
from harbormaster.runtime.types import Runtime, RuntimeStatus, StatusUpdate

__all__ = ["AlreadyRunningError", "PollingService", "Prober"]


class Prober(Protocol):
    async def probe(self, path: str, timeout_s: float | None = None) -> RuntimeStatus: ...


class PollingService:
    """Polls every held runtime once per interval.

    Runtimes whose last probes failed (ERROR or UNKNOWN) are skipped at
    random with probability 1 - 1/2^failures, so failing runtimes are probed
    exponentially less often without needing a timer per runtime.
    """

    def __init__(
        self,
        interval_s: float = POLL_INTERVAL,
        prober: Prober | None = None,
        max_failures: int = MAX_FAILURE_COUNT,
        rng: random.Random | None = None,
    ) -> None:
        self._interval = interval_s
        self._prober = prober or StatusProber()
        self._max_failures = max_failures
        self._rng = rng or random.Random()
        self._runtimes: tuple[Runtime, ...] = ()
        self._failure_counts: dict[str, int] = {}
        self._lock = threading.Lock()
        self._loop: PollLoop | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._loop is not None and self._loop.running

    @property
    def runtimes(self) -> list[Runtime]:
        return list(self._runtimes)

    def set_runtimes(self, runtimes: list[Runtime]) -> None:
        """Replace the polled set. The next tick sees the new set.

        Failure counts of runtimes no longer held are dropped.
        """
        snapshot = tuple(r.model_copy(deep=True) for r in runtimes)
        held = {r.id for r in snapshot}
        with self._lock:
            self._runtimes = snapshot
            self._failure_counts = {k: v for k, v in self._failure_counts.items() if k in held}
        logger.debug("Polling runtimes updated", count=len(snapshot))

    def failure_count(self, runtime_id: str) -> int:
        with self._lock:
            return self._failure_counts.get(runtime_id, 0)

    def start(self, sink: EventSink) -> None:
        """Start polling, emitting every update of this run to sink.

        Raises AlreadyRunningError if already started, or if a stopped run is
        still finishing its last tick; await wait_stopped() first.
        """
        if self._loop is not None and self._loop.running:
            raise AlreadyRunningError("Polling service already running")
        if self._loop is not None and not self._loop.finished:
            raise AlreadyRunningError("Polling service is still stopping")

        async def tick() -> None:
            await self.poll_once(sink)

        self._loop = PollLoop("Status polling", self._interval, tick)
        self._loop.start()

    def stop(self) -> None:
        """Ask the loop to exit at its next tick; an in-flight probe finishes."""
        if self._loop is not None:
            self._loop.stop()

    async def wait_stopped(self) -> None:
        if self._loop is not None:
            await self._loop.wait_stopped()

    def should_skip(self, runtime_id: str) -> bool:
        failures = self.failure_count(runtime_id)
        if failures <= 0:
            return False
        backoff = 2 ** min(failures, self._max_failures)
        return self._rng.randrange(backoff) != 0

    def record(self, runtime_id: str, status: RuntimeStatus) -> int:
        """Update the failure counter for a probe outcome and return it."""
        with self._lock:
            if status.is_failure:
                count = min(self._failure_counts.get(runtime_id, 0) + 1, self._max_failures)
                self._failure_counts[runtime_id] = count
                return count
            self._failure_counts.pop(runtime_id, None)
            return 0

    async def poll_once(self, sink: EventSink | None = None) -> list[StatusUpdate]:
        """Probe every held runtime not in backoff and emit its status to sink."""
        with self._lock:
            runtimes = self._runtimes

        updates: list[StatusUpdate] = []
        for runtime in runtimes:
            if self.should_skip(runtime.id):
                logger.debug("Backing off runtime", runtime_id=runtime.id, failures=self.failure_count(runtime.id))
                continue

            status = await self._prober.probe(runtime.path)
            failures = self.record(runtime.id, status)
            if failures:
                logger.info("Runtime probe failing", runtime_id=runtime.id, status=status.value, failures=failures)

            update = StatusUpdate(runtime_id=runtime.id, status=status)
            updates.append(update)
            if sink is not None:
                await self._emit(sink, update)
        return updates

    async def _emit(self, sink: EventSink, update: StatusUpdate) -> None:
        try:
            await emit_to(sink, EVENT_STATUS_UPDATE, update)
        except Exception as err:
            logger.warning("Failed to emit status update", runtime_id=update.runtime_id, error=str(err))
