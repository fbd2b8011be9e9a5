"""Shared async polling loop abstraction."""

from __future__ import annotations

import asyncio
from typing import Callable, Awaitable

from harbormaster.infrastructure.logger import logger


class AlreadyRunningError(RuntimeError):
    """Raised when starting a loop that is already running."""


class PollLoop:
    """An async loop that calls a function at a fixed interval.

    Stopping is cooperative: stop() only signals the loop, which checks the
    signal at each tick boundary. An in-flight call is allowed to finish.
    """

    def __init__(self, name: str, interval_s: float, fn: Callable[[], Awaitable[None]]) -> None:
        self._name = name
        self._interval = interval_s
        self._fn = fn
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        """True from start() until stop() is called."""
        return self._stop_event is not None and not self._stop_event.is_set()

    @property
    def finished(self) -> bool:
        """True once the last started task has exited, including its final tick."""
        return self._task is None or self._task.done()

    def start(self) -> None:
        """Start the loop as a background task. The first tick fires immediately.

        Raises AlreadyRunningError while a previous run is still active or
        still finishing its last tick after stop().
        """
        if self.running:
            raise AlreadyRunningError(f"{self._name} loop already running")
        if not self.finished:
            raise AlreadyRunningError(f"{self._name} loop is still stopping")
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stop_event))
        logger.info(f"{self._name} loop started", interval_s=self._interval)

    def stop(self) -> None:
        """Signal the loop to exit at its next tick boundary."""
        if self._stop_event is None or self._stop_event.is_set():
            return
        self._stop_event.set()
        logger.info(f"{self._name} loop stopping")

    async def wait_stopped(self) -> None:
        """Wait until the most recently started loop task has exited."""
        task = self._task
        if task is not None:
            await asyncio.shield(task)

    async def _loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self._fn()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception(f"Error in {self._name} loop")
            if stop_event.is_set():
                break
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        logger.info(f"{self._name} loop stopped")
