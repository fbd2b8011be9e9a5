"""HarborMaster: composes detection, polling and preferences for the application layer."""

from __future__ import annotations

from harbormaster.events import EventBus
from harbormaster.infrastructure.config import (
    EVENT_DETECTION_COMPLETED,
    EVENT_DETECTION_STARTED,
    EVENT_RUNTIME_SELECTED,
    TimeoutConfig,
)
from harbormaster.infrastructure.logger import logger
from harbormaster.polling.service import PollingService
from harbormaster.preferences.repository import PreferencesRepository
from harbormaster.preferences.types import RuntimePreferences
from harbormaster.runtime.detector import RuntimeDetector
from harbormaster.runtime.locator import current_platform
from harbormaster.runtime.types import DetectionResult, Runtime, RuntimeStatus


def auto_select(runtimes: list[Runtime], prefs: RuntimePreferences) -> Runtime | None:
    """Pick the runtime the application should use.

    The stored selection wins while it is still installed. Otherwise, with
    auto-select enabled, prefer a running runtime of the preferred kind, then
    any running runtime.
    """
    if prefs.selected_runtime_id:
        for runtime in runtimes:
            if runtime.id == prefs.selected_runtime_id:
                return runtime

    if not prefs.auto_select_running:
        return None

    running = [r for r in runtimes if r.status == RuntimeStatus.RUNNING]
    preferred = [r for r in running if r.kind == prefs.preferred_kind]
    if preferred:
        return preferred[0]
    return running[0] if running else None


class HarborMaster:
    """Owns one detector, one polling service and one event bus per process."""

    def __init__(
        self,
        preferences: PreferencesRepository | None = None,
        detector: RuntimeDetector | None = None,
        poller: PollingService | None = None,
        events: EventBus | None = None,
        timeouts: TimeoutConfig | None = None,
    ) -> None:
        self._preferences = preferences or PreferencesRepository()
        prefs = self._preferences.load()
        self._detector = detector or RuntimeDetector(cache_ttl_s=prefs.detection_cache_ttl, timeouts=timeouts)
        self._poller = poller or PollingService(interval_s=prefs.status_poll_interval)
        self.events = events or EventBus()

    @property
    def detector(self) -> RuntimeDetector:
        return self._detector

    @property
    def poller(self) -> PollingService:
        return self._poller

    async def detect_runtimes(self) -> DetectionResult:
        await self.events.emit(EVENT_DETECTION_STARTED)
        result = await self._detector.detect()
        logger.info("Detection completed", runtimes=len(result.runtimes), errors=len(result.errors), duration_ms=result.duration_ms)
        await self.events.emit(EVENT_DETECTION_COMPLETED, result)
        return result

    def clear_detection_cache(self) -> None:
        self._detector.clear_all_caches()
        logger.info("Detection cache cleared")

    def get_preferences(self) -> RuntimePreferences:
        return self._preferences.load()

    def set_preferences(self, prefs: RuntimePreferences) -> None:
        self._preferences.save(prefs)

    async def select_runtime(self, runtime_id: str) -> None:
        prefs = self._preferences.load()
        prefs.selected_runtime_id = runtime_id
        self._preferences.save(prefs)
        logger.info("Runtime selected", runtime_id=runtime_id)
        await self.events.emit(EVENT_RUNTIME_SELECTED, runtime_id)

    async def selected_runtime(self) -> Runtime | None:
        return auto_select(await self._detector.detect_all(), self._preferences.load())

    async def start_status_polling(self) -> None:
        """Seed the poller from detection and start it.

        Raises AlreadyRunningError if polling is already active.
        """
        runtimes = await self._detector.detect_all()
        self._poller.set_runtimes(runtimes)
        self._poller.start(self.events)

    async def stop_status_polling(self) -> None:
        self._poller.stop()
        await self._poller.wait_stopped()

    @staticmethod
    def get_platform() -> str:
        return current_platform()
