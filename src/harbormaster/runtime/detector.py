"""Runtime detector: locates, versions and probes each runtime kind, with caching."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

from harbormaster.infrastructure.config import CACHE_TTL, TimeoutConfig
from harbormaster.infrastructure.logger import logger
from harbormaster.infrastructure.process import CommandTimeoutError, run_command
from harbormaster.runtime.cache import DetectionCache
from harbormaster.runtime.engines import RuntimeEngine, default_engines
from harbormaster.runtime.locator import verify_executable
from harbormaster.runtime.status import StatusProber
from harbormaster.runtime.types import (
    DetectionError,
    DetectionResult,
    Runtime,
    RuntimeKind,
    runtime_id,
    utc_now,
)
from harbormaster.runtime.version import VersionParseError, parse_version, validate_minimum

TIMEOUT_EXCEEDED = "Detection timeout exceeded"
LACKS_PERMISSIONS = "Executable lacks proper permissions"


class _PipelineAbort(Exception):
    """Stops a detection pipeline with a message for its DetectionError."""


class _Budget:
    """Wall-clock budget for one pipeline, checked between stages."""

    def __init__(self, seconds: float) -> None:
        self._seconds = seconds
        self._start = time.monotonic()

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._start) * 1000)

    def checkpoint(self) -> None:
        if time.monotonic() - self._start > self._seconds:
            raise _PipelineAbort(TIMEOUT_EXCEEDED)


class RuntimeDetector:
    """Detects installed runtimes, serving fresh results from a TTL cache."""

    def __init__(
        self,
        cache_ttl_s: float = CACHE_TTL,
        timeouts: TimeoutConfig | None = None,
        engines: list[RuntimeEngine] | None = None,
        prober: StatusProber | None = None,
        cache: DetectionCache | None = None,
    ) -> None:
        self._timeouts = timeouts or TimeoutConfig()
        engines = engines or default_engines(self._timeouts)
        self._engines: dict[RuntimeKind, RuntimeEngine] = {e.kind: e for e in engines}
        self._prober = prober or StatusProber(self._timeouts.status_timeout)
        self._cache = cache or DetectionCache(cache_ttl_s)

    @property
    def kinds(self) -> list[RuntimeKind]:
        return list(self._engines)

    async def detect_kind(self, kind: RuntimeKind, timeout_ms: int | None = None) -> DetectionResult:
        """Detect one kind, using the cache when it holds a fresh result."""
        engine = self._engines[kind]

        cached = self._cache.get(kind)
        if cached is not None:
            logger.debug("Detection cache hit", kind=kind.value)
            return cached

        result = await self._run_pipeline(engine, self._timeouts.detection_budget_s(timeout_ms))
        self._cache.set(kind, result)

        logger.info(
            "Runtime detection finished",
            kind=kind.value,
            found=len(result.runtimes),
            errors=len(result.errors),
            duration_ms=result.duration_ms,
        )
        return result

    async def detect_all_results(self) -> list[DetectionResult]:
        """Detect every kind concurrently; one kind failing never affects another."""
        kinds = self.kinds
        outcomes = await asyncio.gather(*(self.detect_kind(k) for k in kinds), return_exceptions=True)

        results: list[DetectionResult] = []
        for kind, outcome in zip(kinds, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("Runtime detection crashed", kind=kind.value, error=str(outcome), exc_info=outcome)
                outcome = DetectionResult(errors=[DetectionError(kind=kind, path="", message=f"Detection failed: {outcome}")])
            results.append(outcome)
        return results

    async def detect_all(self) -> list[Runtime]:
        results = await self.detect_all_results()
        return [runtime for result in results for runtime in result.runtimes]

    async def detect(self) -> DetectionResult:
        """Detect every kind and merge runtimes and errors into one result."""
        start = time.monotonic()
        results = await self.detect_all_results()
        return DetectionResult(
            runtimes=[r for result in results for r in result.runtimes],
            errors=[e for result in results for e in result.errors],
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    def clear_cache(self, kind: RuntimeKind) -> None:
        self._cache.clear(kind)

    def clear_all_caches(self) -> None:
        self._cache.clear_all()

    async def _run_pipeline(self, engine: RuntimeEngine, budget_s: float) -> DetectionResult:
        budget = _Budget(budget_s)
        runtimes: list[Runtime] = []
        errors: list[DetectionError] = []

        path = await asyncio.to_thread(engine.locate)
        if path is not None:
            try:
                runtimes.append(await self._inspect(engine, path, budget))
            except _PipelineAbort as abort:
                logger.warning("Runtime detection error", kind=engine.kind.value, path=str(path), error=str(abort))
                errors.append(DetectionError(kind=engine.kind, path=str(path), message=str(abort)))
        else:
            logger.debug("Runtime not installed", kind=engine.kind.value)

        return DetectionResult(runtimes=runtimes, errors=errors, duration_ms=budget.elapsed_ms)

    async def _inspect(self, engine: RuntimeEngine, path: Path, budget: _Budget) -> Runtime:
        budget.checkpoint()
        if not verify_executable(path):
            raise _PipelineAbort(LACKS_PERMISSIONS)

        budget.checkpoint()
        raw_version = await self._query_version(engine, path)
        try:
            version = parse_version(raw_version)
        except VersionParseError as err:
            raise _PipelineAbort(f"Failed to parse version: {err}") from err
        version_warning = not validate_minimum(version, engine.kind)
        if version_warning:
            logger.warning("Runtime version below supported minimum", kind=engine.kind.value, version=version.full)

        budget.checkpoint()
        status = await self._prober.probe(str(path))

        budget.checkpoint()
        extras = await engine.describe(path)

        now = utc_now()
        return Runtime(
            id=runtime_id(engine.kind, str(path)),
            kind=engine.kind,
            path=str(path),
            version=version,
            status=status,
            last_checked=now,
            detected_at=now,
            version_warning=True if version_warning else None,
            **extras,
        )

    async def _query_version(self, engine: RuntimeEngine, path: Path) -> str:
        try:
            result = await run_command([str(path), "--version"], self._timeouts.version_timeout)
        except (OSError, CommandTimeoutError) as err:
            raise _PipelineAbort(f"Failed to get version: {err}") from err
        if not result.ok:
            raise _PipelineAbort(f"Failed to get version: {engine.executable} --version exited with code {result.returncode}")
        return result.stdout.strip()
