"""Liveness probe for a runtime's daemon via its `info` subcommand."""

from __future__ import annotations

from harbormaster.infrastructure.config import STATUS_CHECK_TIMEOUT
from harbormaster.infrastructure.logger import logger
from harbormaster.infrastructure.process import CommandTimeoutError, run_command
from harbormaster.runtime.types import Runtime, RuntimeStatus

PERMISSION_DENIED_MARKER = "permission denied"


def classify_exit(returncode: int, stderr: str) -> RuntimeStatus:
    """Map a finished `info` call to a status.

    A daemon that isn't running is the normal case and maps to STOPPED;
    ERROR is kept for permission problems only.
    """
    if returncode == 0:
        return RuntimeStatus.RUNNING
    if PERMISSION_DENIED_MARKER in stderr.lower():
        return RuntimeStatus.ERROR
    return RuntimeStatus.STOPPED


class StatusProber:
    """Runs `<runtime> info` with a hard timeout and classifies the outcome."""

    def __init__(self, timeout_s: float = STATUS_CHECK_TIMEOUT) -> None:
        self._timeout = timeout_s

    @property
    def timeout(self) -> float:
        return self._timeout

    async def probe(self, path: str, timeout_s: float | None = None) -> RuntimeStatus:
        timeout = self._timeout if timeout_s is None else timeout_s
        try:
            result = await run_command([path, "info"], timeout)
        except CommandTimeoutError:
            logger.debug("Status probe timed out", path=path, timeout_s=timeout)
            return RuntimeStatus.UNKNOWN
        except OSError as err:
            logger.debug("Status probe failed to spawn", path=path, error=str(err))
            return RuntimeStatus.STOPPED

        status = classify_exit(result.returncode, result.stderr)
        logger.debug("Status probe finished", path=path, status=status.value, code=result.returncode)
        return status

    async def check(self, runtime: Runtime) -> RuntimeStatus:
        return await self.probe(runtime.path)
