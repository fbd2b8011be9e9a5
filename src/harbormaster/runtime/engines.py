"""Container runtime engines: Protocol + Docker and Podman implementations."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from harbormaster.infrastructure.config import MODE_QUERY_TIMEOUT, TimeoutConfig
from harbormaster.infrastructure.logger import logger
from harbormaster.infrastructure.process import CommandTimeoutError, run_command
from harbormaster.runtime.locator import ExecutableLocator, locate_wsl_executable
from harbormaster.runtime.types import PodmanMode, RuntimeKind

DOCKER_FALLBACK_PATHS: dict[str, list[str]] = {
    "windows": [
        r"C:\Program Files\Docker\Docker\resources\bin",
        r"C:\Program Files\Docker\Docker\resources\bin\docker.exe",
    ],
    "macos": [
        "/usr/local/bin",
        "/opt/homebrew/bin",
        "/Applications/Docker.app/Contents/Resources/bin",
    ],
    "linux": ["/usr/bin", "/usr/local/bin", "/snap/bin"],
}

PODMAN_FALLBACK_PATHS: dict[str, list[str]] = {
    "windows": [
        r"C:\Program Files\RedHat\Podman",
        r"C:\Program Files\RedHat\Podman\podman.exe",
    ],
    "macos": ["/usr/local/bin", "/opt/homebrew/bin", "/opt/podman/bin"],
    "linux": ["/usr/bin", "/usr/local/bin", "/usr/libexec/podman"],
}


class RuntimeEngine(Protocol):
    """Interface for a kind of container runtime (Docker, Podman, etc.)."""

    @property
    def kind(self) -> RuntimeKind: ...

    @property
    def executable(self) -> str:
        """Executable name looked up on the host (e.g. 'docker')."""
        ...

    def locate(self) -> Path | None:
        """Path to an installed executable, or None if not installed."""
        ...

    async def describe(self, path: Path) -> dict[str, Any]:
        """Kind-specific Runtime fields for an install at path."""
        ...


class DockerEngine:
    """Docker, including Docker Desktop reached from inside WSL2."""

    def __init__(self, locator: ExecutableLocator | None = None) -> None:
        self._locator = locator or ExecutableLocator(DOCKER_FALLBACK_PATHS)

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.DOCKER

    @property
    def executable(self) -> str:
        return "docker"

    def locate(self) -> Path | None:
        path = self._locator.locate(self.executable)
        if path is None and self._locator.platform == "linux":
            path = locate_wsl_executable(self.executable)
        return path

    async def describe(self, path: Path) -> dict[str, Any]:
        if self._locator.platform == "linux" and ".exe" in str(path):
            return {"is_wsl": True}
        return {}


class PodmanEngine:
    """Podman, in rootful or rootless mode."""

    def __init__(self, locator: ExecutableLocator | None = None, mode_timeout_s: float = MODE_QUERY_TIMEOUT) -> None:
        self._locator = locator or ExecutableLocator(PODMAN_FALLBACK_PATHS)
        self._mode_timeout = mode_timeout_s

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.PODMAN

    @property
    def executable(self) -> str:
        return "podman"

    def locate(self) -> Path | None:
        return self._locator.locate(self.executable)

    async def describe(self, path: Path) -> dict[str, Any]:
        return {"mode": await self.detect_mode(path)}

    async def detect_mode(self, path: Path) -> PodmanMode:
        """Ask podman whether it runs rootless.

        Falls back to ROOTLESS when the answer can't be determined, which is
        the common install but not verified.
        """
        try:
            result = await run_command(
                [str(path), "info", "--format={{.Host.Security.Rootless}}"],
                self._mode_timeout,
            )
        except (OSError, CommandTimeoutError) as err:
            logger.debug("Podman mode query failed, assuming rootless", path=str(path), error=str(err))
            return PodmanMode.ROOTLESS

        answer = result.stdout.strip().lower()
        if result.ok and answer == "false":
            return PodmanMode.ROOTFUL
        if not result.ok or answer != "true":
            logger.debug("Unrecognized podman mode answer, assuming rootless", path=str(path), answer=answer)
        return PodmanMode.ROOTLESS


def default_engines(timeouts: TimeoutConfig | None = None) -> list[RuntimeEngine]:
    timeouts = timeouts or TimeoutConfig()
    return [DockerEngine(), PodmanEngine(mode_timeout_s=timeouts.mode_timeout)]
