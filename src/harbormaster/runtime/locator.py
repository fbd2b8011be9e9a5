"""Find container runtime executables on the host."""

from __future__ import annotations

import os
import shutil
import stat
import sys
from pathlib import Path

from harbormaster.infrastructure.logger import logger

PROC_VERSION_PATH = Path("/proc/version")


def current_platform() -> str:
    """Host OS as "windows", "macos" or "linux"."""
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def is_windows(platform: str | None = None) -> bool:
    return (platform or current_platform()) == "windows"


class ExecutableLocator:
    """Resolves an executable via PATH, then a list of fallback locations.

    Fallback entries may be directories (searched for the executable) or
    the executable file itself.
    """

    def __init__(self, fallback_paths: dict[str, list[str]] | None = None, platform: str | None = None) -> None:
        self._fallback_paths = fallback_paths or {}
        self._platform = platform or current_platform()

    @property
    def platform(self) -> str:
        return self._platform

    def fallback_paths(self) -> list[Path]:
        return [Path(p) for p in self._fallback_paths.get(self._platform, [])]

    def _names(self, executable: str) -> list[str]:
        if is_windows(self._platform):
            return [executable, f"{executable}.exe"]
        return [executable]

    def locate(self, executable: str) -> Path | None:
        """Return the first matching executable, or None if not installed."""
        found = shutil.which(executable)
        if found:
            return Path(found)

        names = self._names(executable)
        for candidate in self.fallback_paths():
            if candidate.is_file() and candidate.name in names:
                return candidate
            if candidate.is_dir():
                for name in names:
                    inner = candidate / name
                    if inner.is_file():
                        return inner

        logger.debug("Executable not found", executable=executable, platform=self._platform)
        return None


def verify_executable(path: str | os.PathLike[str], platform: str | None = None) -> bool:
    """Check that path is usable as an executable.

    POSIX: any execute bit is set. Windows: path is a regular file.
    """
    path = Path(path)
    if is_windows(platform):
        return path.is_file()
    try:
        mode = path.stat().st_mode
    except OSError:
        return False
    return bool(mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))


def is_wsl(proc_version: Path = PROC_VERSION_PATH) -> bool:
    """True when running inside WSL, judged by the kernel version string."""
    try:
        contents = proc_version.read_text().lower()
    except OSError:
        return False
    return "microsoft" in contents or "wsl" in contents


def locate_wsl_executable(executable: str, proc_version: Path = PROC_VERSION_PATH) -> Path | None:
    """On a WSL2 host, look up the Windows-side .exe through PATH."""
    if not is_wsl(proc_version):
        return None
    found = shutil.which(f"{executable}.exe")
    if found:
        logger.debug("Found Windows executable from WSL", executable=executable, path=found)
        return Path(found)
    return None
