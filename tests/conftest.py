import stat
import sys
from pathlib import Path
from typing import Callable

import pytest

from harbormaster.runtime.types import Runtime, RuntimeKind, RuntimeStatus, Version


def pytest_collection_modifyitems(config, items):
    # fake runtimes are /bin/sh scripts
    if not sys.platform.startswith("win"):
        return
    skip = pytest.mark.skip(reason="needs a POSIX shell")
    for item in items:
        if item.get_closest_marker("posix"):
            item.add_marker(skip)


def _write_fake_runtime(
    directory: Path,
    name: str = "docker",
    version_output: str = "Docker version 24.0.7, build afdd53b",
    version_exit: int = 0,
    info_exit: int = 0,
    info_stderr: str = "",
    info_sleep: float | None = None,
    rootless_answer: str = "true",
    rootless_sleep: float | None = None,
) -> Path:
    if info_sleep is not None:
        info_body = f"exec sleep {info_sleep}"
    else:
        info_body = f"echo '{info_stderr}' >&2; exit {info_exit}"

    if rootless_sleep is not None:
        rootless_body = f"exec sleep {rootless_sleep}"
    else:
        rootless_body = f"echo '{rootless_answer}'; exit 0"

    script = f"""#!/bin/sh
case "$1" in
  --version)
    echo '{version_output}'
    exit {version_exit}
    ;;
  info)
    if [ "$2" = "--format={{{{.Host.Security.Rootless}}}}" ]; then
      {rootless_body}
    fi
    {info_body}
    ;;
esac
exit 2
"""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(script)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def _make_runtime(runtime_id: str = "docker-/usr/bin/docker", path: str = "/usr/bin/docker") -> Runtime:
    return Runtime(
        id=runtime_id,
        kind=RuntimeKind.DOCKER,
        path=path,
        version=Version(major=24, minor=0, patch=7, full="24.0.7"),
        status=RuntimeStatus.UNKNOWN,
    )


@pytest.fixture
def fake_runtime_dir(tmp_path: Path) -> Path:
    return tmp_path / "bin"


@pytest.fixture
def write_fake_runtime() -> Callable[..., Path]:
    """Factory for shell scripts that answer --version / info like a runtime CLI."""
    return _write_fake_runtime


@pytest.fixture
def make_runtime() -> Callable[..., Runtime]:
    """Factory for a Docker runtime record with placeholder version and status."""
    return _make_runtime
