"""Version string parsing and minimum-version policy."""

from __future__ import annotations

import re

from harbormaster.runtime.types import RuntimeKind, Version

_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")

# Oldest releases we support; older ones still work but get a warning.
MINIMUM_VERSIONS: dict[RuntimeKind, tuple[int, int, int]] = {
    RuntimeKind.DOCKER: (20, 10, 0),
    RuntimeKind.PODMAN: (3, 0, 0),
}


class VersionParseError(ValueError):
    """Raised when no major.minor.patch triple can be found."""


def parse_version(raw: str) -> Version:
    """Extract the first major.minor.patch triple from --version output.

    "Docker version 24.0.7, build afdd53b" -> 24.0.7
    "podman version 4.8.0"                 -> 4.8.0
    "Docker version 20.10.21-ce"           -> 20.10.21
    """
    match = _VERSION_RE.search(raw)
    if not match:
        raise VersionParseError(f"Could not parse version from: {raw!r}")
    major, minor, patch = (int(g) for g in match.groups())
    return Version(major=major, minor=minor, patch=patch, full=f"{major}.{minor}.{patch}")


def validate_minimum(version: Version, kind: RuntimeKind) -> bool:
    """True if version meets the supported minimum for kind."""
    return version.triple >= MINIMUM_VERSIONS[kind]

