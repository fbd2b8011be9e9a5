"""Runtime detection and status domain types."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from functools import total_ordering

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RuntimeKind(str, Enum):
    DOCKER = "docker"
    PODMAN = "podman"

    def __str__(self) -> str:
        return self.value


class RuntimeStatus(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"  # permission denied; needs user action
    UNKNOWN = "unknown"  # probe timed out; retry later

    @property
    def is_failure(self) -> bool:
        return self in (RuntimeStatus.ERROR, RuntimeStatus.UNKNOWN)


class PodmanMode(str, Enum):
    ROOTFUL = "rootful"
    ROOTLESS = "rootless"


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@total_ordering
class Version(_Model):
    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int = Field(ge=0)
    full: str

    @property
    def triple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.triple < other.triple

    def __str__(self) -> str:
        return self.full


class Runtime(_Model):
    id: str
    kind: RuntimeKind = Field(alias="type")
    path: str
    version: Version
    status: RuntimeStatus = RuntimeStatus.UNKNOWN
    last_checked: datetime = Field(default_factory=utc_now)
    detected_at: datetime = Field(default_factory=utc_now)
    mode: PodmanMode | None = None  # Podman only
    is_wsl: bool | None = None  # Docker-on-WSL2 only
    error: str | None = None
    version_warning: bool | None = None


class DetectionError(_Model):
    kind: RuntimeKind = Field(alias="runtime")
    path: str
    message: str = Field(alias="error")


class DetectionResult(_Model):
    runtimes: list[Runtime] = Field(default_factory=list)
    detected_at: datetime = Field(default_factory=utc_now)
    duration_ms: int = Field(default=0, alias="duration")
    errors: list[DetectionError] = Field(default_factory=list)


class StatusUpdate(_Model):
    runtime_id: str
    status: RuntimeStatus
    timestamp: datetime = Field(default_factory=utc_now)
    error: str | None = None


def runtime_id(kind: RuntimeKind, path: str) -> str:
    """Stable id for a runtime install: "{kind}-{resolved path}"."""
    return f"{kind.value}-{path}"
