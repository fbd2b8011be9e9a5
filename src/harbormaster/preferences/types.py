"""Preference domain types."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from harbormaster.infrastructure.config import CACHE_TTL, POLL_INTERVAL
from harbormaster.runtime.types import RuntimeKind


class RuntimePreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    selected_runtime_id: str | None = Field(
        default=None,
        alias="selectedRuntimeId",
        validation_alias=AliasChoices("selectedRuntimeId", "selected_runtime_id"),
    )
    auto_select_running: bool = Field(
        default=True,
        alias="autoSelectRunning",
        validation_alias=AliasChoices("autoSelectRunning", "auto_select_running"),
    )
    preferred_kind: RuntimeKind | None = Field(
        default=RuntimeKind.DOCKER,
        alias="preferredType",
        validation_alias=AliasChoices("preferredType", "preferred_type"),
    )
    detection_cache_ttl: int = Field(
        default=CACHE_TTL,
        gt=0,
        alias="detectionCacheTTL",
        validation_alias=AliasChoices("detectionCacheTTL", "detection_cache_ttl"),
    )  # seconds
    status_poll_interval: int = Field(
        default=POLL_INTERVAL,
        gt=0,
        alias="statusPollInterval",
        validation_alias=AliasChoices("statusPollInterval", "status_poll_interval"),
    )  # seconds
