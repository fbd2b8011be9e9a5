"""Runtime preferences persisted as a JSON document in the config directory."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from harbormaster.infrastructure.config import PREFERENCES_PATH
from harbormaster.infrastructure.logger import logger
from harbormaster.preferences.types import RuntimePreferences


class PreferencesRepository:
    def __init__(self, path: Path = PREFERENCES_PATH) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> RuntimePreferences:
        """Load preferences, falling back to defaults if missing or corrupt."""
        try:
            content = self._path.read_text()
        except FileNotFoundError:
            return RuntimePreferences()

        try:
            return RuntimePreferences.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as err:
            logger.warning("Corrupted preferences file, using defaults", path=str(self._path), error=str(err))
            return RuntimePreferences()

    def save(self, prefs: RuntimePreferences) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = prefs.model_dump(mode="json", by_alias=True, exclude_none=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2) + "\n")
        tmp.replace(self._path)
