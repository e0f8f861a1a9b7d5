"""Load/save reporter settings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from gareporter.config.models import ReporterSettings
from gareporter.paths import settings_path
from gareporter.runtime_logging import RuntimeLogger, get_runtime_logger


class SettingsStore:
    """Reporter settings kept as one JSON document.

    `load` never fails: a missing file is seeded with defaults, a corrupt one
    is moved aside, and an unreadable one yields defaults without touching disk.
    """

    def __init__(self, path: Path | None = None, *, logger: RuntimeLogger | None = None) -> None:
        self.path = path or settings_path()
        self._logger = logger or get_runtime_logger()

    def load(self) -> ReporterSettings:
        if not self.path.exists():
            settings = ReporterSettings()
            self._seed(settings)
            return settings

        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self._logger.warning("settings.unreadable", path=str(self.path), error=str(exc))
            return ReporterSettings()

        try:
            return ReporterSettings.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            backup = self.path.with_suffix(".corrupt.json")
            self._logger.warning("settings.corrupt", path=str(self.path), backup=str(backup), error=str(exc))
            try:
                backup.write_text(raw, encoding="utf-8")
            except OSError as backup_exc:
                self._logger.warning("settings.backup_failed", path=str(backup), error=str(backup_exc))
                return ReporterSettings()
            settings = ReporterSettings()
            self._seed(settings)
            return settings

    def save(self, settings: ReporterSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(settings.model_dump(mode="json"), indent=2, sort_keys=True)
        self.path.write_text(f"{payload}\n", encoding="utf-8")

    def update(self, dotted_key: str, value: Any) -> ReporterSettings:
        """Set one `section.field` value, validate, and write it back."""
        settings = self.load()
        data = settings.model_dump()

        *parents, leaf = dotted_key.split(".")
        cursor: dict[str, Any] = data
        for key in parents:
            nested = cursor.get(key)
            if nested is None and key == "custom_dimensions":
                nested = cursor[key] = {}
            if not isinstance(nested, dict):
                raise KeyError(f"Unknown setting path: {dotted_key}")
            cursor = nested
        cursor[leaf] = value

        updated = ReporterSettings.model_validate(data)
        self.save(updated)
        return updated

    def _seed(self, settings: ReporterSettings) -> None:
        # Defaults still apply when they cannot be written.
        try:
            self.save(settings)
        except OSError as exc:
            self._logger.warning("settings.save_failed", path=str(self.path), error=str(exc))
