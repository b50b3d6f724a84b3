"""Locate, parse and validate the settings file."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from jsonschema import ValidationError as SchemaValidationError

from eclat.domain.models import Mode, QuerySnapshot, SortField
from eclat.errors import SettingsLoadError, SettingsValidationError

from .schema import merge_with_defaults

LOGGER = logging.getLogger(__name__)

APP_DIR_NAME = "Eclat"


def default_settings_path() -> Path:
    """Return the default settings.json location for the current platform."""

    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / APP_DIR_NAME / "settings.json"
        return Path.home() / "AppData" / "Roaming" / APP_DIR_NAME / "settings.json"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME / "settings.json"
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / APP_DIR_NAME.lower() / "settings.json"
    return Path.home() / ".config" / APP_DIR_NAME.lower() / "settings.json"


@dataclass(frozen=True)
class EngineSettings:
    base_url: str
    timeout_seconds: float
    page_size: int
    sort_field: SortField
    sort_desc: bool
    log_level: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineSettings":
        return cls(
            base_url=str(data["api"]["base_url"]),
            timeout_seconds=float(data["api"]["timeout_seconds"]),
            page_size=int(data["gallery"]["page_size"]),
            sort_field=SortField.parse(data["gallery"]["sort_field"]),
            sort_desc=bool(data["gallery"]["sort_desc"]),
            log_level=str(data["logging"]["level"]),
        )

    @classmethod
    def defaults(cls) -> "EngineSettings":
        return cls.from_dict(merge_with_defaults(None))

    def initial_snapshot(self, mode: Optional[Mode] = None) -> QuerySnapshot:
        return QuerySnapshot(
            mode=mode or Mode.all(),
            sort_field=self.sort_field,
            sort_desc=self.sort_desc,
            page_size=self.page_size,
        )


def load_settings(path: Optional[Path] = None) -> EngineSettings:
    """Load settings from *path* (or the platform default).

    A missing file yields the defaults; the file is never written.
    """

    path = Path(path) if path is not None else default_settings_path()
    payload: Optional[dict[str, Any]] = None
    if path.exists():
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SettingsLoadError(f"{path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise SettingsLoadError(f"{path}: expected a JSON object")
    else:
        LOGGER.debug("No settings file at %s; using defaults", path)
    try:
        merged = merge_with_defaults(payload)
    except SchemaValidationError as exc:
        raise SettingsValidationError(f"{path}: {exc.message}") from exc
    return EngineSettings.from_dict(merged)
