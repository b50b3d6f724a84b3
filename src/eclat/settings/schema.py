"""Schema helpers for the engine settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from eclat.config import DEFAULT_API_BASE_URL, DEFAULT_PAGE_SIZE, DEFAULT_REQUEST_TIMEOUT_SEC

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "eclat/settings.schema.json",
    "type": "object",
    "required": ["schema", "api", "gallery"],
    "properties": {
        "schema": {"const": "eclat/settings@1"},
        "api": {
            "type": "object",
            "properties": {
                "base_url": {"type": "string", "pattern": "^https?://"},
                "timeout_seconds": {"type": "number", "exclusiveMinimum": 0},
            },
            "additionalProperties": True,
        },
        "gallery": {
            "type": "object",
            "properties": {
                "page_size": {"type": "integer", "minimum": 1, "maximum": 500},
                "sort_field": {
                    "type": "string",
                    "enum": ["dateadded", "filename", "filesize", "lastmodified", "rating"],
                },
                "sort_desc": {"type": "boolean"},
            },
            "additionalProperties": True,
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {
                    "type": "string",
                    "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                },
            },
            "additionalProperties": True,
        },
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "eclat/settings@1",
    "api": {
        "base_url": DEFAULT_API_BASE_URL,
        "timeout_seconds": DEFAULT_REQUEST_TIMEOUT_SEC,
    },
    "gallery": {
        "page_size": DEFAULT_PAGE_SIZE,
        "sort_field": "dateadded",
        "sort_desc": True,
    },
    "logging": {
        "level": "INFO",
    },
}

_SECTIONS = ("api", "gallery", "logging")

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key in _SECTIONS and isinstance(value, dict):
                target = merged.setdefault(key, {})
                for sub_key, sub_value in value.items():
                    target[sub_key] = sub_value
                continue
            if key == "logging" and isinstance(value, str):
                merged["logging"]["level"] = value
                continue
            merged[key] = value
    level = merged["logging"].get("level")
    if isinstance(level, str):
        merged["logging"]["level"] = level.upper()
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
