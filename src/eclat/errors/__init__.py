"""Custom exception hierarchy for the catalog engine."""

from __future__ import annotations

from typing import Optional


class EclatError(Exception):
    """Base class for all custom errors raised by the engine."""


# --- Client-side validation ---

class ValidationError(EclatError):
    """Raised before any network call when a local edit is rejected.

    ``reason`` is a short machine-readable code (``"empty"``,
    ``"illegal_characters"``, ``"unchanged"``, ``"out_of_range"``,
    ``"too_long"``, ``"unsupported"``) that views can map to inline hints.
    """

    def __init__(self, message: str, *, reason: str = "invalid", field: Optional[str] = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.field = field


# --- Backend errors ---

class BackendError(EclatError):
    """Raised when a request to the catalog service fails."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(BackendError):
    """Raised when the referenced asset or collection no longer resolves."""


class ConflictError(BackendError):
    """Raised when the server reports a concurrent modification (e.g. a rename race)."""


class RequestTimeoutError(BackendError):
    """Raised when a request exceeds the configured timeout."""


# --- Settings errors ---

class SettingsError(EclatError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
