"""User-triggered shell actions on cached assets."""

from __future__ import annotations

import logging
from typing import Optional

from eclat.application.interfaces import ShellIntegration
from eclat.application.services.asset_cache import AssetCache
from eclat.errors.handler import ErrorHandler

LOGGER = logging.getLogger(__name__)


class ShellActions:
    """"Show in folder" and "open" for an asset id, failures go to the toast area."""

    def __init__(self, shell: ShellIntegration, cache: AssetCache, error_handler: ErrorHandler) -> None:
        self._shell = shell
        self._cache = cache
        self._errors = error_handler

    def reveal(self, asset_id: int) -> bool:
        return self._invoke(asset_id, self._shell.reveal, "Could not open explorer.")

    def open_default(self, asset_id: int) -> bool:
        return self._invoke(asset_id, self._shell.open_default, "Could not open file.")

    def _invoke(self, asset_id: int, action, failure_message: str) -> bool:
        path = self._path_of(asset_id)
        if path is None:
            LOGGER.warning("Shell action ignored: asset %s is not loaded", asset_id)
            return False
        try:
            action(path)
        except OSError as exc:
            self._errors.handle(
                OSError(f"{failure_message} ({exc})"),
                title="System Error",
                context={"asset_id": asset_id, "path": path},
            )
            return False
        return True

    def _path_of(self, asset_id: int) -> Optional[str]:
        record = self._cache.get(asset_id)
        return record.file_path if record is not None else None
