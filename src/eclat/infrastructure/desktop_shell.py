"""Shell integration through Qt's desktop services."""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices

LOGGER = logging.getLogger(__name__)


class QtDesktopShell:
    """``ShellIntegration`` backed by :class:`QDesktopServices`.

    ``reveal`` selects the file in Explorer/Finder where the platform allows
    it and otherwise opens the containing folder.
    """

    def reveal(self, path: str) -> None:
        target = Path(path)
        if not target.exists():
            raise FileNotFoundError(f"{path} does not exist")
        if sys.platform == "win32":
            subprocess.run(["explorer", "/select,", str(target)], check=False)
            return
        if sys.platform == "darwin":
            subprocess.run(["open", "-R", str(target)], check=False)
            return
        self._open_url(QUrl.fromLocalFile(str(target.parent)))

    def open_default(self, path: str) -> None:
        target = Path(path)
        if not target.exists():
            raise FileNotFoundError(f"{path} does not exist")
        self._open_url(QUrl.fromLocalFile(str(target)))

    @staticmethod
    def _open_url(url: QUrl) -> None:
        LOGGER.debug("Opening %s", url.toString())
        if not QDesktopServices.openUrl(url):
            raise OSError(f"No application could open {url.toLocalFile()}")
