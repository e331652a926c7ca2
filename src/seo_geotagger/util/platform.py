from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication
from PySide6.QtGui import QGuiApplication

APP_DISPLAY_NAME = "SEO Geotagger"
ORGANIZATION = "Asset Master"


def configure_app_identity() -> None:
    """Name the app before the QApplication exists (menu bar title on macOS)."""
    QCoreApplication.setOrganizationName(ORGANIZATION)
    QCoreApplication.setApplicationName("SeoGeotagger")
    QGuiApplication.setApplicationDisplayName(APP_DISPLAY_NAME)


def reveal_path(path: Path) -> None:
    """Show `path` in the platform file manager.

    Files are selected inside their folder where the platform supports it.
    """
    path = Path(path)
    if sys.platform == "darwin":
        cmd = ["open", "-R", str(path)] if path.is_file() else ["open", str(path)]
    elif sys.platform.startswith("win"):
        cmd = ["explorer", f"/select,{path}"] if path.is_file() else ["explorer", str(path)]
    else:
        cmd = ["xdg-open", str(path.parent if path.is_file() else path)]
    try:
        subprocess.run(cmd, check=False)
    except OSError:
        # no file manager available (headless session)
        pass
