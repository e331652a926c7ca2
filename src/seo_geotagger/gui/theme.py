from __future__ import annotations

from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication, QStyleFactory

from seo_geotagger.core.models import ItemStatus

THEMES = ("light", "dark")

_STATUS_COLORS = {
    "light": {
        ItemStatus.PENDING: "#5c5c5c",
        ItemStatus.GENERATING: "#1a5fb4",
        ItemStatus.ENHANCING: "#6a3fb0",
        ItemStatus.EMBEDDING: "#8a5a00",
        ItemStatus.READY: "#1e7a34",
        ItemStatus.ERROR: "#b3261e",
    },
    "dark": {
        ItemStatus.PENDING: "#b5b5b5",
        ItemStatus.GENERATING: "#8ab4ff",
        ItemStatus.ENHANCING: "#c9a7ff",
        ItemStatus.EMBEDDING: "#f0c674",
        ItemStatus.READY: "#7ee2a0",
        ItemStatus.ERROR: "#ff8a80",
    },
}


def normalize_theme(theme: str | None) -> str:
    mode = (theme or "light").strip().lower()
    return mode if mode in THEMES else "light"


def status_color(status: ItemStatus, theme: str | None) -> QColor:
    return QColor(_STATUS_COLORS[normalize_theme(theme)][status])


def apply_theme(app: QApplication, theme: str) -> None:
    mode = normalize_theme(theme)
    app.setStyle(QStyleFactory.create("Fusion"))
    app.setPalette(_build_palette(mode))

    if mode == "dark":
        border, panel, accent = "#3a3a3a", "#242424", "#4c84ff"
    else:
        border, panel, accent = "#c7c7c7", "#f4f6fa", "#2f6fed"
    app.setStyleSheet(
        f"QFrame[cssClass=\"dropzone\"] {{ border: 2px dashed {border}; border-radius: 10px;"
        f" background: {panel}; min-height: 90px; }}"
        f"QFrame[cssClass=\"dropzone\"][dragActive=\"true\"] {{ border-color: {accent}; }}"
        f"QLabel[cssClass=\"subtitle\"] {{ font-size: 13px; }}"
        f"QPushButton[primary=\"true\"] {{ background: {accent}; color: #ffffff;"
        f" border-radius: 6px; padding: 5px 12px; }}"
    )


def _build_palette(mode: str) -> QPalette:
    if mode == "dark":
        window = QColor(18, 18, 18)
        base = QColor(30, 30, 30)
        alt = QColor(45, 45, 45)
        text = QColor(235, 235, 235)
        button = QColor(45, 45, 45)
        highlight = QColor(76, 132, 255)
    else:
        window = QColor(250, 250, 250)
        base = QColor(255, 255, 255)
        alt = QColor(245, 245, 245)
        text = QColor(20, 20, 20)
        button = QColor(240, 240, 240)
        highlight = QColor(47, 111, 237)

    disabled_text = QColor(120, 120, 120) if mode == "light" else QColor(140, 140, 140)

    palette = QPalette()
    palette.setColor(QPalette.Window, window)
    palette.setColor(QPalette.WindowText, text)
    palette.setColor(QPalette.Base, base)
    palette.setColor(QPalette.AlternateBase, alt)
    palette.setColor(QPalette.Text, text)
    palette.setColor(QPalette.Button, button)
    palette.setColor(QPalette.ButtonText, text)
    palette.setColor(QPalette.Highlight, highlight)
    palette.setColor(QPalette.HighlightedText, contrast_text(highlight))
    palette.setColor(QPalette.Disabled, QPalette.Text, disabled_text)
    palette.setColor(QPalette.Disabled, QPalette.ButtonText, disabled_text)
    return palette


def contrast_text(color: QColor) -> QColor:
    # Relative luminance to keep highlight text readable.
    luminance = 0.2126 * color.redF() + 0.7152 * color.greenF() + 0.0722 * color.blueF()
    return QColor(0, 0, 0) if luminance > 0.6 else QColor(255, 255, 255)
