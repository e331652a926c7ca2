from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QFrame, QLabel, QVBoxLayout

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif", ".bmp", ".tif", ".tiff", ".gif"}


def expand_image_paths(paths: list[str | Path]) -> list[Path]:
    """Files as given plus the images directly inside dropped folders, sorted by name."""
    out: list[Path] = []
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            out.extend(sorted(c for c in p.iterdir() if c.is_file() and c.suffix.lower() in IMAGE_SUFFIXES))
        elif p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES:
            out.append(p)
    return out


class DropZone(QFrame):
    """A drag & drop area that emits dropped image paths (folders are expanded)."""
    paths_dropped = Signal(list)

    def __init__(self, text: str = "Drop images or folders here") -> None:
        super().__init__()
        self.setFrameShape(QFrame.StyledPanel)
        self.setAcceptDrops(True)
        self.setProperty("cssClass", "dropzone")

        layout = QVBoxLayout(self)
        self.label = QLabel(text)
        self.label.setAlignment(Qt.AlignCenter)
        self.label.setProperty("cssClass", "subtitle")
        layout.addWidget(self.label)

    def _set_active(self, active: bool) -> None:
        self.setProperty("dragActive", active)
        self.style().unpolish(self)
        self.style().polish(self)

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            self._set_active(True)
            event.acceptProposedAction()

    def dragLeaveEvent(self, event):
        self._set_active(False)

    def dropEvent(self, event):
        self._set_active(False)
        urls = event.mimeData().urls()
        paths = expand_image_paths([u.toLocalFile() for u in urls if u.isLocalFile()])
        if paths:
            self.paths_dropped.emit(paths)
        event.acceptProposedAction()
