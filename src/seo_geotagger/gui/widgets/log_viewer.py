from __future__ import annotations

from PySide6.QtWidgets import QDialog, QDialogButtonBox, QLabel, QPushButton, QTextEdit, QVBoxLayout

from seo_geotagger.core.run_logger import RunLogger
from seo_geotagger.util.platform import reveal_path


class LogViewerDialog(QDialog):
    def __init__(self, logger: RunLogger, parent=None, max_lines: int = 500) -> None:
        super().__init__(parent)
        self.logger = logger
        self.max_lines = max_lines
        self.setWindowTitle("Session Log")
        self.resize(700, 500)

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(str(logger.path)))

        self.text = QTextEdit()
        self.text.setReadOnly(True)
        layout.addWidget(self.text, 1)

        buttons = QDialogButtonBox(QDialogButtonBox.Close)
        refresh_btn = QPushButton("Refresh")
        refresh_btn.clicked.connect(self.reload)
        open_btn = QPushButton("Show Log File")
        open_btn.clicked.connect(lambda: reveal_path(self.logger.path))
        buttons.addButton(refresh_btn, QDialogButtonBox.ActionRole)
        buttons.addButton(open_btn, QDialogButtonBox.ActionRole)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)
        self.reload()

    def reload(self) -> None:
        try:
            lines = self.logger.tail(self.max_lines)
        except OSError as exc:
            lines = [f"Unable to read log: {exc}"]
        self.text.setPlainText("\n".join(lines) if lines else "(log is empty)")
