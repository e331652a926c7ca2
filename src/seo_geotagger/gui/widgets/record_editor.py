from __future__ import annotations

from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QVBoxLayout,
)

from seo_geotagger.core.models import MetadataRecord
from seo_geotagger.core.naming import output_filename
from seo_geotagger.core.records import parse_tag_text


class RecordEditorDialog(QDialog):
    """Edit the descriptive fields of one item before export."""

    def __init__(self, record: MetadataRecord, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Edit Metadata")
        self.resize(560, 420)
        self._original = record

        layout = QVBoxLayout(self)
        form = QFormLayout()
        layout.addLayout(form)

        self.name_edit = QLineEdit(record.name)
        self.filename_label = QLabel(output_filename(record.name))
        self.name_edit.textChanged.connect(lambda text: self.filename_label.setText(output_filename(text)))
        self.alt_edit = QLineEdit(record.alt_text)
        self.description_edit = QPlainTextEdit(record.description)
        self.caption_edit = QPlainTextEdit(record.caption)
        self.tags_edit = QLineEdit(", ".join(record.tags))
        self.tags_edit.setPlaceholderText("Comma separated")

        form.addRow("SEO name", self.name_edit)
        form.addRow("Output file", self.filename_label)
        form.addRow("Alt text", self.alt_edit)
        form.addRow("Description", self.description_edit)
        form.addRow("Caption", self.caption_edit)
        form.addRow("Tags", self.tags_edit)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def record(self) -> MetadataRecord:
        return MetadataRecord(
            name=self.name_edit.text().strip(),
            description=self.description_edit.toPlainText().strip(),
            alt_text=self.alt_edit.text().strip(),
            caption=self.caption_edit.toPlainText().strip(),
            tags=parse_tag_text(self.tags_edit.text()),
            website=self._original.website,
        )
