from __future__ import annotations

from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QDoubleSpinBox,
    QFormLayout,
    QFrame,
    QGroupBox,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPlainTextEdit,
    QScrollArea,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from seo_geotagger.core.records import parse_tag_text
from seo_geotagger.core.settings import API_KEY_ENV, DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL, AppSettings


class SettingsDialog(QDialog):
    def __init__(self, settings: AppSettings, parent=None) -> None:
        super().__init__(parent)
        self.settings = settings
        self.setWindowTitle("Settings")
        self.setMinimumWidth(640)
        self.resize(700, 760)

        root = QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.NoFrame)
        root.addWidget(scroll, 1)

        content = QWidget()
        content_layout = QVBoxLayout(content)
        content_layout.setContentsMargins(0, 0, 0, 0)
        content_layout.setSpacing(12)
        scroll.setWidget(content)

        subtitle = QLabel("Defaults used for new images. These values are saved per user profile.")
        subtitle.setProperty("cssClass", "subtitle")
        subtitle.setWordWrap(True)
        content_layout.addWidget(subtitle)

        content_layout.addWidget(self._build_business_group())
        content_layout.addWidget(self._build_service_group())
        content_layout.addWidget(self._build_processing_group())
        content_layout.addStretch(1)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.reset_btn = buttons.addButton("Reset Defaults", QDialogButtonBox.ResetRole)
        self.reset_btn.clicked.connect(self._reset_defaults)
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        root.addWidget(buttons)

        self._populate_from_settings(self.settings)

    def _build_business_group(self) -> QGroupBox:
        group = QGroupBox("Business")
        layout = QFormLayout(group)
        self.identity_edit = QLineEdit()
        self.website_edit = QLineEdit()
        self.phone_edit = QLineEdit()
        self.address_edit = QLineEdit()
        self.categories_edit = QPlainTextEdit()
        self.categories_edit.setPlaceholderText("Services: fridge repair, oven repair\nAreas: Melbourne, Richmond")
        layout.addRow("Business name", self.identity_edit)
        layout.addRow("Website", self.website_edit)
        layout.addRow("Phone", self.phone_edit)
        layout.addRow("Address", self.address_edit)
        layout.addRow("Tag categories", self.categories_edit)
        return group

    def _build_service_group(self) -> QGroupBox:
        group = QGroupBox("Gemini")
        layout = QFormLayout(group)
        self.api_key_edit = QLineEdit()
        self.api_key_edit.setEchoMode(QLineEdit.Password)
        self.api_key_edit.setPlaceholderText(f"Leave empty to use ${API_KEY_ENV}")
        self.text_model_edit = QLineEdit()
        self.image_model_edit = QLineEdit()
        layout.addRow("API key", self.api_key_edit)
        layout.addRow("Text model", self.text_model_edit)
        layout.addRow("Image model", self.image_model_edit)
        return group

    def _build_processing_group(self) -> QGroupBox:
        group = QGroupBox("Processing + Appearance")
        layout = QFormLayout(group)

        self.generate_chk = QCheckBox("Generate metadata")
        self.enhance_chk = QCheckBox("Enhance image")
        self.embed_chk = QCheckBox("Embed metadata")
        self.randomize_chk = QCheckBox("Randomize location from presets")
        self.manual_chk = QCheckBox("Merge company tags and NAP details")

        self.aspect_spin = QDoubleSpinBox()
        self.aspect_spin.setRange(0.0, 10.0)
        self.aspect_spin.setDecimals(3)
        self.aspect_spin.setSpecialValueText("Keep original")
        self.tech_height_spin = QSpinBox()
        self.tech_height_spin.setRange(64, 8192)
        self.tech_height_spin.setSuffix(" px")
        self.quality_spin = QSpinBox()
        self.quality_spin.setRange(1, 100)

        self.min_dims_chk = QCheckBox("Reject images below minimum size")
        self.min_width_spin = QSpinBox()
        self.min_width_spin.setRange(1, 20000)
        self.min_height_spin = QSpinBox()
        self.min_height_spin.setRange(1, 20000)

        self.theme_combo = QComboBox()
        self.theme_combo.addItem("Light", "light")
        self.theme_combo.addItem("Dark", "dark")

        for chk in (self.generate_chk, self.enhance_chk, self.embed_chk, self.randomize_chk, self.manual_chk):
            layout.addRow(chk)
        layout.addRow("Target aspect ratio", self.aspect_spin)
        layout.addRow("Technician height", self.tech_height_spin)
        layout.addRow("JPEG quality", self.quality_spin)
        layout.addRow(self.min_dims_chk)
        layout.addRow("Minimum width", self.min_width_spin)
        layout.addRow("Minimum height", self.min_height_spin)
        layout.addRow("Theme", self.theme_combo)
        return group

    def _populate_from_settings(self, source: AppSettings) -> None:
        self.identity_edit.setText(source.identity)
        self.website_edit.setText(source.company_website)
        self.phone_edit.setText(source.company_phone)
        self.address_edit.setText(source.company_address)
        self.categories_edit.setPlainText(format_categories(source.tag_categories))

        self.api_key_edit.setText(source.api_key)
        self.text_model_edit.setText(source.text_model)
        self.image_model_edit.setText(source.image_model)

        self.generate_chk.setChecked(source.generate_metadata_default)
        self.enhance_chk.setChecked(source.enhance_image_default)
        self.embed_chk.setChecked(source.embed_metadata_default)
        self.randomize_chk.setChecked(source.randomize_location_default)
        self.manual_chk.setChecked(source.use_manual_metadata_default)
        self.aspect_spin.setValue(max(0.0, float(source.target_aspect_ratio)))
        self.tech_height_spin.setValue(int(source.tech_target_height))
        self.quality_spin.setValue(int(source.jpeg_quality))
        self.min_dims_chk.setChecked(source.enforce_min_dimensions)
        self.min_width_spin.setValue(int(source.min_width))
        self.min_height_spin.setValue(int(source.min_height))

        index = self.theme_combo.findData((source.ui_theme or "light").strip().lower())
        self.theme_combo.setCurrentIndex(index if index >= 0 else 0)

    def _reset_defaults(self) -> None:
        self._populate_from_settings(AppSettings())

    def _on_accept(self) -> None:
        try:
            categories = parse_categories(self.categories_edit.toPlainText())
        except ValueError as exc:
            QMessageBox.warning(self, "Invalid tag categories", str(exc))
            return

        s = self.settings
        s.identity = self.identity_edit.text().strip()
        s.company_website = self.website_edit.text().strip()
        s.company_phone = self.phone_edit.text().strip()
        s.company_address = self.address_edit.text().strip()
        s.tag_categories = categories

        s.api_key = self.api_key_edit.text().strip()
        s.text_model = self.text_model_edit.text().strip() or DEFAULT_TEXT_MODEL
        s.image_model = self.image_model_edit.text().strip() or DEFAULT_IMAGE_MODEL

        s.generate_metadata_default = self.generate_chk.isChecked()
        s.enhance_image_default = self.enhance_chk.isChecked()
        s.embed_metadata_default = self.embed_chk.isChecked()
        s.randomize_location_default = self.randomize_chk.isChecked()
        s.use_manual_metadata_default = self.manual_chk.isChecked()
        s.target_aspect_ratio = float(self.aspect_spin.value())
        s.tech_target_height = int(self.tech_height_spin.value())
        s.jpeg_quality = int(self.quality_spin.value())
        s.enforce_min_dimensions = self.min_dims_chk.isChecked()
        s.min_width = int(self.min_width_spin.value())
        s.min_height = int(self.min_height_spin.value())
        s.ui_theme = str(self.theme_combo.currentData() or "light")
        s.save()
        self.accept()


def parse_categories(text: str) -> dict[str, list[str]]:
    """Parse `Category: tag, tag` lines. Blank lines are ignored."""
    out: dict[str, list[str]] = {}
    for n, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        if ":" not in line:
            raise ValueError(f"Line {n}: expected 'Category: tag, tag'.")
        name, _, tags = line.partition(":")
        name = name.strip()
        if not name:
            raise ValueError(f"Line {n}: category name is empty.")
        out.setdefault(name, []).extend(parse_tag_text(tags))
    return out


def format_categories(categories: dict[str, list[str]]) -> str:
    return "\n".join(f"{name}: {', '.join(tags)}" for name, tags in categories.items())
