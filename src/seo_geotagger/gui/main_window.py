from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QComboBox,
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStyle,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from seo_geotagger.core.locations import search_locations
from seo_geotagger.core.models import GeoLocation, Item, ItemStatus, ProcessingOptions
from seo_geotagger.core.settings import AppSettings
from seo_geotagger.gui.controllers import BatchController
from seo_geotagger.gui.models.item_table_model import ItemTableModel
from seo_geotagger.gui.theme import apply_theme
from seo_geotagger.gui.widgets.drop_zone import DropZone, expand_image_paths
from seo_geotagger.gui.widgets.log_viewer import LogViewerDialog
from seo_geotagger.gui.widgets.record_editor import RecordEditorDialog
from seo_geotagger.gui.widgets.settings_dialog import SettingsDialog
from seo_geotagger.util.errors import InvalidTransitionError

IMAGE_FILTER = "Images (*.jpg *.jpeg *.png *.webp *.heic *.heif *.bmp *.tif *.tiff *.gif)"


class MainWindow(QMainWindow):
    def __init__(self, settings: AppSettings, controller: BatchController | None = None) -> None:
        super().__init__()
        self.settings = settings
        self.setWindowTitle("SEO Geotagger")
        self.resize(1100, 720)
        self.setMinimumSize(820, 560)

        self.controller = controller or BatchController(settings=settings)
        self.controller.busy_changed.connect(self._on_busy_changed)
        self.controller.items_changed.connect(self._update_action_buttons)
        self.controller.item_updated.connect(lambda _id: self._update_action_buttons())
        self.controller.composite_finished.connect(self._on_composite_finished)
        self.controller.composite_failed.connect(self._on_composite_failed)

        self._build_ui()
        self._update_action_buttons()

    def _build_ui(self) -> None:
        root = QWidget()
        self.setCentralWidget(root)
        layout = QVBoxLayout(root)

        # ----- business + location -----
        top = QHBoxLayout()
        layout.addLayout(top)

        business_box = QGroupBox("Business")
        business_layout = QVBoxLayout(business_box)
        self.identity_edit = QLineEdit(self.controller.identity)
        self.identity_edit.setPlaceholderText("Business name (used as author and tag)")
        self.identity_edit.editingFinished.connect(
            lambda: self.controller.set_identity(self.identity_edit.text())
        )
        business_layout.addWidget(self.identity_edit)
        top.addWidget(business_box, 1)

        location_box = QGroupBox("Location")
        location_layout = QVBoxLayout(location_box)
        self.preset_combo = QComboBox()
        self._fill_presets()
        self.preset_combo.currentIndexChanged.connect(self._on_preset_selected)
        self.search_edit = QLineEdit()
        self.search_edit.setPlaceholderText("Search suburbs...")
        self.search_edit.textChanged.connect(self._on_search_changed)
        self.search_results = QListWidget()
        self.search_results.setMaximumHeight(90)
        self.search_results.itemClicked.connect(self._on_search_result_clicked)
        self.location_label = QLabel()
        location_layout.addWidget(self.preset_combo)
        location_layout.addWidget(self.search_edit)
        location_layout.addWidget(self.search_results)
        location_layout.addWidget(self.location_label)
        top.addWidget(location_box, 1)
        self._show_location(self.controller.current_location)

        options_box = QGroupBox("Options")
        options_layout = QVBoxLayout(options_box)
        opts = self.controller.options
        self.generate_chk = QCheckBox("Generate metadata")
        self.generate_chk.setChecked(opts.generate_metadata)
        self.enhance_chk = QCheckBox("Enhance image")
        self.enhance_chk.setChecked(opts.enhance_image)
        self.embed_chk = QCheckBox("Embed metadata")
        self.embed_chk.setChecked(opts.embed_metadata)
        self.randomize_chk = QCheckBox("Randomize location")
        self.randomize_chk.setChecked(opts.randomize_location)
        self.manual_chk = QCheckBox("Use manual metadata")
        self.manual_chk.setChecked(opts.use_manual_metadata)
        for chk in (self.generate_chk, self.enhance_chk, self.embed_chk, self.randomize_chk, self.manual_chk):
            chk.toggled.connect(self._on_options_changed)
            options_layout.addWidget(chk)
        top.addWidget(options_box)

        # ----- inputs -----
        input_row = QHBoxLayout()
        self.drop_zone = DropZone()
        self.drop_zone.paths_dropped.connect(self._on_paths_dropped)
        input_row.addWidget(self.drop_zone, 1)
        self.add_btn = QPushButton("Add images…")
        self.add_btn.setProperty("primary", True)
        self.add_btn.clicked.connect(self._browse_images)
        input_row.addWidget(self.add_btn)
        layout.addLayout(input_row)

        # ----- items -----
        self.table = QTableView()
        self.model = ItemTableModel(self.controller)
        self.table.setModel(self.model)
        self.table.setSelectionBehavior(QTableView.SelectRows)
        self.table.setSelectionMode(QTableView.SingleSelection)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.doubleClicked.connect(lambda _index: self._edit_selected())
        self.table.selectionModel().selectionChanged.connect(self._update_action_buttons)
        layout.addWidget(self.table, 1)

        act_row = QHBoxLayout()
        self.retry_btn = QPushButton("Retry selected")
        self.retry_btn.setIcon(self.style().standardIcon(QStyle.SP_BrowserReload))
        self.retry_btn.clicked.connect(self._retry_selected)
        self.retry_failed_btn = QPushButton("Retry failed")
        self.retry_failed_btn.clicked.connect(self._retry_failed)
        self.edit_btn = QPushButton("Edit metadata")
        self.edit_btn.clicked.connect(self._edit_selected)
        self.remove_btn = QPushButton("Remove")
        self.remove_btn.setIcon(self.style().standardIcon(QStyle.SP_TrashIcon))
        self.remove_btn.clicked.connect(self._remove_selected)
        self.export_btn = QPushButton("Export ready…")
        self.export_btn.setIcon(self.style().standardIcon(QStyle.SP_DialogSaveButton))
        self.export_btn.clicked.connect(self._export)
        self.open_export_btn = QPushButton("Open export folder")
        self.open_export_btn.setIcon(self.style().standardIcon(QStyle.SP_DirOpenIcon))
        self.open_export_btn.clicked.connect(self.controller.open_last_export)
        self.composite_btn = QPushButton("Add technician…")
        self.composite_btn.clicked.connect(self._start_composite)
        for btn in (
            self.retry_btn, self.retry_failed_btn, self.edit_btn, self.remove_btn,
            self.export_btn, self.open_export_btn, self.composite_btn,
        ):
            act_row.addWidget(btn)
        act_row.addStretch(1)
        self.settings_btn = QPushButton("Settings")
        self.settings_btn.clicked.connect(self._open_settings)
        self.log_btn = QPushButton("Log")
        self.log_btn.clicked.connect(lambda: LogViewerDialog(self.controller.logger, self).exec())
        act_row.addWidget(self.settings_btn)
        act_row.addWidget(self.log_btn)
        layout.addLayout(act_row)

        self.status_label = QLabel("Idle")
        self.statusBar().addWidget(self.status_label)

    # --- location ----------------------------------------------------------

    def _fill_presets(self) -> None:
        self.preset_combo.blockSignals(True)
        self.preset_combo.clear()
        for loc in self.controller.presets:
            self.preset_combo.addItem(loc.label, loc)
        self.preset_combo.blockSignals(False)

    def _show_location(self, loc: GeoLocation) -> None:
        self.location_label.setText(f"{loc.label or 'Custom'} ({loc.lat:.4f}, {loc.lng:.4f})")

    def _on_preset_selected(self, index: int) -> None:
        loc = self.preset_combo.itemData(index)
        if isinstance(loc, GeoLocation):
            self.controller.set_location(loc)
            self._show_location(loc)

    def _on_search_changed(self, text: str) -> None:
        self.search_results.clear()
        for loc in search_locations(text):
            entry = QListWidgetItem(f"{loc.label} ({loc.address})")
            entry.setData(Qt.UserRole, loc)
            self.search_results.addItem(entry)

    def _on_search_result_clicked(self, entry: QListWidgetItem) -> None:
        loc = entry.data(Qt.UserRole)
        if isinstance(loc, GeoLocation):
            self.controller.set_location(loc)
            self._show_location(loc)

    # --- inputs ------------------------------------------------------------

    def _on_options_changed(self) -> None:
        self.controller.set_options(ProcessingOptions(
            generate_metadata=self.generate_chk.isChecked(),
            enhance_image=self.enhance_chk.isChecked(),
            embed_metadata=self.embed_chk.isChecked(),
            randomize_location=self.randomize_chk.isChecked(),
            use_manual_metadata=self.manual_chk.isChecked(),
            target_aspect_ratio=self.controller.options.target_aspect_ratio,
        ))

    def _on_paths_dropped(self, paths: list[Path]) -> None:
        self._admit(paths)

    def _browse_images(self) -> None:
        files, _ = QFileDialog.getOpenFileNames(self, "Select images", "", IMAGE_FILTER)
        if files:
            self._admit(expand_image_paths(files))

    def _admit(self, paths: list[Path]) -> None:
        if not self.controller.identity:
            QMessageBox.warning(self, "Business name required", "Enter the business name before adding images.")
            return
        self.controller.add_paths(paths)

    # --- item actions ------------------------------------------------------

    def _selected_item(self) -> Item | None:
        rows = self.table.selectionModel().selectedRows()
        if not rows:
            return None
        return self.model.item_at(rows[0].row())

    def _update_action_buttons(self, *args) -> None:
        item = self._selected_item()
        idle = item is not None and not item.status.is_active
        self.retry_btn.setEnabled(idle)
        self.remove_btn.setEnabled(idle)
        self.edit_btn.setEnabled(idle and item.record is not None)
        has_ready = any(i.status == ItemStatus.READY for i in self.controller.items)
        self.export_btn.setEnabled(has_ready)
        self.retry_failed_btn.setEnabled(any(i.status == ItemStatus.ERROR for i in self.controller.items))
        self.open_export_btn.setEnabled(self.controller.last_export is not None)

    def _retry_selected(self) -> None:
        item = self._selected_item()
        if item and not self.controller.retry(item.id):
            QMessageBox.information(self, "Retry", "This image is being processed; try again when it finishes.")

    def _retry_failed(self) -> None:
        self.controller.retry_failed()

    def _remove_selected(self) -> None:
        item = self._selected_item()
        if item:
            self.controller.remove(item.id)

    def _edit_selected(self) -> None:
        item = self._selected_item()
        if item is None or item.record is None:
            return
        dlg = RecordEditorDialog(item.record, self)
        if not dlg.exec():
            return
        try:
            self.controller.update_record(item.id, dlg.record())
        except InvalidTransitionError as exc:
            QMessageBox.warning(self, "Edit metadata", str(exc))

    def _export(self) -> None:
        start = self.settings.last_export_dir or str(Path.home())
        folder = QFileDialog.getExistingDirectory(self, "Export to folder", start)
        if not folder:
            return
        result = self.controller.export(Path(folder))
        self._update_action_buttons()
        QMessageBox.information(
            self,
            "Export complete",
            f"{len(result.written)} image(s) written, {len(result.skipped)} skipped.\n{result.out_dir}",
        )

    def _start_composite(self) -> None:
        scene, _ = QFileDialog.getOpenFileName(self, "Select the job-site photo", "", IMAGE_FILTER)
        if not scene:
            return
        tech, _ = QFileDialog.getOpenFileName(self, "Select the technician photo", "", IMAGE_FILTER)
        if not tech:
            return
        if self.controller.start_composite(Path(scene), Path(tech)):
            self.composite_btn.setEnabled(False)
            self.status_label.setText("AI Synthesizing...")

    def _on_composite_finished(self, item: Item) -> None:
        self.composite_btn.setEnabled(True)
        self.status_label.setText(f"Composite ready: {item.record.name if item.record else item.filename}")

    def _on_composite_failed(self, err: str) -> None:
        self.composite_btn.setEnabled(True)
        QMessageBox.warning(self, "Technician composite failed", err)

    # --- settings ----------------------------------------------------------

    def _open_settings(self) -> None:
        dlg = SettingsDialog(self.settings, self)
        if not dlg.exec():
            return
        self.controller.apply_settings()
        self.identity_edit.setText(self.controller.identity)
        self._fill_presets()
        app = QApplication.instance()
        if app is not None:
            apply_theme(app, self.settings.ui_theme)
        self.model.refresh()

    def _on_busy_changed(self, busy: bool) -> None:
        pending = sum(1 for i in self.controller.items if i.status == ItemStatus.PENDING)
        self.status_label.setText(f"Processing… {pending} waiting" if busy else "Idle")
        self._update_action_buttons()
