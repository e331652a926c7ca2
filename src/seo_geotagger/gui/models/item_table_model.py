from __future__ import annotations

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt

from seo_geotagger.core.models import Item
from seo_geotagger.core.naming import output_filename
from seo_geotagger.gui.controllers import BatchController
from seo_geotagger.gui.theme import status_color

HEADERS = [
    "File",
    "Status",
    "SEO Name",
    "Output File",
    "Location",
    "Tags",
    "Attempts",
    "Message",
]

STATUS_COLUMN = 1


class ItemTableModel(QAbstractTableModel):
    def __init__(self, controller: BatchController) -> None:
        super().__init__()
        self.controller = controller
        self._rows: list[Item] = controller.items
        controller.items_changed.connect(self.refresh)
        controller.item_updated.connect(self.refresh_item)

    def refresh(self) -> None:
        self.beginResetModel()
        self._rows = self.controller.items
        self.endResetModel()

    def refresh_item(self, item_id: str) -> None:
        for row, item in enumerate(self._rows):
            if item.id == item_id:
                self.dataChanged.emit(self.index(row, 0), self.index(row, len(HEADERS) - 1))
                return

    def item_at(self, row: int) -> Item | None:
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(HEADERS)

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole):
        if role != Qt.DisplayRole:
            return None
        if orientation == Qt.Horizontal:
            return HEADERS[section]
        return str(section + 1)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):
        item = self._rows[index.row()]
        col = index.column()
        if role == Qt.ForegroundRole and col == STATUS_COLUMN:
            return status_color(item.status, self.controller.settings.ui_theme)
        if role == Qt.ToolTipRole and col == 7 and item.error_detail:
            return item.error_detail
        if role != Qt.DisplayRole:
            return None
        if col == 0:
            return item.filename
        if col == 1:
            return item.status_text
        if col == 2:
            return item.record.name if item.record else ""
        if col == 3:
            return output_filename(item.record.name) if item.record else ""
        if col == 4:
            return item.location.label or f"{item.location.lat:.4f}, {item.location.lng:.4f}"
        if col == 5:
            return ", ".join(item.record.tags) if item.record else ""
        if col == 6:
            return item.attempt
        if col == 7:
            return item.error_detail or ""
        return None
