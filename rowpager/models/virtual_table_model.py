from typing import Optional

from PySide6.QtCore import QAbstractTableModel, QModelIndex, QSize, Qt, QTimer

from rowpager.models.row_node import RowNode, RowStatus
from rowpager.models.virtual_row_model import VirtualRowModel

LOADING_TEXT = 'Loading...'
FAILED_TEXT = ''


class VirtualTableModel(QAbstractTableModel):
    """
    Qt table model over a VirtualRowModel.

    Asking for a cell's data is what triggers page loads. Page completions
    are batched on a zero-delay timer so the model never resets while a view
    is still inside data(). A growing or shrinking row count inserts or
    removes rows at the end so views keep their current index and
    selection; only a new cache resets the whole model.
    """

    def __init__(self, row_model: VirtualRowModel, columns: list[str],
                 headers: Optional[list[str]] = None, column_width: int = 120,
                 parent=None):
        super().__init__(parent)
        self._row_model = row_model
        self._columns = list(columns)
        self._headers = list(headers) if headers else list(columns)
        self._column_width = column_width
        self._row_count = row_model.get_row_count()
        # Batch completions that arrive in the same event loop pass
        self._update_timer = QTimer(self)
        self._update_timer.setSingleShot(True)
        self._update_timer.setInterval(0)
        self._update_timer.timeout.connect(self.apply_pending_update)
        row_model.model_updated.connect(self._on_model_updated)
        row_model.model_reset.connect(self._on_model_reset)

    # ========== Qt Model Interface ==========

    def rowCount(self, parent=QModelIndex()) -> int:
        """Return the estimated number of rows (not just loaded ones)."""
        if parent.isValid():
            return 0
        return self._row_count

    def columnCount(self, parent=QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self._columns)

    def headerData(self, section: int, orientation: Qt.Orientation,
                   role: int = Qt.ItemDataRole.DisplayRole):
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            if 0 <= section < len(self._headers):
                return self._headers[section]
            return None
        return section + 1

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        """Get data for a cell. Triggers page loading if needed."""
        if not index.isValid():
            return None
        row = index.row()
        if row < 0 or row >= self._row_count:
            return None

        node = self._row_model.get_row(row)
        if node is None:
            return None

        if role == Qt.ItemDataRole.UserRole:
            return node
        if role == Qt.ItemDataRole.SizeHintRole:
            return QSize(self._column_width, int(node.row_height))
        if role in (Qt.ItemDataRole.DisplayRole, Qt.ItemDataRole.ToolTipRole):
            return self._display_value(node, index.column(), role)
        return None

    def _display_value(self, node: RowNode, column: int, role: int):
        if node.status == RowStatus.LOADING:
            return LOADING_TEXT if column == 0 else None
        if node.status == RowStatus.FAILED:
            if role == Qt.ItemDataRole.ToolTipRole:
                return 'Failed to load this row'
            return FAILED_TEXT
        if node.is_placeholder:
            return None
        value = node.data.get(self._columns[column])
        return None if value is None else str(value)

    # ========== Row Model Updates ==========

    def _on_model_updated(self):
        self._update_timer.start()

    def _on_model_reset(self):
        self._update_timer.stop()
        self.beginResetModel()
        self._row_count = self._row_model.get_row_count()
        self.endResetModel()

    def apply_pending_update(self):
        self._update_timer.stop()
        old_count = self._row_count
        new_count = self._row_model.get_row_count()
        if new_count > old_count:
            self.beginInsertRows(QModelIndex(), old_count, new_count - 1)
            self._row_count = new_count
            self.endInsertRows()
        elif new_count < old_count:
            # Short page: the real end of the data is before the estimate
            self.beginRemoveRows(QModelIndex(), new_count, old_count - 1)
            self._row_count = new_count
            self.endRemoveRows()
        if self._row_count > 0 and self._columns:
            self.dataChanged.emit(
                self.index(0, 0),
                self.index(self._row_count - 1, len(self._columns) - 1)
            )

    def row_node(self, row: int) -> Optional[RowNode]:
        if row < 0 or row >= self._row_count:
            return None
        return self._row_model.get_row(row)
