"""Minimal sort, filter and selection holders the row model can listen to.

Any object with the same methods and signals can be used instead.
"""

from copy import deepcopy

from PySide6.QtCore import QObject, Signal


class SortController(QObject):
    sort_changed = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._sort_model: list[dict] = []

    def get_sort_model(self) -> list[dict]:
        return deepcopy(self._sort_model)

    def set_sort_model(self, sort_model: list[dict] | None):
        self._sort_model = list(sort_model or [])
        self.sort_changed.emit()


class FilterManager(QObject):
    filter_changed = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._filter_model: dict = {}

    def get_filter_model(self) -> dict:
        return deepcopy(self._filter_model)

    def set_filter_model(self, filter_model: dict | None):
        self._filter_model = dict(filter_model or {})
        self.filter_changed.emit()


class SelectionController(QObject):
    """Tracks selected row ids."""
    selection_changed = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._selected: set[str] = set()

    def select(self, row_id: str, selected: bool = True):
        if selected:
            self._selected.add(row_id)
        else:
            self._selected.discard(row_id)
        self.selection_changed.emit()

    def is_selected(self, row_id: str) -> bool:
        return row_id in self._selected

    def get_selected_ids(self) -> set[str]:
        return set(self._selected)

    def reset(self):
        if self._selected:
            self._selected.clear()
            self.selection_changed.emit()
