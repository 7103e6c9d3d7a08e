"""Demo window: a QTableView scrolling a large SQLite table through the page cache."""

import os
import random
import sys
import tempfile
from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (QApplication, QLineEdit, QMainWindow, QTableView,
                               QVBoxLayout, QWidget)

from rowpager.datasources.sqlite_source import SqliteRowSource, create_table
from rowpager.datasources.threaded import ThreadedDataSource
from rowpager.models.controllers import FilterManager, SelectionController, SortController
from rowpager.models.virtual_row_model import VirtualRowModel
from rowpager.models.virtual_table_model import VirtualTableModel
from rowpager.utils.settings import settings

DEMO_COLUMNS = {'id': 'INTEGER PRIMARY KEY', 'name': 'TEXT', 'city': 'TEXT',
                'score': 'REAL'}
DEMO_CITIES = ['Berlin', 'Lagos', 'Lima', 'Osaka', 'Oslo', 'Pune', 'Quito', 'Tunis']


def build_demo_database(db_path: Path, row_count: int):
    rng = random.Random(1234)
    rows = [{'id': i, 'name': f'row {i:07d}', 'city': rng.choice(DEMO_CITIES),
             'score': round(rng.random() * 100, 2)} for i in range(row_count)]
    create_table(db_path, 'demo', DEMO_COLUMNS, rows)


class DemoWindow(QMainWindow):
    def __init__(self, db_path: Path):
        super().__init__()
        self.setWindowTitle('rowpager demo')
        self.resize(800, 600)

        self.sort_controller = SortController(self)
        self.filter_manager = FilterManager(self)
        self.selection_controller = SelectionController(self)
        self.row_source = SqliteRowSource(db_path, 'demo', list(DEMO_COLUMNS),
                                          id_column='id')
        self.datasource = ThreadedDataSource(self.row_source, parent=self)

        self.row_model = VirtualRowModel(
            sort_controller=self.sort_controller,
            filter_manager=self.filter_manager,
            selection_controller=self.selection_controller,
            row_id_func=lambda row: row['id'],
            parent=self,
        )
        self.table_model = VirtualTableModel(self.row_model, list(DEMO_COLUMNS),
                                             parent=self)
        self.row_model.set_datasource(self.datasource)

        self.filter_edit = QLineEdit()
        self.filter_edit.setPlaceholderText('Filter by city...')
        self.filter_edit.editingFinished.connect(self._apply_filter)

        self.table_view = QTableView()
        self.table_view.setModel(self.table_model)
        self.table_view.verticalHeader().setDefaultSectionSize(
            int(self.row_model.get_row_height()))
        header = self.table_view.horizontalHeader()
        header.setSortIndicatorShown(True)
        header.sortIndicatorChanged.connect(self._apply_sort)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addWidget(self.filter_edit)
        layout.addWidget(self.table_view)
        self.setCentralWidget(central)

    def _apply_filter(self):
        text = self.filter_edit.text().strip()
        self.filter_manager.set_filter_model(
            {'city': {'type': 'contains', 'filter': text}} if text else {})

    def _apply_sort(self, section: int, order: Qt.SortOrder):
        column = list(DEMO_COLUMNS)[section]
        direction = 'asc' if order == Qt.SortOrder.AscendingOrder else 'desc'
        self.sort_controller.set_sort_model([{'col_id': column, 'sort': direction}])

    def closeEvent(self, event):
        self.row_model.destroy()
        self.datasource.shutdown()
        self.row_source.close()
        settings.sync()
        super().closeEvent(event)


def run_gui():
    row_count = int(os.getenv('ROWPAGER_DEMO_ROWS', '1000000'))
    app = QApplication([])
    app.setApplicationName('rowpager')
    app.setStyle('Fusion')

    with tempfile.TemporaryDirectory() as temp_dir:
        db_path = Path(temp_dir) / 'demo.db'
        print(f'[DEMO] Building demo table with {row_count} rows...')
        build_demo_database(db_path, row_count)
        window = DemoWindow(db_path)
        window.show()
        return int(app.exec())


if __name__ == '__main__':
    sys.exit(run_gui())
