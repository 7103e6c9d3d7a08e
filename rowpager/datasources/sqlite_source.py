"""Row fetcher over an SQLite table, for use with ThreadedDataSource."""

import re
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from rowpager.datasources.models import normalize_filter_model, normalize_sort_model
from rowpager.errors import DataSourceError

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

_FILTER_SQL = {
    'equals': ('{col} = ?', lambda v: v),
    'notEqual': ('{col} != ?', lambda v: v),
    'contains': ("{col} LIKE ? ESCAPE '\\'", lambda v: f'%{_escape_like(v)}%'),
    'startsWith': ("{col} LIKE ? ESCAPE '\\'", lambda v: f'{_escape_like(v)}%'),
    'greaterThan': ('{col} > ?', lambda v: v),
    'lessThan': ('{col} < ?', lambda v: v),
}


def _escape_like(value) -> str:
    return str(value).replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _quote(identifier: str) -> str:
    if not _IDENTIFIER.match(identifier):
        raise DataSourceError(f'Invalid SQL identifier {identifier!r}')
    return f'"{identifier}"'


class SqliteRowSource:
    """Blocking page fetcher over one SQLite table.

    Only the listed columns can be selected, sorted or filtered on. Rows
    are ordered by the sort model and then by `id_column` (rowid when
    unset) so that pages stay stable across requests.
    """

    def __init__(self, db_path: Path | str, table: str, columns: list[str],
                 id_column: Optional[str] = None, report_count: bool = False):
        self.db_path = str(db_path)
        self.table = table
        self.columns = list(columns)
        self.id_column = id_column
        self.report_count = report_count
        self._quoted_table = _quote(table)
        for column in self.columns:
            _quote(column)
        if id_column is not None and id_column not in self.columns:
            raise DataSourceError(f'id column {id_column!r} is not in columns')

        self._lock = threading.Lock()
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row  # Access columns by name

    def _where(self, filter_model) -> tuple[str, list]:
        clauses, bindings = [], []
        for col, filter_type, value in normalize_filter_model(filter_model, self.columns):
            template, convert = _FILTER_SQL[filter_type]
            clauses.append(template.format(col=_quote(col)))
            bindings.append(convert(value))
        if not clauses:
            return '', bindings
        return ' WHERE ' + ' AND '.join(clauses), bindings

    def _order_by(self, sort_model) -> str:
        parts = [f'{_quote(col)} {"DESC" if descending else "ASC"}'
                 for col, descending in normalize_sort_model(sort_model, self.columns)]
        parts.append(_quote(self.id_column) if self.id_column else 'rowid')
        return ' ORDER BY ' + ', '.join(parts)

    def count(self, filter_model=None) -> int:
        where, bindings = self._where(filter_model)
        with self._lock:
            cursor = self.conn.execute(
                f'SELECT COUNT(*) FROM {self._quoted_table}{where}', bindings)
            return cursor.fetchone()[0]

    def fetch(self, start_row: int, end_row: int, sort_model=None,
              filter_model=None) -> tuple[list[dict], Optional[int]]:
        """Return rows start_row..end_row (inclusive) and the last row if known."""
        where, bindings = self._where(filter_model)
        order_by = self._order_by(sort_model)
        select = ', '.join(_quote(col) for col in self.columns)
        limit = end_row - start_row + 1
        sql = (f'SELECT {select} FROM {self._quoted_table}{where}{order_by} '
               f'LIMIT ? OFFSET ?')
        try:
            with self._lock:
                rows = [dict(row) for row in
                        self.conn.execute(sql, (*bindings, limit, start_row))]
        except sqlite3.Error as e:
            raise DataSourceError(f'Database read error: {e}') from e

        if self.report_count:
            return rows, self.count(filter_model)
        if len(rows) < limit:
            return rows, start_row + len(rows)
        return rows, None

    def __call__(self, start_row, end_row, sort_model=None, filter_model=None):
        return self.fetch(start_row, end_row, sort_model, filter_model)

    def close(self):
        """Close database connection."""
        if getattr(self, 'conn', None):
            try:
                self.conn.close()
            except sqlite3.Error:
                pass
            self.conn = None

    def __del__(self):
        """Ensure connection is closed on deletion."""
        self.close()


def create_table(db_path: Path | str, table: str, columns: dict[str, str],
                 rows: list[dict]):
    """Create `table` with `columns` ({name: sql_type}) and insert `rows`."""
    quoted_table = _quote(table)
    column_sql = ', '.join(f'{_quote(name)} {sql_type}'
                           for name, sql_type in columns.items())
    names = list(columns)
    placeholders = ', '.join('?' for _ in names)
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute(f'CREATE TABLE IF NOT EXISTS {quoted_table} ({column_sql})')
        conn.executemany(
            f'INSERT INTO {quoted_table} ({", ".join(_quote(n) for n in names)}) '
            f'VALUES ({placeholders})',
            [tuple(row.get(name) for name in names) for row in rows])
        conn.commit()
    finally:
        conn.close()
