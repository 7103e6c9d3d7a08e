"""Sort and filter model helpers shared by the bundled data sources.

The page cache treats sort and filter models as opaque. The bundled data
sources understand this shape:

    sort_model   = [{'col_id': 'name', 'sort': 'asc'}, ...]
    filter_model = {'name': {'type': 'contains', 'filter': 'abc'}, ...}
"""

from functools import cmp_to_key
from typing import Any, Iterable

from rowpager.errors import DataSourceError

FILTER_TYPES = ('equals', 'notEqual', 'contains', 'startsWith',
                'greaterThan', 'lessThan')


def normalize_sort_model(sort_model, columns: Iterable[str] | None = None) -> list[tuple[str, bool]]:
    """Return `[(column, descending), ...]`, validating column names."""
    if not sort_model:
        return []
    allowed = set(columns) if columns is not None else None
    result = []
    for entry in sort_model:
        col_id = entry.get('col_id')
        direction = str(entry.get('sort', 'asc')).lower()
        if allowed is not None and col_id not in allowed:
            raise DataSourceError(f'Cannot sort by unknown column {col_id!r}')
        if direction not in ('asc', 'desc'):
            raise DataSourceError(f'Invalid sort direction {direction!r} for {col_id!r}')
        result.append((col_id, direction == 'desc'))
    return result


def normalize_filter_model(filter_model, columns: Iterable[str] | None = None) -> list[tuple[str, str, Any]]:
    """Return `[(column, filter_type, value), ...]`, validating names and types."""
    if not filter_model:
        return []
    allowed = set(columns) if columns is not None else None
    result = []
    for col_id, condition in filter_model.items():
        if allowed is not None and col_id not in allowed:
            raise DataSourceError(f'Cannot filter on unknown column {col_id!r}')
        filter_type = condition.get('type', 'equals')
        if filter_type not in FILTER_TYPES:
            raise DataSourceError(f'Unsupported filter type {filter_type!r}')
        result.append((col_id, filter_type, condition.get('filter')))
    return result


def _matches(value, filter_type: str, expected) -> bool:
    if filter_type == 'equals':
        return value == expected
    if filter_type == 'notEqual':
        return value != expected
    if value is None:
        return False
    if filter_type == 'contains':
        return str(expected).lower() in str(value).lower()
    if filter_type == 'startsWith':
        return str(value).lower().startswith(str(expected).lower())
    try:
        if filter_type == 'greaterThan':
            return value > expected
        return value < expected
    except TypeError:
        return False


def filter_rows(rows: list[dict], filter_model, columns=None) -> list[dict]:
    conditions = normalize_filter_model(filter_model, columns)
    if not conditions:
        return list(rows)
    return [row for row in rows
            if all(_matches(row.get(col), ftype, expected)
                   for col, ftype, expected in conditions)]


def sort_rows(rows: list[dict], sort_model, columns=None) -> list[dict]:
    """Stable multi-column sort; None sorts before any value."""
    keys = normalize_sort_model(sort_model, columns)
    if not keys:
        return list(rows)

    def compare(a, b):
        for col, descending in keys:
            left, right = a.get(col), b.get(col)
            if left == right:
                continue
            if left is None:
                result = -1
            elif right is None:
                result = 1
            else:
                result = -1 if left < right else 1
            return -result if descending else result
        return 0

    return sorted(rows, key=cmp_to_key(compare))
