import pytest

from rowpager.datasources.base import DataSource, RowRequest
from rowpager.datasources.in_memory import InMemoryDataSource
from rowpager.datasources.models import filter_rows, sort_rows
from rowpager.datasources.sqlite_source import SqliteRowSource, create_table
from rowpager.datasources.threaded import ThreadedDataSource
from rowpager.errors import DataSourceError
from rowpager.models.cache_params import resolve_cache_params
from rowpager.models.row_node import RowStatus
from rowpager.models.virtual_page_cache import VirtualPageCache

ROWS = [
    {'id': 1, 'name': 'pear', 'price': 3.0},
    {'id': 2, 'name': 'apple', 'price': 1.5},
    {'id': 3, 'name': 'Pineapple', 'price': 4.0},
    {'id': 4, 'name': 'plum', 'price': None},
    {'id': 5, 'name': 'apricot', 'price': 1.5},
]


class InlineExecutor:
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args):
        fn(*args)


def collect(request_kwargs=None):
    answers = []
    request = RowRequest(
        on_success=lambda rows, last_row: answers.append(('ok', rows, last_row)),
        on_failure=lambda reason: answers.append(('fail', reason)),
        **(request_kwargs or {}))
    return request, answers


@pytest.fixture
def fruit_db(tmp_path):
    db_path = tmp_path / 'fruit.db'
    create_table(db_path, 'fruit',
                 {'id': 'INTEGER PRIMARY KEY', 'name': 'TEXT', 'price': 'REAL'}, ROWS)
    source = SqliteRowSource(db_path, 'fruit', ['id', 'name', 'price'], id_column='id')
    yield source
    source.close()


# ========== Sort & filter models ==========

def test_sort_rows_multi_column_with_none_first():
    result = sort_rows(ROWS, [{'col_id': 'price', 'sort': 'asc'},
                              {'col_id': 'name', 'sort': 'desc'}])

    assert [row['id'] for row in result] == [4, 5, 2, 1, 3]


def test_filter_rows_contains_is_case_insensitive():
    result = filter_rows(ROWS, {'name': {'type': 'contains', 'filter': 'APP'}})

    assert [row['id'] for row in result] == [2, 3]


def test_filter_rows_comparisons_skip_missing_values():
    result = filter_rows(ROWS, {'price': {'type': 'lessThan', 'filter': 3.5}})

    assert [row['id'] for row in result] == [1, 2, 5]


def test_unknown_filter_type_is_rejected():
    with pytest.raises(DataSourceError):
        filter_rows(ROWS, {'name': {'type': 'regex', 'filter': '.*'}})


def test_invalid_sort_direction_is_rejected():
    with pytest.raises(DataSourceError):
        sort_rows(ROWS, [{'col_id': 'name', 'sort': 'sideways'}])


# ========== Requests ==========

def test_row_request_answers_once():
    request, answers = collect({'start_row': 0, 'end_row': 9})

    request.success([{'a': 1}], 1)
    request.success([{'a': 2}])
    request.fail('late')

    assert answers == [('ok', [{'a': 1}], 1)]
    assert request.row_count == 10


def test_bundled_sources_satisfy_the_protocol():
    assert isinstance(InMemoryDataSource([]), DataSource)
    assert isinstance(ThreadedDataSource(lambda *a: [], executor=InlineExecutor()), DataSource)


# ========== In-memory ==========

def test_in_memory_source_slices_sorted_rows():
    source = InMemoryDataSource(ROWS, report_last_row=True)
    request, answers = collect({'start_row': 1, 'end_row': 2,
                                'sort_model': [{'col_id': 'id', 'sort': 'desc'}]})

    source.request_rows(request)

    assert answers == [('ok', [ROWS[3], ROWS[2]], 5)]
    assert source.request_count == 1


def test_in_memory_source_fails_bad_models():
    source = InMemoryDataSource(ROWS)
    request, answers = collect({'start_row': 0, 'end_row': 9,
                                'filter_model': {'name': {'type': 'fuzzy'}}})

    source.request_rows(request)

    assert answers[0][0] == 'fail'
    assert isinstance(answers[0][1], DataSourceError)


# ========== SQLite ==========

def test_sqlite_fetch_orders_by_id_by_default(fruit_db):
    rows, last_row = fruit_db.fetch(0, 2)

    assert [row['id'] for row in rows] == [1, 2, 3]
    assert last_row is None


def test_sqlite_short_page_reports_last_row(fruit_db):
    rows, last_row = fruit_db.fetch(3, 5)

    assert [row['id'] for row in rows] == [4, 5]
    assert last_row == 5


def test_sqlite_sort_and_filter(fruit_db):
    rows, _ = fruit_db.fetch(
        0, 9,
        sort_model=[{'col_id': 'name', 'sort': 'asc'}],
        filter_model={'name': {'type': 'startsWith', 'filter': 'ap'}})

    assert [row['name'] for row in rows] == ['apple', 'apricot']


def test_sqlite_like_wildcards_are_literal(fruit_db):
    rows, _ = fruit_db.fetch(0, 9, filter_model={'name': {'type': 'contains', 'filter': '%'}})

    assert rows == []


def test_sqlite_count_with_filter(fruit_db):
    assert fruit_db.count() == 5
    assert fruit_db.count({'price': {'type': 'equals', 'filter': 1.5}}) == 2


def test_sqlite_rejects_unknown_columns(fruit_db):
    with pytest.raises(DataSourceError):
        fruit_db.fetch(0, 9, sort_model=[{'col_id': 'secret', 'sort': 'asc'}])


def test_sqlite_rejects_bad_identifiers(tmp_path):
    with pytest.raises(DataSourceError):
        SqliteRowSource(tmp_path / 'x.db', 'fruit; DROP TABLE fruit', ['id'])


def test_sqlite_report_count(tmp_path):
    db_path = tmp_path / 'fruit.db'
    create_table(db_path, 'fruit', {'id': 'INTEGER', 'name': 'TEXT', 'price': 'REAL'}, ROWS)
    source = SqliteRowSource(db_path, 'fruit', ['id', 'name', 'price'], report_count=True)

    rows, last_row = source.fetch(0, 1)

    assert len(rows) == 2
    assert last_row == 5
    source.close()


# ========== Threaded ==========

def test_threaded_source_delivers_rows_and_last_row():
    calls = []

    def fetch(start_row, end_row, sort_model, filter_model):
        calls.append((start_row, end_row, sort_model, filter_model))
        return [{'n': i} for i in range(start_row, end_row + 1)], 99

    source = ThreadedDataSource(fetch, executor=InlineExecutor())
    request, answers = collect({'start_row': 10, 'end_row': 11, 'sort_model': ['s']})

    source.request_rows(request)

    assert calls == [(10, 11, ['s'], None)]
    assert answers == [('ok', [{'n': 10}, {'n': 11}], 99)]


def test_threaded_source_accepts_plain_row_lists():
    source = ThreadedDataSource(lambda *args: [{'n': 1}], executor=InlineExecutor())
    request, answers = collect({'start_row': 0, 'end_row': 0})

    source.request_rows(request)

    assert answers == [('ok', [{'n': 1}], None)]


def test_threaded_source_turns_exceptions_into_failures():
    def fetch(*args):
        raise DataSourceError('database is locked')

    source = ThreadedDataSource(fetch, executor=InlineExecutor())
    request, answers = collect({'start_row': 0, 'end_row': 9})

    source.request_rows(request)

    assert answers[0][0] == 'fail'
    assert str(answers[0][1]) == 'database is locked'


def test_cache_over_sqlite_through_threaded_source(fruit_db):
    params, _ = resolve_cache_params(page_size=2, max_pages_in_cache=2)
    cache = VirtualPageCache(params, ThreadedDataSource(fruit_db, executor=InlineExecutor()))

    names = [cache.get_row(i).data.get('name') for i in range(5)]

    assert names == ['pear', 'apple', 'Pineapple', 'plum', 'apricot']
    assert cache.get_row_count() == 5
    assert cache.is_last_row_known()
    assert cache.get_row(5).status == RowStatus.OUT_OF_RANGE
    assert len(cache.get_page_numbers()) == 2
