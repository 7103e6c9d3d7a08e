from rowpager.datasources.base import DataSource, RowRequest
from rowpager.datasources.in_memory import InMemoryDataSource
from rowpager.datasources.threaded import ThreadedDataSource
from rowpager.datasources.sqlite_source import SqliteRowSource

__all__ = ['DataSource', 'RowRequest', 'InMemoryDataSource',
           'ThreadedDataSource', 'SqliteRowSource']
