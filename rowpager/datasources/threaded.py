"""Runs a blocking row fetcher on worker threads and answers on the owner thread."""

import traceback
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal, Slot

from rowpager.datasources.base import RowRequest
from rowpager.utils.flow_log import log_flow

# fetch(start_row, end_row, sort_model, filter_model) -> rows | (rows, last_row)
RowFetcher = Callable[[int, int, object, object], object]


class ThreadedDataSource(QObject):
    """
    Adapts a blocking fetch function to the asynchronous data source contract.

    Fetches run on a ThreadPoolExecutor. Results are emitted through Qt
    signals, so with the default AutoConnection they reach the request
    hooks on the thread that created this object (queued from workers,
    direct when the executor runs inline).
    """

    # Signals (emitted from worker threads)
    _fetched = Signal(object, object, object)  # request, rows, last_row
    _fetch_failed = Signal(object, object)  # request, error

    def __init__(self, fetch: RowFetcher, max_workers: int = 2,
                 executor: Optional[Executor] = None,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self._fetch = fetch
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix='page_load')
        self._fetched.connect(self._deliver_rows)
        self._fetch_failed.connect(self._deliver_failure)

    def request_rows(self, request: RowRequest) -> None:
        self._executor.submit(self._fetch_async, request)

    def _fetch_async(self, request: RowRequest):
        """Run the fetch in a background thread."""
        try:
            result = self._fetch(request.start_row, request.end_row,
                                 request.sort_model, request.filter_model)
            if isinstance(result, tuple) and len(result) == 2:
                rows, last_row = result
            else:
                rows, last_row = result, None
            self._fetched.emit(request, list(rows), last_row)
        except Exception as e:
            print(f'[DATASOURCE] Error fetching rows {request.start_row}-{request.end_row}: {e}')
            traceback.print_exc()
            self._fetch_failed.emit(request, e)

    @Slot(object, object, object)
    def _deliver_rows(self, request: RowRequest, rows, last_row):
        log_flow('DATASOURCE', f'Delivering {len(rows)} rows for {request.start_row}-{request.end_row}')
        request.success(rows, last_row)

    @Slot(object, object)
    def _deliver_failure(self, request: RowRequest, error):
        request.fail(error)

    def shutdown(self, wait: bool = False):
        """Stop accepting fetches; queued ones are cancelled."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait, cancel_futures=True)
