"""
Page cache behind the virtual row model.

Rows are fetched one page at a time from a data source and only a bounded
number of pages is kept. The cache limits how many requests are in flight,
evicts the least recently accessed pages, and estimates the total row count
while the real one is still unknown.

Everything here runs on the thread that owns the cache. Data sources may
answer synchronously from inside `request_rows` or later; either way the
answer comes back through the request's success/fail hooks.
"""

import math
from functools import partial
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from rowpager.datasources.base import DataSource
from rowpager.models.cache_params import CacheParams
from rowpager.models.row_node import RowNode, RowStatus
from rowpager.models.virtual_page import PageState, VirtualPage
from rowpager.utils.flow_log import log_flow
from rowpager.utils.sequence import NumberSequence


class VirtualPageCache(QObject):
    """
    Keeps a bounded set of pages for one (datasource, sort, filter) combination.

    A cache is never partially invalidated: when sort, filter or datasource
    change, the owner destroys it and builds a new one.
    """

    # Signals
    model_updated = Signal()  # Emitted after every fetch completion
    page_loaded = Signal(int)  # page_number
    page_failed = Signal(int)  # page_number
    page_evicted = Signal(int)  # page_number

    def __init__(self, params: CacheParams, datasource: Optional[DataSource],
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self._params = params
        self._datasource = datasource
        self._sequence = NumberSequence()

        self._pages: dict[int, VirtualPage] = {}
        self._row_count = params.initial_row_count
        self._last_row_known = False
        self._active_request_count = 0
        self._destroyed = False

    # ========== Row Access ==========

    def get_row(self, row_index: int) -> RowNode:
        """Return the row at `row_index`, or a placeholder while it is not loaded.

        Creates and schedules the owning page if it does not exist yet. Every
        call marks the page as accessed, loaded or not.
        """
        if row_index < 0:
            raise ValueError(f'row_index must be >= 0, got {row_index}')

        if self._destroyed or (self._last_row_known and row_index >= self._row_count):
            return self._placeholder(row_index, RowStatus.OUT_OF_RANGE)
        if self._datasource is None:
            return self._placeholder(row_index, RowStatus.LOADING)

        page_num = self._get_page_for_index(row_index)
        page = self._pages.get(page_num)
        if page is None:
            page = VirtualPage(page_num, self._params, self._sequence)
            self._pages[page_num] = page
            self._schedule_fetch(page)
        else:
            page.touch()
            if page.state == PageState.NOT_LOADED:
                self._schedule_fetch(page)

        return self._node_from_page(page, row_index)

    def for_each_node(self, callback: Callable[[RowNode, int], None]):
        """Call `callback(node, index)` for every row up to the row count.

        Pages that do not exist yet show up as loading placeholders; nothing
        is fetched and no page is marked as accessed.
        """
        for row_index in range(self._row_count):
            page = self._pages.get(self._get_page_for_index(row_index))
            if page is None:
                node = self._placeholder(row_index, RowStatus.LOADING)
            else:
                node = self._node_from_page(page, row_index)
            callback(node, row_index)

    def get_row_count(self) -> int:
        return self._row_count

    def is_last_row_known(self) -> bool:
        return self._last_row_known

    def get_row_combined_height(self) -> float:
        return self._row_count * self._params.row_height

    def get_row_index_at_pixel(self, pixel: float) -> int:
        """Map a vertical pixel offset to a row index, clamped to the row range."""
        if self._row_count == 0:
            return -1
        row_index = math.floor(pixel / self._params.row_height)
        return max(0, min(row_index, self._row_count - 1))

    def _get_page_for_index(self, index: int) -> int:
        return index // self._params.page_size

    def _node_from_page(self, page: VirtualPage, row_index: int) -> RowNode:
        if page.state == PageState.LOADED:
            node = page.get_row(row_index)
            if node is None:
                # Short page: the row lies past the end of the data
                return self._placeholder(row_index, RowStatus.OUT_OF_RANGE)
            return node
        if page.state == PageState.FAILED:
            return self._placeholder(row_index, RowStatus.FAILED)
        return self._placeholder(row_index, RowStatus.LOADING)

    def _placeholder(self, row_index: int, status: RowStatus) -> RowNode:
        return RowNode.placeholder(row_index, status, self._params.row_height)

    # ========== Fetching ==========

    def _schedule_fetch(self, page: VirtualPage) -> bool:
        """Start loading `page` if a request slot is free.

        Returns False when the page stays deferred. Deferred pages are picked
        up again when a request in flight completes.
        """
        if self._destroyed or self._datasource is None:
            return False
        if page.state != PageState.NOT_LOADED:
            return False
        if self._active_request_count >= self._params.max_concurrent_requests:
            log_flow('PAGE', f'Deferred page {page.page_number}; '
                     f'{self._active_request_count} requests in flight',
                     throttle_key='page_deferred', every_s=0.5)
            return False

        request = page.build_request(
            on_success=partial(self._on_fetch_success, page),
            on_failure=partial(self._on_fetch_failure, page),
        )
        self._active_request_count += 1
        log_flow('PAGE', f'Requesting page {page.page_number} '
                 f'(rows {request.start_row}-{request.end_row})')
        try:
            self._datasource.request_rows(request)
        except Exception as e:
            print(f'[PAGE] Error requesting page {page.page_number}: {e}')
            request.fail(e)
        return True

    def _check_page_to_load(self):
        """Fill free request slots with deferred pages, most recently accessed first."""
        self._prune_deferred_pages()
        while (not self._destroyed
               and self._active_request_count < self._params.max_concurrent_requests):
            deferred = [p for p in self._pages.values()
                        if p.state == PageState.NOT_LOADED]
            if not deferred:
                return
            page = max(deferred, key=lambda p: p.last_accessed)
            if not self._schedule_fetch(page):
                return

    def _prune_deferred_pages(self):
        """Forget deferred pages the cache could not hold anyway.

        Without this, fast scrolling leaves a trail of pages that would all
        be fetched later. A forgotten page is recreated on its next access.
        """
        limit = self._params.max_pages_in_cache
        deferred = [p for p in self._pages.values()
                    if p.state == PageState.NOT_LOADED]
        stale = []
        if self._last_row_known:
            stale = [p for p in deferred if p.start_row >= self._row_count]
        if limit is not None:
            keep = sorted((p for p in deferred if p not in stale),
                          key=lambda p: p.last_accessed, reverse=True)
            stale.extend(keep[limit:])
        for page in stale:
            del self._pages[page.page_number]
        if stale:
            log_flow('PAGE', f'Dropped {len(stale)} deferred pages',
                     throttle_key='deferred_pruned', every_s=0.5)

    def _is_stale(self, page: VirtualPage) -> bool:
        return self._destroyed or self._pages.get(page.page_number) is not page

    def _on_fetch_success(self, page: VirtualPage, rows: list[dict],
                          last_row: Optional[int] = None):
        if self._is_stale(page):
            log_flow('PAGE', f'Discarding stale result for page {page.page_number}')
            return

        try:
            page.set_loaded(rows)
        except Exception as e:
            print(f'[PAGE] Error building rows for page {page.page_number}: {e}')
            self._on_fetch_failure(page, e)
            return
        self._active_request_count -= 1
        self._update_row_count(page, last_row)
        log_flow('PAGE', f'Loaded page {page.page_number} ({page.loaded_row_count} rows); '
                 f'row count={self._row_count}, in-memory pages={len(self._pages)}',
                 throttle_key='page_loaded', every_s=0.2)

        self.page_loaded.emit(page.page_number)
        self.model_updated.emit()
        self._evict_old_pages()
        self._check_page_to_load()

    def _on_fetch_failure(self, page: VirtualPage, reason=None):
        if self._is_stale(page):
            log_flow('PAGE', f'Discarding stale failure for page {page.page_number}')
            return

        page.set_failed()
        self._active_request_count -= 1
        print(f'[PAGE] Error loading page {page.page_number}: {reason}')

        self.page_failed.emit(page.page_number)
        self.model_updated.emit()
        self._check_page_to_load()

    def _update_row_count(self, page: VirtualPage, last_row: Optional[int]):
        """Grow the row count estimate, or fix it once the end is found."""
        if self._last_row_known:
            return
        if last_row is not None and last_row >= 0:
            self._row_count = last_row
            self._last_row_known = True
        elif page.loaded_row_count < self._params.page_size:
            self._row_count = page.start_row + page.loaded_row_count
            self._last_row_known = True
        else:
            # Let the view scroll past this page so the next one gets requested
            self._row_count = max(self._row_count,
                                  page.end_row + 1 + self._params.overflow_size)

    # ========== Eviction ==========

    def _evict_old_pages(self):
        """Drop least recently accessed loaded pages above max_pages_in_cache."""
        limit = self._params.max_pages_in_cache
        if limit is None:
            return
        loaded = [p for p in self._pages.values() if p.state == PageState.LOADED]
        if len(loaded) <= limit:
            return
        loaded.sort(key=lambda p: p.last_accessed)
        for page in loaded[:len(loaded) - limit]:
            page.discard()
            del self._pages[page.page_number]
            log_flow('PAGE', f'Evicted page {page.page_number}, '
                     f'{len(self._pages)} pages remain')
            self.page_evicted.emit(page.page_number)

    # ========== Introspection ==========

    @property
    def params(self) -> CacheParams:
        return self._params

    @property
    def active_request_count(self) -> int:
        return self._active_request_count

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def get_page_state(self, page_number: int) -> Optional[PageState]:
        page = self._pages.get(page_number)
        return page.state if page is not None else None

    def get_page_numbers(self, state: Optional[PageState] = None) -> list[int]:
        return sorted(num for num, page in self._pages.items()
                      if state is None or page.state == state)

    def get_cache_stats(self) -> dict[str, int]:
        stats = {state.name.lower(): 0 for state in PageState}
        for page in self._pages.values():
            stats[page.state.name.lower()] += 1
        stats['active_requests'] = self._active_request_count
        stats['row_count'] = self._row_count
        return stats

    # ========== Teardown ==========

    def destroy(self):
        """Drop every page; results still in flight are ignored when they arrive."""
        if self._destroyed:
            return
        self._destroyed = True
        for page in self._pages.values():
            page.discard()
        self._pages.clear()
        log_flow('PAGE', 'Cache destroyed')
