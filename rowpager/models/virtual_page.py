from enum import Enum
from typing import Callable, Optional

from rowpager.datasources.base import RowRequest
from rowpager.errors import PageStateError
from rowpager.models.cache_params import CacheParams
from rowpager.models.row_node import RowNode
from rowpager.utils.sequence import NumberSequence


class PageState(str, Enum):
    NOT_LOADED = 'not loaded'
    LOADING = 'loading'
    LOADED = 'loaded'
    FAILED = 'failed'


# Allowed load-state transitions. A page is fetched at most once; failed
# pages stay failed until the whole cache is replaced.
_TRANSITIONS = {
    PageState.NOT_LOADED: {PageState.LOADING},
    PageState.LOADING: {PageState.LOADED, PageState.FAILED},
    PageState.LOADED: set(),
    PageState.FAILED: set(),
}


class VirtualPage:
    """A page_size-aligned slice of the virtual row space and its load state."""

    def __init__(self, page_number: int, params: CacheParams,
                 sequence: NumberSequence):
        if page_number < 0:
            raise ValueError(f'page_number must be >= 0, got {page_number}')
        self.page_number = page_number
        self._params = params
        self._sequence = sequence
        self.state = PageState.NOT_LOADED
        self.rows: dict[int, RowNode] = {}
        self.last_accessed = sequence.next()

    def __repr__(self):
        return (f'VirtualPage({self.page_number}, rows {self.start_row}-{self.end_row}, '
                f'{self.state.value}, last_accessed={self.last_accessed})')

    @property
    def start_row(self) -> int:
        return self.page_number * self._params.page_size

    @property
    def end_row(self) -> int:
        return self.start_row + self._params.page_size - 1

    def contains(self, row_index: int) -> bool:
        return self.start_row <= row_index <= self.end_row

    def touch(self):
        """Stamp the page as the most recently accessed one."""
        self.last_accessed = self._sequence.next()

    def _transition(self, new_state: PageState):
        if new_state not in _TRANSITIONS[self.state]:
            raise PageStateError(self.page_number, self.state, new_state)
        self.state = new_state

    def build_request(self, on_success: Callable,
                      on_failure: Callable) -> RowRequest:
        """Move to LOADING and return the request that will fill this page."""
        self._transition(PageState.LOADING)
        return RowRequest(
            start_row=self.start_row,
            end_row=self.end_row,
            sort_model=self._params.sort_model,
            filter_model=self._params.filter_model,
            on_success=on_success,
            on_failure=on_failure,
        )

    def set_loaded(self, rows_data: list[dict]):
        """Turn the fetched row dicts into RowNodes keyed by absolute index.

        Rows beyond page_size are dropped. If building a row raises, the page
        stays LOADING with no rows.
        """
        row_id_func = self._params.row_id_func
        rows = {}
        for offset, data in enumerate(rows_data[:self._params.page_size]):
            row_index = self.start_row + offset
            if row_id_func is not None:
                row_id = str(row_id_func(data))
            else:
                row_id = str(row_index)
            rows[row_index] = RowNode(
                id=row_id,
                row_index=row_index,
                data=dict(data) if data is not None else {},
                row_height=self._params.row_height,
            )
        self._transition(PageState.LOADED)
        self.rows = rows

    def set_failed(self):
        self._transition(PageState.FAILED)

    @property
    def loaded_row_count(self) -> int:
        return len(self.rows)

    def get_row(self, row_index: int) -> Optional[RowNode]:
        return self.rows.get(row_index)

    def discard(self):
        """Drop the page's rows; called when the page is evicted."""
        self.rows.clear()
