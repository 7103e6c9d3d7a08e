class RowPagerError(Exception):
    """Base class for rowpager errors."""


class PageStateError(RowPagerError):
    """A page was asked to make a load-state transition it cannot make."""

    def __init__(self, page_number: int, current_state, requested_state):
        self.page_number = page_number
        self.current_state = current_state
        self.requested_state = requested_state
        super().__init__(
            f'Page {page_number}: cannot go from {current_state.value} '
            f'to {requested_state.value}')


class DataSourceError(RowPagerError):
    """A data source could not serve a row request."""
