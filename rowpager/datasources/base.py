"""The contract between the page cache and whatever serves rows."""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from rowpager.utils.flow_log import log_flow


@dataclass
class RowRequest:
    """One page-sized row request handed to a data source.

    The data source answers by calling exactly one of `success` or `fail`,
    once. Anything after the first answer is ignored.
    """
    start_row: int
    end_row: int  # inclusive
    sort_model: Any = None
    filter_model: Any = None
    on_success: Optional[Callable] = field(default=None, repr=False)
    on_failure: Optional[Callable] = field(default=None, repr=False)
    answered: bool = field(default=False, init=False)

    @property
    def row_count(self) -> int:
        return self.end_row - self.start_row + 1

    def _claim(self, outcome: str) -> bool:
        if self.answered:
            log_flow('DATASOURCE',
                     f'Ignoring {outcome} for rows {self.start_row}-{self.end_row}: '
                     f'request already answered', level='WARNING')
            return False
        self.answered = True
        return True

    def success(self, rows: list[dict], last_row: Optional[int] = None):
        """Deliver `rows` (fewer than requested means end of data).

        `last_row` is the total row count when the source knows it; pass
        None or a negative number when it does not.
        """
        if self._claim('success') and self.on_success is not None:
            self.on_success(list(rows), last_row)

    def fail(self, reason: Any = None):
        if self._claim('failure') and self.on_failure is not None:
            self.on_failure(reason)


@runtime_checkable
class DataSource(Protocol):
    def request_rows(self, request: RowRequest) -> None:
        """Start fetching `request`'s rows and return immediately."""
