from enum import Enum
from dataclasses import dataclass, field
from typing import Any


class RowStatus(str, Enum):
    LOADED = 'loaded'
    LOADING = 'loading'
    FAILED = 'failed'
    OUT_OF_RANGE = 'out of range'


@dataclass
class RowNode:
    id: str
    row_index: int
    data: dict[str, Any] = field(default_factory=dict)
    row_height: float = 25.0
    status: RowStatus = RowStatus.LOADED

    @property
    def is_placeholder(self) -> bool:
        return self.status != RowStatus.LOADED

    @property
    def is_failed(self) -> bool:
        return self.status == RowStatus.FAILED

    @classmethod
    def placeholder(cls, row_index: int, status: RowStatus,
                    row_height: float) -> 'RowNode':
        """Empty row standing in for one that is pending, failed or past the end."""
        return cls(id=str(row_index), row_index=row_index, row_height=row_height,
                   status=status)
