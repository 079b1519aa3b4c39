"""Explicit outcome of a page-level fetch."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ResultStatus(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


@dataclass
class Result(Generic[T]):
    """Outcome of a fetch: data plus whether it succeeded, found nothing, or failed.

    A failed result still carries a renderable default (empty list, zero
    metrics) so callers decide whether to show the failure or the default.
    """

    status: ResultStatus
    data: T
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: T, empty: Optional[bool] = None) -> "Result[T]":
        """Wrap fetched data, marking empty collections (or ``empty=True``) as EMPTY."""
        if empty is None:
            empty = _is_empty(data)
        if empty:
            return cls(ResultStatus.EMPTY, data)
        return cls(ResultStatus.SUCCESS, data)

    @classmethod
    def failed(cls, error: Any, default: T) -> "Result[T]":
        return cls(ResultStatus.ERROR, default, str(error))

    @property
    def is_error(self) -> bool:
        return self.status == ResultStatus.ERROR

    @property
    def is_empty(self) -> bool:
        return self.status == ResultStatus.EMPTY


def _is_empty(data: Any) -> bool:
    if data is None:
        return True
    if isinstance(data, (list, tuple, set, dict)):
        return len(data) == 0
    return False
