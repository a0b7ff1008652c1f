"""Success/failure values returned by the client core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from liftsync.core.errors import NetworkError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Failure:
    error: NetworkError

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        """Raise the carried error."""
        raise self.error


Result = Union[Success[T], Failure]


__all__ = ["Failure", "Result", "Success"]
