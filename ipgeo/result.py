"""Success/Failure result types returned by GeoIP providers."""

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True, kw_only=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True, kw_only=True)
class Failure(Generic[E]):
    error: E


Result: TypeAlias = Success[T] | Failure[E]
