"""Explicit success/failure values for the pipeline's fallback decisions."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class FailureCategory(str, Enum):
    """Which external dependency caused a degradation."""

    EMBEDDING = "embedding"
    STORE = "store"
    GENERATION = "generation"
    UNSPECIFIED = "unspecified"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one external call: a value, or a categorized failure."""

    value: T | None = None
    category: FailureCategory | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.category is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, category: FailureCategory, error: str = "") -> "Outcome[T]":
        return cls(category=category, error=error)
