"""
Result -- success-or-typed-failure returned by every service operation.

Services never let domain exceptions escape to callers; they translate them
into ``Result.failure(Error(...))`` with a stable ``code``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Error:
    """Machine-readable failure: operation-level code plus domain cause."""

    code: str
    message: str
    cause_code: str | None = None


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: Error | None = None

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: Error) -> Result[T]:
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        """Return the value, raising if this is a failure. Intended for tests and scripts."""
        if self.error is not None:
            raise RuntimeError(f"{self.error.code}: {self.error.message}")
        return self.value  # type: ignore[return-value]
