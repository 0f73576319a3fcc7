"""Outcome of a single remote lookup."""

from enum import Enum
from typing import Any, Generic, Optional, TypeVar


T = TypeVar("T")


class LookupStatus(Enum):
    """Outcome of a lookup."""
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    FAILED = "FAILED"


class Lookup(Generic[T]):
    """Result of a lookup: a value, no data, or a non-fatal failure.

    ``NOT_FOUND`` means the source answered without the requested data;
    ``FAILED`` means the answer could not be used (for example a malformed
    body). Neither is fatal; fatal conditions are raised as exceptions.

    Example:
        >>> result = client.fetch_metadata()
        >>> if result.is_found:
        ...     print(result.value.cluster)
        ... else:
        ...     print(f"No metadata: {result.reason}")
    """

    __slots__ = ("_status", "_value", "_reason", "_cause")

    def __init__(
        self,
        status: LookupStatus,
        value: Optional[T] = None,
        reason: str = "",
        cause: Optional[Exception] = None,
    ):
        self._status = status
        self._value = value
        self._reason = reason
        self._cause = cause

    @classmethod
    def found(cls, value: T) -> "Lookup[T]":
        return cls(LookupStatus.FOUND, value=value)

    @classmethod
    def not_found(cls, reason: str = "") -> "Lookup[T]":
        return cls(LookupStatus.NOT_FOUND, reason=reason)

    @classmethod
    def failed(cls, reason: str, cause: Optional[Exception] = None) -> "Lookup[T]":
        return cls(LookupStatus.FAILED, reason=reason, cause=cause)

    @property
    def status(self) -> LookupStatus:
        return self._status

    @property
    def value(self) -> Optional[T]:
        """Get the value found, or None."""
        return self._value

    @property
    def reason(self) -> str:
        """Get the reason no value was found."""
        return self._reason

    @property
    def cause(self) -> Optional[Exception]:
        return self._cause

    @property
    def is_found(self) -> bool:
        return self._status is LookupStatus.FOUND

    @property
    def is_not_found(self) -> bool:
        return self._status is LookupStatus.NOT_FOUND

    @property
    def is_failed(self) -> bool:
        return self._status is LookupStatus.FAILED

    def value_or(self, default: Any) -> Any:
        """Get the value if found, otherwise ``default``."""
        return self._value if self.is_found else default

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Lookup):
            return NotImplemented
        return (
            self._status == other._status
            and self._value == other._value
            and self._reason == other._reason
        )

    def __repr__(self) -> str:
        if self.is_found:
            return f"Lookup.found({self._value!r})"
        return f"Lookup({self._status.value}, reason={self._reason!r})"
