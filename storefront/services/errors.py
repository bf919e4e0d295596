"""
Service layer exceptions.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of outcomes a failed request is classified into."""

    TIMEOUT = "TIMEOUT"
    NETWORK = "NETWORK"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"


RETRYABLE_KINDS = frozenset(
    {ErrorKind.TIMEOUT, ErrorKind.NETWORK, ErrorKind.SERVER_ERROR}
)


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, endpoint: str | None = None):
        self.endpoint = endpoint
        super().__init__(message)


class ClassifiedError(ServiceError):
    """A request failure mapped onto an :class:`ErrorKind`."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        http_status: int | None = None,
        details: Any = None,
        endpoint: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.http_status = http_status
        self.details = details
        super().__init__(message, endpoint=endpoint)

    @property
    def retryable(self) -> bool:
        """Whether this kind of failure is considered transient."""
        return self.kind in RETRYABLE_KINDS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "http_status": self.http_status,
            "message": self.message,
            "details": self.details,
            "endpoint": self.endpoint,
        }

    def __repr__(self) -> str:
        return (
            f"ClassifiedError(kind={self.kind.value}, "
            f"http_status={self.http_status}, message={self.message!r})"
        )
