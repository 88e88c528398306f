"""
Error types for splist record mapping and transport.
"""

from __future__ import annotations

from typing import Any


class SPListError(Exception):
    """Base exception for all splist errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidArgumentError(SPListError):
    """
    Raised synchronously when an operation is called with bad arguments.

    Examples:
    - Empty or non-string list title
    - get() without an id
    - create/update/delete with an object that is not a record of the type
    """

    pass


class BadResponseError(SPListError):
    """
    Raised inside a completion when the response shape does not fit the placeholder.

    Attributes:
        expected: Shape the placeholder required ("array" or "object")
        actual: Shape the response carried
    """

    def __init__(
        self,
        message: str,
        *,
        expected: str,
        actual: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.expected = expected
        self.actual = actual


class ConfigError(SPListError):
    """Raised when site configuration is missing or invalid."""

    pass


class TransportError(SPListError):
    """
    Transport-level failure (network error, non-2xx status).

    The record layer never reinterprets these; they surface unchanged
    through the rejected completion.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code
        self.url = url

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.url:
            parts.append(f"[{self.url}]")
        return " ".join(parts)


class HttpStatusError(TransportError):
    """The server answered with a non-2xx status."""

    pass


class TransportTimeoutError(TransportError):
    """Request timed out."""

    pass
