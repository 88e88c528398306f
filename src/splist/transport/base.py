"""
Transport interfaces consumed by the record layer.

The record layer never builds URLs or talks HTTP itself. It hands an
operation plus its parameters to a TransportAdapter, which returns a
RequestDescriptor, and gives that descriptor to a Transport, which
returns a TransportResponse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

import httpx

if TYPE_CHECKING:
    from splist.query import Query
    from splist.records import Record, RecordType


class Operation(StrEnum):
    """Record-level operations a TransportAdapter must understand."""

    GET = "get"
    QUERY = "query"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class RequestParams:
    """Parameters handed to the adapter for one operation.

    Attributes:
        id: Item id (get)
        query: Normalized query (get, query, create, update)
        item: The record being written (create, update, delete)
        force: Skip optimistic-concurrency checks (update)
        etag: Concurrency token to send; always None when force is set
    """

    id: Any = None
    query: Query | None = None
    item: Record | None = None
    force: bool = False
    etag: str | None = None


@dataclass
class RequestDescriptor:
    """Wire-level request description produced by a TransportAdapter."""

    method: str
    url: str
    params: dict[str, str] = field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class TransportResponse:
    """Response handed back to the result decorator.

    Attributes:
        status: HTTP status code
        headers: Response headers (case-insensitive lookup)
        data: Decoded body; a list, a dict, or None for no content
    """

    status: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    data: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(dict(self.headers or {}))


class TransportAdapter(Protocol):
    """Builds a wire request for a record operation."""

    def build_request(
        self, record_type: RecordType, operation: Operation, params: RequestParams
    ) -> RequestDescriptor: ...


class Transport(Protocol):
    """Executes a wire request."""

    async def send(self, request: RequestDescriptor) -> TransportResponse: ...

