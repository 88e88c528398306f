"""
Placeholder results and the decoration protocol.

Every record operation returns its placeholder synchronously:

- ResultShape.SINGLE: a Record (get, query with single_result, create,
  update, delete)
- ResultShape.COLLECTION: a RecordList (query)

decorate() schedules the transport round-trip on the running event loop and
stores the task as ``placeholder.completion``. When the task finishes it has
filled the *same* placeholder object in place, captured the etag of a 204
response and set ``placeholder.resolved``. Awaiting the placeholder awaits
the completion:

    todos = Todo.query({"top": 10})   # [] right away
    await todos                       # now populated, todos.resolved is True
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Generator, Mapping, Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from splist.errors import BadResponseError

if TYPE_CHECKING:
    from splist.records import Record, RecordMetadata, RecordType
    from splist.transport.base import RequestDescriptor, Transport, TransportResponse

logger = logging.getLogger(__name__)

NO_CONTENT = 204


class ResultShape(StrEnum):
    """Shape of a placeholder, fixed when the placeholder is built."""

    SINGLE = "object"
    COLLECTION = "array"


class Placeholder(Protocol):
    """What decorate() needs from a placeholder."""

    shape: ResultShape
    resolved: bool
    completion: asyncio.Task[Any] | None

    @property
    def record_type(self) -> RecordType: ...


P = TypeVar("P", bound=Placeholder)


class RecordList(list["Record"]):
    """Collection placeholder; filled with records of one type on completion."""

    shape = ResultShape.COLLECTION

    def __init__(self, record_type: RecordType) -> None:
        super().__init__()
        self._record_type = record_type
        self.resolved = False
        self.completion: asyncio.Task[RecordList] | None = None

    @property
    def record_type(self) -> RecordType:
        return self._record_type

    def __await__(self) -> Generator[Any, None, RecordList]:
        return _await_completion(self).__await__()

    def __repr__(self) -> str:
        state = "resolved" if self.resolved else "pending"
        return f"<{self._record_type.class_name} list ({state}) {list.__repr__(self)}>"


async def _await_completion(placeholder: P) -> P:
    if placeholder.completion is None:
        return placeholder
    return await placeholder.completion


# =============================================================================
# Shape reconciliation
# =============================================================================


def _describe(data: Any) -> str:
    if data is None:
        return "nothing"
    if isinstance(data, Mapping):
        return "object"
    if _is_sequence(data):
        return "array"
    return type(data).__name__


def _is_sequence(data: Any) -> bool:
    return isinstance(data, Sequence) and not isinstance(data, str | bytes | bytearray)


def _check_items(data: Sequence[Any]) -> None:
    for index, item in enumerate(data):
        if not isinstance(item, Mapping):
            raise BadResponseError(
                f"Expected array element {index} to be an object but got an {_describe(item)}",
                expected="object",
                actual=_describe(item),
                details={"index": index},
            )


def reconcile(placeholder: Placeholder, data: Any) -> None:
    """Fill ``placeholder`` from response ``data`` in place.

    Raises:
        BadResponseError: If the data cannot be mapped onto the placeholder shape
    """
    if placeholder.shape is ResultShape.COLLECTION:
        if _is_sequence(data):
            _check_items(data)
            record_type = placeholder.record_type
            placeholder.extend(record_type.new(item) for item in data)  # type: ignore[attr-defined]
            return
    elif placeholder.shape is ResultShape.SINGLE:
        if data is None:
            return
        if isinstance(data, Mapping):
            placeholder.merge(data)  # type: ignore[attr-defined]
            return
        if _is_sequence(data):
            if len(data) == 1:
                _check_items(data)
                placeholder.merge(data[0])  # type: ignore[attr-defined]
                return
            raise BadResponseError(
                f"Expected response to contain an array with one object but got {len(data)}",
                expected="array with one object",
                actual=f"array with {len(data)} objects",
                details={"length": len(data)},
            )

    expected = placeholder.shape.value
    actual = _describe(data)
    raise BadResponseError(
        f"Expected response to contain an {expected} but got an {actual}",
        expected=expected,
        actual=actual,
    )


def capture_etag(metadata: RecordMetadata, response: TransportResponse) -> None:
    """Store the ETag header of a 204 response as the concurrency token."""
    if response.status != NO_CONTENT:
        return
    etag = response.headers.get("ETag")
    if isinstance(etag, str) and etag:
        metadata.etag = etag


# =============================================================================
# Decoration
# =============================================================================


async def _complete(
    placeholder: P,
    request: RequestDescriptor,
    transport: Transport,
    on_resolved: Callable[[P], None] | None,
) -> P:
    response = await transport.send(request)

    try:
        reconcile(placeholder, response.data)
    except BadResponseError as e:
        logger.warning("%s %s: %s", request.method, request.url, e)
        raise

    metadata = getattr(placeholder, "metadata", None)
    if metadata is not None:
        capture_etag(metadata, response)
    if on_resolved is not None:
        on_resolved(placeholder)

    placeholder.resolved = True
    logger.debug("Resolved %s %s (status %s)", request.method, request.url, response.status)
    return placeholder


def decorate(
    placeholder: P,
    request: RequestDescriptor,
    transport: Transport,
    *,
    on_resolved: Callable[[P], None] | None = None,
) -> P:
    """
    Attach an asynchronous completion to ``placeholder`` and return it.

    Must be called from a running event loop. Failures (transport errors,
    BadResponseError) reject the completion; nothing is raised here.
    ``on_resolved`` runs after the response has been applied, just before
    the placeholder is flagged as resolved.
    """
    loop = asyncio.get_running_loop()
    logger.debug("Issuing %s %s", request.method, request.url)
    placeholder.resolved = False
    placeholder.completion = loop.create_task(
        _complete(placeholder, request, transport, on_resolved)
    )
    return placeholder
