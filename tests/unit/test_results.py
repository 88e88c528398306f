"""Tests for placeholder results and the decoration protocol."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from splist.errors import BadResponseError, HttpStatusError
from splist.records import Record, RecordType
from splist.results import RecordList, ResultShape, capture_etag, decorate, reconcile
from splist.transport.base import RequestDescriptor, TransportResponse

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request() -> RequestDescriptor:
    return RequestDescriptor(method="GET", url="https://example.com/_api/items")


def _transport(
    data: Any = None, *, status: int = 200, headers: dict[str, str] | None = None
) -> MagicMock:
    transport = MagicMock()
    transport.send = AsyncMock(
        return_value=TransportResponse(status=status, headers=headers or {}, data=data)
    )
    return transport


# ---------------------------------------------------------------------------
# Shape reconciliation
# ---------------------------------------------------------------------------


class TestReconcile:
    """Tests for reconcile()."""

    def test_collection_from_array(self, todo_type: RecordType) -> None:
        placeholder = RecordList(todo_type)
        reconcile(placeholder, [{"Id": 1}, {"Id": 2}])
        assert [item["Id"] for item in placeholder] == [1, 2]
        assert all(isinstance(item, Record) for item in placeholder)
        assert all(item.record_type is todo_type for item in placeholder)

    def test_collection_appends(self, todo_type: RecordType) -> None:
        placeholder = RecordList(todo_type)
        placeholder.append(todo_type.new({"Id": 0}))
        reconcile(placeholder, [{"Id": 1}])
        assert [item["Id"] for item in placeholder] == [0, 1]

    def test_single_from_object(self, todo_type: RecordType) -> None:
        placeholder = todo_type.new({"Id": 1})
        reconcile(placeholder, {"Title": "x"})
        assert placeholder == {"Id": 1, "Title": "x"}

    def test_single_from_one_element_array(self, todo_type: RecordType) -> None:
        placeholder = todo_type.new()
        reconcile(placeholder, [{"Id": 7}])
        assert placeholder == {"Id": 7}

    @pytest.mark.parametrize("length", [0, 2, 3])
    def test_single_from_ambiguous_array(self, todo_type: RecordType, length: int) -> None:
        placeholder = todo_type.new()
        with pytest.raises(BadResponseError) as exc_info:
            reconcile(placeholder, [{"Id": i} for i in range(length)])
        assert exc_info.value.details["length"] == length
        assert str(length) in str(exc_info.value)
        assert placeholder == {}

    def test_single_without_content(self, todo_type: RecordType) -> None:
        placeholder = todo_type.new({"Id": 1})
        reconcile(placeholder, None)
        assert placeholder == {"Id": 1}

    def test_collection_from_object(self, todo_type: RecordType) -> None:
        with pytest.raises(BadResponseError) as exc_info:
            reconcile(RecordList(todo_type), {"Id": 1})
        assert exc_info.value.expected == "array"
        assert exc_info.value.actual == "object"

    def test_collection_without_content(self, todo_type: RecordType) -> None:
        with pytest.raises(BadResponseError) as exc_info:
            reconcile(RecordList(todo_type), None)
        assert exc_info.value.actual == "nothing"

    def test_single_from_scalar(self, todo_type: RecordType) -> None:
        with pytest.raises(BadResponseError) as exc_info:
            reconcile(todo_type.new(), "not json")
        assert exc_info.value.expected == "object"
        assert exc_info.value.actual == "str"

    def test_array_of_scalars(self, todo_type: RecordType) -> None:
        with pytest.raises(BadResponseError):
            reconcile(RecordList(todo_type), [{"Id": 1}, 2])


# ---------------------------------------------------------------------------
# ETag capture
# ---------------------------------------------------------------------------


class TestCaptureEtag:
    """Tests for capture_etag()."""

    def test_204_with_etag(self, todo_type: RecordType) -> None:
        todo = todo_type.new()
        capture_etag(
            todo.metadata, TransportResponse(status=204, headers={"ETag": "abc123"})
        )
        assert todo.metadata.etag == "abc123"

    def test_header_is_case_insensitive(self, todo_type: RecordType) -> None:
        todo = todo_type.new()
        capture_etag(todo.metadata, TransportResponse(status=204, headers={"etag": '"2"'}))
        assert todo.metadata.etag == '"2"'

    def test_204_without_etag_keeps_previous(self, todo_type: RecordType) -> None:
        todo = todo_type.new()
        todo.metadata.etag = '"1"'
        capture_etag(todo.metadata, TransportResponse(status=204))
        assert todo.metadata.etag == '"1"'

    def test_empty_etag_keeps_previous(self, todo_type: RecordType) -> None:
        todo = todo_type.new()
        todo.metadata.etag = '"1"'
        capture_etag(todo.metadata, TransportResponse(status=204, headers={"ETag": ""}))
        assert todo.metadata.etag == '"1"'

    def test_non_204_ignores_header(self, todo_type: RecordType) -> None:
        todo = todo_type.new()
        capture_etag(todo.metadata, TransportResponse(status=200, headers={"ETag": "abc"}))
        assert todo.metadata.etag is None


# ---------------------------------------------------------------------------
# Decoration
# ---------------------------------------------------------------------------


class TestDecorate:
    """Tests for decorate()."""

    @pytest.mark.asyncio
    async def test_returns_same_placeholder_unresolved(self, todo_type: RecordType) -> None:
        placeholder = todo_type.new({"Id": 1})
        transport = _transport({"Id": 1, "Title": "x"})

        result = decorate(placeholder, _request(), transport)

        assert result is placeholder
        assert placeholder.resolved is False
        assert isinstance(placeholder.completion, asyncio.Task)
        assert placeholder == {"Id": 1}

        resolved = await placeholder.completion
        assert resolved is placeholder
        assert placeholder == {"Id": 1, "Title": "x"}
        assert placeholder.resolved is True

    @pytest.mark.asyncio
    async def test_resets_resolved_flag(self, todo_type: RecordType) -> None:
        placeholder = todo_type.new()
        placeholder.resolved = True
        decorate(placeholder, _request(), _transport({}))
        assert placeholder.resolved is False
        await placeholder

    @pytest.mark.asyncio
    async def test_collection(self, todo_type: RecordType) -> None:
        placeholder = RecordList(todo_type)
        decorate(placeholder, _request(), _transport([{"Id": 1}, {"Id": 2}]))
        assert placeholder == []

        assert await placeholder is placeholder
        assert placeholder.shape is ResultShape.COLLECTION
        assert [item["Id"] for item in placeholder] == [1, 2]
        assert placeholder.resolved is True

    @pytest.mark.asyncio
    async def test_etag_from_204(self, todo_type: RecordType) -> None:
        placeholder = todo_type.new({"Id": 1})
        placeholder.metadata.etag = '"1"'
        decorate(placeholder, _request(), _transport(status=204, headers={"ETag": "abc123"}))
        await placeholder
        assert placeholder.metadata.etag == "abc123"

    @pytest.mark.asyncio
    async def test_etag_from_body_metadata(self, todo_type: RecordType) -> None:
        placeholder = todo_type.new()
        data = {"__metadata": {"id": "Items(1)", "etag": '"3"'}, "Id": 1}
        decorate(placeholder, _request(), _transport(data, status=201))
        await placeholder
        assert placeholder.metadata.etag == '"3"'
        assert not placeholder.is_new()

    @pytest.mark.asyncio
    async def test_bad_response_rejects_completion(self, todo_type: RecordType) -> None:
        placeholder = todo_type.new()
        result = decorate(placeholder, _request(), _transport([{"Id": 1}, {"Id": 2}]))
        assert result is placeholder

        with pytest.raises(BadResponseError):
            await placeholder
        assert placeholder.resolved is False

    @pytest.mark.asyncio
    async def test_transport_error_passes_through(self, todo_type: RecordType) -> None:
        error = HttpStatusError("Item does not exist", status_code=404)
        transport = MagicMock()
        transport.send = AsyncMock(side_effect=error)

        placeholder = decorate(todo_type.new({"Id": 99}), _request(), transport)

        with pytest.raises(HttpStatusError) as exc_info:
            await placeholder.completion
        assert exc_info.value is error
        assert placeholder.resolved is False

    @pytest.mark.asyncio
    async def test_on_resolved_runs_before_resolved(self, todo_type: RecordType) -> None:
        seen: list[bool] = []
        placeholder = todo_type.new()
        decorate(
            placeholder,
            _request(),
            _transport(None, status=204),
            on_resolved=lambda p: seen.append(p.resolved),
        )
        await placeholder
        assert seen == [False]

    def test_requires_running_loop(self, todo_type: RecordType) -> None:
        with pytest.raises(RuntimeError):
            decorate(todo_type.new(), _request(), _transport({}))
