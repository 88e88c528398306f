"""
Record types for remote lists.

create_record_type() turns a list title into a RecordType: a descriptor that
bundles the derived SharePoint identifiers, the per-list configuration and
the CRUD operations. Items of the list are Record instances (dicts of field
values plus a metadata block) bound to their RecordType.

Example:
    Todo = create_record_type(
        "Todo", {"query": {"select": ["Id", "Title", "Completed"]}},
        adapter=RestAdapter(site), transport=HttpTransport(site),
    )

    todo = await Todo.get(1)
    todo["Completed"] = True
    await todo.save()

    Todo.add_named_query("by_title", lambda title: {"filter": f"Title eq '{title}'"})
    foo = await Todo.queries.by_title("Foo")
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Generator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import pydantic

from splist.config import ListOptions
from splist.errors import InvalidArgumentError
from splist.query import NamedQueries, Query, QueryBuilder, normalize
from splist.results import RecordList, ResultShape, decorate
from splist.transport.base import (
    Operation,
    RequestParams,
    Transport,
    TransportAdapter,
)

logger = logging.getLogger(__name__)

# Encoded space used by SharePoint in internal names
SPACE_TOKEN = "_x0020_"

METADATA_KEY = "__metadata"

DEFAULT_READ_ONLY_FIELDS: frozenset[str] = frozenset(
    {
        "AttachmentFiles",
        "Attachments",
        "Author",
        "AuthorId",
        "ContentType",
        "ContentTypeId",
        "Created",
        "Editor",
        "EditorId",
        "FieldValuesAsHtml",
        "FieldValuesAsText",
        "FieldValuesForEdit",
        "File",
        "FileSystemObjectType",
        "FirstUniqueAncestorSecurableObject",
        "Folder",
        "GUID",
        "Modified",
        "OData__UIVersionString",
        "ParentList",
        "RoleAssignments",
    }
)

_INVALID_TITLE_CHARS = re.compile(r"[^A-Za-z0-9 ]")
_LEADING_DIGITS = re.compile(r"^\d+")


# =============================================================================
# Name derivation
# =============================================================================


def capitalize(value: str) -> str:
    """Upper-case the first character, leaving the rest untouched."""
    return value[:1].upper() + value[1:]


def normalize_title(title: str) -> str:
    """
    Derive the internal list name used in SharePoint type identifiers.

    Drops everything but letters, digits and spaces, encodes each run of
    spaces as ``_x0020_`` and capitalizes:

        >>> normalize_title("my tasks (2024)")
        'My_x0020_tasks_x0020_2024'
    """
    cleaned = _INVALID_TITLE_CHARS.sub("", title).strip()
    return capitalize(re.sub(r"\s+", SPACE_TOKEN, cleaned))


def derive_class_name(normalized_title: str) -> str:
    """
    Derive a display/class name from a normalized title.

        >>> derive_class_name("2024_x0020_tasks")
        'Tasks'
    """
    name = normalized_title.replace(SPACE_TOKEN, "")
    return capitalize(_LEADING_DIGITS.sub("", name))


def _odata_literal(value: str) -> str:
    return value.replace("'", "''")


# =============================================================================
# Records
# =============================================================================


@dataclass
class RecordMetadata:
    """
    Metadata block of a record.

    Attributes:
        type: Remote type identifier (e.g. "SP.Data.TodoListItem")
        id: Server-assigned entity id; None until the record is persisted
        etag: Opaque concurrency token
        uri: Entity URI reported by the server
    """

    type: str
    id: str | None = None
    etag: str | None = None
    uri: str | None = None

    def merge(self, data: Mapping[str, Any]) -> None:
        """Overlay the keys of an OData ``__metadata`` object."""
        for key in ("type", "id", "etag", "uri"):
            if key in data:
                setattr(self, key, data[key])


class Record(dict[str, Any]):
    """
    One item of a remote list.

    Field values are dict entries (``record["Title"]``); ``metadata`` holds
    the type tag, id and etag. A record doubles as the single-result
    placeholder of the operations that return it, so it also carries
    ``resolved`` and ``completion`` and can be awaited.
    """

    shape = ResultShape.SINGLE

    def __init__(self, record_type: RecordType, data: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._record_type = record_type
        self.metadata = RecordMetadata(type=record_type.list_item_type)
        self.resolved = False
        self.deleted = False
        self.completion: asyncio.Task[Record] | None = None
        if data:
            self.merge(data)

    @property
    def record_type(self) -> RecordType:
        return self._record_type

    def merge(self, data: Mapping[str, Any]) -> None:
        """Shallow-merge fields; an embedded ``__metadata`` goes to ``metadata``."""
        for key, value in data.items():
            if key == METADATA_KEY:
                if isinstance(value, Mapping):
                    self.metadata.merge(value)
                continue
            self[key] = value

    def is_new(self) -> bool:
        return self.metadata is None or self.metadata.id is None

    def save(self, *, force: bool = False, query: Query | None = None) -> asyncio.Task[Record]:
        """Create or update this record; returns the completion."""
        return _completion_of(self._record_type.save(self, force=force, query=query))

    def delete(self) -> asyncio.Task[Record]:
        """Delete this record on the server; returns the completion."""
        return _completion_of(self._record_type.delete(self))

    def __await__(self) -> Generator[Any, None, Record]:
        return _await_record(self).__await__()

    def __repr__(self) -> str:
        return f"{self._record_type.class_name}({dict.__repr__(self)})"


def _completion_of(record: Record) -> asyncio.Task[Record]:
    if record.completion is None:
        raise RuntimeError(f"{record!r} has no operation in flight.")
    return record.completion


async def _await_record(record: Record) -> Record:
    if record.completion is None:
        return record
    return await record.completion


def _mark_deleted(record: Record) -> None:
    record.deleted = True


# =============================================================================
# Record Type
# =============================================================================


class RecordType:
    """
    Descriptor for the records of one list.

    Configuration is captured at construction: ``default_query`` is a
    read-only mapping and ``read_only_fields`` a frozenset.
    """

    def __init__(
        self,
        title: str,
        options: ListOptions,
        *,
        adapter: TransportAdapter,
        transport: Transport,
    ) -> None:
        if not isinstance(title, str) or title == "":
            raise InvalidArgumentError("title must be a non-empty string.")

        normalized = normalize_title(title)
        if not normalized:
            raise InvalidArgumentError(
                f"title '{title}' must contain at least one letter or digit."
            )

        self.title = title
        self.normalized_title = normalized
        self.class_name = derive_class_name(normalized)
        self.list_item_type = f"SP.Data.{normalized}ListItem"
        self.relative_url = f"web/lists/getByTitle('{_odata_literal(title)}')"
        self.in_host_web = options.in_host_web
        self.read_only_fields: frozenset[str] = DEFAULT_READ_ONLY_FIELDS | frozenset(
            options.read_only_fields
        )
        self.default_query: Mapping[str, Any] = MappingProxyType(
            normalize(options.default_query)
        )
        self.queries = NamedQueries(self)

        self._adapter = adapter
        self._transport = transport

    def __repr__(self) -> str:
        return f"<RecordType {self.class_name} ({self.list_item_type})>"

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def new(self, data: Mapping[str, Any] | None = None, **fields: Any) -> Record:
        """Build a record of this type from ``data`` and/or keyword fields."""
        if data is not None and not isinstance(data, Mapping):
            raise InvalidArgumentError(
                f"data must be a mapping, got {type(data).__name__}."
            )
        record = Record(self, data)
        if fields:
            record.merge(fields)
        return record

    __call__ = new

    def is_instance(self, item: Any) -> bool:
        return isinstance(item, Record) and item.record_type is self

    def _require_record(self, item: Any) -> Record:
        if not self.is_instance(item):
            raise InvalidArgumentError(f"item must be a {self.class_name} record.")
        return item

    def _issue(
        self,
        placeholder: Any,
        operation: Operation,
        params: RequestParams,
        on_resolved: Callable[[Any], None] | None = None,
    ) -> Any:
        request = self._adapter.build_request(self, operation, params)
        return decorate(placeholder, request, self._transport, on_resolved=on_resolved)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def get(self, id: Any, query: Query | None = None) -> Record:
        """Get a single item by id; returns the placeholder record."""
        if id is None:
            raise InvalidArgumentError("id is required.")
        result = self.new({"Id": id})
        params = RequestParams(id=id, query=normalize(query) if query else None)
        return self._issue(result, Operation.GET, params)

    def query(
        self, query: Query | None = None, *, single_result: bool = False
    ) -> Record | RecordList:
        """
        Query the list.

        Returns an empty RecordList that fills on completion, or with
        ``single_result`` an empty Record; the completion then fails with
        BadResponseError unless exactly one item comes back.
        """
        result: Record | RecordList = self.new() if single_result else RecordList(self)
        params = RequestParams(query=normalize(self.default_query, query))
        return self._issue(result, Operation.QUERY, params)

    def create(self, item: Record, query: Query | None = None) -> Record:
        """Create ``item`` on the server; the item itself is the placeholder."""
        record = self._require_record(item)
        if not record.metadata.type:
            record.metadata.type = self.list_item_type
        params = RequestParams(item=record, query=normalize(self.default_query, query))
        return self._issue(record, Operation.CREATE, params)

    def update(
        self, item: Record, *, force: bool = False, query: Query | None = None
    ) -> Record:
        """
        Update an existing item.

        Unless ``force`` is set, the stored etag goes along so the server can
        reject a stale write. With ``force`` the etag is withheld and the
        item is overwritten regardless of concurrent changes.
        """
        record = self._require_record(item)
        params = RequestParams(
            item=record,
            force=force,
            etag=None if force else record.metadata.etag,
            query=normalize(query) if query else None,
        )
        return self._issue(record, Operation.UPDATE, params)

    def save(self, item: Record, *, force: bool = False, query: Query | None = None) -> Record:
        """Update the item if it has been persisted, create it otherwise."""
        if isinstance(item, Record) and not item.is_new():
            return self.update(item, force=force, query=query)
        return self.create(item, query)

    def delete(self, item: Record) -> Record:
        """Delete the item. Its fields stay; ``deleted`` is set on completion."""
        record = self._require_record(item)
        return self._issue(
            record, Operation.DELETE, RequestParams(item=record), on_resolved=_mark_deleted
        )

    # -------------------------------------------------------------------------
    # Named queries
    # -------------------------------------------------------------------------

    def add_named_query(
        self, name: str, builder: QueryBuilder, *, single_result: bool = False
    ) -> RecordType:
        """Register ``builder`` under ``queries.<name>``; returns the record type."""
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError("named query name must be a non-empty string.")
        if not callable(builder):
            raise InvalidArgumentError(f"named query '{name}' needs a callable builder.")
        self.queries.register(name, builder, single_result=single_result)
        logger.debug("Registered named query %s.%s", self.class_name, name)
        return self


def create_record_type(
    name: str,
    options: ListOptions | Mapping[str, Any] | None = None,
    *,
    adapter: TransportAdapter,
    transport: Transport,
) -> RecordType:
    """
    Create the record type for the list titled ``name``.

    Args:
        name: List title (case-sensitive)
        options: ListOptions, or a mapping with the same keys
        adapter: Builds wire requests for the list's operations
        transport: Sends them

    Raises:
        InvalidArgumentError: If the title is empty or the options are invalid
    """
    if options is None:
        options = ListOptions()
    elif not isinstance(options, ListOptions):
        if not isinstance(options, Mapping):
            raise InvalidArgumentError(
                f"options must be ListOptions or a mapping, got {type(options).__name__}."
            )
        try:
            options = ListOptions.model_validate(dict(options))
        except pydantic.ValidationError as e:
            raise InvalidArgumentError(f"invalid options for list '{name}': {e}") from e
    return RecordType(name, options, adapter=adapter, transport=transport)
