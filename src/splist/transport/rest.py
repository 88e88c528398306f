"""
SharePoint REST request builder.

Translates record operations into requests against the list item endpoints
of the SharePoint REST API (OData verbose JSON):

    get     GET  {web}/_api/web/lists/getByTitle('T')/items(1)
    query   GET  {web}/_api/web/lists/getByTitle('T')/items?$filter=...
    create  POST {web}/_api/web/lists/getByTitle('T')/items
    update  POST <uri> or .../items(1)   X-HTTP-Method: MERGE, IF-MATCH: <etag> | *
    delete  POST <uri> or .../items(1)   X-HTTP-Method: DELETE, IF-MATCH: <etag> | *

Lists created with ``in_host_web=True`` are addressed through
``SP.AppContextSite(@target)`` with ``@target`` pointing at the host web.
Their update and delete requests always use the ``items(<Id>)`` path.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from splist.config import SiteConfig
from splist.errors import ConfigError, InvalidArgumentError
from splist.query import to_query_params
from splist.transport.base import Operation, RequestDescriptor, RequestParams

if TYPE_CHECKING:
    from splist.records import Record, RecordType

ODATA_VERBOSE = "application/json;odata=verbose"

_DEFERRED_KEY = "__deferred"
_METADATA_KEY = "__metadata"


def _item_key(value: Any) -> str:
    """Render an item id as an OData key literal."""
    if isinstance(value, bool):
        raise InvalidArgumentError(f"invalid item id {value!r}.")
    if isinstance(value, int):
        return str(value)
    text = str(value)
    if text.isdigit():
        return text
    return "'" + text.replace("'", "''") + "'"


class RestAdapter:
    """Builds SharePoint REST requests for record operations."""

    def __init__(self, config: SiteConfig) -> None:
        self.config = config

    def list_endpoint(self, record_type: RecordType) -> tuple[str, dict[str, str]]:
        """Return the list endpoint URL and any query parameters it needs."""
        web_url = self.config.web_url.rstrip("/")
        if not record_type.in_host_web:
            return f"{web_url}/_api/{record_type.relative_url}", {}

        host_web_url = self.config.host_web_url
        if not host_web_url:
            raise ConfigError(
                f"List '{record_type.title}' lives in the host web but no host_web_url is configured"
            )
        url = f"{web_url}/_api/SP.AppContextSite(@target)/{record_type.relative_url}"
        return url, {"@target": f"'{host_web_url.rstrip('/')}'"}

    def build_request(
        self, record_type: RecordType, operation: Operation, params: RequestParams
    ) -> RequestDescriptor:
        base_url, endpoint_params = self.list_endpoint(record_type)
        query_params = {**endpoint_params, **to_query_params(params.query)}
        headers = {**self.config.headers, "Accept": ODATA_VERBOSE}

        if operation is Operation.GET:
            return RequestDescriptor(
                method="GET",
                url=f"{base_url}/items({_item_key(params.id)})",
                params=query_params,
                headers=headers,
            )

        if operation is Operation.QUERY:
            return RequestDescriptor(
                method="GET", url=f"{base_url}/items", params=query_params, headers=headers
            )

        item = self._require_item(operation, params)
        headers["Content-Type"] = ODATA_VERBOSE

        if operation is Operation.CREATE:
            return RequestDescriptor(
                method="POST",
                url=f"{base_url}/items",
                params=query_params,
                body=self.payload(record_type, item),
                headers=headers,
            )

        url = self._item_url(record_type, base_url, item)

        if operation is Operation.UPDATE:
            headers["X-HTTP-Method"] = "MERGE"
            if params.force:
                headers["IF-MATCH"] = "*"
            elif params.etag:
                headers["IF-MATCH"] = params.etag
            return RequestDescriptor(
                method="POST",
                url=url,
                params=query_params,
                body=self.payload(record_type, item),
                headers=headers,
            )

        if operation is Operation.DELETE:
            headers["X-HTTP-Method"] = "DELETE"
            headers["IF-MATCH"] = item.metadata.etag or "*"
            return RequestDescriptor(method="POST", url=url, params=query_params, headers=headers)

        raise InvalidArgumentError(f"Unsupported operation '{operation}'.")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_item(operation: Operation, params: RequestParams) -> Record:
        if params.item is None:
            raise InvalidArgumentError(f"{operation} requires an item.")
        return params.item

    @staticmethod
    def _item_url(record_type: RecordType, base_url: str, item: Record) -> str:
        """Entity URI reported by the server, else the list item path by Id."""
        uri = item.metadata.uri if item.metadata is not None else None
        if uri and not record_type.in_host_web:
            return uri
        return f"{base_url}/items({_item_key(RestAdapter._item_id(item))})"

    @staticmethod
    def _item_id(item: Record) -> Any:
        for key in ("Id", "ID"):
            if item.get(key) is not None:
                return item[key]
        raise InvalidArgumentError(f"{item.record_type.class_name} record has no Id.")

    @staticmethod
    def payload(record_type: RecordType, item: Record) -> dict[str, Any]:
        """
        JSON body for create/update.

        Read-only fields and unexpanded navigation properties are left out;
        the metadata type is always included.
        """
        body: dict[str, Any] = {_METADATA_KEY: {"type": item.metadata.type}}
        for key, value in item.items():
            if key in record_type.read_only_fields:
                continue
            if isinstance(value, Mapping) and _DEFERRED_KEY in value:
                continue
            body[key] = value
        return body
