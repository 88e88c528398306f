"""
List factory.

Binds one adapter and one transport so record types can be created by title
alone:

    site = SiteConfig.from_env()
    async with ListFactory.for_site(site) as lists:
        Todo = lists("Todo", query={"select": ["Id", "Title"]})
        todos = await Todo.query()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from splist.config import ListOptions, SiteConfig
from splist.records import RecordType, create_record_type
from splist.transport.base import Transport, TransportAdapter
from splist.transport.http import HttpTransport
from splist.transport.rest import RestAdapter

logger = logging.getLogger(__name__)


def _canonical_options(options: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(options)
    if "query" in result:
        result["default_query"] = result.pop("query")
    return result


class ListFactory:
    """Creates RecordTypes that share an adapter and a transport."""

    def __init__(self, adapter: TransportAdapter, transport: Transport) -> None:
        self.adapter = adapter
        self.transport = transport

    @classmethod
    def for_site(cls, config: SiteConfig) -> ListFactory:
        """Factory using the SharePoint REST adapter over HTTP."""
        return cls(RestAdapter(config), HttpTransport(config))

    def __call__(
        self,
        title: str,
        options: ListOptions | Mapping[str, Any] | None = None,
        **option_fields: Any,
    ) -> RecordType:
        """
        Create the record type for ``title``.

        Options may be given as ListOptions, a mapping, or keyword arguments
        (``read_only_fields``, ``default_query``/``query``, ``in_host_web``).
        """
        if option_fields:
            merged: dict[str, Any] = {}
            if isinstance(options, ListOptions):
                merged.update(options.model_dump())
            elif options is not None:
                merged.update(_canonical_options(options))
            merged.update(_canonical_options(option_fields))
            options = merged
        record_type = create_record_type(
            title, options, adapter=self.adapter, transport=self.transport
        )
        logger.debug("Created record type %r for list '%s'", record_type, title)
        return record_type

    async def aclose(self) -> None:
        aclose = getattr(self.transport, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> ListFactory:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
