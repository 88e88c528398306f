"""Shared pytest fixtures for splist tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from splist.config import SiteConfig
from splist.records import RecordType, create_record_type
from splist.transport.base import TransportResponse
from splist.transport.rest import RestAdapter

WEB_URL = "https://contoso.sharepoint.com/sites/dev"


def make_response(
    data: Any = None, *, status: int = 200, headers: dict[str, str] | None = None
) -> TransportResponse:
    return TransportResponse(status=status, headers=headers or {}, data=data)


@pytest.fixture
def site() -> SiteConfig:
    """Return a site configuration for the dev site."""
    return SiteConfig(web_url=WEB_URL, host_web_url="https://contoso.sharepoint.com")


@pytest.fixture
def adapter(site: SiteConfig) -> MagicMock:
    """Return a REST adapter wrapped in a mock so calls can be inspected."""
    return MagicMock(wraps=RestAdapter(site))


@pytest.fixture
def transport() -> MagicMock:
    """Return a transport whose send() answers 200 with an empty object."""
    transport = MagicMock()
    transport.send = AsyncMock(return_value=make_response({}))
    return transport


@pytest.fixture
def todo_type(adapter: MagicMock, transport: MagicMock) -> RecordType:
    """Return the record type for a "Todo" list with a default select."""
    return create_record_type(
        "Todo",
        {"query": {"select": ["Id", "Title", "Completed"]}},
        adapter=adapter,
        transport=transport,
    )
