"""
HTTP transport built on httpx.

Sends RequestDescriptors and turns responses into TransportResponses:

- OData envelopes are unwrapped: ``{"d": {"results": [...]}}`` becomes the
  list, ``{"d": {...}}`` the object, ``{"value": [...]}`` (OData minimal
  metadata) the list
- an empty body becomes ``None``
- non-2xx statuses raise HttpStatusError, network failures TransportError,
  timeouts TransportTimeoutError
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from splist.config import SiteConfig
from splist.errors import HttpStatusError, TransportError, TransportTimeoutError
from splist.transport.base import RequestDescriptor, TransportResponse

logger = logging.getLogger(__name__)


def unwrap_odata(payload: Any) -> Any:
    """Strip the OData JSON envelope from a response body."""
    if not isinstance(payload, Mapping):
        return payload

    if "d" in payload and len(payload) == 1:
        inner = payload["d"]
        if isinstance(inner, Mapping) and isinstance(inner.get("results"), list):
            return inner["results"]
        return inner

    if isinstance(payload.get("value"), list) and (
        "odata.metadata" in payload or "@odata.context" in payload
    ):
        return payload["value"]

    return payload


def error_message(payload: Any) -> str | None:
    """Extract the server's message from an OData error body."""
    if not isinstance(payload, Mapping):
        return None
    error = payload.get("error") or payload.get("odata.error")
    if not isinstance(error, Mapping):
        return None
    message = error.get("message")
    if isinstance(message, Mapping):
        message = message.get("value")
    return message if isinstance(message, str) else None


class HttpTransport:
    """
    Transport that sends requests with an httpx.AsyncClient.

    The client is created lazily from the SiteConfig unless one is passed in;
    an injected client is not closed by ``aclose()``.

    Example:
        async with HttpTransport(site) as transport:
            Todo = create_record_type("Todo", adapter=RestAdapter(site), transport=transport)
            todos = await Todo.query()
    """

    def __init__(self, config: SiteConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout, headers=self.config.headers
            )
        return self._client

    async def send(self, request: RequestDescriptor) -> TransportResponse:
        start_time = time.monotonic()
        try:
            response = await self.client.request(
                request.method,
                request.url,
                params=request.params or None,
                json=request.body,
                headers=request.headers,
            )
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", request.method, request.url)
            raise TransportTimeoutError(
                f"Request timed out after {self.config.timeout}s", url=request.url
            ) from e
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", request.method, request.url, e)
            raise TransportError(f"Request failed: {e}", url=request.url) from e

        latency_ms = (time.monotonic() - start_time) * 1000
        logger.debug(
            "%s %s -> %s (%.1fms)", request.method, request.url, response.status_code, latency_ms
        )
        return self._process_response(request, response)

    def _process_response(
        self, request: RequestDescriptor, response: httpx.Response
    ) -> TransportResponse:
        payload: Any = None
        if response.content:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text

        if response.status_code >= 400:
            message = error_message(payload) or f"HTTP error {response.status_code}"
            logger.warning(
                "%s %s failed with %s: %s",
                request.method,
                request.url,
                response.status_code,
                message,
            )
            raise HttpStatusError(
                message,
                status_code=response.status_code,
                url=request.url,
                details=payload if isinstance(payload, dict) else {"body": payload},
            )

        return TransportResponse(
            status=response.status_code,
            headers=response.headers,
            data=unwrap_odata(payload),
        )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
