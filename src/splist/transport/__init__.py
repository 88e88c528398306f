"""
Transports for splist.

- base: adapter/transport protocols and the request/response records
- rest: SharePoint REST request builder
- http: httpx-based sender
"""

from splist.transport.base import (
    Operation,
    RequestDescriptor,
    RequestParams,
    Transport,
    TransportAdapter,
    TransportResponse,
)
from splist.transport.http import HttpTransport, error_message, unwrap_odata
from splist.transport.rest import ODATA_VERBOSE, RestAdapter

__all__ = [
    "HttpTransport",
    "ODATA_VERBOSE",
    "Operation",
    "RequestDescriptor",
    "RequestParams",
    "RestAdapter",
    "Transport",
    "TransportAdapter",
    "TransportResponse",
    "error_message",
    "unwrap_odata",
]
