"""
splist - asynchronous record mapping for SharePoint-style REST lists.

Turns a remote list into a record type with CRUD operations, query building
and etag-based optimistic concurrency. Operations return placeholders
synchronously; the placeholders fill in place when the request completes.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version

from .config import ListOptions, SiteConfig
from .errors import (
    BadResponseError,
    ConfigError,
    HttpStatusError,
    InvalidArgumentError,
    SPListError,
    TransportError,
    TransportTimeoutError,
)
from .factory import ListFactory
from .logging import setup_logging
from .query import QUERY_OPTIONS, NamedQueries, normalize, to_query_params
from .records import (
    DEFAULT_READ_ONLY_FIELDS,
    Record,
    RecordMetadata,
    RecordType,
    create_record_type,
)
from .results import RecordList, ResultShape, decorate
from .transport import (
    HttpTransport,
    Operation,
    RequestDescriptor,
    RequestParams,
    RestAdapter,
    Transport,
    TransportAdapter,
    TransportResponse,
)


def _get_version() -> str:
    try:
        return _metadata_version("splist")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    # Records
    "DEFAULT_READ_ONLY_FIELDS",
    "Record",
    "RecordList",
    "RecordMetadata",
    "RecordType",
    "ResultShape",
    "create_record_type",
    "decorate",
    # Queries
    "QUERY_OPTIONS",
    "NamedQueries",
    "normalize",
    "to_query_params",
    # Configuration
    "ListFactory",
    "ListOptions",
    "SiteConfig",
    "setup_logging",
    # Transport
    "HttpTransport",
    "Operation",
    "RequestDescriptor",
    "RequestParams",
    "RestAdapter",
    "Transport",
    "TransportAdapter",
    "TransportResponse",
    # Errors
    "BadResponseError",
    "ConfigError",
    "HttpStatusError",
    "InvalidArgumentError",
    "SPListError",
    "TransportError",
    "TransportTimeoutError",
]
