"""
Query normalization for list queries.

A query is a plain dict over the OData system query options. The ``$``
prefix is optional on input; normalized queries always use the bare name,
so ``{"$top": 5}`` and ``{"top": 5}`` refer to the same option.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

from splist.errors import InvalidArgumentError

if TYPE_CHECKING:
    from splist.records import Record, RecordType
    from splist.results import RecordList

Query = dict[str, Any]

QUERY_SIGIL = "$"

QUERY_OPTIONS: frozenset[str] = frozenset(
    {"select", "filter", "orderby", "top", "skip", "expand", "sort"}
)


def canonical_key(key: str) -> str:
    """Strip the sigil from a recognized query option name."""
    if key.startswith(QUERY_SIGIL) and key[len(QUERY_SIGIL) :] in QUERY_OPTIONS:
        return key[len(QUERY_SIGIL) :]
    return key


def normalize(
    default_query: Mapping[str, Any] | None,
    query: Mapping[str, Any] | None = None,
) -> Query:
    """
    Merge a default query with a caller query.

    Keys from ``query`` win over keys from ``default_query``. Neither input
    is mutated; the result is a new dict with canonical option names.
    """
    merged: Query = {}
    for source in (default_query, query):
        if not source:
            continue
        for key, value in source.items():
            merged[canonical_key(key)] = value
    return merged


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list | tuple | set | frozenset):
        return ",".join(str(v) for v in value)
    return str(value)


def to_query_params(query: Mapping[str, Any] | None) -> dict[str, str]:
    """
    Render a query as URL query-string parameters.

    Recognized options get the ``$`` prefix, sequences are comma-joined and
    ``None`` values are dropped.

    Example:
        >>> to_query_params({"select": ["Id", "Title"], "top": 10})
        {'$select': 'Id,Title', '$top': '10'}
    """
    params: dict[str, str] = {}
    for key, value in normalize(None, query).items():
        if value is None:
            continue
        name = QUERY_SIGIL + key if key in QUERY_OPTIONS else key
        params[name] = _render_value(value)
    return params


# =============================================================================
# Named Queries
# =============================================================================

QueryBuilder = Callable[..., Mapping[str, Any] | None]


class NamedQueries(Mapping[str, Callable[..., "Record | RecordList"]]):
    """
    Registry of named queries for one record type.

    Entries are reachable by key or attribute. Names of the registry's own
    methods are refused at registration:

        todos.queries["by_title"]("Foo")
        todos.queries.by_title("Foo")
    """

    def __init__(self, record_type: RecordType) -> None:
        self._record_type = record_type
        self._queries: dict[str, Callable[..., Record | RecordList]] = {}

    def register(
        self, name: str, builder: QueryBuilder, *, single_result: bool = False
    ) -> None:
        """
        Register ``builder`` under ``name``.

        Raises:
            InvalidArgumentError: If ``name`` is private or shadows a registry
                method (``get``, ``items``, ``keys``, ...)
        """
        if name.startswith("_") or hasattr(type(self), name):
            raise InvalidArgumentError(
                f"'{name}' cannot be used as a named query name; it is reserved."
            )
        record_type = self._record_type

        def run_named_query(*args: Any, **kwargs: Any) -> Record | RecordList:
            merged = normalize(record_type.default_query, builder(*args, **kwargs))
            return record_type.query(merged, single_result=single_result)

        run_named_query.__name__ = name
        run_named_query.__qualname__ = f"{record_type.class_name}.queries.{name}"
        self._queries[name] = run_named_query

    def __getitem__(self, name: str) -> Callable[..., Record | RecordList]:
        return self._queries[name]

    def __getattr__(self, name: str) -> Callable[..., Record | RecordList]:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._queries[name]
        except KeyError:
            raise AttributeError(
                f"No named query '{name}' on {self._record_type.class_name}"
            ) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._queries)

    def __len__(self) -> int:
        return len(self._queries)

    def __repr__(self) -> str:
        return f"NamedQueries({sorted(self._queries)})"
