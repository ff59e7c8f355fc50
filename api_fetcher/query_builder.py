"""Query Builder - Validates query parameters and serializes them to a query string.

Inclusion policy: only "present" values are written. None, False, zero and
the empty string are skipped; empty lists and dicts are kept. This mirrors
truthiness in browser query helpers and is deliberately not "fixed" here, so
callers wanting ``?page=0`` must pass ``"0"``.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any
from urllib.parse import urlencode

from api_fetcher.schema import Schema

# Query parameters: string keys, values of any shape
QUERY_SCHEMA: Schema[dict[str, Any]] = Schema(dict[str, Any], strict=True)

Query = Mapping[str, Any]


class QueryBuilderError(Exception):
    """Raised when query parameters are invalid."""


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def _to_query_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


class QueryBuilder:
    """Builds query strings from a validated parameter mapping.

    Usage:
        builder = QueryBuilder({"page": 1, "limit": 10, "search": "hello"})
        builder.query    # {'page': 1, 'limit': 10, 'search': 'hello'}
        builder.build()  # 'page=1&limit=10&search=hello'
    """

    def __init__(self, query: Query | None = None) -> None:
        """Initialize the builder.

        Args:
            query: Query parameters. None means no parameters.

        Raises:
            QueryBuilderError: If query is not a mapping with string keys.
        """
        if query is None:
            query = {}
        elif isinstance(query, Mapping) and not isinstance(query, dict):
            query = dict(query)

        result = QUERY_SCHEMA.safe_parse(query)
        if not result.success or result.data is None:
            raise QueryBuilderError("Invalid query parameters") from result.error
        self._query: Mapping[str, Any] = MappingProxyType(dict(result.data))

    @property
    def query(self) -> Mapping[str, Any]:
        """Read-only view of the query parameters."""
        return self._query

    def build(self) -> str:
        """Serialize the parameters to a form-urlencoded query string (no leading '?')."""
        pairs = [
            (key, _to_query_value(value))
            for key, value in self._query.items()
            if _is_present(value)
        ]
        return urlencode(pairs)

    def __repr__(self) -> str:
        return f"QueryBuilder({dict(self._query)!r})"
