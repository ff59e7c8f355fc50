"""URL Builder - Composes base URL, path template and query string into a URL.

Paths may contain ``:name`` placeholders which are filled in with
URLBuilder.replace_path_params before building.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Annotated
from urllib.parse import quote, urlsplit, urlunsplit

from pydantic import AnyUrl, StringConstraints

from api_fetcher.query_builder import QueryBuilder
from api_fetcher.schema import Schema

BASE_URL_SCHEMA: Schema[AnyUrl] = Schema(AnyUrl)

# Leading slash, then alphanumerics, hyphens, slashes and colons (for :name)
PATH_SCHEMA: Schema[str] = Schema(
    Annotated[str, StringConstraints(pattern=r"^/[A-Za-z0-9/:-]*$")], strict=True
)

_PATH_PARAM = re.compile(r":(\w+)")

# Characters left unescaped when writing the path into a URL. Everything else
# (spaces, quotes, '#', '?', non-ASCII, ...) is percent-encoded.
_PATH_SAFE = "/:@!$&'()*+,;=%-._~"


class URLBuilderError(Exception):
    """Raised when URL builder input is invalid."""


class MissingPathParameterError(URLBuilderError):
    """Raised when a path placeholder has no replacement value."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing value for path parameter: {name}")
        self.name = name


class URLBuilder:
    """Builds URLs from a base URL, a path template and a QueryBuilder.

    Usage:
        builder = URLBuilder(
            "https://example.com",
            path="/users/:id",
            query_builder=QueryBuilder({"expand": "teams"}),
        )
        builder.replace_path_params({"id": "42"}).build()
        # 'https://example.com/users/42?expand=teams'
    """

    def __init__(
        self,
        base_url: str,
        path: str = "/",
        query_builder: QueryBuilder | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            base_url: Absolute URL (scheme and host). Its path and query are
                replaced at build time.
            path: Path template starting with '/'.
            query_builder: Query parameters. Defaults to an empty QueryBuilder.

        Raises:
            URLBuilderError: If base_url, path or query_builder is invalid.
        """
        if query_builder is None:
            query_builder = QueryBuilder()

        if not isinstance(base_url, str) or not BASE_URL_SCHEMA.safe_parse(base_url).success:
            raise URLBuilderError("Invalid base_url")
        if not PATH_SCHEMA.safe_parse(path).success:
            raise URLBuilderError("Invalid path")
        if not isinstance(query_builder, QueryBuilder):
            raise URLBuilderError("Invalid query_builder")

        self._base_url = base_url
        self._path = path
        self._query_builder = query_builder

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def path(self) -> str:
        return self._path

    @property
    def query_builder(self) -> QueryBuilder:
        return self._query_builder

    def replace_path_params(self, params: Mapping[str, str]) -> URLBuilder:
        """Replace ``:name`` placeholders in the path.

        The new path is computed in full before it is stored, so a missing
        parameter leaves the builder unchanged.

        Args:
            params: Placeholder name to replacement value.

        Returns:
            This builder, for chaining.

        Raises:
            MissingPathParameterError: For the first placeholder (left to right)
                without a value.
        """

        def _substitute(match: re.Match[str]) -> str:
            name = match.group(1)
            value = params.get(name)
            if value is None:
                raise MissingPathParameterError(name)
            return str(value)

        self._path = _PATH_PARAM.sub(_substitute, self._path)
        return self

    def build(self) -> str:
        """Build the URL string.

        Scheme, authority and fragment come from base_url, with the scheme
        and host lower-cased; the path is the current path and the query is
        query_builder.build().
        """
        parts = urlsplit(self._base_url)
        # Credentials keep their case
        userinfo, at, hostport = parts.netloc.rpartition("@")
        return urlunsplit(
            parts._replace(
                netloc=f"{userinfo}{at}{hostport.lower()}",
                path=quote(self._path, safe=_PATH_SAFE),
                query=self._query_builder.build(),
            )
        )

    def __repr__(self) -> str:
        return (
            f"URLBuilder(base_url={self._base_url!r}, path={self._path!r}, "
            f"query_builder={self._query_builder!r})"
        )
