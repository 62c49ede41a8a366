"""Exception hierarchy for the site search stack.

Build-time errors either skip a single content source (``SourceLoadError``) or
abort the build (``EmptyCorpusError``, ``IndexConsistencyError``). Runtime errors
either surface to the caller (``IndexLoadError``) or are converted into an
error-carrying ``SearchResult`` at the engine boundary (``QueryError``).
"""

from __future__ import annotations


class SearchError(Exception):
    """Base class for all search subsystem errors."""


class SourceLoadError(SearchError):
    """A single content source is missing or malformed."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Could not load {source}: {reason}")


class EmptyCorpusError(SearchError):
    """No documents were extracted from any content source."""


class IndexConsistencyError(SearchError):
    """Index references and catalog entries do not match one-to-one."""


class IndexLoadError(SearchError):
    """The serialized index or catalog could not be obtained at runtime."""


class QueryError(SearchError):
    """A query could not be executed."""


class QueryParseError(QueryError):
    """A query string is syntactically invalid."""

    def __init__(self, message: str, *, start: int | None = None, end: int | None = None) -> None:
        self.start = start
        self.end = end
        super().__init__(message)
