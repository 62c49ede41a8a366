"""Query engine orchestration layer.

Joins index hits with the document catalog, applies filters and limits, and
wraps everything into a ``SearchResult`` envelope. Failures inside the query
pipeline never escape ``search``: they come back as an envelope whose ``error``
is set, so a caller renders "no results" the same way in both cases. Load
failures are different and propagate as ``IndexLoadError``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timezone
import logging
from typing import Any

from sapa_search.adapters.index_loader import IndexLoader, LoadedIndex
from sapa_search.domain import (
    QUARTERS,
    CatalogEntry,
    CatalogMetadata,
    FilterOptions,
    QueryFilter,
    SearchHit,
    SearchMetadata,
    SearchResult,
    Suggestion,
)
from sapa_search.observability import create_span, operation_context
from sapa_search.search.filters import apply_filters


logger = logging.getLogger(__name__)

SUGGESTION_MIN_LENGTH = 2

FilterInput = QueryFilter | Mapping[str, Any] | None


def _coerce_filters(filters: FilterInput) -> QueryFilter | None:
    if filters is None or isinstance(filters, QueryFilter):
        return filters
    return QueryFilter.model_validate(dict(filters))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchEngine:
    """Runtime search surface: ``search``, ``get_suggestions`` and ``get_filter_options``.

    Args:
        loader: Provides the index and catalog; loaded lazily on first use.
        default_limit: Result cap when ``search`` gets no explicit limit (0 or less = unlimited).
        suggestion_limit: Default number of suggestions.
        on_load: Called once with the catalog metadata after the first successful load.
        on_search: Called with every successful ``SearchResult``.
        on_error: Called with every load failure and every query pipeline failure.
        clock: Source of ``metadata.searchTime``.
    """

    def __init__(
        self,
        loader: IndexLoader,
        *,
        default_limit: int = 50,
        suggestion_limit: int = 5,
        on_load: Callable[[CatalogMetadata | None], None] | None = None,
        on_search: Callable[[SearchResult], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.loader = loader
        self.default_limit = default_limit
        self.suggestion_limit = suggestion_limit
        self._on_load = on_load
        self._on_search = on_search
        self._on_error = on_error
        self._clock = clock
        self._load_announced = False

    @property
    def is_loaded(self) -> bool:
        return self.loader.is_loaded

    @property
    def document_count(self) -> int:
        loaded = self.loader.loaded
        return len(loaded.documents) if loaded else 0

    def get_document(self, document_id: str) -> CatalogEntry | None:
        loaded = self.loader.loaded
        if loaded is None:
            return None
        return loaded.documents.get(document_id)

    async def initialize(self) -> LoadedIndex:
        """Load the index if needed; raises ``IndexLoadError`` on failure."""
        try:
            loaded = await self.loader.initialize()
        except Exception as exc:
            logger.error("Failed to initialize search engine: %s", exc)
            self._notify_error(exc)
            raise
        if not self._load_announced:
            self._load_announced = True
            logger.info("Search engine initialized with %d documents", len(loaded.documents))
            if self._on_load is not None:
                self._on_load(loaded.catalog.metadata)
        return loaded

    async def search(self, query: str, filters: FilterInput = None, *, limit: int | None = None) -> SearchResult:
        """Run ``query`` against the index.

        Args:
            query: Query string (terms, ``prefix*``, ``field:term``, ``+term``, ``-term``, ``term^2``)
            filters: ``QueryFilter`` or its wire-format mapping
            limit: Maximum number of results; defaults to ``default_limit``, 0 or less means unlimited

        Raises:
            IndexLoadError: the index could not be loaded.
        """
        loaded = await self.initialize()
        effective_limit = self.default_limit if limit is None else limit

        with (
            operation_context("search", query=query),
            create_span("search.query", attributes={"search.query": query, "search.limit": effective_limit}) as span,
        ):
            try:
                query_filter = _coerce_filters(filters)
                hits = self._resolve_hits(loaded, query)
                filtered = apply_filters(hits, query_filter)
                returned = filtered[:effective_limit] if effective_limit > 0 else filtered
                result = SearchResult(
                    query=query,
                    results=returned,
                    total=len(returned),
                    has_results=bool(returned),
                    metadata=SearchMetadata(
                        search_time=self._clock(),
                        total_documents=len(loaded.documents),
                        total_matches=len(filtered),
                        applied_filters=query_filter.applied() if query_filter else {},
                    ),
                )
            except Exception as exc:
                logger.warning("Search failed for %r: %s", query, exc)
                span.set_attribute("search.error", str(exc))
                self._notify_error(exc)
                return SearchResult.failed(query, str(exc))

            span.set_attribute("search.results", result.total)
            logger.debug("Found %d results for %r (%d before limit)", result.total, query, len(filtered))

        if self._on_search is not None:
            self._on_search(result)
        return result

    def _resolve_hits(self, loaded: LoadedIndex, query: str) -> list[SearchHit]:
        hits: list[SearchHit] = []
        for scored in loaded.index.search(query):
            document = loaded.documents.get(scored.ref)
            if document is None:
                logger.debug("Dropping hit %s: not in catalog", scored.ref)
                continue
            hits.append(SearchHit(id=scored.ref, score=scored.score, document=document, matches=scored.matches))
        return hits

    async def get_suggestions(self, partial_query: str, limit: int | None = None) -> list[Suggestion]:
        """Titles of the best prefix matches for ``partial_query``.

        Returns an empty list before the index is loaded or for inputs shorter
        than two characters. Suggestions ignore any active filters.
        """
        partial = (partial_query or "").strip()
        if not self.is_loaded or len(partial) < SUGGESTION_MIN_LENGTH:
            return []

        result = await self.search(f"{partial}*", limit=limit or self.suggestion_limit)
        if result.error:
            return []
        return [
            Suggestion(text=hit.document.title, type=hit.document.type, url=hit.document.url) for hit in result.results
        ]

    def get_filter_options(self) -> FilterOptions:
        """Distinct filter values found in the catalog; empty until loaded."""
        loaded = self.loader.loaded
        if loaded is None:
            return FilterOptions()

        types: set[str] = set()
        categories: set[str] = set()
        difficulty: set[str] = set()
        years: set[str] = set()
        tags: set[str] = set()
        for entry in loaded.documents.values():
            types.add(entry.type)
            if entry.category:
                categories.add(entry.category)
            if entry.difficulty:
                difficulty.add(entry.difficulty)
            if entry.calendar_year:
                years.add(entry.calendar_year)
            tags.update(tag for tag in entry.tags if tag)

        return FilterOptions(
            types=sorted(types),
            categories=sorted(categories),
            difficulty=sorted(difficulty),
            years=sorted(years, reverse=True),
            quarters=list(QUARTERS),
            tags=sorted(tags),
        )

    def _notify_error(self, exc: Exception) -> None:
        if self._on_error is not None:
            self._on_error(exc)
