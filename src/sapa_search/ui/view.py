"""View contract between the search controller and whatever draws the page."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, get_args

from sapa_search.domain import FilterOptions, QueryFilter, SearchHit, SearchResult, Suggestion


SearchStatus = Literal["idle", "loading", "searching", "results", "empty", "unavailable"]
SortOrder = Literal["relevance", "date-desc", "date-asc", "title"]

SORT_ORDERS: tuple[str, ...] = get_args(SortOrder)
SORT_LABELS: dict[str, str] = {
    "relevance": "Relevance",
    "date-desc": "Newest First",
    "date-asc": "Oldest First",
    "title": "Title A-Z",
}

LOADING_MESSAGE = "Loading search index..."
SEARCHING_MESSAGE = "Searching..."
UNAVAILABLE_MESSAGE = "Search functionality is temporarily unavailable."

QueryHandler = Callable[[str], None]
FilterHandler = Callable[[QueryFilter | Mapping[str, Any] | None], None]
SortHandler = Callable[[str], None]


def status_message(result: SearchResult) -> str:
    if result.error:
        return f'Search failed for "{result.query}": {result.error}'
    if result.has_results:
        noun = "result" if result.total == 1 else "results"
        return f'Found {result.total} {noun} for "{result.query}"'
    return f'No results found for "{result.query}"'


def sort_hits(hits: Iterable[SearchHit], order: str) -> list[SearchHit]:
    """Reorder hits for display; ``relevance`` keeps the engine order.

    Date orders put undated documents last. Every order is stable.
    """
    ordered = list(hits)
    if order == "title":
        ordered.sort(key=lambda hit: hit.document.title.casefold())
    elif order in ("date-desc", "date-asc"):
        dated = [hit for hit in ordered if hit.document.parsed_date is not None]
        undated = [hit for hit in ordered if hit.document.parsed_date is None]
        dated.sort(key=lambda hit: hit.document.parsed_date, reverse=order == "date-desc")
        ordered = dated + undated
    return ordered


@dataclass(frozen=True)
class ViewState:
    """Everything a view needs to draw the search area."""

    status: SearchStatus = "idle"
    query: str = ""
    message: str = ""
    result: SearchResult | None = None
    suggestions: tuple[Suggestion, ...] = ()
    show_suggestions: bool = False
    filters: QueryFilter | None = None
    filter_options: FilterOptions = field(default_factory=FilterOptions)
    filters_collapsed: bool = False
    sort: SortOrder = "relevance"


class SearchView(Protocol):
    """Surface driven by ``SearchController``.

    ``render`` receives the complete state each time. The ``on_*`` hooks
    register the controller's handlers for user input.
    """

    def render(self, state: ViewState) -> None:  # pragma: no cover - interface definition
        ...

    def on_query_change(self, handler: QueryHandler) -> None:  # pragma: no cover - interface definition
        ...

    def on_filter_change(self, handler: FilterHandler) -> None:  # pragma: no cover - interface definition
        ...

    def on_sort_change(self, handler: SortHandler) -> None:  # pragma: no cover - interface definition
        ...
