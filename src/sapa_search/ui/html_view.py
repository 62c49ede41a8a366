"""HTML renderer for the search area.

``HtmlSearchView`` keeps the latest markup in ``html`` each time the controller
renders; page scripts or tests feed user input back through ``type_query`` and
``change_filters``. Every value coming from content or user input is escaped;
matched query words are wrapped in ``<mark>``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from html import escape
import re
from typing import Any

from sapa_search.domain import CatalogEntry, FilterOptions, QueryFilter, SearchHit, Suggestion
from sapa_search.ui.view import SORT_LABELS, FilterHandler, QueryHandler, SortHandler, ViewState, sort_hits


DEFAULT_PLACEHOLDER = "Search newsletters, meetings, resources..."

TYPE_ICONS: dict[str, str] = {
    "newsletter": "fas fa-newspaper",
    "meeting": "fas fa-calendar",
    "resource": "fas fa-book",
    "glossary": "fas fa-book-open",
}
DEFAULT_ICON = "fas fa-file"

_WORD_START = re.compile(r"\b\w")
_QUERY_WORD = re.compile(r"\w+")


def format_label(value: str) -> str:
    """``"getting-started"`` -> ``"Getting Started"``."""
    return _WORD_START.sub(lambda m: m.group(0).upper(), value.replace("-", " "))


def type_icon(doc_type: str) -> str:
    return TYPE_ICONS.get(doc_type, DEFAULT_ICON)


def query_words(query: str) -> list[str]:
    """Words of ``query`` worth highlighting, lowercased.

    Excluded (``-term``) clauses, field prefixes, boosts and wildcards are dropped.
    """
    words: dict[str, None] = {}
    for raw in query.split():
        if raw.startswith("-"):
            continue
        body = raw.lstrip("+").rpartition(":")[2].partition("^")[0]
        for word in _QUERY_WORD.findall(body):
            if len(word) >= 2:
                words.setdefault(word.casefold())
    return list(words)


def highlight(text: str, query: str) -> str:
    """Escape ``text``, wrapping each word that starts with a query word in ``<mark>``."""
    words = query_words(query)
    if not words:
        return escape(text)
    alternatives = "|".join(re.escape(word) for word in sorted(words, key=len, reverse=True))
    pattern = re.compile(rf"\b(?:{alternatives})", re.IGNORECASE)
    pieces: list[str] = []
    last = 0
    for match in pattern.finditer(text):
        pieces.append(escape(text[last : match.start()]))
        pieces.append(f"<mark>{escape(match.group(0))}</mark>")
        last = match.end()
    pieces.append(escape(text[last:]))
    return "".join(pieces)


def format_date(entry: CatalogEntry) -> str:
    parsed = entry.parsed_date
    if parsed is None:
        return ""
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def _select(name: str, all_label: str, values: Iterable[str], selected: list[str] | None) -> str:
    chosen = set(selected or ())
    options = [f'<option value="">{escape(all_label)}</option>']
    for value in values:
        marker = " selected" if value in chosen else ""
        options.append(f'<option value="{escape(value)}"{marker}>{escape(format_label(value))}</option>')
    return (
        f'<div class="filter-group"><label for="filter-{name}">{escape(format_label(name))}:</label>'
        f'<select class="filter-select" id="filter-{name}" data-filter="{name}">{"".join(options)}</select></div>'
    )


def render_filters(options: FilterOptions, filters: QueryFilter | None, *, collapsed: bool) -> str:
    active = filters or QueryFilter()
    date_range = active.date_range
    date_from = date_range.from_.isoformat() if date_range and date_range.from_ else ""
    date_to = date_range.to.isoformat() if date_range and date_range.to else ""
    controls = [
        _select("type", "All Types", options.types, active.types),
        _select("category", "All Categories", options.categories, active.categories),
        _select("difficulty", "All Levels", options.difficulty, active.difficulty),
        _select("year", "All Years", options.years, active.years),
        _select("quarter", "All Quarters", options.quarters, active.quarters),
        _select("tag", "All Tags", options.tags, active.tags),
        '<div class="filter-group"><label>Dates:</label>'
        f'<input type="date" class="filter-date" data-filter="from" value="{escape(date_from)}">'
        f'<input type="date" class="filter-date" data-filter="to" value="{escape(date_to)}"></div>',
        '<button class="clear-filters-button" type="button">Clear Filters</button>',
    ]
    state = "collapsed" if collapsed else "expanded"
    return (
        f'<button class="toggle-filters-button" type="button" aria-expanded="{str(not collapsed).lower()}">'
        "Filters</button>"
        f'<div class="search-filters {state}">{"".join(controls)}</div>'
    )


def render_result(hit: SearchHit, query: str = "") -> str:
    doc = hit.document
    meta = [f'<span class="search-result-type">{escape(format_label(doc.type))}</span>']
    if doc.category:
        meta.append(f'<span class="search-result-category">{escape(format_label(doc.category))}</span>')
    if doc.difficulty:
        difficulty = escape(doc.difficulty)
        meta.append(f'<span class="search-result-difficulty difficulty-{difficulty}">{difficulty}</span>')
    formatted_date = format_date(doc)
    if formatted_date:
        meta.append(f'<span class="search-result-date">{escape(formatted_date)}</span>')
    tags = ""
    if doc.tags:
        tags = '<div class="search-result-tags">' + "".join(f'<span class="tag">{escape(t)}</span>' for t in doc.tags)
        tags += "</div>"
    return (
        f'<div class="search-result-item" data-type="{escape(doc.type)}">'
        '<div class="search-result-header"><h3 class="search-result-title">'
        f'<i class="{type_icon(doc.type)}"></i><a href="{escape(doc.url)}">{highlight(doc.title, query)}</a></h3>'
        f'<div class="search-result-meta">{"".join(meta)}</div></div>'
        f'<p class="search-result-summary">{highlight(doc.summary, query)}</p>'
        f"{tags}"
        f'<div class="search-result-score">Relevance: {hit.score:.2f}</div>'
        "</div>"
    )


def render_suggestions(suggestions: Iterable[Suggestion], *, visible: bool, query: str = "") -> str:
    items = "".join(
        f'<div class="search-suggestion" data-url="{escape(s.url)}">'
        f'<i class="{type_icon(s.type)}"></i><span>{highlight(s.text, query)}</span></div>'
        for s in suggestions
    )
    style = "" if visible and items else ' style="display: none;"'
    return f'<div class="search-suggestions"{style}>{items}</div>'


def render_sort(order: str) -> str:
    options = "".join(
        f'<option value="{value}"{" selected" if value == order else ""}>{escape(label)}</option>'
        for value, label in SORT_LABELS.items()
    )
    return (
        '<div class="search-sort"><label for="sort-filter">Sort By:</label>'
        f'<select id="sort-filter" data-sort="true">{options}</select></div>'
    )


def render_search_html(state: ViewState, *, placeholder: str = DEFAULT_PLACEHOLDER, show_filters: bool = True) -> str:
    """Render the whole search container for ``state``."""
    results = ""
    sort_control = ""
    if state.result is not None and state.result.has_results:
        hits = sort_hits(state.result.results, state.sort)
        results = "".join(render_result(hit, state.result.query) for hit in hits)
        sort_control = render_sort(state.sort)
    filters_html = ""
    if show_filters:
        filters_html = render_filters(state.filter_options, state.filters, collapsed=state.filters_collapsed)
    status = ""
    if state.message:
        status = f'<div class="search-{escape(state.status)}">{escape(state.message)}</div>'
    suggestions = render_suggestions(state.suggestions, visible=state.show_suggestions, query=state.query)
    return (
        '<div class="search-container">'
        '<div class="search-input-wrapper">'
        f'<input type="search" class="search-input" placeholder="{escape(placeholder)}" '
        f'value="{escape(state.query)}" autocomplete="off" spellcheck="false">'
        '<button class="search-button" type="button"><i class="fas fa-search"></i></button>'
        f"{suggestions}"
        "</div>"
        f"{filters_html}"
        '<div class="search-results">'
        f'<div class="search-status" data-status="{escape(state.status)}">{status}</div>'
        f"{sort_control}"
        f'<div class="search-results-list">{results}</div>'
        "</div>"
        "</div>"
    )


class HtmlSearchView:
    """``SearchView`` that renders to an HTML string."""

    def __init__(self, *, placeholder: str = DEFAULT_PLACEHOLDER, show_filters: bool = True) -> None:
        self.placeholder = placeholder
        self.show_filters = show_filters
        self.html = ""
        self.state: ViewState | None = None
        self.render_count = 0
        self._query_handlers: list[QueryHandler] = []
        self._filter_handlers: list[FilterHandler] = []
        self._sort_handlers: list[SortHandler] = []

    def render(self, state: ViewState) -> None:
        self.state = state
        self.html = render_search_html(state, placeholder=self.placeholder, show_filters=self.show_filters)
        self.render_count += 1

    def on_query_change(self, handler: QueryHandler) -> None:
        self._query_handlers.append(handler)

    def on_filter_change(self, handler: FilterHandler) -> None:
        self._filter_handlers.append(handler)

    def on_sort_change(self, handler: SortHandler) -> None:
        self._sort_handlers.append(handler)

    def type_query(self, text: str) -> None:
        for handler in self._query_handlers:
            handler(text)

    def change_filters(self, filters: QueryFilter | Mapping[str, Any] | None) -> None:
        for handler in self._filter_handlers:
            handler(filters)

    def change_sort(self, order: str) -> None:
        for handler in self._sort_handlers:
            handler(order)
