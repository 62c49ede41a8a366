"""Search UI controller.

Connects a ``SearchView`` to the ``SearchEngine``:

- typing is debounced before a search is dispatched
- every dispatch carries a generation token and only the response holding the
  latest token is rendered, so a slow earlier query never overwrites a newer one
- suggestions are fetched for inputs of two characters or more and guarded the
  same way
- filter changes re-run the active query immediately; invalid filters are
  reported and the previous ones kept
- sort changes only reorder the rendered results
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Mapping
from dataclasses import replace
import logging
from typing import Any

from pydantic import ValidationError

from sapa_search.adapters.index_loader import INDEX_UNAVAILABLE_ERRORS
from sapa_search.domain import QueryFilter, Suggestion
from sapa_search.service_layer.search_engine import SearchEngine
from sapa_search.ui.view import (
    LOADING_MESSAGE,
    SEARCHING_MESSAGE,
    SORT_ORDERS,
    UNAVAILABLE_MESSAGE,
    SearchView,
    ViewState,
    status_message,
)


logger = logging.getLogger(__name__)

SUGGESTION_MIN_LENGTH = 2


class SearchController:
    def __init__(
        self,
        engine: SearchEngine,
        view: SearchView,
        *,
        debounce_seconds: float = 0.3,
        show_suggestions: bool = True,
        suggestion_limit: int | None = None,
    ) -> None:
        self.engine = engine
        self.view = view
        self.debounce_seconds = debounce_seconds
        self.show_suggestions = show_suggestions
        self.suggestion_limit = suggestion_limit
        self.state = ViewState()
        self._generation = 0
        self._suggestion_generation = 0
        self._debounce_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        view.on_query_change(self.handle_query_change)
        view.on_filter_change(self.handle_filter_change)
        view.on_sort_change(self.handle_sort_change)

    @property
    def active_query(self) -> str:
        return self.state.query.strip()

    @property
    def generation(self) -> int:
        return self._generation

    async def start(self, initial_query: str | None = None) -> bool:
        """Load the index and draw the initial state.

        Returns False (after rendering the unavailable state) when loading fails.
        """
        self._render(status="loading", message=LOADING_MESSAGE)
        try:
            await self.engine.initialize()
        except INDEX_UNAVAILABLE_ERRORS as exc:
            logger.warning("Search unavailable: %s", exc)
            self._render(status="unavailable", message=UNAVAILABLE_MESSAGE)
            return False

        self._render(status="idle", message="", filter_options=self.engine.get_filter_options())
        if initial_query and initial_query.strip():
            await self.submit(initial_query)
        return True

    def handle_query_change(self, text: str) -> None:
        """Input callback: debounce a search and refresh suggestions."""
        self._cancel_debounce()
        token = self._next_generation()
        query = text.strip()
        if not query:
            self._suggestion_generation += 1
            self._render(query=text, status="idle", message="", result=None, suggestions=(), show_suggestions=False)
            return

        self.state = replace(self.state, query=text)
        self._debounce_task = self._spawn(self._debounced_dispatch(query, token))

        if self.show_suggestions and len(query) >= SUGGESTION_MIN_LENGTH:
            suggestion_token = self._next_suggestion_generation()
            self._spawn(self._refresh_suggestions(query, suggestion_token))
        else:
            self.dismiss_suggestions()

    async def submit(self, query: str | None = None) -> None:
        """Search right away (Enter key or search button)."""
        if query is not None:
            self.state = replace(self.state, query=query)
        text = self.active_query
        if not text:
            return
        self._cancel_debounce()
        self.dismiss_suggestions()
        await self._dispatch(text, self._next_generation())

    def handle_filter_change(self, filters: QueryFilter | Mapping[str, Any] | None) -> None:
        """Filter-control callback: store the filters and re-run the active query."""
        if filters is not None and not isinstance(filters, QueryFilter):
            try:
                filters = QueryFilter.model_validate(dict(filters))
            except ValidationError as exc:
                reason = exc.errors()[0]["msg"]
                logger.warning("Ignoring invalid filters: %s", reason)
                self._render(status="empty", message=f"Invalid filters: {reason}", result=None)
                return
        if filters is not None and filters.is_empty:
            filters = None
        self._render(filters=filters)
        self._rerun_active_query()

    def handle_sort_change(self, order: str) -> None:
        """Sort-control callback: reorder the shown results without searching again."""
        if order not in SORT_ORDERS:
            logger.warning("Unknown sort order %r, using relevance", order)
            order = "relevance"
        self._render(sort=order)

    def clear_filters(self) -> None:
        self._render(filters=None)
        self._rerun_active_query()

    def toggle_filters(self) -> None:
        self._render(filters_collapsed=not self.state.filters_collapsed)

    def dismiss_suggestions(self) -> None:
        self._suggestion_generation += 1
        if self.state.show_suggestions or self.state.suggestions:
            self._render(suggestions=(), show_suggestions=False)

    async def select_suggestion(self, suggestion: Suggestion) -> None:
        await self.submit(suggestion.text)

    async def drain(self) -> None:
        """Wait for every pending debounce, search and suggestion task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # --- internal helpers -------------------------------------------------

    def _rerun_active_query(self) -> None:
        query = self.active_query
        if not query:
            return
        self._cancel_debounce()
        self._spawn(self._dispatch(query, self._next_generation()))

    async def _debounced_dispatch(self, query: str, token: int) -> None:
        await asyncio.sleep(self.debounce_seconds)
        await self._dispatch(query, token)

    async def _dispatch(self, query: str, token: int) -> None:
        if token != self._generation:
            return
        self._render(status="searching", message=SEARCHING_MESSAGE)
        try:
            result = await self.engine.search(query, self.state.filters)
        except INDEX_UNAVAILABLE_ERRORS as exc:
            if token == self._generation:
                logger.warning("Search unavailable: %s", exc)
                self._render(status="unavailable", message=UNAVAILABLE_MESSAGE, result=None)
            return

        if token != self._generation:
            logger.debug("Discarding stale results for %r", query)
            return
        self._render(
            status="results" if result.has_results else "empty",
            message=status_message(result),
            result=result,
        )

    async def _refresh_suggestions(self, query: str, token: int) -> None:
        suggestions = await self.engine.get_suggestions(query, self.suggestion_limit)
        if token != self._suggestion_generation:
            return
        self._render(suggestions=tuple(suggestions), show_suggestions=bool(suggestions))

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _next_suggestion_generation(self) -> int:
        self._suggestion_generation += 1
        return self._suggestion_generation

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Search UI task failed: %s", exc, exc_info=exc)

    def _render(self, **changes: Any) -> None:
        self.state = replace(self.state, **changes)
        self.view.render(self.state)
