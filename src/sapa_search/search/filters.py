"""Predicate filtering over search hits.

Dimensions combine with AND, values inside a dimension with OR. A document that
lacks the field a present dimension targets does not match it.
"""

from __future__ import annotations

from collections.abc import Iterable

from sapa_search.domain import CatalogEntry, QueryFilter, SearchHit


def _member(value: str | None, allowed: list[str] | None) -> bool:
    if allowed is None:
        return True
    return value is not None and value in allowed


def matches_filter(document: CatalogEntry, filters: QueryFilter) -> bool:
    """Return True when ``document`` satisfies every present dimension of ``filters``."""
    if not _member(document.type, filters.types):
        return False
    if not _member(document.category, filters.categories):
        return False
    if not _member(document.difficulty, filters.difficulty):
        return False
    if not _member(document.quarter, filters.quarters):
        return False
    if not _member(document.calendar_year, filters.years):
        return False
    if filters.tags is not None and set(filters.tags).isdisjoint(document.tags):
        return False
    if filters.date_range is not None:
        parsed = document.parsed_date
        if parsed is None or not filters.date_range.contains(parsed):
            return False
    return True


def apply_filters(hits: Iterable[SearchHit], filters: QueryFilter | None) -> list[SearchHit]:
    """Keep the hits whose document passes ``filters``, preserving order."""
    hit_list = list(hits)
    if filters is None or filters.is_empty:
        return hit_list
    return [hit for hit in hit_list if matches_filter(hit.document, filters)]
