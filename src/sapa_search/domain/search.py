"""Value objects exchanged across the query surface.

Following the same conventions as the document models: immutable pydantic
models with camelCase wire names, so a ``SearchResult`` can be handed to a page
script as-is via ``model_dump(by_alias=True)``.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import Field, field_validator, model_validator

from sapa_search.domain.documents import CatalogEntry, WireModel


QUARTERS: tuple[str, ...] = ("First", "Second", "Third", "Fourth")


def _leading_date(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()[:10]
    if isinstance(value, dt.datetime):
        return value.date()
    return value


class DateRange(WireModel):
    """Inclusive date window; a missing bound is open."""

    from_: dt.date | None = Field(default=None, alias="from")
    to: dt.date | None = None

    @field_validator("from_", "to", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        return _leading_date(value) or None

    @model_validator(mode="after")
    def _check_bounds(self) -> DateRange:
        if self.from_ is None and self.to is None:
            msg = "dateRange requires at least one of 'from' or 'to'"
            raise ValueError(msg)
        if self.from_ is not None and self.to is not None and self.from_ > self.to:
            msg = f"dateRange 'from' ({self.from_}) is after 'to' ({self.to})"
            raise ValueError(msg)
        return self

    def contains(self, value: dt.date) -> bool:
        if self.from_ is not None and value < self.from_:
            return False
        return not (self.to is not None and value > self.to)


class QueryFilter(WireModel):
    """Caller-supplied predicates. ``None`` (or an empty list) means no constraint."""

    types: list[str] | None = None
    categories: list[str] | None = None
    difficulty: list[str] | None = None
    date_range: DateRange | None = None
    tags: list[str] | None = None
    years: list[str] | None = None
    quarters: list[str] | None = None

    @field_validator("types", "categories", "difficulty", "tags", "quarters", "years", mode="before")
    @classmethod
    def _empty_means_absent(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (str, int)):
            value = [value]
        items = [str(item) for item in value if item is not None and str(item) != ""]
        return items or None

    @property
    def is_empty(self) -> bool:
        return not self.applied()

    def applied(self) -> dict[str, Any]:
        """Present dimensions only, in wire format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SearchHit(WireModel):
    id: str
    score: float
    document: CatalogEntry
    matches: dict[str, list[str]] = Field(default_factory=dict)


class SearchMetadata(WireModel):
    search_time: dt.datetime
    total_documents: int
    total_matches: int
    applied_filters: dict[str, Any] = Field(default_factory=dict)


class SearchResult(WireModel):
    """Envelope returned by every search, including failed ones."""

    query: str
    results: list[SearchHit] = Field(default_factory=list)
    total: int = 0
    has_results: bool = False
    metadata: SearchMetadata | None = None
    error: str | None = None

    @classmethod
    def failed(cls, query: str, error: str, *, metadata: SearchMetadata | None = None) -> SearchResult:
        return cls(query=query, results=[], total=0, has_results=False, metadata=metadata, error=error)


class Suggestion(WireModel):
    text: str
    type: str
    url: str


class FilterOptions(WireModel):
    types: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    difficulty: list[str] = Field(default_factory=list)
    years: list[str] = Field(default_factory=list)
    quarters: list[str] = Field(default_factory=lambda: list(QUARTERS))
    tags: list[str] = Field(default_factory=list)
