"""Domain layer - content records, searchable documents and query value objects.

No infrastructure dependencies live here: no HTTP clients, no file access.
"""

from sapa_search.domain.documents import (
    DOCUMENT_TYPES,
    CatalogEntry,
    CatalogMetadata,
    DocumentCatalog,
    DocumentType,
    SearchDocument,
)
from sapa_search.domain.search import (
    QUARTERS,
    DateRange,
    FilterOptions,
    QueryFilter,
    SearchHit,
    SearchMetadata,
    SearchResult,
    Suggestion,
)
from sapa_search.domain.sources import GlossaryTerm, Meeting, Newsletter, Resource, SourceRecord


__all__ = [
    "DOCUMENT_TYPES",
    "QUARTERS",
    "CatalogEntry",
    "CatalogMetadata",
    "DateRange",
    "DocumentCatalog",
    "DocumentType",
    "FilterOptions",
    "GlossaryTerm",
    "Meeting",
    "Newsletter",
    "QueryFilter",
    "Resource",
    "SearchDocument",
    "SearchHit",
    "SearchMetadata",
    "SearchResult",
    "SourceRecord",
    "Suggestion",
]
