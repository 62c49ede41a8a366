"""Searchable documents and the display catalog built from them.

A ``SearchDocument`` is the flattened projection of one content record. The
``CatalogEntry`` is the same document without its indexing-only ``content`` and
is what search results carry back to the page.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
import datetime as dt
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


DocumentType = Literal["newsletter", "meeting", "resource", "glossary"]
DOCUMENT_TYPES: tuple[DocumentType, ...] = ("newsletter", "meeting", "resource", "glossary")

_YEAR_PATTERN = re.compile(r"^(\d{4})")


class WireModel(BaseModel):
    """Immutable model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class CatalogEntry(WireModel):
    """Display-oriented projection of a document."""

    id: str
    type: DocumentType
    title: str
    summary: str = ""
    url: str
    date: str | None = None
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    difficulty: str | None = None
    quarter: str | None = None
    year: str | None = None

    @property
    def calendar_year(self) -> str | None:
        """Year of ``date`` as written, without timezone normalization."""
        if not self.date:
            return None
        match = _YEAR_PATTERN.match(self.date.strip())
        return match.group(1) if match else None

    @property
    def parsed_date(self) -> dt.date | None:
        if not self.date:
            return None
        try:
            return dt.date.fromisoformat(self.date.strip()[:10])
        except ValueError:
            return None


class SearchDocument(CatalogEntry):
    """Flattened, indexable document. ``content`` is never displayed."""

    content: str = ""

    def to_catalog_entry(self) -> CatalogEntry:
        return CatalogEntry.model_validate(self.model_dump(exclude={"content"}))

    def index_fields(self) -> dict[str, Any]:
        """Values fed to the inverted index, keyed by schema field name."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "summary": self.summary,
            "tags": list(self.tags),
            "category": self.category,
            "type": self.type,
        }


class CatalogMetadata(WireModel):
    total_documents: int
    types: dict[str, int]
    build_date: str | None = None


class DocumentCatalog(WireModel):
    """Catalog artifact: the documents shown in results plus build metadata."""

    documents: list[CatalogEntry]
    metadata: CatalogMetadata | None = None

    @classmethod
    def from_documents(cls, documents: Iterable[SearchDocument], *, build_date: str | None = None) -> DocumentCatalog:
        entries = [doc.to_catalog_entry() for doc in documents]
        counts = Counter(entry.type for entry in entries)
        metadata = CatalogMetadata(
            total_documents=len(entries),
            types={doc_type: counts.get(doc_type, 0) for doc_type in DOCUMENT_TYPES},
            build_date=build_date,
        )
        return cls(documents=entries, metadata=metadata)

    @property
    def ids(self) -> list[str]:
        return [entry.id for entry in self.documents]

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready payload written to ``search-documents.json``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
