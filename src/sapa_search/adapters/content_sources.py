"""Read the structured content sources and normalize them into search documents.

Each source is a JSON object holding one list of records under a known key.
A source that cannot be read contributes no documents; the build carries on
with whatever loaded.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

import anyio
import orjson
from pydantic import ValidationError

from sapa_search.domain import DOCUMENT_TYPES, DocumentType, GlossaryTerm, Meeting, Newsletter, Resource, SearchDocument
from sapa_search.domain.sources import SourceRecord
from sapa_search.errors import SourceLoadError


logger = logging.getLogger(__name__)

SOURCE_KEYS: dict[str, str] = {
    "newsletter": "newsletters",
    "meeting": "meetings",
    "resource": "resources",
    "glossary": "terms",
}

_SOURCE_MODELS: dict[str, type[SourceRecord]] = {
    "newsletter": Newsletter,
    "meeting": Meeting,
    "resource": Resource,
    "glossary": GlossaryTerm,
}


@dataclass(frozen=True)
class ContentSource:
    """One JSON file holding records of a single document type."""

    kind: DocumentType
    path: Path
    key: str

    @property
    def model(self) -> type[SourceRecord]:
        return _SOURCE_MODELS[self.kind]


@dataclass(frozen=True)
class SourceReport:
    kind: str
    path: Path
    documents: int = 0
    skipped: int = 0
    error: str | None = None


@dataclass(frozen=True)
class ExtractionReport:
    """Documents in source order plus what happened per source."""

    documents: tuple[SearchDocument, ...]
    sources: tuple[SourceReport, ...] = field(default_factory=tuple)

    @property
    def errors(self) -> tuple[str, ...]:
        return tuple(report.error for report in self.sources if report.error)

    @property
    def skipped(self) -> int:
        return sum(report.skipped for report in self.sources)


class ContentExtractor:
    """Load newsletters, meetings, resources and glossary terms concurrently."""

    def __init__(self, sources: Sequence[ContentSource], *, meeting_default_title: str = "SAPA Meeting") -> None:
        self.sources = tuple(sources)
        self.meeting_default_title = meeting_default_title

    @classmethod
    def from_paths(cls, paths: Mapping[str, Path], *, meeting_default_title: str = "SAPA Meeting") -> ContentExtractor:
        """Build an extractor from ``{document type: path}``, ordered newsletter to glossary."""
        sources = [
            ContentSource(kind=kind, path=Path(paths[kind]), key=SOURCE_KEYS[kind])
            for kind in DOCUMENT_TYPES
            if kind in paths
        ]
        return cls(sources, meeting_default_title=meeting_default_title)

    async def extract(self) -> ExtractionReport:
        outcomes = await asyncio.gather(*(self._extract_source(source) for source in self.sources))
        documents: list[SearchDocument] = []
        reports: list[SourceReport] = []
        for source_documents, report in outcomes:
            documents.extend(source_documents)
            reports.append(report)
        logger.info(
            "Extracted %d documents from %d sources (%d skipped records)",
            len(documents),
            len(reports),
            sum(report.skipped for report in reports),
        )
        return ExtractionReport(documents=tuple(documents), sources=tuple(reports))

    async def load_records(self, source: ContentSource) -> list[Any]:
        """Return the raw record list of ``source``; raises ``SourceLoadError``."""
        try:
            async with await anyio.open_file(source.path, "rb") as fp:
                raw = await fp.read()
        except OSError as exc:
            raise SourceLoadError(str(source.path), exc.strerror or str(exc)) from exc

        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            raise SourceLoadError(str(source.path), f"invalid JSON ({exc})") from exc

        if not isinstance(payload, dict) or source.key not in payload:
            msg = f"missing '{source.key}' key"
            raise SourceLoadError(str(source.path), msg)
        records = payload[source.key]
        if not isinstance(records, list):
            msg = f"'{source.key}' is not a list"
            raise SourceLoadError(str(source.path), msg)
        return records

    def to_document(self, source: ContentSource, raw: Any) -> SearchDocument:
        """Normalize one raw record; raises ``ValidationError`` for unusable records."""
        record = source.model.model_validate(raw)
        if isinstance(record, Meeting):
            return record.to_search_document(default_title=self.meeting_default_title)
        return record.to_search_document()

    async def _extract_source(self, source: ContentSource) -> tuple[list[SearchDocument], SourceReport]:
        try:
            records = await self.load_records(source)
        except SourceLoadError as exc:
            logger.warning("Skipping %s source: %s", source.kind, exc)
            return [], SourceReport(kind=source.kind, path=source.path, error=str(exc))

        documents: list[SearchDocument] = []
        skipped = 0
        for position, raw in enumerate(records):
            try:
                documents.append(self.to_document(source, raw))
            except ValidationError as exc:
                skipped += 1
                logger.warning(
                    "Skipping invalid %s record #%d in %s: %s",
                    source.kind,
                    position,
                    source.path,
                    exc.errors()[0]["msg"] if exc.errors() else exc,
                )
        logger.debug("Loaded %d %s documents from %s", len(documents), source.kind, source.path)
        return documents, SourceReport(kind=source.kind, path=source.path, documents=len(documents), skipped=skipped)
