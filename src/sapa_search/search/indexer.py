"""Publish-time index builder.

Drives extraction, indexing and persistence of the two search artifacts:

- ``search-index.json``: the serialized inverted index, compact with sorted keys
  so that unchanged content produces byte-identical output
- ``search-documents.json``: the display catalog plus build metadata
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from pathlib import Path
import shutil
from typing import Any

import anyio
import orjson

from sapa_search.adapters.content_sources import ContentExtractor
from sapa_search.domain import DOCUMENT_TYPES, DocumentCatalog, SearchDocument
from sapa_search.errors import EmptyCorpusError, IndexConsistencyError
from sapa_search.observability import create_span, operation_context
from sapa_search.search.index import IndexWriter, InvertedIndex
from sapa_search.search.schema import Schema, create_site_schema


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexingContext:
    """Immutable description of one site index build."""

    source_paths: Mapping[str, Path]
    output_dir: Path
    index_filename: str = "search-index.json"
    documents_filename: str = "search-documents.json"
    meeting_default_title: str = "SAPA Meeting"
    schema: Schema = field(default_factory=create_site_schema)

    @property
    def index_path(self) -> Path:
        return self.output_dir / self.index_filename

    @property
    def documents_path(self) -> Path:
        return self.output_dir / self.documents_filename


@dataclass(frozen=True)
class IndexBuildResult:
    """Outcome of an index build."""

    documents_indexed: int
    documents_skipped: int
    per_type: dict[str, int]
    errors: tuple[str, ...]
    index_path: Path
    documents_path: Path


@dataclass(frozen=True)
class IndexArtifacts:
    index: InvertedIndex
    catalog: DocumentCatalog
    duplicates: tuple[str, ...] = ()

    def index_bytes(self) -> bytes:
        return serialize_index(self.index)

    def catalog_bytes(self) -> bytes:
        return orjson.dumps(self.catalog.to_payload(), option=orjson.OPT_INDENT_2)


def serialize_index(index: InvertedIndex) -> bytes:
    return orjson.dumps(index.to_dict(), option=orjson.OPT_SORT_KEYS)


def build_artifacts(
    documents: Iterable[SearchDocument],
    *,
    schema: Schema | None = None,
    build_date: str | None = None,
) -> IndexArtifacts:
    """Index ``documents`` in order and derive the matching catalog.

    Later documents reusing an id are skipped. Raises ``EmptyCorpusError`` when
    nothing is left to index and ``IndexConsistencyError`` if the index refs and
    the catalog ids diverge.
    """
    writer = IndexWriter(schema or create_site_schema())
    accepted: list[SearchDocument] = []
    seen: set[str] = set()
    duplicates: list[str] = []
    for document in documents:
        if document.id in seen:
            logger.warning("Skipping duplicate document id %s", document.id)
            duplicates.append(document.id)
            continue
        seen.add(document.id)
        writer.add_document(document.index_fields())
        accepted.append(document)

    if not accepted:
        msg = "No documents were extracted from any content source"
        raise EmptyCorpusError(msg)

    index = writer.build()
    catalog = DocumentCatalog.from_documents(accepted, build_date=build_date)
    verify_consistency(index.refs, catalog.ids)
    return IndexArtifacts(index=index, catalog=catalog, duplicates=tuple(duplicates))


def verify_consistency(refs: list[str], catalog_ids: list[str]) -> None:
    """Every index ref must resolve to exactly one catalog entry and vice versa."""
    ref_counts = Counter(refs)
    id_counts = Counter(catalog_ids)
    repeated = sorted({key for key, count in (*ref_counts.items(), *id_counts.items()) if count > 1})
    orphan_refs = sorted(set(ref_counts) - set(id_counts))
    unindexed = sorted(set(id_counts) - set(ref_counts))
    if repeated or orphan_refs or unindexed:
        msg = (
            "Index and catalog are inconsistent: "
            f"repeated={repeated[:5]} orphan_refs={orphan_refs[:5]} unindexed={unindexed[:5]}"
        )
        raise IndexConsistencyError(msg)


class SearchIndexBuilder:
    """Coordinate extraction, indexing and artifact persistence."""

    def __init__(self, context: IndexingContext, *, extractor: ContentExtractor | None = None) -> None:
        self.context = context
        self.extractor = extractor or ContentExtractor.from_paths(
            context.source_paths,
            meeting_default_title=context.meeting_default_title,
        )

    async def build(self, *, build_date: str | None = None) -> IndexBuildResult:
        """Extract every source, index the documents and write both artifacts.

        Args:
            build_date: Value recorded in the catalog metadata. Defaults to the
                current UTC time; pass a fixed value for reproducible catalogs.
        """
        with (
            operation_context("build_index"),
            create_span("search.build_index", attributes={"search.output_dir": str(self.context.output_dir)}) as span,
        ):
            report = await self.extractor.extract()
            artifacts = build_artifacts(
                report.documents,
                schema=self.context.schema,
                build_date=build_date or datetime.now(timezone.utc).isoformat(),
            )

            await _write_atomic(self.context.index_path, artifacts.index_bytes())
            await _write_atomic(self.context.documents_path, artifacts.catalog_bytes())

            per_type = dict(artifacts.catalog.metadata.types) if artifacts.catalog.metadata else {}
            documents_indexed = artifacts.index.document_count
            span.set_attribute("search.documents_indexed", documents_indexed)
            logger.info(
                "Search index built: %d documents (%s) -> %s",
                documents_indexed,
                ", ".join(f"{doc_type}={per_type.get(doc_type, 0)}" for doc_type in DOCUMENT_TYPES),
                self.context.output_dir,
            )
            return IndexBuildResult(
                documents_indexed=documents_indexed,
                documents_skipped=report.skipped + len(artifacts.duplicates),
                per_type=per_type,
                errors=report.errors,
                index_path=self.context.index_path,
                documents_path=self.context.documents_path,
            )


async def _write_atomic(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    async with await anyio.open_file(tmp_path, "wb") as fp:
        await fp.write(payload)
    await anyio.to_thread.run_sync(shutil.move, str(tmp_path), str(path))


async def read_json(path: Path) -> Any:
    """Read and decode a JSON artifact written by the builder."""
    async with await anyio.open_file(path, "rb") as fp:
        return orjson.loads(await fp.read())
