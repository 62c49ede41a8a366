"""Runtime loading of the search artifacts.

Resolution order:

1. ``EmbeddedSearchData`` handed to the loader (page built with ``embed``)
2. ``<base_url>/search-index.json`` and ``<base_url>/search-documents.json``,
   fetched concurrently with httpx when ``base_url`` is an http(s) URL, or read
   from disk when it is a local directory

Loading happens once. Concurrent callers of ``initialize`` await the same
in-flight task; a failed load clears the latch so the next call retries.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, Literal
from urllib.parse import urlparse

import anyio
import httpx
import orjson

from sapa_search.adapters.embedded_page import EmbeddedSearchData
from sapa_search.domain import CatalogEntry, DocumentCatalog
from sapa_search.errors import IndexLoadError
from sapa_search.observability import create_span
from sapa_search.search.index import InvertedIndex


logger = logging.getLogger(__name__)

LoadSource = Literal["embedded", "http", "filesystem"]

# Raised by ``initialize`` when the artifacts are unusable: fetch and read failures
# arrive as ``IndexLoadError``; a decodable but malformed index or catalog raises
# whatever ``InvertedIndex.load`` or pydantic raise, unchanged.
INDEX_UNAVAILABLE_ERRORS: tuple[type[Exception], ...] = (IndexLoadError, LookupError, TypeError, ValueError)


def _decode_artifact(raw: bytes, location: str) -> Any:
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        msg = f"Search data at {location} is not valid JSON: {exc}"
        raise IndexLoadError(msg) from exc


@dataclass(frozen=True)
class LoadedIndex:
    """Index plus catalog, read-only once loaded."""

    index: InvertedIndex
    catalog: DocumentCatalog
    source: LoadSource
    documents: dict[str, CatalogEntry] = field(default_factory=dict)

    @classmethod
    def from_payloads(cls, index_payload: Any, documents_payload: Any, source: LoadSource) -> LoadedIndex:
        index = InvertedIndex.load(index_payload)
        catalog = DocumentCatalog.model_validate(documents_payload)
        documents: dict[str, CatalogEntry] = {}
        for entry in catalog.documents:
            documents.setdefault(entry.id, entry)
        return cls(index=index, catalog=catalog, source=source, documents=documents)


class IndexLoader:
    """Obtain the index and catalog once and share them."""

    def __init__(
        self,
        base_url: str = "./dist/data",
        *,
        embedded: EmbeddedSearchData | None = None,
        index_filename: str = "search-index.json",
        documents_filename: str = "search-documents.json",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self.embedded = embedded
        self.index_filename = index_filename
        self.documents_filename = documents_filename
        self.timeout = timeout
        self._client = client
        self._loaded: LoadedIndex | None = None
        self._load_task: asyncio.Task[LoadedIndex] | None = None

    @property
    def is_loaded(self) -> bool:
        return self._loaded is not None

    @property
    def loaded(self) -> LoadedIndex | None:
        return self._loaded

    @property
    def is_remote(self) -> bool:
        return urlparse(self.base_url).scheme in {"http", "https"}

    async def initialize(self) -> LoadedIndex:
        """Load the artifacts, or return the already loaded ones.

        Raises:
            IndexLoadError: an artifact could not be fetched or read.
        """
        if self._loaded is not None:
            return self._loaded

        task = self._load_task
        if task is None:
            task = asyncio.create_task(self._load())
            self._load_task = task

        try:
            loaded = await asyncio.shield(task)
        except BaseException:
            if task.done() and self._load_task is task:
                self._load_task = None
            raise

        self._loaded = loaded
        return loaded

    async def _load(self) -> LoadedIndex:
        with create_span("search.load_index", attributes={"search.base_url": self.base_url}) as span:
            if self.embedded is not None:
                source: LoadSource = "embedded"
                index_payload, documents_payload = self.embedded.index, self.embedded.documents
            elif self.is_remote:
                source = "http"
                index_payload, documents_payload = await self._fetch_remote()
            else:
                source = "filesystem"
                index_payload, documents_payload = await self._read_local()

            loaded = LoadedIndex.from_payloads(index_payload, documents_payload, source)
            span.set_attribute("search.load_source", source)
            span.set_attribute("search.documents", len(loaded.documents))
            logger.info("Search index loaded from %s: %d documents", source, len(loaded.documents))
            return loaded

    def _artifact_location(self, filename: str) -> str:
        return f"{self.base_url.rstrip('/')}/{filename}"

    async def _fetch_remote(self) -> tuple[Any, Any]:
        if self._client is not None:
            return await self._fetch_pair(self._client)
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await self._fetch_pair(client)

    async def _fetch_pair(self, client: httpx.AsyncClient) -> tuple[Any, Any]:
        index_payload, documents_payload = await asyncio.gather(
            self._fetch_json(client, self._artifact_location(self.index_filename)),
            self._fetch_json(client, self._artifact_location(self.documents_filename)),
        )
        return index_payload, documents_payload

    @staticmethod
    async def _fetch_json(client: httpx.AsyncClient, url: str) -> Any:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            msg = f"Failed to load search data from {url}: HTTP {exc.response.status_code}"
            raise IndexLoadError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Failed to load search data from {url}: {exc}"
            raise IndexLoadError(msg) from exc
        return _decode_artifact(response.content, url)

    def _local_root(self) -> Path:
        parsed = urlparse(self.base_url)
        return Path(parsed.path) if parsed.scheme == "file" else Path(self.base_url)

    async def _read_local(self) -> tuple[Any, Any]:
        root = self._local_root()
        index_payload, documents_payload = await asyncio.gather(
            self._read_json(root / self.index_filename),
            self._read_json(root / self.documents_filename),
        )
        return index_payload, documents_payload

    @staticmethod
    async def _read_json(path: Path) -> Any:
        try:
            async with await anyio.open_file(path, "rb") as fp:
                raw = await fp.read()
        except OSError as exc:
            msg = f"Failed to load search data from {path}: {exc.strerror or exc}"
            raise IndexLoadError(msg) from exc
        return _decode_artifact(raw, str(path))
