"""Inline the search artifacts into the search page for offline use.

The data lands in a marked ``<script>`` block so that embedding again replaces
it instead of stacking a second copy::

    <!-- sapa-search:embedded-data:start -->
    <script>
    window.SEARCH_INDEX_DATA = {...};
    window.SEARCH_DOCUMENTS_DATA = {...};
    </script>
    <!-- sapa-search:embedded-data:end -->

Each payload is compact JSON on a single line with every ``<`` written as
``\\u003c``, so no payload can close the script element early.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import re
import shutil
from typing import Any

import anyio
import orjson


logger = logging.getLogger(__name__)

BLOCK_START = "<!-- sapa-search:embedded-data:start -->"
BLOCK_END = "<!-- sapa-search:embedded-data:end -->"
SEARCH_SCRIPT_MARKER = "<!-- Search functionality -->"
INDEX_GLOBAL = "window.SEARCH_INDEX_DATA"
DOCUMENTS_GLOBAL = "window.SEARCH_DOCUMENTS_DATA"

_BLOCK_PATTERN = re.compile(re.escape(BLOCK_START) + r".*?" + re.escape(BLOCK_END) + r"\n?", re.DOTALL)


def _script_json(payload: Any) -> str:
    return orjson.dumps(payload).decode("utf-8").replace("<", "\\u003c")


def render_block(index_payload: Any, documents_payload: Any) -> str:
    return (
        f"{BLOCK_START}\n"
        "<script>\n"
        f"{INDEX_GLOBAL} = {_script_json(index_payload)};\n"
        f"{DOCUMENTS_GLOBAL} = {_script_json(documents_payload)};\n"
        "</script>\n"
        f"{BLOCK_END}\n"
    )


def strip_embedded_data(page_html: str) -> str:
    """Remove a previously embedded block, if any."""
    return _BLOCK_PATTERN.sub("", page_html)


def embed_search_data(page_html: str, index_payload: Any, documents_payload: Any) -> str:
    """Return ``page_html`` with both payloads inlined.

    The block goes right before the ``<!-- Search functionality -->`` marker, else
    before ``</body>``, else at the end of the page.
    """
    html = strip_embedded_data(page_html)
    block = render_block(index_payload, documents_payload)
    for anchor in (SEARCH_SCRIPT_MARKER, "</body>"):
        position = html.find(anchor)
        if position != -1:
            return html[:position] + block + html[position:]
    return html + block


@dataclass(frozen=True)
class EmbeddedSearchData:
    """Payloads recovered from a page, ready for ``IndexLoader``."""

    index: dict[str, Any]
    documents: dict[str, Any]

    @classmethod
    def from_html(cls, page_html: str) -> EmbeddedSearchData | None:
        match = _BLOCK_PATTERN.search(page_html)
        if match is None:
            return None
        values: dict[str, Any] = {}
        for line in match.group(0).splitlines():
            for name in (INDEX_GLOBAL, DOCUMENTS_GLOBAL):
                prefix = f"{name} = "
                if line.startswith(prefix) and line.endswith(";"):
                    values[name] = orjson.loads(line[len(prefix) : -1])
        if INDEX_GLOBAL not in values or DOCUMENTS_GLOBAL not in values:
            logger.warning("Embedded search block found but incomplete; ignoring it")
            return None
        return cls(index=values[INDEX_GLOBAL], documents=values[DOCUMENTS_GLOBAL])

    @classmethod
    async def from_page(cls, page_path: Path) -> EmbeddedSearchData | None:
        async with await anyio.open_file(page_path, encoding="utf-8") as fp:
            return cls.from_html(await fp.read())


async def embed_into_page(page_path: Path, index_path: Path, documents_path: Path) -> int:
    """Embed the artifacts at ``index_path``/``documents_path`` into ``page_path``.

    Returns the size in bytes of the rewritten page. Missing files raise
    ``FileNotFoundError``.
    """
    async with await anyio.open_file(index_path, "rb") as fp:
        index_payload = orjson.loads(await fp.read())
    async with await anyio.open_file(documents_path, "rb") as fp:
        documents_payload = orjson.loads(await fp.read())
    async with await anyio.open_file(page_path, encoding="utf-8") as fp:
        page_html = await fp.read()

    updated = embed_search_data(page_html, index_payload, documents_payload)
    tmp_path = page_path.with_suffix(page_path.suffix + ".tmp")
    async with await anyio.open_file(tmp_path, "w", encoding="utf-8") as fp:
        await fp.write(updated)
    await anyio.to_thread.run_sync(shutil.move, str(tmp_path), str(page_path))
    logger.info("Embedded search data into %s (%d bytes)", page_path, len(updated.encode("utf-8")))
    return len(updated.encode("utf-8"))
