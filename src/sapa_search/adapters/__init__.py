"""Adapters layer - file, page and HTTP access for the search artifacts.

- content_sources: reads the four JSON content sources at build time
- embedded_page: inlines the artifacts into the search page
- index_loader: obtains the artifacts at runtime (embedded, HTTP or disk)
"""

from .content_sources import ContentExtractor, ContentSource, ExtractionReport
from .embedded_page import EmbeddedSearchData, embed_search_data
from .index_loader import IndexLoader, LoadedIndex


__all__ = [
    "ContentExtractor",
    "ContentSource",
    "EmbeddedSearchData",
    "ExtractionReport",
    "IndexLoader",
    "LoadedIndex",
    "embed_search_data",
]
