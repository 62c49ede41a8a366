"""Service layer - runtime query orchestration over the loaded index."""

from .search_engine import SearchEngine


__all__ = ["SearchEngine"]
