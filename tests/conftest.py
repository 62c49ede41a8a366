"""Shared test fixtures: sample content sources, built artifacts and engines."""

from __future__ import annotations

import os
from pathlib import Path

import orjson
import pytest

from sapa_search.adapters.embedded_page import EmbeddedSearchData
from sapa_search.adapters.index_loader import IndexLoader
from sapa_search.domain import GlossaryTerm, Meeting, Newsletter, Resource, SearchDocument
from sapa_search.search.indexer import IndexArtifacts, build_artifacts
from sapa_search.service_layer.search_engine import SearchEngine


BUILD_DATE = "2024-06-01T00:00:00+00:00"

NEWSLETTERS = [
    {
        "id": "2024-spring",
        "title": "Spring 2024 Newsletter",
        "description": "Seasonal updates for members",
        "publishDate": "2024-04-01",
        "year": "2024",
        "quarter": "Second",
        "highlights": ["Garden tour recap", "New member welcome"],
        "featuredArticles": [{"title": "Pruning roses", "category": "gardening"}],
        "tags": ["seasonal", "garden"],
    },
    {
        "id": "2023-fall",
        "title": "Fall 2023 Newsletter",
        "description": "Autumn news and the holiday potluck",
        "publishDate": "2023-10-01",
        "year": "2023",
        "quarter": "Fourth",
        "tags": ["seasonal"],
    },
]

MEETINGS = [
    {
        "id": "2024-03",
        "topic": "Succulent Propagation",
        "description": "Hands-on propagation workshop",
        "date": "2024-03-12T19:00:00",
        "presenter": {"name": "Dana Reyes", "title": "Horticulturist"},
        "location": {"name": "Community Hall"},
        "agenda": ["Welcome", {"item": "Propagation demo"}],
        "tags": ["workshop"],
    },
    {
        "id": "2024-05",
        "description": "General business meeting",
        "date": "2024-05-14",
    },
]

RESOURCES = [
    {
        "id": "r1",
        "slug": "getting-started",
        "title": "Getting Started with Orchids",
        "summary": "Beginner guide to orchid care",
        "content": "Orchid care basics: light, water and potting mix.",
        "sections": [{"title": "Watering", "content": "Water weekly."}],
        "category": "plant-care",
        "difficulty": "beginner",
        "dateCreated": "2023-02-01",
        "tags": ["orchids", "beginner"],
    },
]

GLOSSARY = [
    {
        "id": "g1",
        "slug": "keiki",
        "term": "Keiki",
        "definition": "A baby plant growing on an orchid stem",
        "alternateNames": ["plantlet"],
        "category": "orchid-terms",
        "difficulty": "intermediate",
        "dateAdded": "2022-06-01",
        "tags": ["orchids"],
    },
]


def write_json(path: Path, payload: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(payload))
    return path


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep developer ``SAPA_SEARCH_*`` variables out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("SAPA_SEARCH_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Content sources laid out at their default relative paths."""
    root = tmp_path / "data"
    write_json(root / "newsletters" / "newsletters.json", {"newsletters": NEWSLETTERS})
    write_json(root / "meetings" / "meetings.json", {"meetings": MEETINGS})
    write_json(root / "members" / "resources.json", {"resources": RESOURCES})
    write_json(root / "glossary" / "glossary.json", {"terms": GLOSSARY})
    return root


@pytest.fixture
def source_paths(data_dir: Path) -> dict[str, Path]:
    return {
        "newsletter": data_dir / "newsletters" / "newsletters.json",
        "meeting": data_dir / "meetings" / "meetings.json",
        "resource": data_dir / "members" / "resources.json",
        "glossary": data_dir / "glossary" / "glossary.json",
    }


@pytest.fixture
def sample_documents() -> list[SearchDocument]:
    """The sample records flattened in source order."""
    return [
        *(Newsletter.model_validate(raw).to_search_document() for raw in NEWSLETTERS),
        *(Meeting.model_validate(raw).to_search_document() for raw in MEETINGS),
        *(Resource.model_validate(raw).to_search_document() for raw in RESOURCES),
        *(GlossaryTerm.model_validate(raw).to_search_document() for raw in GLOSSARY),
    ]


@pytest.fixture
def artifacts(sample_documents: list[SearchDocument]) -> IndexArtifacts:
    return build_artifacts(sample_documents, build_date=BUILD_DATE)


@pytest.fixture
def artifacts_dir(tmp_path: Path, artifacts: IndexArtifacts) -> Path:
    """Directory holding ``search-index.json`` and ``search-documents.json``."""
    output = tmp_path / "dist" / "data"
    output.mkdir(parents=True)
    (output / "search-index.json").write_bytes(artifacts.index_bytes())
    (output / "search-documents.json").write_bytes(artifacts.catalog_bytes())
    return output


@pytest.fixture
def embedded_data(artifacts: IndexArtifacts) -> EmbeddedSearchData:
    return EmbeddedSearchData(
        index=orjson.loads(artifacts.index_bytes()),
        documents=orjson.loads(artifacts.catalog_bytes()),
    )


@pytest.fixture
def engine(embedded_data: EmbeddedSearchData) -> SearchEngine:
    """Engine over the sample corpus, loaded lazily from embedded data."""
    return SearchEngine(IndexLoader(embedded=embedded_data))
