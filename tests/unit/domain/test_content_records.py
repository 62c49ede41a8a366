"""Unit tests for content records, search documents and the catalog."""

from __future__ import annotations

import datetime as dt

from pydantic import ValidationError
import pytest

from sapa_search.domain import (
    CatalogEntry,
    DocumentCatalog,
    GlossaryTerm,
    Meeting,
    Newsletter,
    Resource,
    SearchResult,
)


@pytest.mark.unit
class TestNewsletter:
    def test_projection(self):
        doc = Newsletter.model_validate(
            {
                "id": "2024-spring",
                "title": "Spring 2024",
                "description": "Seasonal updates",
                "publishDate": "2024-04-01",
                "year": 2024,
                "quarter": "Second",
                "highlights": ["Garden tour"],
                "featuredArticles": [{"title": "Pruning roses", "category": "gardening"}],
                "tags": ["seasonal"],
            }
        ).to_search_document()

        assert doc.id == "newsletter-2024-spring"
        assert doc.type == "newsletter"
        assert doc.url == "/newsletter.html#2024-spring"
        assert doc.summary == "Seasonal updates"
        assert doc.category == "newsletter"
        assert doc.year == "2024"
        assert doc.quarter == "Second"
        assert doc.content == "Spring 2024 Seasonal updates Garden tour Pruning roses gardening seasonal"

    def test_nulls_become_empty_values(self):
        doc = Newsletter.model_validate(
            {"id": 7, "title": None, "tags": None, "highlights": None, "featuredArticles": None}
        ).to_search_document()

        assert doc.id == "newsletter-7"
        assert doc.title == ""
        assert doc.tags == []
        assert doc.content == ""

    @pytest.mark.parametrize("record", [{}, {"id": None}, {"id": "  "}, {"id": True}])
    def test_id_is_required(self, record):
        with pytest.raises(ValidationError):
            Newsletter.model_validate(record)


@pytest.mark.unit
class TestMeeting:
    def test_title_falls_back_to_topic_then_default(self):
        with_topic = Meeting.model_validate({"id": "m1", "topic": "Propagation"})
        bare = Meeting.model_validate({"id": "m2"})

        assert with_topic.to_search_document().title == "Propagation"
        assert bare.to_search_document().title == "SAPA Meeting"
        assert bare.to_search_document(default_title="Monthly Meeting").title == "Monthly Meeting"

    def test_content_includes_presenter_location_and_agenda(self):
        doc = Meeting.model_validate(
            {
                "id": "2024-03",
                "title": "Propagation Night",
                "description": "Workshop",
                "date": "2024-03-12T19:00:00",
                "presenter": {"name": "Dana Reyes", "title": "Horticulturist"},
                "location": {"name": "Community Hall"},
                "specialNotes": ["Bring cuttings"],
                "agenda": ["Welcome", {"item": "Demo"}],
            }
        ).to_search_document()

        assert doc.url == "/meetings.html#2024-03"
        assert doc.category == "meeting"
        assert doc.content == (
            "Propagation Night Workshop Dana Reyes Horticulturist Community Hall Bring cuttings Welcome Demo"
        )

    def test_presenter_title_needs_a_name(self):
        doc = Meeting.model_validate({"id": "m", "presenter": {"title": "Guest"}}).to_search_document()

        assert "Guest" not in doc.content


@pytest.mark.unit
def test_resource_projection_prefers_slug_and_created_date():
    doc = Resource.model_validate(
        {
            "id": "r1",
            "slug": "getting-started",
            "title": "Getting Started",
            "summary": "Beginner guide",
            "content": "Basics.",
            "sections": [{"title": "Water", "content": "Weekly."}],
            "category": "plant-care",
            "difficulty": "beginner",
            "dateCreated": "2023-02-01",
            "dateUpdated": "2023-09-01",
            "tags": ["orchids"],
        }
    ).to_search_document()

    assert doc.id == "resource-r1"
    assert doc.url == "/resources.html#getting-started"
    assert doc.date == "2023-02-01"
    assert doc.difficulty == "beginner"
    assert doc.content == "Getting Started Beginner guide Basics. Water Weekly. orchids plant care"


@pytest.mark.unit
def test_glossary_projection_falls_back_to_id_and_updated_date():
    doc = GlossaryTerm.model_validate(
        {
            "id": "g1",
            "term": "Keiki",
            "definition": "Baby plant",
            "alternateNames": ["plantlet"],
            "examples": [{"description": "Grows on a stem"}],
            "dateUpdated": "2022-06-01",
        }
    ).to_search_document()

    assert doc.id == "glossary-g1"
    assert doc.title == "Keiki"
    assert doc.summary == "Baby plant"
    assert doc.url == "/glossary.html#g1"
    assert doc.date == "2022-06-01"
    assert doc.content == "Keiki Baby plant plantlet Grows on a stem"


@pytest.mark.unit
class TestCatalog:
    def test_catalog_drops_content_and_counts_types(self, sample_documents):
        catalog = DocumentCatalog.from_documents(sample_documents, build_date="2024-06-01")

        payload = catalog.to_payload()

        assert "content" not in payload["documents"][0]
        assert payload["metadata"] == {
            "totalDocuments": 6,
            "types": {"newsletter": 2, "meeting": 2, "resource": 1, "glossary": 1},
            "buildDate": "2024-06-01",
        }
        assert catalog.ids[0] == "newsletter-2024-spring"

    def test_calendar_year_and_parsed_date(self):
        entry = CatalogEntry(id="m", type="meeting", title="M", url="/m", date="2024-03-12T19:00:00")

        assert entry.calendar_year == "2024"
        assert entry.parsed_date == dt.date(2024, 3, 12)

    def test_unparseable_date(self):
        entry = CatalogEntry(id="m", type="meeting", title="M", url="/m", date="Spring 2024")

        assert entry.calendar_year is None
        assert entry.parsed_date is None


@pytest.mark.unit
def test_failed_result_envelope_serializes_with_camel_case():
    result = SearchResult.failed("author:x", "Unknown field 'author'")

    assert result.model_dump(by_alias=True) == {
        "query": "author:x",
        "results": [],
        "total": 0,
        "hasResults": False,
        "metadata": None,
        "error": "Unknown field 'author'",
    }
