"""Unit tests for schema definitions and BM25 helpers."""

import math

import pytest

from sapa_search.search.schema import KeywordField, Schema, SchemaField, TextField, create_site_schema
from sapa_search.search.stats import bm25_term_weight, inverse_document_frequency, summarize_field_lengths


@pytest.mark.unit
class TestSiteSchema:
    def test_searchable_fields_in_declaration_order(self):
        schema = create_site_schema()

        assert schema.searchable_names == ["title", "content", "summary", "tags", "category", "type"]
        assert schema.ref_field == "id"
        assert "id" in schema
        assert isinstance(schema["id"], KeywordField)

    def test_boosts(self):
        schema = create_site_schema()

        assert [schema.get_boost(name) for name in schema.searchable_names] == [10.0, 5.0, 3.0, 2.0, 1.0, 1.0]
        assert schema.get_boost("missing") == 1.0

    def test_round_trips_through_dict(self):
        schema = create_site_schema()

        restored = Schema.from_dict(schema.to_dict())

        assert restored.searchable_names == schema.searchable_names
        assert [f.boost for f in restored] == [f.boost for f in schema]
        assert restored.to_dict() == schema.to_dict()

    def test_text_field_keeps_analyzer_name(self):
        field = SchemaField.from_dict(TextField("title", analyzer_name="keyword").to_dict())

        assert isinstance(field, TextField)
        assert field.analyzer_name == "keyword"


@pytest.mark.unit
class TestSchemaValidation:
    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="unique"):
            Schema(fields=[KeywordField("id"), TextField("title"), TextField("title")])

    def test_missing_ref_field_rejected(self):
        with pytest.raises(ValueError, match="Reference field"):
            Schema(fields=[TextField("title")], ref_field="id")

    def test_unknown_field_kind_rejected(self):
        with pytest.raises(ValueError, match="Unknown field kind"):
            SchemaField.from_dict({"name": "x", "kind": "vector"})

    def test_unindexed_text_field_is_not_searchable(self):
        schema = Schema(fields=[KeywordField("id"), TextField("title"), TextField("notes", indexed=False)])

        assert schema.searchable_names == ["title"]


@pytest.mark.unit
class TestScoringHelpers:
    def test_idf_formula(self):
        assert inverse_document_frequency(1, 10) == pytest.approx(math.log(1 + 9.5 / 1.5))

    def test_idf_stays_positive_for_ubiquitous_terms(self):
        assert inverse_document_frequency(10, 10) > 0

    def test_idf_of_empty_corpus_is_zero(self):
        assert inverse_document_frequency(0, 0) == 0.0

    def test_rarer_terms_weigh_more(self):
        assert inverse_document_frequency(1, 100) > inverse_document_frequency(50, 100)

    def test_bm25_average_length_document(self):
        # tf=1 at average length: (1 * 2.2) / (1 + 1.2) == 1
        assert bm25_term_weight(1, 5, 5.0) == pytest.approx(1.0)

    def test_bm25_penalizes_longer_documents(self):
        assert bm25_term_weight(1, 20, 5.0) < bm25_term_weight(1, 5, 5.0)

    def test_bm25_zero_frequency(self):
        assert bm25_term_weight(0, 5, 5.0) == 0.0

    def test_field_length_stats(self):
        stats = summarize_field_lengths({"title": {"a": 3, "b": 1}, "tags": {}})

        assert stats["title"].mean_length == 2.0
        assert stats["tags"].mean_length == 0.0
