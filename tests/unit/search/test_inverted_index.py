"""Unit tests for the in-memory inverted index."""

from __future__ import annotations

import orjson
import pytest

from sapa_search.errors import QueryParseError
from sapa_search.search.index import INDEX_FORMAT_VERSION, IndexWriter, InvertedIndex, build_index
from sapa_search.search.models import Posting


DOCS = [
    {"id": "a", "title": "Spring garden tour", "content": "roses and tulips", "type": "newsletter"},
    {"id": "b", "title": "Winter meeting", "content": "spring planning for the garden", "type": "meeting"},
    {"id": "c", "title": "Orchid care", "content": "potting mix", "tags": ["plant-care", "orchids"]},
]


@pytest.fixture
def index() -> InvertedIndex:
    return build_index(DOCS)


def refs(hits) -> list[str]:
    return [hit.ref for hit in hits]


@pytest.mark.unit
class TestIndexWriter:
    def test_refs_follow_insertion_order(self, index):
        assert index.refs == ["a", "b", "c"]
        assert index.document_count == 3

    def test_list_values_are_analyzed_per_element(self, index):
        assert refs(index.search("tags:care")) == ["c"]
        assert refs(index.search("tags:orchid")) == ["c"]

    def test_duplicate_ref_rejected(self):
        writer = IndexWriter()
        writer.add_document({"id": "a", "title": "One"})

        with pytest.raises(ValueError, match="Duplicate"):
            writer.add_document({"id": "a", "title": "Two"})

    def test_missing_ref_rejected(self):
        with pytest.raises(ValueError, match="missing"):
            IndexWriter().add_document({"title": "No id"})

    def test_vocabulary_is_sorted_and_stemmed(self, index):
        vocabulary = index.vocabulary

        assert vocabulary == sorted(vocabulary)
        assert "meet" in vocabulary
        assert "plan" in vocabulary
        assert "the" not in vocabulary


@pytest.mark.unit
class TestSearch:
    def test_title_matches_outrank_content_matches(self, index):
        hits = index.search("spring")

        assert refs(hits) == ["a", "b"]
        assert hits[0].score > hits[1].score
        assert hits[0].matches == {"spring": ["title"]}
        assert hits[1].matches == {"spring": ["content"]}

    def test_query_terms_are_stemmed_like_documents(self, index):
        assert refs(index.search("meetings")) == ["b"]

    def test_prefix_query(self, index):
        assert set(refs(index.search("gard*"))) == {"a", "b"}

    def test_prefix_query_uses_raw_prefix(self, index):
        assert refs(index.search("orchi*")) == ["c"]

    def test_whole_word_prefix_matches_stemmed_terms(self, index):
        assert refs(index.search("meeting*")) == ["b"]

    def test_field_restriction(self, index):
        assert refs(index.search("title:spring")) == ["a"]

    def test_required_terms_intersect(self, index):
        assert refs(index.search("+spring +tulips")) == ["a"]

    def test_prohibited_terms_subtract(self, index):
        assert refs(index.search("spring -winter")) == ["a"]

    def test_only_prohibited_clauses_match_nothing(self, index):
        assert index.search("-spring") == []

    def test_optional_terms_union(self, index):
        assert set(refs(index.search("tulips potting"))) == {"a", "c"}

    def test_clause_boost_scales_score(self, index):
        plain = index.search("title:orchid")[0].score
        boosted = index.search("title:orchid^3")[0].score

        assert boosted == pytest.approx(plain * 3)

    def test_unknown_term(self, index):
        assert index.search("volcano") == []

    def test_empty_query(self, index):
        assert index.search("") == []

    def test_parse_errors_propagate(self, index):
        with pytest.raises(QueryParseError):
            index.search("author:dana")

    def test_ties_keep_insertion_order(self):
        tied = build_index([{"id": "second", "title": "Alpha"}, {"id": "first", "title": "Alpha"}])

        hits = tied.search("alpha")

        assert refs(hits) == ["second", "first"]
        assert hits[0].score == hits[1].score


@pytest.mark.unit
class TestSerialization:
    def test_layout(self, index):
        data = index.to_dict()

        assert data["version"] == INDEX_FORMAT_VERSION
        assert data["refs"] == ["a", "b", "c"]
        assert data["schema"]["ref"] == "id"
        assert data["postings"]["title"]["spring"] == [[0, 1]]
        assert data["fieldLengths"]["title"] == [3, 2, 2]

    def test_same_input_serializes_identically(self):
        first = orjson.dumps(build_index(DOCS).to_dict(), option=orjson.OPT_SORT_KEYS)
        second = orjson.dumps(build_index(DOCS).to_dict(), option=orjson.OPT_SORT_KEYS)

        assert first == second

    def test_loaded_index_scores_like_the_original(self, index):
        restored = InvertedIndex.load(orjson.loads(orjson.dumps(index.to_dict())))

        for query in ("spring", "gard*", "+spring -winter", "tags:care"):
            original_hits = index.search(query)
            restored_hits = restored.search(query)
            assert refs(restored_hits) == refs(original_hits)
            assert [h.score for h in restored_hits] == pytest.approx([h.score for h in original_hits])

    def test_unsupported_version_rejected(self, index):
        data = {**index.to_dict(), "version": INDEX_FORMAT_VERSION + 1}

        with pytest.raises(ValueError, match="Unsupported search index version"):
            InvertedIndex.load(data)

    def test_posting_list_form(self):
        assert Posting.from_list([4, 2]) == Posting(doc=4, frequency=2)
        assert Posting(doc=4, frequency=2).to_list() == [4, 2]
