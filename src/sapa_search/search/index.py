"""In-memory inverted index with BM25 field scoring.

The engine only relies on the narrow ``FullTextIndex`` surface: ``search``,
``refs`` and ``to_dict`` plus ``InvertedIndex.load`` to revive a serialized
index. Everything about postings and scoring stays in this module.

Serialized layout (all keys sorted on write)::

    {
      "version": 1,
      "schema": {"ref": "id", "fields": [...]},
      "refs": ["newsletter-1", ...],                # insertion order
      "fieldLengths": {"title": [3, 5, ...], ...},   # tokens per ref, by position
      "postings": {"title": {"spring": [[0, 1], ...]}, ...}
    }
"""

from __future__ import annotations

from bisect import bisect_left
from collections import defaultdict
from collections.abc import Iterable, Mapping
import logging
from typing import Any, Protocol

from sapa_search.search.analyzers import Token, get_analyzer
from sapa_search.search.models import Posting, ScoredRef
from sapa_search.search.query import Clause, ParsedQuery, QueryParser
from sapa_search.search.schema import Schema, TextField, create_site_schema
from sapa_search.search.stats import FieldStats, bm25_term_weight, inverse_document_frequency, summarize_field_lengths


logger = logging.getLogger(__name__)

INDEX_FORMAT_VERSION = 1


class FullTextIndex(Protocol):
    """What the query engine needs from an index."""

    @property
    def refs(self) -> list[str]:  # pragma: no cover - interface definition
        ...

    def search(self, query: str) -> list[ScoredRef]:  # pragma: no cover - interface definition
        ...

    def to_dict(self) -> dict[str, Any]:  # pragma: no cover - interface definition
        ...


class IndexWriter:
    """Accumulates analyzed documents and produces an ``InvertedIndex``."""

    def __init__(self, schema: Schema | None = None) -> None:
        self.schema = schema or create_site_schema()
        self._refs: list[str] = []
        self._ref_positions: dict[str, int] = {}
        self._term_counts: dict[str, dict[str, dict[int, int]]] = defaultdict(lambda: defaultdict(dict))
        self._field_lengths: dict[str, list[int]] = {name: [] for name in self.schema.searchable_names}

    def __len__(self) -> int:
        return len(self._refs)

    def add_document(self, document: Mapping[str, Any]) -> str:
        ref = document.get(self.schema.ref_field)
        if ref in (None, ""):
            msg = f"Document is missing its '{self.schema.ref_field}' reference"
            raise ValueError(msg)
        ref = str(ref)
        if ref in self._ref_positions:
            msg = f"Duplicate document reference: {ref}"
            raise ValueError(msg)

        position = len(self._refs)
        self._refs.append(ref)
        self._ref_positions[ref] = position

        for schema_field in self.schema.text_fields:
            tokens = _analyze_field(schema_field, document.get(schema_field.name))
            self._field_lengths[schema_field.name].append(len(tokens))
            counts = self._term_counts[schema_field.name]
            for token in tokens:
                doc_counts = counts[token.text]
                doc_counts[position] = doc_counts.get(position, 0) + 1
        return ref

    def build(self) -> InvertedIndex:
        postings: dict[str, dict[str, list[Posting]]] = {}
        for field_name in self.schema.searchable_names:
            terms = self._term_counts.get(field_name, {})
            postings[field_name] = {
                term: [Posting(doc=doc, frequency=freq) for doc, freq in sorted(doc_counts.items())]
                for term, doc_counts in sorted(terms.items())
            }
        return InvertedIndex(
            schema=self.schema,
            refs=list(self._refs),
            postings=postings,
            field_lengths={name: list(lengths) for name, lengths in self._field_lengths.items()},
        )


def _analyze_field(schema_field: TextField, value: Any) -> list[Token]:
    if value is None:
        return []
    analyzer = get_analyzer(schema_field.analyzer_name)
    if isinstance(value, (list, tuple)):
        tokens: list[Token] = []
        for item in value:
            if item is not None:
                tokens.extend(analyzer(str(item)))
        return tokens
    return analyzer(str(value))


def build_index(documents: Iterable[Mapping[str, Any]], schema: Schema | None = None) -> InvertedIndex:
    """Index ``documents`` in order; ref positions follow iteration order."""
    writer = IndexWriter(schema)
    for document in documents:
        writer.add_document(document)
    return writer.build()


class InvertedIndex:
    """Immutable, queryable inverted index."""

    def __init__(
        self,
        *,
        schema: Schema,
        refs: list[str],
        postings: dict[str, dict[str, list[Posting]]],
        field_lengths: dict[str, list[int]],
    ) -> None:
        self.schema = schema
        self._refs = refs
        self._postings = postings
        self._field_lengths = field_lengths
        self._field_stats: dict[str, FieldStats] = summarize_field_lengths(
            {name: dict(enumerate(lengths)) for name, lengths in field_lengths.items()}
        )
        self._vocabulary: list[str] = sorted({term for terms in postings.values() for term in terms})
        self._parser = QueryParser(schema)

    @property
    def refs(self) -> list[str]:
        return list(self._refs)

    @property
    def document_count(self) -> int:
        return len(self._refs)

    @property
    def vocabulary(self) -> list[str]:
        return list(self._vocabulary)

    def search(self, query: str | ParsedQuery) -> list[ScoredRef]:
        """Score every document matching ``query``, best first.

        Ties keep index insertion order. Raises ``QueryParseError`` for malformed input.
        """
        parsed = self._parser.parse(query) if isinstance(query, str) else query
        scoring = parsed.scoring_clauses
        if not scoring:
            return []

        scores: dict[int, float] = defaultdict(float)
        matches: dict[int, dict[str, set[str]]] = defaultdict(lambda: defaultdict(set))
        required: set[int] | None = None
        matched_any: set[int] = set()

        for clause in scoring:
            clause_docs = self._score_clause(clause, scores, matches)
            matched_any |= clause_docs
            if clause.presence == "required":
                required = clause_docs if required is None else required & clause_docs

        candidates = required if required is not None else matched_any
        for clause in parsed.clauses:
            if clause.presence == "prohibited":
                candidates = candidates - self._matching_docs(clause)

        ranked = sorted(candidates, key=lambda doc: (-scores[doc], doc))
        field_order = {name: idx for idx, name in enumerate(self.schema.searchable_names)}
        return [
            ScoredRef(
                ref=self._refs[doc],
                score=scores[doc],
                matches={
                    term: sorted(fields, key=field_order.__getitem__) for term, fields in sorted(matches[doc].items())
                },
            )
            for doc in ranked
        ]

    def _expand(self, clause: Clause) -> list[str]:
        if not clause.wildcard:
            return [clause.term]
        expanded: dict[str, None] = {}
        for prefix in clause.prefixes:
            start = bisect_left(self._vocabulary, prefix)
            for term in self._vocabulary[start:]:
                if not term.startswith(prefix):
                    break
                expanded.setdefault(term)
        return list(expanded)

    def _score_clause(
        self,
        clause: Clause,
        scores: dict[int, float],
        matches: dict[int, dict[str, set[str]]],
    ) -> set[int]:
        total_docs = len(self._refs)
        matched: set[int] = set()
        for term in self._expand(clause):
            for field_name in clause.fields:
                postings = self._postings.get(field_name, {}).get(term)
                if not postings:
                    continue
                idf = inverse_document_frequency(len(postings), total_docs)
                boost = self.schema.get_boost(field_name) * clause.boost
                lengths = self._field_lengths[field_name]
                average = self._field_stats[field_name].mean_length
                for posting in postings:
                    weight = bm25_term_weight(posting.frequency, lengths[posting.doc], average)
                    scores[posting.doc] += weight * idf * boost
                    matches[posting.doc][term].add(field_name)
                    matched.add(posting.doc)
        return matched

    def _matching_docs(self, clause: Clause) -> set[int]:
        docs: set[int] = set()
        for term in self._expand(clause):
            for field_name in clause.fields:
                docs.update(p.doc for p in self._postings.get(field_name, {}).get(term, ()))
        return docs

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": INDEX_FORMAT_VERSION,
            "schema": self.schema.to_dict(),
            "refs": list(self._refs),
            "fieldLengths": {name: list(lengths) for name, lengths in sorted(self._field_lengths.items())},
            "postings": {
                field_name: {term: [p.to_list() for p in plist] for term, plist in sorted(terms.items())}
                for field_name, terms in sorted(self._postings.items())
            },
        }

    @classmethod
    def load(cls, data: Mapping[str, Any]) -> InvertedIndex:
        """Revive an index produced by ``to_dict``."""
        version = data["version"]
        if version != INDEX_FORMAT_VERSION:
            msg = f"Unsupported search index version: {version!r}"
            raise ValueError(msg)
        schema = Schema.from_dict(data["schema"])
        postings = {
            field_name: {term: [Posting.from_list(item) for item in plist] for term, plist in terms.items()}
            for field_name, terms in data["postings"].items()
        }
        index = cls(
            schema=schema,
            refs=[str(ref) for ref in data["refs"]],
            postings=postings,
            field_lengths={name: [int(n) for n in lengths] for name, lengths in data["fieldLengths"].items()},
        )
        logger.debug("Loaded search index with %d documents and %d terms", index.document_count, len(index.vocabulary))
        return index
