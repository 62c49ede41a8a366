"""BM25 arithmetic used by the inverted index.

Field lengths are measured in analyzed tokens, so stopwords do not count.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import math


BM25_K1 = 1.2
BM25_B = 0.75


@dataclass(frozen=True)
class FieldStats:
    """Token totals for one indexed field across the corpus."""

    name: str
    token_total: int
    doc_count: int

    @property
    def mean_length(self) -> float:
        return self.token_total / self.doc_count if self.doc_count else 0.0


def summarize_field_lengths(field_lengths: Mapping[str, Mapping[str, int]]) -> dict[str, FieldStats]:
    """Collapse ``{field: {ref: length}}`` into one ``FieldStats`` per field."""
    return {
        name: FieldStats(name=name, token_total=sum(max(n, 0) for n in per_ref.values()), doc_count=len(per_ref))
        for name, per_ref in field_lengths.items()
    }


def inverse_document_frequency(doc_freq: int, total_docs: int) -> float:
    """``ln(1 + (N - df + 0.5) / (df + 0.5))``; positive even when every document matches."""
    if total_docs <= 0:
        return 0.0
    clamped = min(max(doc_freq, 0), total_docs)
    return math.log(1.0 + (total_docs - clamped + 0.5) / (clamped + 0.5))


def bm25_term_weight(tf: int, doc_length: int, mean_length: float, *, k1: float = BM25_K1, b: float = BM25_B) -> float:
    """Length-normalized term frequency component of BM25 (IDF excluded)."""
    if tf <= 0:
        return 0.0
    relative_length = doc_length / mean_length if mean_length > 0 else 1.0
    return tf * (k1 + 1) / (tf + k1 * (1 - b + b * relative_length))
