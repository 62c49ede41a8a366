"""Search data models."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Posting:
    """Occurrences of one term in one field of one document.

    ``doc`` is the document's position in the index ref list, which keeps the
    serialized postings compact (``[doc, frequency]`` pairs).
    """

    doc: int
    frequency: int

    def to_list(self) -> list[int]:
        return [self.doc, self.frequency]

    @classmethod
    def from_list(cls, data: list[int]) -> Posting:
        doc, frequency = data
        return cls(doc=int(doc), frequency=int(frequency))


@dataclass(frozen=True)
class ScoredRef:
    """A matching document reference with its relevance score.

    ``matches`` maps each matched index term to the fields it was found in.
    """

    ref: str
    score: float
    matches: dict[str, list[str]] = field(default_factory=dict)
