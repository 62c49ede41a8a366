"""Query string parsing.

Grammar (whitespace separated clauses)::

    clause   := presence? (field ":")? term wildcard? ("^" boost)?
    presence := "+" | "-"
    wildcard := "*"

``spring`` is matched against the stemmed index terms of every searchable field,
``spri*`` against every index term starting with ``spri``. A wildcard over a whole
word also expands its stem, so ``meeting*`` finds ``meet``. ``title:spring``
restricts the clause to one field, ``+spring`` makes it required, ``-spring``
excludes documents that contain it and ``spring^5`` multiplies its score.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import re
from typing import Literal

from sapa_search.errors import QueryParseError
from sapa_search.search.analyzers import get_analyzer, normalize_prefix
from sapa_search.search.schema import Schema, TextField


Presence = Literal["optional", "required", "prohibited"]

_CLAUSE_PATTERN = re.compile(r"\S+")


@dataclass(frozen=True)
class Clause:
    """One normalized query term and how it participates in matching."""

    term: str
    fields: tuple[str, ...]
    wildcard: bool = False
    presence: Presence = "optional"
    boost: float = 1.0
    stemmed_prefix: str | None = None

    @property
    def prefixes(self) -> tuple[str, ...]:
        if self.stemmed_prefix is None:
            return (self.term,)
        return (self.term, self.stemmed_prefix)


@dataclass(frozen=True)
class ParsedQuery:
    text: str
    clauses: tuple[Clause, ...]

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    @property
    def scoring_clauses(self) -> tuple[Clause, ...]:
        return tuple(c for c in self.clauses if c.presence != "prohibited")


class QueryParser:
    """Turn user input into analyzed clauses for a given schema."""

    def __init__(self, schema: Schema) -> None:
        self.schema = schema
        self._all_fields = tuple(schema.searchable_names)

    def parse(self, text: str) -> ParsedQuery:
        clauses: list[Clause] = []
        for match in _CLAUSE_PATTERN.finditer(text):
            clauses.extend(self._parse_clause(match.group(0), match.start(), match.end()))
        return ParsedQuery(text=text, clauses=tuple(clauses))

    def _parse_clause(self, raw: str, start: int, end: int) -> list[Clause]:
        body = raw
        presence: Presence = "optional"
        if body[0] == "+":
            presence, body = "required", body[1:]
        elif body[0] == "-":
            presence, body = "prohibited", body[1:]

        fields = self._all_fields
        if ":" in body:
            field_name, _, body = body.partition(":")
            fields = (self._resolve_field(field_name, start, end),)

        boost = 1.0
        if "^" in body:
            body, _, boost_text = body.rpartition("^")
            boost = self._parse_boost(boost_text, start, end)

        if not body:
            msg = f"Missing search term in '{raw}'"
            raise QueryParseError(msg, start=start, end=end)

        analyzer = get_analyzer(self._analyzer_name(fields))
        if body.endswith("*"):
            prefix = normalize_prefix(body)
            if not prefix:
                return []
            analyzed = [token.text for token in analyzer(prefix)]
            stemmed = analyzed[0] if len(analyzed) == 1 and analyzed[0] != prefix else None
            return [
                Clause(
                    term=prefix,
                    fields=fields,
                    wildcard=True,
                    presence=presence,
                    boost=boost,
                    stemmed_prefix=stemmed,
                )
            ]

        terms = [token.text for token in analyzer(body)]
        return [Clause(term=term, fields=fields, presence=presence, boost=boost) for term in dict.fromkeys(terms)]

    def _analyzer_name(self, fields: tuple[str, ...]) -> str | None:
        if len(fields) != 1:
            return None
        field = self.schema[fields[0]]
        return field.analyzer_name if isinstance(field, TextField) else None

    def _resolve_field(self, name: str, start: int, end: int) -> str:
        if name not in self._all_fields:
            msg = f"Unknown field '{name}'. Searchable fields: {', '.join(self._all_fields)}"
            raise QueryParseError(msg, start=start, end=end)
        return name

    @staticmethod
    def _parse_boost(text: str, start: int, end: int) -> float:
        try:
            boost = float(text)
        except ValueError:
            msg = f"Invalid boost '{text}': expected a number"
            raise QueryParseError(msg, start=start, end=end) from None
        if not math.isfinite(boost):
            msg = f"Invalid boost '{text}': must be a finite number"
            raise QueryParseError(msg, start=start, end=end)
        if boost < 0:
            msg = f"Invalid boost '{text}': must not be negative"
            raise QueryParseError(msg, start=start, end=end)
        return boost
