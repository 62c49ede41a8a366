"""
Field schema for the site search index.

Two field kinds are enough for the site content:
- TextField: analyzed, searchable, weighted by ``boost`` when scoring
- KeywordField: stored verbatim, used for the document reference

The schema is serialized alongside the postings so a loaded index scores with
exactly the boosts it was built with.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SchemaField:
    """Base class for schema fields."""

    name: str
    boost: float = 1.0
    indexed: bool = True

    kind = "field"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "kind": self.kind, "boost": self.boost, "indexed": self.indexed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaField:
        kind = data.get("kind", "text")
        common = {
            "name": data["name"],
            "boost": float(data.get("boost", 1.0)),
            "indexed": bool(data.get("indexed", True)),
        }
        if kind == "text":
            return TextField(**common, analyzer_name=data.get("analyzer"))
        if kind == "keyword":
            return KeywordField(**common)
        msg = f"Unknown field kind: {kind}"
        raise ValueError(msg)


@dataclass(frozen=True)
class TextField(SchemaField):
    """Analyzed full-text field.

    Args:
        name: Document attribute to index (e.g. "title")
        boost: Multiplier applied to this field's BM25 score
        analyzer_name: Analyzer registered in ``analyzers.get_analyzer`` (None = standard)
    """

    analyzer_name: str | None = None

    kind = "text"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.analyzer_name:
            data["analyzer"] = self.analyzer_name
        return data


@dataclass(frozen=True)
class KeywordField(SchemaField):
    """Verbatim value, never tokenized."""

    kind = "keyword"


@dataclass
class Schema:
    """Ordered set of fields plus the name of the reference field.

    Example:
        schema = Schema(
            fields=[KeywordField("id", indexed=False), TextField("title", boost=10)],
            ref_field="id",
        )
    """

    fields: list[SchemaField]
    ref_field: str = "id"

    def __post_init__(self) -> None:
        self._field_map: dict[str, SchemaField] = {f.name: f for f in self.fields}
        if len(self._field_map) != len(self.fields):
            msg = "Schema field names must be unique"
            raise ValueError(msg)
        if self.ref_field not in self._field_map:
            msg = f"Reference field '{self.ref_field}' not found in schema"
            raise ValueError(msg)

    def __getitem__(self, name: str) -> SchemaField:
        return self._field_map[name]

    def __contains__(self, name: object) -> bool:
        return name in self._field_map

    def __iter__(self) -> Iterator[SchemaField]:
        return iter(self.fields)

    @property
    def text_fields(self) -> list[TextField]:
        """Searchable fields in declaration order."""
        return [f for f in self.fields if isinstance(f, TextField) and f.indexed]

    @property
    def searchable_names(self) -> list[str]:
        return [f.name for f in self.text_fields]

    def get_boost(self, field_name: str) -> float:
        if field_name in self._field_map:
            return self._field_map[field_name].boost
        return 1.0

    def to_dict(self) -> dict[str, Any]:
        return {"ref": self.ref_field, "fields": [f.to_dict() for f in self.fields]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Schema:
        return cls(
            fields=[SchemaField.from_dict(f) for f in data["fields"]],
            ref_field=data.get("ref", "id"),
        )


def create_site_schema() -> Schema:
    """
    Schema used for every site document.

    Fields (boost):
    - id: reference only, not searchable
    - title (10), content (5), summary (3), tags (2), category (1), type (1)
    """
    return Schema(
        ref_field="id",
        fields=[
            KeywordField("id", indexed=False),
            TextField("title", boost=10.0),
            TextField("content", boost=5.0),
            TextField("summary", boost=3.0),
            TextField("tags", boost=2.0),
            TextField("category", boost=1.0),
            TextField("type", boost=1.0),
        ],
    )
