"""Input records owned by the content-management process.

The four record shapes are heterogeneous and loosely maintained by hand, so the
models are lenient: unknown keys are ignored, ``null`` values fall back to empty
defaults and numeric ids are accepted. Only a missing ``id`` invalidates a record.

Each model knows how to flatten itself into a ``SearchDocument``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sapa_search.domain.documents import SearchDocument


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _as_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value if item is not None]


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    return value


Text = Annotated[str, BeforeValidator(_as_text)]
OptionalText = Annotated[str | None, BeforeValidator(_as_optional_text)]
TextList = Annotated[list[str], BeforeValidator(_as_text_list)]


def join_text(parts: Iterable[str | None]) -> str:
    """Space-join the non-empty parts."""
    return " ".join(part.strip() for part in parts if part and part.strip())


class SourceModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True)


class SourceRecord(SourceModel):
    """Common base for the four record variants."""

    id: str
    tags: TextList = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or isinstance(value, bool) or str(value).strip() == "":
            msg = "record id is required"
            raise ValueError(msg)
        return str(value).strip()


class FeaturedArticle(SourceModel):
    title: Text = ""
    category: Text = ""


class Newsletter(SourceRecord):
    title: Text = ""
    description: Text = ""
    publish_date: OptionalText = None
    year: OptionalText = None
    quarter: OptionalText = None
    highlights: TextList = Field(default_factory=list)
    featured_articles: Annotated[list[FeaturedArticle], BeforeValidator(_as_list)] = Field(default_factory=list)

    def content_text(self) -> str:
        return join_text(
            [
                self.title,
                self.description,
                *self.highlights,
                *(join_text([article.title, article.category]) for article in self.featured_articles),
                *self.tags,
            ]
        )

    def to_search_document(self) -> SearchDocument:
        return SearchDocument(
            id=f"newsletter-{self.id}",
            type="newsletter",
            title=self.title,
            content=self.content_text(),
            summary=self.description,
            url=f"/newsletter.html#{self.id}",
            date=self.publish_date,
            tags=list(self.tags),
            category="newsletter",
            quarter=self.quarter,
            year=self.year,
        )


class Presenter(SourceModel):
    name: Text = ""
    title: Text = ""


class Location(SourceModel):
    name: Text = ""


class AgendaItem(SourceModel):
    item: Text = ""

    @classmethod
    def coerce(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"item": value}
        return value


def _as_agenda(value: Any) -> list[Any]:
    return [AgendaItem.coerce(item) for item in _as_list(value)]


class Meeting(SourceRecord):
    title: OptionalText = None
    topic: OptionalText = None
    description: Text = ""
    date: OptionalText = None
    presenter: Presenter | None = None
    location: Location | None = None
    special_notes: TextList = Field(default_factory=list)
    agenda: Annotated[list[AgendaItem], BeforeValidator(_as_agenda)] = Field(default_factory=list)

    def display_title(self, default_title: str) -> str:
        return self.title or self.topic or default_title

    def content_text(self) -> str:
        presenter = self.presenter or Presenter()
        location = self.location or Location()
        return join_text(
            [
                self.title or self.topic,
                self.description,
                presenter.name,
                presenter.title if presenter.name else None,
                location.name,
                *self.special_notes,
                *(entry.item for entry in self.agenda),
                *self.tags,
            ]
        )

    def to_search_document(self, default_title: str = "SAPA Meeting") -> SearchDocument:
        return SearchDocument(
            id=f"meeting-{self.id}",
            type="meeting",
            title=self.display_title(default_title),
            content=self.content_text(),
            summary=self.description,
            url=f"/meetings.html#{self.id}",
            date=self.date,
            tags=list(self.tags),
            category="meeting",
        )


class Section(SourceModel):
    title: Text = ""
    content: Text = ""


class Resource(SourceRecord):
    slug: OptionalText = None
    title: Text = ""
    summary: Text = ""
    content: Text = ""
    sections: Annotated[list[Section], BeforeValidator(_as_list)] = Field(default_factory=list)
    category: OptionalText = None
    difficulty: OptionalText = None
    date_created: OptionalText = None
    date_updated: OptionalText = None

    def content_text(self) -> str:
        return join_text(
            [
                self.title,
                self.summary,
                self.content,
                *(join_text([section.title, section.content]) for section in self.sections),
                *self.tags,
                self.category.replace("-", " ") if self.category else None,
            ]
        )

    def to_search_document(self) -> SearchDocument:
        return SearchDocument(
            id=f"resource-{self.id}",
            type="resource",
            title=self.title,
            content=self.content_text(),
            summary=self.summary,
            url=f"/resources.html#{self.slug or self.id}",
            date=self.date_created or self.date_updated,
            tags=list(self.tags),
            category=self.category,
            difficulty=self.difficulty,
        )


class Example(SourceModel):
    description: Text = ""


class GlossaryTerm(SourceRecord):
    slug: OptionalText = None
    term: Text = ""
    definition: Text = ""
    alternate_names: TextList = Field(default_factory=list)
    detailed_description: Text = ""
    examples: Annotated[list[Example], BeforeValidator(_as_list)] = Field(default_factory=list)
    category: OptionalText = None
    difficulty: OptionalText = None
    date_added: OptionalText = None
    date_updated: OptionalText = None

    def content_text(self) -> str:
        return join_text(
            [
                self.term,
                self.definition,
                *self.alternate_names,
                self.detailed_description,
                *(example.description for example in self.examples),
                *self.tags,
                self.category.replace("-", " ") if self.category else None,
            ]
        )

    def to_search_document(self) -> SearchDocument:
        return SearchDocument(
            id=f"glossary-{self.id}",
            type="glossary",
            title=self.term,
            content=self.content_text(),
            summary=self.definition,
            url=f"/glossary.html#{self.slug or self.id}",
            date=self.date_added or self.date_updated,
            tags=list(self.tags),
            category=self.category,
            difficulty=self.difficulty,
        )
