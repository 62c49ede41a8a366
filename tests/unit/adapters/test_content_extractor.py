"""Unit tests for content source extraction."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from sapa_search.adapters.content_sources import SOURCE_KEYS, ContentExtractor, ContentSource
from sapa_search.errors import SourceLoadError


EXPECTED_IDS = [
    "newsletter-2024-spring",
    "newsletter-2023-fall",
    "meeting-2024-03",
    "meeting-2024-05",
    "resource-r1",
    "glossary-g1",
]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_extracts_all_sources_in_fixed_order(source_paths):
    # Reversed mapping order must not change the document order
    extractor = ContentExtractor.from_paths(dict(reversed(list(source_paths.items()))))

    report = await extractor.extract()

    assert [doc.id for doc in report.documents] == EXPECTED_IDS
    assert [source.kind for source in report.sources] == ["newsletter", "meeting", "resource", "glossary"]
    assert report.errors == ()
    assert report.skipped == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_meeting_default_title_is_configurable(source_paths):
    extractor = ContentExtractor.from_paths(source_paths, meeting_default_title="Monthly Meeting")

    report = await extractor.extract()

    titles = {doc.id: doc.title for doc in report.documents}
    assert titles["meeting-2024-03"] == "Succulent Propagation"
    assert titles["meeting-2024-05"] == "Monthly Meeting"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_source_is_skipped_with_warning(source_paths, caplog):
    source_paths["glossary"].unlink()
    extractor = ContentExtractor.from_paths(source_paths)

    with caplog.at_level(logging.WARNING, logger="sapa_search.adapters.content_sources"):
        report = await extractor.extract()

    assert [doc.id for doc in report.documents] == EXPECTED_IDS[:-1]
    assert len(report.errors) == 1
    assert "glossary.json" in report.errors[0]
    assert "Skipping glossary source" in caplog.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invalid_records_are_skipped(tmp_path: Path):
    path = tmp_path / "newsletters.json"
    path.write_text('{"newsletters": [{"title": "No id"}, {"id": "ok", "title": "Fine"}, "junk"]}')
    extractor = ContentExtractor.from_paths({"newsletter": path})

    report = await extractor.extract()

    assert [doc.id for doc in report.documents] == ["newsletter-ok"]
    assert report.skipped == 2
    assert report.sources[0].documents == 1


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("body", "reason"),
    [
        ("{not json", "invalid JSON"),
        ('{"items": []}', "missing 'newsletters' key"),
        ('{"newsletters": {"id": 1}}', "is not a list"),
        ("[]", "missing 'newsletters' key"),
    ],
)
async def test_malformed_source_raises_source_load_error(tmp_path: Path, body, reason):
    path = tmp_path / "newsletters.json"
    path.write_text(body)
    extractor = ContentExtractor.from_paths({"newsletter": path})

    with pytest.raises(SourceLoadError, match=reason) as excinfo:
        await extractor.load_records(extractor.sources[0])

    assert excinfo.value.source == str(path)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unreadable_source_raises_source_load_error(tmp_path: Path):
    source = ContentSource(kind="meeting", path=tmp_path / "absent.json", key=SOURCE_KEYS["meeting"])

    with pytest.raises(SourceLoadError, match="absent.json"):
        await ContentExtractor([source]).load_records(source)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_all_sources_missing_yields_empty_report(tmp_path: Path):
    extractor = ContentExtractor.from_paths({kind: tmp_path / f"{kind}.json" for kind in SOURCE_KEYS})

    report = await extractor.extract()

    assert report.documents == ()
    assert len(report.errors) == 4
