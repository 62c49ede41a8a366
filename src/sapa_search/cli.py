"""Command line entry point: build, embed, query and render the site search index.

    sapa-search build [--data-dir D] [--output-dir O]
    sapa-search embed [--page search.html] [--output-dir O]
    sapa-search query "spring newsletter" [--type newsletter] [--year 2024] [--limit 10]
    sapa-search suggest "orch" [--limit 3]
    sapa-search render "spring" [--sort date-desc] > results.html

Defaults come from ``Settings`` (``SAPA_SEARCH_*`` environment variables or
``.env``); command line flags override them.
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
import logging
from pathlib import Path
import sys
from typing import Any

import orjson
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from sapa_search.adapters.embedded_page import EmbeddedSearchData, embed_into_page
from sapa_search.adapters.index_loader import INDEX_UNAVAILABLE_ERRORS, IndexLoader
from sapa_search.config import Settings
from sapa_search.domain import DOCUMENT_TYPES, QUARTERS, QueryFilter, SearchResult
from sapa_search.errors import EmptyCorpusError, IndexConsistencyError, IndexLoadError
from sapa_search.observability import configure_logging, init_tracing
from sapa_search.search.indexer import IndexBuildResult, IndexingContext, SearchIndexBuilder
from sapa_search.service_layer.search_engine import SearchEngine
from sapa_search.ui.controller import SearchController
from sapa_search.ui.html_view import HtmlSearchView
from sapa_search.ui.view import SORT_ORDERS


logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sapa-search",
        description="Build, embed, query and render the site search index",
    )
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--log-json", action="store_true", default=None, help="Emit one JSON object per log line")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Extract content sources and write the search artifacts")
    build.add_argument("--data-dir", type=Path, help="Directory holding the content sources")
    build.add_argument("--output-dir", type=Path, help="Directory receiving the search artifacts")
    build.add_argument("--build-date", help="Fixed build date recorded in the catalog (default: now)")

    embed = subparsers.add_parser("embed", help="Inline the search artifacts into the search page")
    embed.add_argument("--page", type=Path, help="Search page to update (default: search.html)")
    embed.add_argument("--output-dir", type=Path, help="Directory holding the built artifacts")

    query = subparsers.add_parser("query", help="Run a query against the built index")
    query.add_argument("text", help="Query string, e.g. 'spring*' or 'title:newsletter'")
    _add_source_arguments(query)
    query.add_argument("--type", dest="types", action="append", choices=DOCUMENT_TYPES, help="Document type filter")
    query.add_argument("--category", dest="categories", action="append", help="Category filter")
    query.add_argument("--difficulty", action="append", help="Difficulty filter")
    query.add_argument("--tag", dest="tags", action="append", help="Tag filter")
    query.add_argument("--year", dest="years", action="append", help="Year filter, e.g. 2024")
    query.add_argument("--quarter", dest="quarters", action="append", choices=QUARTERS, help="Newsletter quarter")
    query.add_argument("--from", dest="date_from", help="Earliest date (YYYY-MM-DD)")
    query.add_argument("--to", dest="date_to", help="Latest date (YYYY-MM-DD)")
    query.add_argument("--limit", type=int, help="Maximum number of results (0 = unlimited)")
    query.add_argument("--json", action="store_true", help="Print the raw result envelope as JSON")

    suggest = subparsers.add_parser("suggest", help="List title suggestions for partial input")
    suggest.add_argument("text", help="Partial input, at least two characters")
    _add_source_arguments(suggest)
    suggest.add_argument("--limit", type=int, help="Maximum number of suggestions")

    render = subparsers.add_parser("render", help="Print the search area HTML for a typed query")
    render.add_argument("text", help="Text typed into the search box")
    _add_source_arguments(render)
    render.add_argument("--sort", choices=SORT_ORDERS, default="relevance", help="Result order")
    return parser


def _add_source_arguments(subparser: argparse.ArgumentParser) -> None:
    source = subparser.add_mutually_exclusive_group()
    source.add_argument("--base-url", help="HTTP(S) URL or directory serving the artifacts")
    source.add_argument("--output-dir", type=Path, help="Directory holding the built artifacts")
    source.add_argument("--page", type=Path, help="Search page with embedded artifacts")


def _settings_with_overrides(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {}
    for name in ("data_dir", "output_dir", "base_url", "log_level", "log_json"):
        value = getattr(args, name, None)
        if value is not None:
            overrides[name] = value
    if getattr(args, "page", None) is not None:
        overrides["search_page"] = args.page
    return Settings(**overrides)


def _print_build_report(result: IndexBuildResult) -> None:
    table = Table(title="Search Index Build")
    table.add_column("Type", style="cyan")
    table.add_column("Documents", justify="right")
    for doc_type in DOCUMENT_TYPES:
        table.add_row(doc_type, str(result.per_type.get(doc_type, 0)))
    table.add_row("[bold]total[/bold]", f"[bold]{result.documents_indexed}[/bold]")
    console.print(table)
    if result.documents_skipped:
        console.print(f"[yellow]Skipped records: {result.documents_skipped}[/yellow]")
    for error in result.errors:
        console.print(f"[yellow]⚠ {error}[/yellow]")
    console.print(f"Index:   {result.index_path}")
    console.print(f"Catalog: {result.documents_path}")


async def _run_build(settings: Settings, build_date: str | None) -> int:
    context = IndexingContext(
        source_paths=settings.get_source_paths(),
        output_dir=settings.output_dir,
        index_filename=settings.index_filename,
        documents_filename=settings.documents_filename,
        meeting_default_title=settings.meeting_default_title,
    )
    try:
        result = await SearchIndexBuilder(context).build(build_date=build_date)
    except (EmptyCorpusError, IndexConsistencyError) as exc:
        logger.error("Search index build failed: %s", exc)
        err_console.print(f"[red]❌ {exc}[/red]")
        return 1
    _print_build_report(result)
    return 0


async def _run_embed(settings: Settings) -> int:
    try:
        size = await embed_into_page(settings.search_page, settings.index_path, settings.documents_path)
    except FileNotFoundError as exc:
        logger.error("Cannot embed search data: %s", exc)
        err_console.print(
            f"[red]❌ Missing file: {exc.filename}. Run 'sapa-search build' first and check the page path.[/red]"
        )
        return 1
    console.print(f"[green]✅ Embedded search data into {settings.search_page} ({size:,} bytes)[/green]")
    return 0


def _query_filter(args: argparse.Namespace) -> QueryFilter:
    payload: dict[str, Any] = {
        "types": args.types,
        "categories": args.categories,
        "difficulty": args.difficulty,
        "tags": args.tags,
        "years": args.years,
        "quarters": args.quarters,
    }
    if args.date_from or args.date_to:
        payload["dateRange"] = {"from": args.date_from, "to": args.date_to}
    return QueryFilter.model_validate(payload)


async def _build_loader(args: argparse.Namespace, settings: Settings) -> IndexLoader:
    common = {
        "index_filename": settings.index_filename,
        "documents_filename": settings.documents_filename,
        "timeout": settings.http_timeout,
    }
    if args.page is not None:
        embedded = await EmbeddedSearchData.from_page(args.page)
        if embedded is None:
            msg = f"No embedded search data in {args.page}"
            raise IndexLoadError(msg)
        return IndexLoader(embedded=embedded, **common)
    if args.output_dir is not None:
        return IndexLoader(str(args.output_dir), **common)
    return IndexLoader(settings.base_url, **common)


async def _build_engine(args: argparse.Namespace, settings: Settings) -> SearchEngine:
    loader = await _build_loader(args, settings)
    return SearchEngine(loader, default_limit=settings.default_limit, suggestion_limit=settings.suggestion_limit)


def _print_results(result: SearchResult) -> None:
    table = Table(title=f'Results for "{result.query}"')
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Type", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Date")
    table.add_column("URL", style="blue")
    for position, hit in enumerate(result.results, 1):
        doc = hit.document
        table.add_row(str(position), f"{hit.score:.3f}", doc.type, doc.title, doc.date or "", doc.url)
    console.print(table)
    metadata = result.metadata
    if metadata is not None:
        console.print(
            f"{result.total} shown / {metadata.total_matches} matching / {metadata.total_documents} documents"
        )


async def _run_query(args: argparse.Namespace, settings: Settings) -> int:
    try:
        query_filter = _query_filter(args)
    except ValidationError as exc:
        err_console.print(f"[red]❌ Invalid filter: {exc.errors()[0]['msg']}[/red]")
        return 2

    try:
        engine = await _build_engine(args, settings)
        result = await engine.search(args.text, query_filter, limit=args.limit)
    except (*INDEX_UNAVAILABLE_ERRORS, OSError) as exc:
        logger.error("Search index unavailable: %s", exc)
        err_console.print(f"[red]❌ {exc}[/red]")
        return 1

    if args.json:
        payload = result.model_dump(mode="json", by_alias=True, exclude_none=True)
        sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8") + "\n")
    elif result.error:
        err_console.print(f"[red]❌ Query failed: {result.error}[/red]")
    elif not result.has_results:
        console.print(f'No results found for "{result.query}"')
    else:
        _print_results(result)
    return 1 if result.error else 0


async def _run_suggest(args: argparse.Namespace, settings: Settings) -> int:
    try:
        engine = await _build_engine(args, settings)
        await engine.initialize()
    except (*INDEX_UNAVAILABLE_ERRORS, OSError) as exc:
        logger.error("Search index unavailable: %s", exc)
        err_console.print(f"[red]❌ {exc}[/red]")
        return 1

    suggestions = await engine.get_suggestions(args.text, args.limit)
    if not suggestions:
        console.print(f'No suggestions for "{args.text}"')
    for suggestion in suggestions:
        console.print(f"{suggestion.text}  [cyan]{suggestion.type}[/cyan]  [blue]{suggestion.url}[/blue]")
    return 0


async def _run_render(args: argparse.Namespace, settings: Settings) -> int:
    try:
        engine = await _build_engine(args, settings)
    except (*INDEX_UNAVAILABLE_ERRORS, OSError) as exc:
        logger.error("Search index unavailable: %s", exc)
        err_console.print(f"[red]❌ {exc}[/red]")
        return 1

    view = HtmlSearchView()
    controller = SearchController(
        engine,
        view,
        debounce_seconds=settings.debounce_seconds,
        suggestion_limit=settings.suggestion_limit,
    )
    started = await controller.start()
    if started:
        view.type_query(args.text)
        view.change_sort(args.sort)
        await controller.drain()
    sys.stdout.write(view.html + "\n")
    return 0 if started else 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = _settings_with_overrides(args)
    except ValidationError as exc:
        parser.error(str(exc))

    configure_logging(settings.log_level, settings.log_json)
    init_tracing()

    if args.command == "build":
        if args.data_dir is not None and not args.data_dir.is_dir():
            logger.warning("Data directory does not exist: %s", args.data_dir)
        return asyncio.run(_run_build(settings, args.build_date))
    if args.command == "embed":
        return asyncio.run(_run_embed(settings))
    if args.command == "suggest":
        return asyncio.run(_run_suggest(args, settings))
    if args.command == "render":
        return asyncio.run(_run_render(args, settings))
    return asyncio.run(_run_query(args, settings))


if __name__ == "__main__":
    sys.exit(main())
