"""Standalone CLI for building and inspecting the sitechat corpus.

Usage::

    python -m sitechat.cli.ingest urls
    python -m sitechat.cli.ingest urls https://www.aven.com/support
    python -m sitechat.cli.ingest files --path ./docs/
    python -m sitechat.cli.ingest ids --limit 20
    python -m sitechat.cli.ingest stats

``urls`` with no arguments ingests every ``ingestion.source_urls`` entry of
``config/config.yaml``.  Provider and store selection follows the same
settings as the web app, so the CLI always writes where the app reads.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime, timezone

from sitechat.config.loader import get_source_urls, load_config
from sitechat.config.settings import Settings
from sitechat.models.rag import IngestionReport, parse_record_timestamp
from sitechat.utils.errors import ConfigurationError
from sitechat.utils.logging import configure_logging

# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _print_report(report: IngestionReport) -> None:
    print()
    print("Ingestion Report")
    print("=" * 40)
    print(f"  Sources:            {report.sources_total}")
    print(f"  Sources failed:     {report.sources_failed}")
    print(f"  Chunks created:     {report.chunks_created}")
    print(f"  Chunks embedded:    {report.chunks_embedded}")
    print(f"  Embedding failures: {report.embedding_failures}")
    print(f"  Records upserted:   {report.records_upserted}")
    print(f"  Batches:            {report.batches_total} ({report.batches_failed} failed)")
    print(f"  Time:               {report.elapsed_seconds:.1f}s")
    if report.failed_sources:
        print("\n  Failed sources:")
        for source in report.failed_sources:
            print(f"    {source}")


def _format_timestamp(record_id: str) -> str:
    millis = parse_record_timestamp(record_id)
    if millis is None:
        return "-"
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).isoformat(timespec="seconds")


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_urls(args: argparse.Namespace, app_settings: Settings, config: dict) -> int:
    from sitechat.bootstrap import build_ingestion_service
    from sitechat.providers.article.web_scraper_provider import WebScraperProvider

    urls = list(args.urls) or get_source_urls(config)
    if not urls:
        print("No URLs given and none configured under ingestion.source_urls.", file=sys.stderr)
        return 1

    scraper = WebScraperProvider()
    try:
        service = build_ingestion_service(app_settings, article_provider=scraper)
        print(f"Ingesting {len(urls)} URL(s)...")
        report = await service.ingest_urls(urls)
    finally:
        await scraper.aclose()

    _print_report(report)
    return 0


async def _handle_files(args: argparse.Namespace, app_settings: Settings) -> int:
    from sitechat.bootstrap import build_ingestion_service

    service = build_ingestion_service(app_settings)
    report = await service.ingest_files(args.path)
    _print_report(report)
    return 0


async def _handle_ids(args: argparse.Namespace, app_settings: Settings) -> int:
    """Print the most recently ingested record ids, newest first."""
    from sitechat.bootstrap import build_ingestion_service

    service = build_ingestion_service(app_settings)
    matches = await service.list_recent_records(limit=args.limit)
    if not matches:
        print("No records found.")
        return 0

    for match in matches:
        url = match.chunk.source_url if match.chunk else "-"
        index = match.chunk.index if match.chunk else "-"
        print(f"{_format_timestamp(match.id)}  {url}  chunk {index}")
        print(f"    {match.id}")
    return 0


async def _handle_stats(app_settings: Settings) -> int:
    """Display corpus statistics."""
    from sitechat.bootstrap import build_ingestion_service

    service = build_ingestion_service(app_settings)
    stats = await service.get_corpus_stats()

    print("Corpus Statistics")
    print("=" * 40)
    print(f"  Store:          {stats.provider}")
    print(f"  Namespace:      {stats.namespace}")
    print(f"  Total records:  {stats.total_records}")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m sitechat.cli.ingest",
        description="Manage the sitechat vector-store corpus.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="YAML config file (default: config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Corpus commands")

    urls_parser = subparsers.add_parser("urls", help="Scrape and ingest web pages")
    urls_parser.add_argument(
        "urls",
        nargs="*",
        help="URLs to ingest (default: ingestion.source_urls from the config)",
    )

    files_parser = subparsers.add_parser("files", help="Ingest local markdown/text files")
    files_parser.add_argument(
        "--path",
        required=True,
        action="append",
        help="File or directory; repeat for several",
    )

    ids_parser = subparsers.add_parser("ids", help="List recently ingested record ids")
    ids_parser.add_argument(
        "--limit", type=int, default=100, help="Maximum records to list (default: 100)"
    )

    subparsers.add_parser("stats", help="Show corpus statistics")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse the subcommand and exit with its status code."""
    from sitechat.bootstrap import resolve_settings

    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    config = load_config(args.config, settings=app_settings)
    resolved = resolve_settings(app_settings, config)
    configure_logging(log_level=resolved.log_level)

    try:
        if args.command == "urls":
            exit_code = asyncio.run(_handle_urls(args, resolved, config))
        elif args.command == "files":
            exit_code = asyncio.run(_handle_files(args, resolved))
        elif args.command == "ids":
            exit_code = asyncio.run(_handle_ids(args, resolved))
        else:
            exit_code = asyncio.run(_handle_stats(resolved))
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
