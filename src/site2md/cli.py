"""Command-line interface for site2md."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

from . import __version__
from .conversion.markdown import ResultDocumentBuilder
from .core.config_manager import ConfigManager
from .core.fetcher import WebsiteFetcher
from .logging_config import configure_from_settings
from .models.events import EventType, FetchEvent


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="site2md",
        description="Fetch web pages and API descriptions and convert them to Markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Fetch a page
  site2md fetch https://react.dev/learn

  # Summarize an OpenAPI document
  site2md fetch https://petstore3.swagger.io/api/v3/openapi.json

  # Use the headless browser for sites with bot protection
  site2md fetch https://example.com --stealth

  # Work with configured sites
  site2md --config site2md.yaml sites
  site2md site react
  site2md search docs
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        metavar="FILE",
        help="Configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from configuration)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="FILE",
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress progress output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch_parser = subparsers.add_parser("fetch", help="Fetch a URL and print it as Markdown")
    fetch_parser.add_argument("url", help="URL to fetch")

    site_parser = subparsers.add_parser("site", help="Fetch a configured website by name")
    site_parser.add_argument("name", help="Configured website name")

    for sub in (fetch_parser, site_parser):
        sub.add_argument(
            "--stealth",
            action="store_true",
            help="Fetch through the headless stealth browser (requires Playwright browsers)",
        )
        sub.add_argument(
            "--no-metrics",
            action="store_true",
            help="Omit reading time, word count, language and summary lines",
        )

    search_parser = subparsers.add_parser("search", help="Search configured websites for a query")
    search_parser.add_argument("query", help="Free-text query")

    subparsers.add_parser("sites", help="List configured websites")

    return parser


def _track_progress(progress: Progress, task: TaskID) -> Callable[[FetchEvent], None]:
    def on_event(event: FetchEvent) -> None:
        if event.type == EventType.FETCH_STARTED:
            progress.update(task, description=f"[cyan]{event.message}")
        elif event.type == EventType.FETCH_RETRYING:
            progress.update(task, description=f"[yellow]Retry {event.retry_attempt}: {event.url}")
        elif event.type == EventType.OPENAPI_DETECTED:
            progress.update(task, description=f"[green]{event.message}")
        elif event.type == EventType.PAGE_CONVERTED:
            progress.update(task, description=f"[green]{event.message}")
        elif event.type == EventType.SEARCH_STARTED:
            progress.update(task, description=f"[cyan]Searching for {event.message}")

    return on_event


async def _run_command(args: argparse.Namespace, manager: ConfigManager, console: Console, err: Console) -> int:
    builder = ResultDocumentBuilder(include_metrics=not getattr(args, "no_metrics", False))
    stealth = True if getattr(args, "stealth", False) else None

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err,
        transient=True,
        disable=args.quiet,
    ) as progress:
        task = progress.add_task("Starting...", total=None)
        on_event = _track_progress(progress, task)

        async with WebsiteFetcher(manager, on_event=on_event) as fetcher:
            if args.command == "fetch":
                try:
                    result = await fetcher.fetch(args.url, stealth=stealth)
                except Exception as e:
                    err.print(f"Unable to fetch website {args.url}: {e}", markup=False, highlight=False)
                    return 1
                document = builder.build(result)

            elif args.command == "site":
                site = manager.get_website(args.name)
                if site is None:
                    err.print(f"Unknown website: {args.name}", markup=False, highlight=False)
                    return 1
                try:
                    result = await fetcher.fetch(site.url, site=site, stealth=stealth)
                except Exception as e:
                    err.print(f"Unable to fetch website {site.url}: {e}", markup=False, highlight=False)
                    return 1
                document = builder.build(result, site=site)

            else:
                results = await fetcher.search(args.query)
                if not results:
                    err.print(f"No relevant websites found for: {args.query}", markup=False, highlight=False)
                    return 0
                document = builder.build_search(results)

    console.out(document, highlight=False)
    return 0


def run_command(args: argparse.Namespace) -> int:
    """Run the selected subcommand with given arguments."""
    console = Console()
    err = Console(stderr=True)

    manager = ConfigManager.from_sources(args.config)
    configure_from_settings(manager.get_global_settings().logging, level=args.log_level, log_file=args.log_file)

    if args.command == "sites":
        console.out(ResultDocumentBuilder().build_site_list(manager.get_websites()), highlight=False)
        return 0

    return asyncio.run(_run_command(args, manager, console, err))


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    return run_command(args)


if __name__ == "__main__":
    sys.exit(main())
