#!/usr/bin/env python3
"""CLI for recipe-harvest: crawl recipe sites and feed the enrichment queues.

The CLI is responsible for:
- Argument parsing
- Progress display (Rich UI)
- Error presentation
- Calling discovery, the batch dispatcher and the handlers

Queued work is executed by ``huey_consumer`` workers, not by the CLI.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .batch import create_batch_dispatcher, read_url_file
from .config import HarvestConfig
from .exceptions import HarvestError
from .models import RecipeRecord, SourceType
from .registry import ExtractorRegistry
from .services import ServiceFactory

# Create global Rich console for styled output
console = Console()

LOG_FILE = "recipe_harvest.log"


def setup_logging(log_file: str = LOG_FILE, debug: bool = False) -> None:
    """Send detailed logs to a file. Console output is handled by Rich."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.FileHandler(log_file, mode="a", encoding="utf-8")],
    )


def create_progress() -> Progress:
    """Create a Rich progress bar with standard configuration."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Harvest recipes from Polish recipe sites", prog="recipe-harvest"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    # SUPPRESS keeps a top-level --debug from being reset by the subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--debug", action="store_true", default=argparse.SUPPRESS, help="Verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser(
        "discover", parents=[common], help="Collect recipe URLs from a category listing"
    )
    discover.add_argument("url", help="First page of the category")
    discover.add_argument("--pages", type=int, default=None, help="Maximum number of pages")

    acquire_file = subparsers.add_parser(
        "acquire-file",
        parents=[common],
        help="Import URLs from a file and queue their acquisition",
    )
    acquire_file.add_argument("path", type=Path, help="File with one URL per line")

    queue_acquisitions = subparsers.add_parser(
        "queue-acquisitions", parents=[common], help="Queue acquisition of all unconsumed URLs"
    )
    queue_acquisitions.add_argument("--limit", type=int, default=None)
    queue_acquisitions.add_argument(
        "--source", choices=[t.value for t in SourceType], default=None, help="Only this site"
    )

    queue_ingredients = subparsers.add_parser(
        "queue-ingredients",
        parents=[common],
        help="Queue ingredient normalization for unprepared recipes",
    )
    queue_ingredients.add_argument("--limit", type=int, default=None)

    queue_steps = subparsers.add_parser(
        "queue-steps", parents=[common], help="Queue step normalization for unprepared recipes"
    )
    queue_steps.add_argument("--limit", type=int, default=None)
    queue_steps.add_argument(
        "--yes", action="store_true", help="Dispatch even if step tasks are already queued"
    )

    debug = subparsers.add_parser(
        "debug", parents=[common], help="Scrape a recipe and print it without saving"
    )
    debug.add_argument("url")

    test = subparsers.add_parser(
        "test", parents=[common], help="Run recipe acquisition synchronously"
    )
    test.add_argument("url")

    subparsers.add_parser("sources", parents=[common], help="List supported sites")

    return parser


def display_error(title: str, message: str) -> None:
    """Display an error panel."""
    console.print()
    console.print(Panel(message, title=f"[bold red]{title}[/bold red]", border_style="red"))
    console.print()


def display_counts(title: str, rows: list[tuple[str, int]]) -> None:
    table = Table(title=f"[bold green]{title}[/bold green]", header_style="bold cyan")
    table.add_column("Metric", style="cyan", width=20)
    table.add_column("Value", style="green", justify="right")
    for label, value in rows:
        table.add_row(label, str(value))
    console.print(table)


def display_record(record: RecipeRecord) -> None:
    """Pretty-print every scraped field of a recipe."""
    table = Table(title=f"[bold]{record.name or '(no name)'}[/bold]", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in record.model_dump(exclude={"ingredients", "steps"}).items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)

    for section in record.ingredients:
        console.print(f"\n[bold]Składniki[/bold] [dim]{section.section or '-'}[/dim]")
        for item in section.items:
            quantity = f" [dim]({item.quantity})[/dim]" if item.quantity else ""
            console.print(f"  • {item.name}{quantity}")

    console.print(f"\n[bold]Kroki[/bold] ({len(record.steps)})")
    for step in record.steps:
        console.print(f"  {step.ordinal}. {step.text}")
        if step.image:
            console.print(f"     [dim]{step.image}[/dim]")


def print_worker_hint(channel: str) -> None:
    console.print(f"[dim]Run the worker with: huey_consumer recipe_harvest.tasks.{channel}[/dim]")


# ============================================================================
# Commands
# ============================================================================


def cmd_discover(args: argparse.Namespace, factory: ServiceFactory) -> None:
    discovery = factory.create_discovery()

    with create_progress() as progress:
        task_id = progress.add_task("Crawling category pages", total=None)

        def on_page(page: int, last_page: int) -> None:
            progress.update(task_id, completed=page, total=last_page)

        result = discovery.discover(args.url, page_limit=args.pages, progress_callback=on_page)

    display_counts(
        "✓ Discovery Complete",
        [
            ("Total", result.total),
            ("New", result.new),
            ("Duplicates", result.duplicates),
            ("Pages", result.pages),
        ],
    )
    if result.failed_pages:
        console.print(f"[yellow]Skipped pages:[/yellow] {result.failed_pages}")


def cmd_acquire_file(args: argparse.Namespace, factory: ServiceFactory) -> None:
    urls = read_url_file(args.path)
    report = create_batch_dispatcher(factory).import_urls(urls)

    for url in report.unsupported:
        console.print(f"[yellow]Unsupported:[/yellow] {url}")
    display_counts(
        "✓ Import Complete",
        [
            ("URLs read", len(urls)),
            ("New", report.created),
            ("Dispatched", len(report.dispatched)),
            ("Already scraped", len(report.already_consumed)),
            ("Unsupported", len(report.unsupported)),
        ],
    )
    print_worker_hint("acquisition_queue")


def cmd_queue_acquisitions(args: argparse.Namespace, factory: ServiceFactory) -> None:
    source_type = SourceType(args.source) if args.source else None
    report = create_batch_dispatcher(factory).dispatch_pending_acquisitions(
        limit=args.limit, source_type=source_type
    )
    console.print(f"[green]✓[/green] Dispatched {report.dispatched} acquisition task(s)")
    print_worker_hint("acquisition_queue")


def cmd_queue_ingredients(args: argparse.Namespace, factory: ServiceFactory) -> None:
    report = create_batch_dispatcher(factory).dispatch_pending_ingredients(limit=args.limit)
    console.print(f"[green]✓[/green] Dispatched {report.dispatched} ingredient task(s)")
    print_worker_hint("ingredients_queue")


def cmd_queue_steps(args: argparse.Namespace, factory: ServiceFactory) -> None:
    from . import tasks

    pending = tasks.steps_queue.pending_count()
    if pending and not args.yes:
        console.print(
            f"[yellow]{pending} step task(s) are already waiting in the queue.[/yellow] "
            "Re-run with --yes to dispatch anyway."
        )
        return

    report = create_batch_dispatcher(factory).dispatch_pending_steps(limit=args.limit)
    display_counts(
        "✓ Step Tasks",
        [
            ("Dispatched", report.dispatched),
            ("Skipped", report.skipped),
            ("Already queued", report.already_queued),
        ],
    )
    print_worker_hint("steps_queue")


def cmd_debug(args: argparse.Namespace, factory: ServiceFactory) -> None:
    extractor = factory.registry.for_url(args.url)
    record = extractor.scrape_recipe(args.url)
    if record is None:
        display_error("Fetch Failed", f"Could not fetch {args.url}")
        return
    display_record(record)


def cmd_test(args: argparse.Namespace, factory: ServiceFactory) -> None:
    from . import tasks

    handler = tasks.get_factory().create_acquisition(
        enqueue_ingredients=tasks.normalize_ingredients
    )
    try:
        recipe = handler.run(args.url)
    except Exception as e:  # Show the full trace, as the worker would log it
        console.print_exception()
        logging.exception(f"Acquisition test failed for {args.url}")
        raise SystemExit(1) from e

    if recipe is None:
        console.print(f"[yellow]No recipe scraped from[/yellow] {args.url}")
        return
    source_url = handler.repository.get_source_url(args.url)
    console.print(f"[green]✓[/green] Stored recipe {recipe.id}: {recipe.name}")
    console.print(f"  Ingredient sections: {len(recipe.ingredients)}, steps: {len(recipe.steps)}")
    console.print(f"  Source consumed: {bool(source_url and source_url.consumed)}")


def cmd_sources(args: argparse.Namespace, factory: ServiceFactory) -> None:
    for source_type in ExtractorRegistry.supported_types():
        console.print(f"• {source_type.value}")


COMMANDS = {
    "discover": cmd_discover,
    "acquire-file": cmd_acquire_file,
    "queue-acquisitions": cmd_queue_acquisitions,
    "queue-ingredients": cmd_queue_ingredients,
    "queue-steps": cmd_queue_steps,
    "debug": cmd_debug,
    "test": cmd_test,
    "sources": cmd_sources,
}


def main(argv: list[str] | None = None) -> None:
    """Entry point for the recipe-harvest command."""
    args = build_parser().parse_args(argv)

    try:
        config = HarvestConfig.load()
        setup_logging(debug=args.debug or config.debug_mode)
        COMMANDS[args.command](args, ServiceFactory(config))
    except KeyboardInterrupt:
        console.print()
        console.print(
            Panel(
                "[yellow]Interrupted by user[/yellow]\n\n"
                "[dim]Work already stored or queued is kept.[/dim]",
                title="[bold yellow]Interrupted[/bold yellow]",
                border_style="yellow",
            )
        )
        console.print()
    except HarvestError as e:
        display_error("Error", f"{e!s}\n\n[dim]Check {LOG_FILE} for details.[/dim]")
        logging.exception("Command failed")
        raise SystemExit(1) from e
    except Exception as e:  # Intentional catch-all for CLI entry point
        display_error(
            "Error",
            f"[bold red]An unexpected error occurred:[/bold red]\n\n{e!s}\n\n"
            f"[dim]Check {LOG_FILE} for detailed error information.[/dim]",
        )
        logging.exception("Unexpected error during processing")
        raise


if __name__ == "__main__":
    main()
