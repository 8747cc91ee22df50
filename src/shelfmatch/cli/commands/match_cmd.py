# ABOUTME: The `shelfmatch match` command: runs the matching pipeline over a batch file.
# ABOUTME: Shows live progress, then a summary table and the list of failed items.

import asyncio
import contextlib
import json
import signal
from pathlib import Path

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from shelfmatch.catalog.foodgraph import FoodGraphSource
from shelfmatch.catalog.items import ItemsFileError, load_items
from shelfmatch.catalog.source import CandidateSource
from shelfmatch.cli.options import db_option
from shelfmatch.config import Settings
from shelfmatch.core.events import (
    BatchSummary,
    CompleteEvent,
    ErrorEvent,
    OutcomeStatus,
    ProgressEvent,
    StartEvent,
)
from shelfmatch.core.orchestrator import BatchJob, BatchOrchestrator
from shelfmatch.core.pipeline import ItemPipeline, Strategy
from shelfmatch.db.connection import open_store
from shelfmatch.db.results import SqliteResultStore
from shelfmatch.http import ShelfmatchHttpClient
from shelfmatch.images import FileImageProvider
from shelfmatch.vision.gemini import GeminiVisionClient
from shelfmatch.vision.service import VisionService

_STATUS_STYLE = {
    OutcomeStatus.SUCCESS: "green",
    OutcomeStatus.NO_MATCH: "yellow",
    OutcomeStatus.ERROR: "red",
}


def _create_source(settings: Settings, http_client: ShelfmatchHttpClient) -> CandidateSource:
    """Create the default candidate source (FoodGraph)."""
    return FoodGraphSource(
        http_client,
        email=settings.foodgraph_email,
        password=settings.foodgraph_password,
        base_url=settings.foodgraph_base_url,
        updated_from=settings.foodgraph_updated_from,
        default_limit=settings.search_limit,
    )


def _create_vision(settings: Settings, http_client: ShelfmatchHttpClient) -> VisionService:
    """Create the default vision service (Gemini)."""
    if not settings.gemini_api_key:
        raise click.ClickException("SHELFMATCH_GEMINI_API_KEY is not set")
    return GeminiVisionClient(
        http_client,
        api_key=settings.gemini_api_key,
        base_url=settings.gemini_base_url,
        model=settings.gemini_model,
        visual_threshold=settings.visual_threshold,
    )


def _make_progress(console: Console) -> Progress:
    """Create a Rich progress bar for batch processing."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    )


def _print_summary(console: Console, summary: BatchSummary) -> None:
    table = Table(title="Results")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Item")
    table.add_column("Status")
    table.add_column("Match")
    table.add_column("Method")
    table.add_column("Confidence", justify="right")

    for outcome in summary.outcomes:
        style = _STATUS_STYLE[outcome.status]
        match = outcome.match
        table.add_row(
            str(outcome.position),
            outcome.label or outcome.item_id,
            f"[{style}]{outcome.status.value}[/{style}]",
            match.candidate_key if match else "",
            match.method.value if match else "",
            f"{match.confidence:.0%}" if match else "",
        )
    console.print(table)

    parts = []
    if summary.succeeded:
        parts.append(f"[green]{summary.succeeded} matched[/green]")
    if summary.no_match:
        parts.append(f"[yellow]{summary.no_match} no match[/yellow]")
    if summary.errors:
        parts.append(f"[red]{summary.errors} error{'s' if summary.errors != 1 else ''}[/red]")
    console.print(f"\nDone: {', '.join(parts) or 'nothing processed'}")

    if summary.cancelled:
        console.print(f"[yellow]Cancelled: {summary.unprocessed} items not processed.[/yellow]")

    if summary.failed:
        console.print("\n[bold red]Failed items:[/bold red]")
        for outcome in summary.failed:
            console.print(f"  {outcome.item_id}: {outcome.message}")


async def _run_batch(
    job: BatchJob,
    settings: Settings,
    *,
    strategy: Strategy,
    images_dir: Path,
    as_json: bool,
    console: Console,
) -> bool:
    """Run the batch, rendering events as they arrive. Returns False on a batch failure."""
    search_http = ShelfmatchHttpClient(timeout=settings.search_timeout)
    vision_http = ShelfmatchHttpClient(timeout=settings.vision_timeout)
    conn = open_store(settings.db_path)
    try:
        pipeline = ItemPipeline(
            _create_source(settings, search_http),
            _create_vision(settings, vision_http),
            SqliteResultStore(conn),
            FileImageProvider(images_dir),
            strategy=strategy,
            settings=settings,
        )
        orchestrator = BatchOrchestrator.for_job(
            pipeline,
            job,
            default_concurrency=settings.default_concurrency,
            max_concurrency=settings.max_concurrency,
            chunk_delay=settings.chunk_delay,
        )

        cancel = asyncio.Event()
        loop = asyncio.get_running_loop()
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signal.SIGINT, cancel.set)

        progress = _make_progress(console)
        task_id = progress.add_task("Matching", total=len(job.items))
        ok = True
        try:
            async for event in orchestrator.stream(job.items, cancel):
                if isinstance(event, ErrorEvent):
                    ok = False
                if as_json:
                    click.echo(json.dumps(event.to_dict()))
                elif isinstance(event, StartEvent):
                    progress.start()
                elif isinstance(event, ProgressEvent):
                    outcome = event.outcome
                    progress.update(task_id, advance=1, description=outcome.label or outcome.item_id)
                elif isinstance(event, CompleteEvent):
                    progress.stop()
                    _print_summary(console, event.summary)
                else:
                    progress.stop()
                    console.print(f"[red]Batch failed:[/red] {event.message}")
        finally:
            progress.stop()
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(signal.SIGINT)
        return ok
    finally:
        await search_http.aclose()
        await vision_http.aclose()
        conn.close()


@click.command()
@click.argument("items_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@db_option
@click.option(
    "-s",
    "--strategy",
    type=click.Choice([s.value for s in Strategy]),
    default=Strategy.TIERED.value,
    help="tiered: classify each candidate; direct: one joint selection call per item.",
)
@click.option(
    "-c",
    "--concurrency",
    type=int,
    default=None,
    help="Items processed at once (clamped to 1..max; default from settings).",
)
@click.option(
    "--images-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory crop paths are relative to (default: the batch file's directory).",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit events as JSON lines.")
def match(
    items_file: Path,
    db_path: Path | None,
    strategy: str,
    concurrency: int | None,
    images_dir: Path | None,
    as_json: bool,
) -> None:
    """Match every item in ITEMS_FILE against the product catalog."""
    console = Console()
    settings = Settings()
    if db_path is not None:
        settings = settings.model_copy(update={"db_path": db_path})

    try:
        items = load_items(items_file)
    except ItemsFileError as exc:
        raise click.ClickException(str(exc)) from exc

    if not items:
        console.print("[yellow]No items to match.[/yellow]")
        return

    ok = asyncio.run(
        _run_batch(
            BatchJob(items=tuple(items), concurrency=concurrency),
            settings,
            strategy=Strategy(strategy),
            images_dir=images_dir or items_file.parent,
            as_json=as_json,
            console=console,
        )
    )
    if not ok:
        raise SystemExit(1)
