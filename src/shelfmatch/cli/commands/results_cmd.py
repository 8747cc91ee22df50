# ABOUTME: The `shelfmatch results` command for inspecting stored match results.
# ABOUTME: Shows one item's selected match and per-stage audit trail, or all selections.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from shelfmatch.cli.options import db_option
from shelfmatch.config import Settings
from shelfmatch.db.connection import open_store
from shelfmatch.db.results import SqliteResultStore
from shelfmatch.matching.records import SelectedMatch, Stage, StoredResult


def _fmt(value: float | None) -> str:
    return f"{value:.0%}" if value is not None else ""


def _match_table(match: SelectedMatch) -> Table:
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")
    table.add_row("Item", match.item_id)
    table.add_row("Catalog key", match.candidate_key)
    table.add_row("Tier", match.tier.value)
    table.add_row("Method", match.method.value)
    table.add_row("Confidence", _fmt(match.confidence))
    if match.visual_similarity is not None:
        table.add_row("Visual", _fmt(match.visual_similarity))
    if match.reasoning:
        table.add_row("Reasoning", match.reasoning)
    return table


def _stage_table(stage: Stage, rows: list[StoredResult]) -> Table:
    table = Table(title=f"{stage.value} ({len(rows)})")
    table.add_column("Rank", justify="right", style="dim")
    table.add_column("Key")
    table.add_column("Title")
    table.add_column("Brand")
    table.add_column("Size")
    if stage is Stage.PRE_FILTER:
        table.add_column("Score", justify="right")
        table.add_column("Reasons")
    elif stage in (Stage.AI_FILTER, Stage.VISUAL_MATCH):
        table.add_column("Tier")
        table.add_column("Visual", justify="right")
        table.add_column("Confidence", justify="right")

    for row in rows:
        cells = [str(row.rank), row.candidate_key, row.title, row.brand or "", row.size or ""]
        if stage is Stage.PRE_FILTER:
            cells += [_fmt(row.similarity_score), "; ".join(row.match_reasons)]
        elif stage in (Stage.AI_FILTER, Stage.VISUAL_MATCH):
            tier = row.match_tier.value if row.match_tier else ""
            cells += [tier, _fmt(row.visual_similarity), _fmt(row.confidence)]
        table.add_row(*cells)
    return table


@click.command("results")
@click.argument("item_id", required=False)
@db_option
@click.option(
    "--stage",
    type=click.Choice([s.value for s in Stage]),
    default=None,
    help="Only show rows from this stage.",
)
def results(item_id: str | None, db_path: Path | None, stage: str | None) -> None:
    """Show stored results for ITEM_ID, or every selected match when omitted."""
    console = Console()
    conn = open_store(db_path or Settings().db_path)
    try:
        store = SqliteResultStore(conn)

        if item_id is None:
            matches = store.list_selected_matches()
            if not matches:
                console.print("[yellow]No selected matches stored.[/yellow]")
                return
            table = Table(title="Selected matches")
            table.add_column("Item")
            table.add_column("Catalog key")
            table.add_column("Method")
            table.add_column("Confidence", justify="right")
            for match in matches:
                table.add_row(
                    match.item_id, match.candidate_key, match.method.value, _fmt(match.confidence)
                )
            console.print(table)
            return

        rows = store.get_stage_rows(item_id, Stage(stage) if stage else None)
        match = store.get_selected_match(item_id)
        if not rows and match is None:
            console.print(f"[red]No results for item {item_id}.[/red]")
            raise SystemExit(1)

        if match is not None:
            console.print(_match_table(match))
        else:
            console.print(f"[yellow]Item {item_id} has no selected match.[/yellow]")

        for current in Stage:
            stage_rows = [r for r in rows if r.stage is current]
            if stage_rows:
                console.print(_stage_table(current, stage_rows))
    finally:
        conn.close()
