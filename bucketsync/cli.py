from __future__ import annotations

import logging
from pathlib import Path

import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from bucketsync.config import ConfigError, default_log_level, dump_metadata, load_config
from bucketsync.coordinator import RunCoordinator
from bucketsync.models import ComparisonRecord, CompareType
from bucketsync.remote import ListingTruncatedError, create_client
from bucketsync.sync import DEFAULT_CONCURRENCY, SyncPlan, plan_sync, prepare_run
from bucketsync.transfer_ui import TransferProgressUI


HELP_EXIT_CODE = 127

app = typer.Typer(
    help="One-way sync of a local directory into an S3 bucket.",
    add_completion=False,
    context_settings={"help_option_names": []},
)
console = Console()

_CLASSIFICATION_STYLES = {
    CompareType.UNCHANGED: "dim",
    CompareType.CHANGED: "yellow",
    CompareType.NEW_LOCALLY: "green",
    CompareType.REMOVED_LOCALLY: "red",
}


def _configure_logging() -> None:
    logging.basicConfig(
        level=default_log_level(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _print_help(ctx: typer.Context, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    typer.echo(ctx.get_help())
    raise typer.Exit(code=HELP_EXIT_CODE)


def _render_comparisons(comparisons: dict[str, ComparisonRecord]) -> None:
    table = Table(title="Comparisons")
    table.add_column("Key")
    table.add_column("Classification")
    for key, record in comparisons.items():
        style = _CLASSIFICATION_STYLES[record.classification]
        table.add_row(escape(key), f"[{style}]{record.classification.value}[/{style}]")
    console.print(table)


def _render_metadata(plan: SyncPlan) -> None:
    console.print("[bold]Metadata:[/bold]")
    console.print_json(data=dump_metadata(plan.metadata))


def _render_latest_errors(coordinator: RunCoordinator) -> None:
    console.print("\n\n[red]Something went wrong![/red]\n")
    for failure in coordinator.latest_errors():
        record = failure.record
        console.print("\n###########################")
        console.print(f"Worker: {failure.worker_id}")
        console.print(f"Item: {escape(record.key)} ({record.classification.value})")
        console.print(f"Error: {escape(repr(failure.error))}")


def _sync(env_path: Path, *, execute: bool, concurrency: int, force: bool) -> int:
    try:
        config = load_config(env_path)
        client = create_client(config)
        plan = plan_sync(config, client)
    except (ConfigError, ListingTruncatedError, FileNotFoundError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1
    except (BotoCoreError, ClientError) as exc:
        console.print(f"[red]Listing failed:[/red] {escape(str(exc))}")
        return 1

    _render_comparisons(plan.comparisons)
    _render_metadata(plan)

    if not execute:
        console.print("[yellow]Missing --execute, stopping.[/yellow]")
        return 0

    if force:
        console.print("[yellow]--force provided; Unchanged files will be uploaded[/yellow]")

    prepared = prepare_run(plan, client, concurrency=concurrency, force=force)
    try:
        with TransferProgressUI(
            prepared.total_files, prepared.total_bytes, console=console
        ) as ui:
            prepared.coordinator.add_listener(ui)
            succeeded = prepared.coordinator.run()
    except KeyboardInterrupt:
        console.print("[yellow]Sync interrupted.[/yellow] Bucket may be partially updated.")
        return 130

    if succeeded:
        console.print("\n[green]Success! All requests completed successfully.[/green]")
        return 0

    _render_latest_errors(prepared.coordinator)
    return 1


@app.command(context_settings={"help_option_names": []})
def sync(
    env_path: Path = typer.Argument(
        ...,
        metavar="ENV-PATH",
        help="Path to the JSON configuration document.",
    ),
    execute: bool = typer.Option(
        False,
        "--execute",
        help="Execute the operation (without it, only report what would change).",
    ),
    concurrency: int = typer.Option(
        DEFAULT_CONCURRENCY,
        "--concurrency",
        min=1,
        help="Number of parallel transfer workers.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Upload even files whose content has not changed.",
    ),
    show_help: bool = typer.Option(
        False,
        "-h",
        "--help",
        is_eager=True,
        callback=_print_help,
        help="Print this help text and exit.",
    ),
) -> None:
    """Reconcile ENV-PATH's copySourceDirectory into its bucket."""
    _configure_logging()
    raise typer.Exit(
        code=_sync(env_path, execute=execute, concurrency=concurrency, force=force)
    )
