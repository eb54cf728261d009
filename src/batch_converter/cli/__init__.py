from __future__ import annotations

import logging
import threading
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..config import AppConfig, dump_config, load_config
from ..converters import available_converters, get_converter
from ..events import CallbackListener, RunError
from ..jobs import RunStore
from ..logging import RunLogger, append_run_summary
from ..models import ConversionJob, RunState, RunSummary
from ..pipeline import BatchPipeline
from ..utils import generate_run_id

console = Console()

app = typer.Typer(help="Batch audio and data format converter")

EXIT_STRICT_FAILURES = 2
EXIT_CANCELLED = 130


def _load_config(path: Path | None) -> AppConfig:
    return load_config(path)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _print_error(event: RunError) -> None:
    console.print(f"[red]{event.code}[/red] {escape(event.message)}")


def _run_in_background(pipeline: BatchPipeline, job: ConversionJob, run_id: str) -> RunSummary:
    cancellation = threading.Event()
    result: dict[str, RunSummary] = {}

    def _target() -> None:
        result["summary"] = pipeline.run(job, cancellation, run_id=run_id)

    worker = threading.Thread(target=_target, name="batch-run", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.2)
    except KeyboardInterrupt:
        console.print("[yellow]Cancelling after the current file...[/yellow]")
        cancellation.set()
        worker.join()
    return result["summary"]


@app.command()
def convert(
    directory: Path = typer.Argument(..., help="Directory to scan recursively"),
    converter: str = typer.Argument(..., help="Converter name, e.g. adx2wav"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show diagnostic logging"),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero when any file fails"),
) -> None:
    _configure_logging(verbose)
    cfg = _load_config(config)
    try:
        spec = get_converter(converter)
    except KeyError as exc:
        console.print(f"[red]Unknown converter[/red]: {converter}")
        raise typer.Exit(1) from exc

    log_path = cfg.log_path
    listener = CallbackListener(
        on_started=lambda path: console.print(f"Processing directory: {escape(str(path))}"),
        on_progress=lambda message: console.print(message, markup=False),
        on_error=_print_error,
        on_file_converted=lambda path: console.print(f"[green]wrote[/green] {escape(str(path))}"),
    )
    pipeline = BatchPipeline(listener, run_logger=RunLogger(log_path) if log_path else None)
    run_id = generate_run_id("cli")
    summary = _run_in_background(pipeline, spec.job(directory, cfg.tools), run_id)

    summary_path = cfg.summary_path
    if summary_path is not None:
        append_run_summary(summary_path, run_id, summary)

    console.print(
        f"Processed {summary.total} files: "
        f"{summary.succeeded} succeeded, {summary.failed} failed."
    )
    if summary.state is RunState.CANCELLED:
        raise typer.Exit(EXIT_CANCELLED)
    if summary.state is RunState.ABORTED:
        raise typer.Exit(1)
    if strict and summary.failed:
        raise typer.Exit(EXIT_STRICT_FAILURES)


@app.command()
def converters() -> None:
    table = Table(title="Registered converters")
    table.add_column("Name")
    table.add_column("Source")
    table.add_column("Target")
    for spec in available_converters():
        table.add_row(spec.name, spec.source_extension, spec.target_extension)
    console.print(table)


@app.command()
def runs(
    limit: int = typer.Option(20, "--limit", min=1, help="Number of recent runs to show"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    records = RunStore(cfg).list_latest(limit)
    if not records:
        console.print("No runs recorded.")
        raise typer.Exit()
    table = Table(title="Recent runs")
    table.add_column("Run ID")
    table.add_column("Converter")
    table.add_column("Status")
    table.add_column("Converted")
    for record in records:
        table.add_row(
            record.run_id,
            record.converter,
            record.status.value,
            f"{record.succeeded}/{record.total}",
        )
    console.print(table)


@app.command()
def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    console.print_json(dump_config(_load_config(config)))


if __name__ == "__main__":
    app()
