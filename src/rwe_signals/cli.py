"""Command-line interface for rwe-signals."""

import logging
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import get_config, get_scoring_config
from .pipeline import StageResult, run_pipeline, run_rank_stage, run_signal_stage
from .ranking.ranker import summarize_rankings
from .serving import list_events, list_signals
from .storage import SnapshotStore, StorageError

console = Console()


def setup_logging(verbose: bool):
    """Configure logging based on verbosity."""
    config = get_config()
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(level=logging.WARNING, format=config.log_format)
    logging.getLogger("rwe_signals").setLevel(level)


def format_score(score: float) -> Text:
    """Format score with color coding."""
    if score >= 4.0:
        color = "red"
    elif score >= 2.0:
        color = "orange1"
    elif score >= 0.0:
        color = "yellow"
    else:
        color = "green"
    return Text(f"{score:.2f}", style=f"bold {color}")


def format_trend(trend_z: float) -> Text:
    """Format trend z-score; rising trends are highlighted."""
    if trend_z > 0:
        return Text(f"{trend_z:+.2f}", style="red")
    if trend_z < 0:
        return Text(f"{trend_z:+.2f}", style="green")
    return Text("0.00", style="dim")


def display_stage(result: StageResult):
    """Display a stage result panel."""
    if result.skipped:
        console.print(Panel(result.message, title=f"{result.stage}: skipped", border_style="yellow"))
        return

    lines = [
        f"Rows in: {result.rows_in} | Rows out: {result.rows_out} | "
        f"Time: {result.duration_seconds:.2f}s",
        f"Output: {result.output_path}",
    ]
    if result.prior is not None:
        lines.append(
            f"Prior: mean={result.prior.mean:.4f} variance={result.prior.variance:.4f}"
        )
    console.print(Panel("\n".join(lines), title=result.stage, border_style="blue"))


def display_signals(signals):
    """Display ranked signals in a table."""
    if not signals:
        console.print("[yellow]No ranked signals available[/yellow]")
        return

    table = Table(title="Ranked Safety Signals")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Drug", style="bold")
    table.add_column("Event")
    table.add_column("Quarter")
    table.add_column("ROR", justify="right")
    table.add_column("95% CI", justify="right")
    table.add_column("Lit", justify="right")
    table.add_column("Trend", justify="right")
    table.add_column("Score", justify="right")

    for i, s in enumerate(signals, 1):
        table.add_row(
            str(i),
            s.drug_id,
            s.event_id,
            s.year_quarter,
            f"{s.recent_ror:.2f}",
            f"{s.ci_low:.2f}-{s.ci_high:.2f}",
            str(s.lit_support),
            format_trend(s.trend_z),
            format_score(s.score),
        )

    console.print(table)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.version_option(package_name="rwe-signals")
def main(verbose: bool):
    """rwe-signals - Pharmacovigilance signal computation and ranking."""
    setup_logging(verbose)


@main.command()
def signal():
    """Compute disproportionality and trend metrics."""
    try:
        result = run_signal_stage(get_config())
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    display_stage(result)


@main.command()
def rank():
    """Rank safety signals."""
    try:
        result = run_rank_stage(get_config(), scoring=get_scoring_config())
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    display_stage(result)


@main.command()
def run():
    """Compute metrics and rank them."""
    try:
        result = run_pipeline(get_config(), scoring=get_scoring_config())
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    for stage in result.stages:
        display_stage(stage)
    console.print(f"Completed in {result.duration_seconds:.2f}s")


@main.command()
@click.option("--drug", "-d", help="Restrict to one drug id")
@click.option("--limit", "-n", type=int, help="Maximum rows to show")
@click.option("--min-score", type=float, default=None, help="Minimum composite score")
@click.option("--min-lit", type=int, default=0, help="Minimum literature support")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def top(drug: str | None, limit: int | None, min_score: float | None, min_lit: int, json_output: bool):
    """Show top ranked signals."""
    config = get_config()
    try:
        signals = list_signals(
            config,
            drug=drug,
            limit=limit,
            min_score=min_score,
            min_lit_support=min_lit,
        )
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if json_output:
        console.print_json(data=[s.model_dump() for s in signals])
        return

    display_signals(signals)

    summary = summarize_rankings(signals)
    if summary["total"]:
        console.print(
            Panel(
                f"Total: {summary['total']} | "
                f"Avg Score: {summary['avg_score']:.2f} | "
                f"With literature: {summary['with_literature']} | "
                f"Rising: {summary['rising']}",
                title="Summary",
                border_style="blue",
            )
        )


@main.command()
@click.argument("drug_id")
@click.option("--limit", "-n", type=int, help="Maximum rows to show")
def events(drug_id: str, limit: int | None):
    """List events for a drug by recent ROR."""
    config = get_config()
    try:
        rows = list_events(config, drug_id, limit=limit)
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if not rows:
        console.print(f"[yellow]No events for {drug_id}[/yellow]")
        return

    table = Table(title=f"Events for {drug_id}")
    table.add_column("Event", style="bold")
    table.add_column("Quarter")
    table.add_column("ROR", justify="right")
    table.add_column("95% CI", justify="right")
    table.add_column("Trend", justify="right")

    for e in rows:
        table.add_row(
            e.event_id,
            e.year_quarter,
            f"{e.recent_ror:.2f}",
            f"{e.ci_low:.2f}-{e.ci_high:.2f}",
            format_trend(e.trend_z),
        )

    console.print(table)


@main.command()
@click.option("--host", default=None, help="Host address (default from config)")
@click.option("--port", type=int, default=None, help="Port to bind (default from config)")
def serve(host: str | None, port: int | None):
    """Serve the JSON API."""
    from .web_server import serve as serve_api

    config = get_config()
    host = host or config.serve_host
    port = port or config.serve_port

    console.print(f"[green]Serving on[/green] http://{host}:{port}")
    serve_api(config, host, port)


@main.command("init-db")
def init_db():
    """Create analyst views in the DuckDB database."""
    config = get_config()
    store = SnapshotStore(config)
    try:
        created = store.bootstrap_views()
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if created:
        console.print(f"[green]Created views:[/green] {', '.join(created)} in {config.duckdb_path}")
    else:
        console.print("[yellow]No artefacts found; no views created[/yellow]")


@main.command()
def status():
    """Show row counts of each snapshot."""
    try:
        stats = SnapshotStore(get_config()).get_stats()
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    table = Table(title="Snapshots")
    table.add_column("Artefact")
    table.add_column("Rows", justify="right")
    for name, count in stats.items():
        table.add_row(name, "missing" if count is None else str(count))

    console.print(table)


if __name__ == "__main__":
    main()
