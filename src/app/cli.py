"""Click CLI for Screen Lab.

Entry point: ``screenlab`` (installed via pyproject.toml) or ``python -m app.cli``.
"""

from __future__ import annotations

from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from app.config import get_config
from app.logging import get_logger, setup_logging
from screener.formatting import (
    format_market_cap,
    format_percent,
    format_price,
    format_volume,
)
from screener.models import (
    DEFAULT_LIMIT,
    SORT_FIELDS,
    SORT_ORDERS,
    ScreenerResponse,
    ScreenRequest,
)
from screener.parser import parse_query

logger = get_logger(__name__)
console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error(message: str) -> None:
    """Print a styled error message and exit."""
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise SystemExit(1)


def _executor():
    """Build the screen executor, exiting cleanly if it cannot be configured."""
    from screener.executor import ScreenExecutor  # lazy import

    try:
        return ScreenExecutor()
    except ValueError as exc:
        _error(str(exc))


def _execute(screen_request: ScreenRequest) -> ScreenerResponse:
    from screener.executor import ScreenExecutionError  # lazy import

    executor = _executor()
    try:
        with console.status("[bold green]Screening..."):
            return executor.execute(screen_request)
    except ScreenExecutionError as exc:
        _error(str(exc))


def _change_cell(value: float) -> str:
    text = format_percent(value)
    if value > 0:
        return f"[green]{text}[/green]"
    if value < 0:
        return f"[red]{text}[/red]"
    return text


def _print_response(response: ScreenerResponse) -> None:
    console.print(f"[bold]{response.explanation}[/bold]")
    if not response.results:
        console.print("[yellow]No stocks matched.[/yellow]")
        return

    table = Table(
        title=f"Screener Results ({len(response.results)} of {response.total_count})",
        show_lines=False,
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Ticker", style="bold")
    table.add_column("Company")
    table.add_column("Sector")
    table.add_column("Price", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Rel Vol", justify="right")
    table.add_column("Mkt Cap", justify="right")

    for rank, r in enumerate(response.results, 1):
        table.add_row(
            str(rank),
            r.ticker,
            r.company,
            r.sector or "-",
            format_price(r.price),
            _change_cell(r.change_percent),
            format_volume(r.volume),
            f"{r.relative_volume:.2f}x",
            format_market_cap(r.market_cap) if r.market_cap else "-",
        )

    console.print(table)
    console.print(
        f"[dim]{response.source} | {response.execution_time_ms:.0f} ms | {response.timestamp}[/dim]"
    )


def _print_insights(response: ScreenerResponse) -> None:
    from insights import generate_insights  # lazy import

    report = generate_insights(response.criteria, response.results)
    console.print()
    console.print(f"[bold cyan]Insights[/bold cyan] {report.summary}")

    if report.key_findings:
        console.print("[bold]Key findings[/bold]")
        for finding in report.key_findings:
            console.print(f"  - {finding}")

    if report.sector_breakdown:
        table = Table(title="Sector Breakdown")
        table.add_column("Sector")
        table.add_column("Count", justify="right")
        table.add_column("Avg Change", justify="right")
        for stat in report.sector_breakdown:
            table.add_row(stat.sector, str(stat.count), _change_cell(stat.avg_change))
        console.print(table)

    if report.top_opportunities:
        console.print("[bold]Top opportunities[/bold]")
        for opp in report.top_opportunities:
            console.print(f"  [bold]{opp.ticker}[/bold]: {opp.reason}")

    if report.risk_factors:
        console.print("[bold]Risk factors[/bold]")
        for risk in report.risk_factors:
            console.print(f"  [yellow]![/yellow] {risk}")

    if report.market_context:
        console.print(f"[dim]{report.market_context}[/dim]")


def _print_criteria(criteria) -> None:
    wire = criteria.to_dict()
    if not wire:
        console.print("[yellow]No filters recognised.[/yellow]")
        return
    table = Table(title="Criteria")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, value in wire.items():
        shown = ", ".join(value) if isinstance(value, list) else str(value)
        table.add_row(key, shown)
    console.print(table)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="screen-lab")
@click.option("--log-level", default=None, help="Override the configured log level (e.g. DEBUG).")
def cli(log_level: Optional[str]) -> None:
    """Screen Lab -- natural-language stock screener."""
    if log_level:
        setup_logging(log_level)


# ---------------------------------------------------------------------------
# screen
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("query")
@click.option("--sort-by", type=click.Choice(SORT_FIELDS), default="volume", show_default=True)
@click.option("--order", type=click.Choice(SORT_ORDERS), default="desc", show_default=True)
@click.option("--limit", default=DEFAULT_LIMIT, show_default=True, type=click.IntRange(min=0))
@click.option("--offset", default=0, show_default=True, type=click.IntRange(min=0))
@click.option("--save", "save_as", default=None, help="Save the screen under this name.")
@click.option("--insights", "with_insights", is_flag=True, default=False, help="Append an insight report.")
def screen(
    query: str,
    sort_by: str,
    order: str,
    limit: int,
    offset: int,
    save_as: Optional[str],
    with_insights: bool,
) -> None:
    """Screen stocks with a free-text QUERY (e.g. "under $20 high volume")."""
    criteria = parse_query(query)
    screen_request = ScreenRequest(
        criteria=criteria, sort_by=sort_by, sort_order=order, limit=limit, offset=offset,
    )
    logger.info("screen: query=%r sort=%s %s", query, sort_by, order)

    response = _execute(screen_request)
    _print_response(response)
    if with_insights:
        _print_insights(response)

    if save_as:
        from screener.saved import SavedScreenStore  # lazy import

        saved = SavedScreenStore().save(save_as, query, criteria, sort_by, order)
        console.print(f"[green]Saved as[/green] {saved.name} [dim]({saved.id})[/dim]")


# ---------------------------------------------------------------------------
# watch
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("query")
@click.option("--interval", default=60.0, show_default=True, type=click.FloatRange(min=0),
              help="Seconds between refreshes.")
@click.option("--count", default=0, show_default=True, type=click.IntRange(min=0),
              help="Number of refreshes; 0 runs until interrupted.")
@click.option("--sort-by", type=click.Choice(SORT_FIELDS), default="volume", show_default=True)
@click.option("--order", type=click.Choice(SORT_ORDERS), default="desc", show_default=True)
@click.option("--limit", default=25, show_default=True, type=click.IntRange(min=0))
def watch(query: str, interval: float, count: int, sort_by: str, order: str, limit: int) -> None:
    """Re-run QUERY every INTERVAL seconds, showing only the newest results."""
    import time

    from screener.executor import ScreenExecutionError  # lazy import
    from screener.session import ScreenSession  # lazy import

    screen_request = ScreenRequest(
        criteria=parse_query(query), sort_by=sort_by, sort_order=order, limit=limit,
    )
    session = ScreenSession(_executor())
    logger.info("watch: query=%r interval=%.1fs count=%d", query, interval, count)

    refresh = 0
    try:
        while True:
            refresh += 1
            try:
                with console.status("[bold green]Screening..."):
                    response = session.run(screen_request)
            except ScreenExecutionError as exc:
                _error(str(exc))
            if response is not None:
                console.rule(f"Refresh {refresh}")
                _print_response(response)
            if count and refresh >= count:
                break
            time.sleep(interval)
    except KeyboardInterrupt:
        console.print("[dim]Stopped watching.[/dim]")


# ---------------------------------------------------------------------------
# quick
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("key", required=False)
@click.option("--category", default=None, help="Only list quick screens in this category.")
@click.option("--limit", default=DEFAULT_LIMIT, show_default=True, type=click.IntRange(min=0))
@click.option("--insights", "with_insights", is_flag=True, default=False, help="Append an insight report.")
def quick(key: Optional[str], category: Optional[str], limit: int, with_insights: bool) -> None:
    """List quick screens, or run the quick screen KEY."""
    from screener.presets import QUICK_SCREENS, get_quick_screen, quick_screens_by_category

    if key is None:
        try:
            screens = quick_screens_by_category(category) if category else dict(QUICK_SCREENS)
        except ValueError as exc:
            _error(str(exc))
        table = Table(title="Quick Screens")
        table.add_column("Key", style="bold")
        table.add_column("Name")
        table.add_column("Category", style="dim")
        table.add_column("Description")
        for qs in screens.values():
            table.add_row(qs.key, qs.name, qs.category, qs.description)
        console.print(table)
        return

    try:
        preset = get_quick_screen(key)
    except KeyError:
        _error(f'Quick screen "{key}" not found')

    console.print(f"[bold cyan]{preset.name}[/bold cyan] -- {preset.description}")
    response = _execute(preset.to_request(limit))
    _print_response(response)
    if with_insights:
        _print_insights(response)


# ---------------------------------------------------------------------------
# saved
# ---------------------------------------------------------------------------

@cli.group()
def saved() -> None:
    """Manage saved screens."""


@saved.command("list")
def saved_list() -> None:
    """List saved screens, newest first."""
    from screener.saved import SavedScreenStore  # lazy import

    screens = SavedScreenStore().list()
    if not screens:
        console.print("[yellow]No saved screens.[/yellow]")
        return

    table = Table(title=f"Saved Screens ({len(screens)})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Query")
    table.add_column("Sort")
    table.add_column("Saved")
    for s in screens:
        table.add_row(s.id, s.name, s.query, f"{s.sort_by} {s.sort_order}", s.saved_at[:19])
    console.print(table)


@saved.command("run")
@click.argument("screen_id")
@click.option("--limit", default=DEFAULT_LIMIT, show_default=True, type=click.IntRange(min=0))
@click.option("--insights", "with_insights", is_flag=True, default=False, help="Append an insight report.")
def saved_run(screen_id: str, limit: int, with_insights: bool) -> None:
    """Re-run a saved screen by SCREEN_ID or name."""
    from screener.saved import SavedScreenStore  # lazy import

    store = SavedScreenStore()
    screen_def = store.find(screen_id)
    if screen_def is None:
        _error(f"Saved screen '{screen_id}' not found")

    console.print(f"[bold cyan]{screen_def.name}[/bold cyan] -- {screen_def.query}")
    response = _execute(store.to_request(screen_def, limit))
    _print_response(response)
    if with_insights:
        _print_insights(response)


@saved.command("delete")
@click.argument("screen_id")
def saved_delete(screen_id: str) -> None:
    """Delete the saved screen SCREEN_ID."""
    from screener.saved import SavedScreenStore  # lazy import

    if not SavedScreenStore().delete(screen_id):
        _error(f"Saved screen '{screen_id}' not found")
    console.print(f"[green]Deleted[/green] {screen_id}")


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("query")
def parse(query: str) -> None:
    """Show how QUERY is interpreted without running it."""
    from screener.explain import describe  # lazy import

    criteria = parse_query(query)
    _print_criteria(criteria)
    console.print(describe(criteria))


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--host", default=None, help="Bind host (default: from config or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from config or 8000).")
def serve(host: Optional[str], port: Optional[int]) -> None:
    """Start the FastAPI server."""
    import uvicorn  # lazy import
    from api.routes import create_app  # lazy import

    cfg = get_config()
    server_cfg = cfg.get("server", {})

    resolved_host = host or server_cfg.get("host", "0.0.0.0")
    resolved_port = port or int(server_cfg.get("port", 8000))

    app = create_app()

    console.print(
        f"[bold cyan]Starting server[/bold cyan] at "
        f"http://{resolved_host}:{resolved_port}"
    )
    logger.info("serve: host=%s port=%d", resolved_host, resolved_port)

    uvicorn.run(app, host=resolved_host, port=resolved_port)


# ---------------------------------------------------------------------------
# Entry point for direct execution
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
