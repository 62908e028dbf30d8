"""
Command-Line Interface for IncomeLens.

Purpose
-------
Terminal rendition of the income dashboard: monthly and yearly reports
from a JSON records file and a JSON source catalog, without writing
Python code.

Commands
--------
- month: Monthly report (totals, comparison, projection, top sources)
- year:  Yearly report (12 months, top sources, comparison)
- info:  Summary of the records file and the source catalog

Example Usage
-------------
    # Report for February 2025 in Bogota time
    $ incomelens month -d incomes.json -c sources.json --year 2025 --month 2 --timezone America/Bogota

    # Yearly report exported to JSON with a chart
    $ incomelens year -d incomes.json -c sources.json --year 2024 -o report.json --plot year.png

    # Show version
    $ incomelens --version

Settings default from INCOMELENS_* environment variables (see AppSettings).
"""

from __future__ import annotations

import calendar as _calendar
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import AppSettings, CalendarConfig, ReportConfig
from .exceptions import IncomeLensError

__version__ = "0.1.0"


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _parse_day(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter(f"expected YYYY-MM-DD (got {value!r})") from exc


@click.group()
@click.version_option(version=__version__, prog_name="incomelens")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override INCOMELENS_LOG_LEVEL",
)
@click.pass_context
def main(ctx: click.Context, quiet: bool, log_level: Optional[str]) -> None:
    """
    IncomeLens - income aggregation and reporting.

    Buckets income records by day or month, totals them per source and
    reports trends, projections and top sources.

    Use 'incomelens COMMAND --help' for command-specific help.
    """
    settings = AppSettings()
    _setup_logging((log_level or settings.log_level).upper())
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["settings"] = settings
    ctx.obj["console"] = Console()


# ---------------------------------------------------------------------------
# Shared options and helpers
# ---------------------------------------------------------------------------

def _data_options(fn):
    options = [
        click.option(
            "--data", "-d",
            type=click.Path(path_type=Path),
            default=None,
            help="Income records JSON file (default: INCOMELENS_DATA_FILE)",
        ),
        click.option(
            "--catalog", "-c",
            type=click.Path(exists=True, path_type=Path),
            default=None,
            help="Source catalog JSON file (default: INCOMELENS_CATALOG_FILE)",
        ),
        click.option(
            "--timezone", "-z",
            type=str,
            default=None,
            help="IANA time zone for bucketing (default: INCOMELENS_TIMEZONE)",
        ),
        click.option(
            "--currency",
            type=click.Choice(["COP", "USD"]),
            default=None,
            help="Currency label for amounts",
        ),
        click.option(
            "--today",
            type=str,
            default=None,
            help="Reference date YYYY-MM-DD for projections (default: today)",
        ),
        click.option(
            "--top", "-n",
            type=int,
            default=None,
            help="Number of top sources to list",
        ),
        click.option(
            "--goal",
            type=float,
            default=None,
            help="Income goal for the period",
        ),
        click.option(
            "--format", "-f", "fmt",
            type=click.Choice(["table", "json"]),
            default="table",
        ),
        click.option(
            "--output", "-o",
            type=click.Path(path_type=Path),
            default=None,
            help="Write the report as JSON to this file",
        ),
        click.option(
            "--plot",
            type=click.Path(path_type=Path),
            default=None,
            help="Save a chart of the report to this PNG file",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _build_dashboard(ctx, data, catalog, timezone, currency, top, goal, *, yearly: bool, radius=None):
    from .dashboard import IncomeDashboard
    from .records import SourceCatalog
    from .serialization import load_catalog
    from .store import JsonFileRecordStore

    settings: AppSettings = ctx.obj["settings"]
    data = data or settings.data_file
    catalog = catalog or settings.catalog_file
    if data is None:
        _fail("no records file given (use --data or INCOMELENS_DATA_FILE).")

    try:
        calendar = (
            CalendarConfig(timezone=timezone, first_weekday=settings.first_weekday)
            if timezone else settings.calendar()
        )
        options = {"currency": currency or settings.currency}
        if top is not None:
            options["yearly_top_n" if yearly else "top_n"] = top
        if goal is not None:
            options["yearly_goal" if yearly else "monthly_goal"] = goal
        if radius is not None:
            options["daily_window_radius"] = radius
        config = ReportConfig(**options)
    except (ValueError, IncomeLensError) as e:
        _fail(str(e))

    try:
        source_catalog = load_catalog(catalog) if catalog else SourceCatalog()
    except (OSError, ValueError, IncomeLensError) as e:
        _fail(f"cannot load catalog {catalog}: {e}")

    store = JsonFileRecordStore(data, calendar=calendar)
    return IncomeDashboard(store, source_catalog, calendar=calendar, config=config), config


def _emit(ctx, report, dashboard, config, fmt, output, plot) -> None:
    from .serialization import report_to_dict, save_report

    console: Console = ctx.obj["console"]
    quiet = ctx.obj["quiet"]

    if fmt == "json":
        click.echo(json.dumps(report_to_dict(report), indent=2, ensure_ascii=False))
    else:
        _render(console, report, config, first_weekday=dashboard.calendar.first_weekday)

    if output:
        save_report(report, output)
        if not quiet:
            console.print(f"[green]Report written to {output}[/green]")

    if plot:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        from .plotting import plot_report

        fig = plot_report(report, dashboard.catalog, save_path=str(plot))
        plt.close(fig)
        if not quiet:
            console.print(f"[green]Chart written to {plot}[/green]")


def _calendar_cell(cell) -> str:
    if cell is None:
        return ""
    if cell["is_best"]:
        return f"[bold yellow]{cell['day']}[/bold yellow]"
    if cell["has_income"]:
        return f"[green]{cell['day']}[/green]"
    return str(cell["day"])


def _render(console: Console, report, config: ReportConfig, *, first_weekday: int = 0) -> None:
    from .utils import format_currency

    def money(x):
        return format_currency(x, config.currency)

    stats = report.stats
    period_label = "day" if report.aggregate.granularity == "day" else "month"

    table = Table(title=f"Income {report.period.key}", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Total", money(stats.total))
    if stats.has_uncategorized:
        table.add_row("  Categorized", money(stats.display_total))
        table.add_row("  Uncategorized", money(stats.unresolved_total))
    table.add_row(f"Average per active {period_label}", money(stats.average_per_active_bucket))
    if stats.best_bucket_key:
        table.add_row(f"Best {period_label}", f"{stats.best_bucket_key} ({money(stats.best_bucket_total)})")
    table.add_row("", "")
    if stats.previous_total is not None:
        table.add_row("Previous period", money(stats.previous_total))
        pct = stats.delta_percentage
        table.add_row("Change", "no prior data" if pct is None else f"{pct:+.1f}%")
    if stats.projected_total is not None:
        table.add_row("Average per elapsed day", money(stats.average_per_elapsed_day))
        table.add_row("Days elapsed", f"{stats.days_elapsed} / {stats.days_in_period}")
        table.add_row("Projected total", money(stats.projected_total))
    if stats.goal is not None:
        table.add_row("Goal", f"{money(stats.goal)} ({stats.goal_percentage:.1f}%)")
    console.print(table)

    if report.top_sources:
        sources = Table(title="Top sources", show_header=True)
        sources.add_column("#", justify="right")
        sources.add_column("Source", style="cyan")
        sources.add_column("Amount", justify="right")
        sources.add_column("Share", justify="right")
        for row in report.top_sources:
            sources.add_row(
                str(row["rank"]),
                row["display_name"],
                money(row["amount"]),
                f"{row['share_pct']:.1f}%",
            )
        console.print(sources)

    weeks = getattr(report, "weeks", None)
    if weeks:
        grid = Table(title=f"Calendar {report.period.key}", show_header=True)
        for i in range(7):
            grid.add_column(_calendar.day_abbr[(first_weekday + i) % 7], justify="right")
        for week in weeks:
            grid.add_row(*[_calendar_cell(cell) for cell in week])
        console.print(grid)

    window = getattr(report, "window", None)
    if window is not None:
        days = Table(title=f"Around {window.center}", show_header=True)
        days.add_column("Day", style="cyan")
        days.add_column("Amount", justify="right")
        for row in window.days:
            amount = "-" if row["amount"] is None else money(row["amount"])
            label = f"[bold]{row['key']}[/bold]" if row["is_current"] else row["key"]
            days.add_row(label, amount)
        console.print(days)
        if window.comparison is not None and window.comparison.delta_percentage is not None:
            console.print(f"vs previous day: {window.comparison.delta_percentage:+.1f}%")

    if not report.result.is_complete:
        kinds = {}
        for anomaly in report.result.anomalies:
            kinds[anomaly.kind] = kinds.get(anomaly.kind, 0) + 1
        lines = "\n".join(f"{kind}: {count}" for kind, count in sorted(kinds.items()))
        console.print(Panel(lines, title="Data anomalies", border_style="yellow"))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@main.command()
@click.option("--year", "-y", type=int, default=None, help="Calendar year (default: current)")
@click.option("--month", "-m", type=click.IntRange(1, 12), default=None, help="Month 1-12 (default: current)")
@click.option("--day", "day", type=str, default=None, help="Day YYYY-MM-DD to centre the daily window on")
@click.option("--radius", type=click.IntRange(0, 15), default=None, help="Days shown on each side of --day")
@_data_options
@click.pass_context
def month(ctx, year, month, day, radius, data, catalog, timezone, currency, today, top, goal, fmt, output, plot) -> None:
    """
    Monthly income report.

    Example:
        incomelens month -d incomes.json -c sources.json -y 2025 -m 2 --day 2025-02-14
    """
    dashboard, config = _build_dashboard(
        ctx, data, catalog, timezone, currency, top, goal, yearly=False, radius=radius
    )
    ref = _parse_day(today) or dashboard.calendar.today()
    year = year or ref.year
    month = month or ref.month
    selected = _parse_day(day)

    try:
        report = dashboard.month_report(year, month, today=ref, day=selected)
    except IncomeLensError as e:
        _fail(str(e))

    _emit(ctx, report, dashboard, config, fmt, output, plot)


@main.command()
@click.option("--year", "-y", type=int, default=None, help="Calendar year (default: current)")
@click.option("--no-compare", is_flag=True, help="Skip the comparison with the previous year")
@_data_options
@click.pass_context
def year(ctx, year, no_compare, data, catalog, timezone, currency, today, top, goal, fmt, output, plot) -> None:
    """
    Yearly income report.

    Example:
        incomelens year -d incomes.json -c sources.json -y 2024 --plot 2024.png
    """
    dashboard, config = _build_dashboard(ctx, data, catalog, timezone, currency, top, goal, yearly=True)
    ref = _parse_day(today) or dashboard.calendar.today()

    try:
        report = dashboard.year_report(year or ref.year, today=ref, compare=not no_compare)
    except IncomeLensError as e:
        _fail(str(e))

    _emit(ctx, report, dashboard, config, fmt, output, plot)


@main.command()
@click.option(
    "--data", "-d",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Income records JSON file",
)
@click.option(
    "--catalog", "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Source catalog JSON file",
)
@click.pass_context
def info(ctx: click.Context, data: Optional[Path], catalog: Optional[Path]) -> None:
    """
    Summarize a records file and a source catalog.

    Lists the sources and flags records whose source is not in the catalog.
    """
    from .records import SourceCatalog
    from .serialization import load_catalog, load_records

    console: Console = ctx.obj["console"]
    settings: AppSettings = ctx.obj["settings"]
    data = data or settings.data_file
    catalog = catalog or settings.catalog_file

    try:
        records = load_records(data) if data else []
        sources = load_catalog(catalog) if catalog else SourceCatalog()
    except (OSError, ValueError, IncomeLensError) as e:
        _fail(str(e))

    unresolved = sorted({r.source_id for r in records if not sources.resolves(r.source_id)})
    summary = (
        f"Records: {len(records)}\n"
        f"Sources: {len(sources)}\n"
        f"Time zone: {settings.timezone}\n"
        f"Unknown source ids: {', '.join(unresolved) if unresolved else 'none'}"
    )
    console.print(Panel(summary, title="IncomeLens data", border_style="green"))

    if len(sources):
        table = Table(title="Sources")
        table.add_column("Id", style="cyan")
        table.add_column("Name")
        table.add_column("Short name")
        for source in sources:
            table.add_row(source.id, source.display_name, source.short_name)
        console.print(table)


if __name__ == "__main__":
    main()
