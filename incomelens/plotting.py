"""
Plotting utilities for IncomeLens reports.

Purpose
-------
Static matplotlib renditions of the report views. Every figure is drawn
from already-shaped data (series, source matrix, ranked list); nothing here
aggregates records.

Functions
---------
- plot_daily_income: bar chart of a month's daily totals, best day highlighted
- plot_yearly_by_source: 12 monthly bars stacked by source
- plot_top_sources: horizontal bars of a ranked source list
- plot_report: dispatch on MonthlyReport / YearlyReport

All functions accept ``figsize``, ``title``, ``save_path`` and
``return_fig_ax`` keyword arguments and return the figure (or figure and
axes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import numpy as np

from .aggregation import PeriodAggregate, best_bucket
from .constants import DEFAULT_FIGSIZE, DEFAULT_FIGSIZE_WIDE
from .records import SourceCatalog
from .shaping import daily_series, source_matrix
from .types import RankedSourceDict
from .utils import thousands_formatter

if TYPE_CHECKING:
    from .dashboard import MonthlyReport, YearlyReport

__all__ = [
    "plot_daily_income",
    "plot_yearly_by_source",
    "plot_top_sources",
    "plot_report",
]

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def _finish(fig, ax, *, title: str, save_path: Optional[str], return_fig_ax: bool, value_axis: str = "y"):
    import matplotlib.pyplot as plt
    import matplotlib.ticker as mticker

    axis = ax.yaxis if value_axis == "y" else ax.xaxis
    axis.set_major_formatter(mticker.FuncFormatter(thousands_formatter))
    ax.set_title(title, fontsize=12, fontweight="bold")
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, bbox_inches="tight", dpi=150)

    if return_fig_ax:
        return fig, ax
    return fig


def plot_daily_income(
    month: PeriodAggregate,
    *,
    figsize: tuple = DEFAULT_FIGSIZE,
    title: Optional[str] = None,
    save_path: Optional[str] = None,
    return_fig_ax: bool = False,
):
    """
    Bar chart of daily totals over the whole month.

    Days without income are drawn as empty slots so the x-axis always spans
    the month. The best day (same rule as the calendar) is highlighted.

    Parameters
    ----------
    month : PeriodAggregate
        Day-granularity aggregate over a month period.
    """
    import matplotlib.pyplot as plt

    points = daily_series(month, include_empty=True)
    days = [p["label"] for p in points]
    amounts = [p["amount"] for p in points]
    best = best_bucket(month)
    colors = [
        "tab:orange" if best is not None and p["key"] == best.bucket_key else "tab:blue"
        for p in points
    ]

    fig, ax = plt.subplots(figsize=figsize)
    ax.bar(days, amounts, color=colors, alpha=0.85)
    ax.set_xlabel("Day", fontsize=11)
    ax.set_ylabel("Income", fontsize=11)
    ax.set_xticks(days)
    ax.tick_params(axis="x", labelsize=8)
    ax.grid(True, alpha=0.3, axis="y")

    key = month.period.key if month.period is not None else ""
    return _finish(
        fig, ax,
        title=title or f"Daily income {key}",
        save_path=save_path,
        return_fig_ax=return_fig_ax,
    )


def plot_yearly_by_source(
    year: PeriodAggregate,
    catalog: SourceCatalog,
    *,
    figsize: tuple = DEFAULT_FIGSIZE_WIDE,
    title: Optional[str] = None,
    save_path: Optional[str] = None,
    return_fig_ax: bool = False,
):
    """
    Monthly bars stacked by source for a yearly aggregate.

    Sources without income in the year are left out of the legend.
    Uncategorized income gets its own segment so bar heights equal the raw
    monthly totals.
    """
    import matplotlib.pyplot as plt

    df = source_matrix(year, catalog)
    df = df.loc[:, df.sum(axis=0) > 0]
    x = np.arange(len(df.index))
    colors = plt.cm.Dark2(np.linspace(0, 1, max(len(df.columns), 1)))

    fig, ax = plt.subplots(figsize=figsize)
    bottom = np.zeros(len(df.index))
    for color, column in zip(colors, df.columns):
        values = df[column].to_numpy()
        ax.bar(x, values, bottom=bottom, label=column, color=color, alpha=0.9)
        bottom += values

    ax.set_xticks(x)
    ax.set_xticklabels([MONTH_LABELS[int(k[5:7]) - 1] for k in df.index])
    ax.set_ylabel("Income", fontsize=11)
    ax.grid(True, alpha=0.3, axis="y")
    if len(df.columns):
        ax.legend(loc="upper left", fontsize=9)

    key = year.period.key if year.period is not None else ""
    return _finish(
        fig, ax,
        title=title or f"Income by source {key}",
        save_path=save_path,
        return_fig_ax=return_fig_ax,
    )


def plot_top_sources(
    ranked: List[RankedSourceDict],
    *,
    figsize: tuple = DEFAULT_FIGSIZE,
    title: str = "Top sources",
    save_path: Optional[str] = None,
    return_fig_ax: bool = False,
):
    """Horizontal bars of a ranked source list, rank 1 on top."""
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=figsize)
    labels = [r["display_name"] for r in reversed(ranked)]
    amounts = [r["amount"] for r in reversed(ranked)]
    bars = ax.barh(labels, amounts, color="tab:green", alpha=0.85)
    for bar, row in zip(bars, reversed(ranked)):
        ax.annotate(
            f"{row['share_pct']:.1f}%",
            xy=(bar.get_width(), bar.get_y() + bar.get_height() / 2),
            xytext=(4, 0),
            textcoords="offset points",
            va="center",
            fontsize=9,
        )
    ax.grid(True, alpha=0.3, axis="x")
    return _finish(
        fig, ax,
        title=title,
        save_path=save_path,
        return_fig_ax=return_fig_ax,
        value_axis="x",
    )


def plot_report(
    report: MonthlyReport | YearlyReport,
    catalog: SourceCatalog,
    **kwargs,
):
    """Chart matching the report type: daily bars or yearly stacked bars."""
    aggregate = report.aggregate
    if aggregate.granularity == "day":
        return plot_daily_income(aggregate, **kwargs)
    return plot_yearly_by_source(aggregate, catalog, **kwargs)
