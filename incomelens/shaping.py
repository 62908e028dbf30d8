"""
Presentation shaping for IncomeLens views.

Purpose
-------
Pure, order-preserving transforms from aggregation and trend outputs into
the exact structures each view consumes:

- daily_series / monthly_series : time-ordered chart series
- calendar_grid / calendar_weeks : day-major calendar cells
- ranked_sources                 : rank-ordered "top sources" lists
- source_matrix                  : month x source table for stacked charts
- daily_window                   : selected day +/- N days with day-over-day change
- stats_card                     : the statistics card figures

Nothing here sums records. Every figure shown in more than one view (best
day, totals, averages) is read from the Aggregate/PeriodAggregate and the
trend objects, so the calendar's best day and the statistics card's best day
can never drift apart.

Example
-------
>>> cells = calendar_grid(month)
>>> [c["day"] for c in cells][:3]
[1, 2, 3]
>>> series = daily_series(month, output="series")
"""

from __future__ import annotations

import calendar as _calendar
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

import pandas as pd

from .aggregation import (
    PeriodAggregate,
    average_per_active_bucket,
    best_bucket,
    top_sources,
)
from .bucketing import day_key
from .constants import DEFAULT_DAILY_WINDOW_RADIUS, DEFAULT_TOP_N, UNCATEGORIZED_LABEL
from .exceptions import ValidationError
from .records import SourceCatalog
from .trend import GoalProgress, PeriodComparison, Projection, compare_periods
from .types import CalendarCellDict, RankedSourceDict, SeriesPointDict, WindowDayDict
from .utils import share_percentage

__all__ = [
    "daily_series",
    "monthly_series",
    "calendar_grid",
    "calendar_weeks",
    "ranked_sources",
    "source_matrix",
    "DailyWindow",
    "daily_window",
    "StatsCard",
    "stats_card",
]


def _require(period: PeriodAggregate, granularity: str) -> None:
    if period.granularity != granularity:
        raise ValidationError(
            f"expected a {granularity}-granularity aggregate (got {period.granularity})."
        )


def _as_series(points: List[SeriesPointDict], name: str) -> pd.Series:
    index = pd.DatetimeIndex([pd.Timestamp(p["key"]) for p in points])
    return pd.Series([p["amount"] for p in points], index=index, name=name, dtype=float)


# ---------------------------------------------------------------------------
# Chart series
# ---------------------------------------------------------------------------

def daily_series(
    period: PeriodAggregate,
    *,
    include_empty: bool = False,
    output: Literal["records", "series"] = "records",
) -> Union[List[SeriesPointDict], pd.Series]:
    """
    Time-ordered daily totals for the income chart.

    Parameters
    ----------
    period : PeriodAggregate
        Day-granularity aggregate.
    include_empty : bool, default False
        Keep days without income (as 0.0). The chart shows active days only.
    output : {"records", "series"}, default "records"
        - "records": list of dicts {key, label, amount}
        - "series": pd.Series indexed by date

    Returns
    -------
    list of SeriesPointDict or pd.Series
    """
    _require(period, "day")
    points: List[SeriesPointDict] = [
        {"key": b.bucket_key, "label": int(b.bucket_key[8:10]), "amount": b.total}
        for b in period.buckets
        if include_empty or b.total > 0
    ]
    if output == "records":
        return points
    if output == "series":
        return _as_series(points, "income")
    raise ValueError(f"output must be 'records' or 'series' (got {output!r}).")


def monthly_series(
    period: PeriodAggregate,
    *,
    output: Literal["records", "series"] = "records",
) -> Union[List[SeriesPointDict], pd.Series]:
    """
    Month-by-month totals of a yearly aggregate, January first.

    Months without income are kept so the yearly chart always has 12 bars.
    """
    _require(period, "month")
    points: List[SeriesPointDict] = [
        {"key": b.bucket_key, "label": int(b.bucket_key[5:7]), "amount": b.total}
        for b in period.buckets
    ]
    if output == "records":
        return points
    if output == "series":
        index = pd.DatetimeIndex([pd.Timestamp(f"{p['key']}-01") for p in points])
        return pd.Series([p["amount"] for p in points], index=index, name="income", dtype=float)
    raise ValueError(f"output must be 'records' or 'series' (got {output!r}).")


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------

def calendar_grid(period: PeriodAggregate) -> List[CalendarCellDict]:
    """
    One cell per day of the month, in day order.

    The ``is_best`` flag comes from `aggregation.best_bucket`, the same
    function the statistics card uses.
    """
    _require(period, "day")
    if period.period is None or not period.period.is_month:
        raise ValidationError("calendar_grid needs an aggregate bucketed over a month period.")
    best = best_bucket(period)
    best_key = best.bucket_key if best is not None else None
    totals = period.totals()
    cells: List[CalendarCellDict] = []
    for d in period.period.dates():
        key = day_key(d)
        amount = totals.get(key, 0.0)
        cells.append({
            "day": d.day,
            "key": key,
            "amount": amount,
            "is_best": key == best_key,
            "has_income": amount > 0,
        })
    return cells


def calendar_weeks(
    cells: List[CalendarCellDict],
    year: int,
    month: int,
    *,
    first_weekday: int = 0,
) -> List[List[Optional[CalendarCellDict]]]:
    """
    Arrange calendar cells into week rows of seven, padded with None.

    Parameters
    ----------
    cells : list
        Output of `calendar_grid` for the same month.
    first_weekday : int, default 0
        0=Monday ... 6=Sunday.
    """
    by_day = {c["day"]: c for c in cells}
    weeks = _calendar.Calendar(firstweekday=first_weekday).monthdayscalendar(year, month)
    return [[by_day.get(day) if day else None for day in week] for week in weeks]


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

def ranked_sources(
    by_source: Mapping[str, float],
    catalog: SourceCatalog,
    *,
    raw_total: float,
    n: Optional[int] = DEFAULT_TOP_N,
    short_names: bool = False,
) -> List[RankedSourceDict]:
    """
    Rank-ordered source list with display data and share of the raw total.

    Order and tie-breaks come from `aggregation.top_sources`. Shares are
    taken against the raw total, so when uncategorized income exists the
    listed shares add up to less than 100%.
    """
    ranked: List[RankedSourceDict] = []
    for rank, (source_id, amount) in enumerate(top_sources(by_source, n=n), start=1):
        source = catalog.get(source_id)
        if source is None:
            continue
        ranked.append({
            "rank": rank,
            "source_id": source_id,
            "display_name": source.short_name if short_names else source.display_name,
            "logo_ref": source.logo_ref,
            "amount": amount,
            "share_pct": share_percentage(amount, raw_total),
        })
    return ranked


def source_matrix(period: PeriodAggregate, catalog: SourceCatalog) -> pd.DataFrame:
    """
    Bucket x source table of totals.

    Rows follow bucket order, columns follow catalog order. Unresolved
    amounts go to an extra "Uncategorized" column when present, so each row
    still sums to the bucket's raw total.
    """
    columns = [s.id for s in catalog]
    rows = []
    for b in period.buckets:
        row: Dict[str, float] = {sid: b.by_source.get(sid, 0.0) for sid in columns}
        if period.unresolved:
            row[UNCATEGORIZED_LABEL] = b.unresolved_total
        rows.append(row)
    order = columns + ([UNCATEGORIZED_LABEL] if period.unresolved else [])
    df = pd.DataFrame(rows, index=[b.bucket_key for b in period.buckets], columns=order, dtype=float)
    df = df.rename(columns={s.id: s.display_name for s in catalog})
    df.index.name = "bucket"
    return df


# ---------------------------------------------------------------------------
# Daily window
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailyWindow:
    """
    Selected day with its neighbours.

    ``comparison`` is against the previous day, or None when the previous
    day lies outside the fetched period.
    """

    center: str
    days: List[WindowDayDict]
    current_total: float
    comparison: Optional[PeriodComparison]


def daily_window(
    period: PeriodAggregate,
    center: date,
    *,
    radius: int = DEFAULT_DAILY_WINDOW_RADIUS,
) -> DailyWindow:
    """
    Days ``center - radius`` .. ``center + radius`` with their totals.

    Days outside the aggregated period have ``amount=None``: they were not
    fetched, which is different from a day without income.
    """
    _require(period, "day")
    if radius < 0:
        raise ValidationError(f"radius must be >= 0 (got {radius}).")
    totals = period.totals()
    center_key = day_key(center)
    if center_key not in totals:
        raise ValidationError(f"{center_key} is outside the aggregated period.")

    days: List[WindowDayDict] = []
    for offset in range(-radius, radius + 1):
        key = day_key(center + timedelta(days=offset))
        days.append({
            "key": key,
            "offset": offset,
            "amount": totals.get(key),
            "is_current": offset == 0,
        })

    previous = totals.get(day_key(center - timedelta(days=1)))
    current = totals[center_key]
    comparison = compare_periods(current, previous) if previous is not None else None
    return DailyWindow(center=center_key, days=days, current_total=current, comparison=comparison)


# ---------------------------------------------------------------------------
# Statistics card
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StatsCard:
    """Figures of the statistics card, all taken from shared sources."""

    total: float
    display_total: float
    unresolved_total: float
    average_per_active_bucket: float
    average_per_elapsed_day: Optional[float]
    best_bucket_key: Optional[str]
    best_bucket_total: float
    days_elapsed: Optional[int]
    days_in_period: Optional[int]
    days_remaining: Optional[int]
    projected_total: Optional[float]
    previous_total: Optional[float]
    delta_absolute: Optional[float]
    delta_percentage: Optional[float]
    goal: Optional[float] = None
    goal_percentage: Optional[float] = None
    goal_remaining: Optional[float] = None

    @property
    def has_uncategorized(self) -> bool:
        return self.unresolved_total > 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def stats_card(
    period: PeriodAggregate,
    *,
    comparison: Optional[PeriodComparison] = None,
    projection: Optional[Projection] = None,
    goal: Optional[GoalProgress] = None,
) -> StatsCard:
    """
    Assemble the statistics card.

    Parameters
    ----------
    period : PeriodAggregate
        Current period.
    comparison : PeriodComparison, optional
        Against the previous period.
    projection : Projection, optional
        None before the period starts.
    goal : GoalProgress, optional
    """
    best = best_bucket(period)
    return StatsCard(
        total=period.total,
        display_total=period.display_total,
        unresolved_total=period.unresolved_total,
        average_per_active_bucket=average_per_active_bucket(period),
        average_per_elapsed_day=projection.average_per_day if projection else None,
        best_bucket_key=best.bucket_key if best else None,
        best_bucket_total=best.total if best else 0.0,
        days_elapsed=projection.days_elapsed if projection else None,
        days_in_period=projection.days_in_period if projection else None,
        days_remaining=projection.days_remaining if projection else None,
        projected_total=projection.projected_total if projection else None,
        previous_total=comparison.previous_total if comparison else None,
        delta_absolute=comparison.delta_absolute if comparison else None,
        delta_percentage=comparison.delta_percentage if comparison else None,
        goal=goal.goal if goal else None,
        goal_percentage=goal.percentage if goal else None,
        goal_remaining=goal.remaining if goal else None,
    )
