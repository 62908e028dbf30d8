"""
Report orchestration for IncomeLens.

Purpose
-------
Runs the full pipeline for a view: one fetch from the record store per
period change, then bucketing -> aggregation -> trend/projection -> shaping,
all synchronous and recomputed from scratch on every refresh.

Key components
--------------
- build_month_report / build_year_report:
    Pure functions from fetched data to a complete report.

- ReportSession:
    View state with last-request-wins ordering. Every request gets a
    monotonically increasing id; a response is applied only if its id is
    still the latest one issued, whatever order responses complete in.
    A failed fetch keeps the previous report on screen.

- IncomeDashboard:
    Facade wiring a RecordStore, a SourceCatalog and configuration into
    reports and a ReportSession.

Example
-------
>>> dashboard = IncomeDashboard(store, catalog, calendar=CalendarConfig(timezone="America/Bogota"))
>>> report = dashboard.month_report(2025, 2)
>>> report.stats.projected_total
>>> dashboard.show_month(2025, 3)      # updates dashboard.session.report
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, List, Optional, Union

from .aggregation import (
    Aggregate,
    AggregationResult,
    PeriodAggregate,
    aggregate_period,
    aggregate_year,
    best_bucket,
)
from .bucketing import Period, bucket_records
from .config import CalendarConfig, ReportConfig
from .exceptions import FetchFailed
from .records import IncomeRecord, MonthlySourceTotal, SourceCatalog
from .shaping import (
    DailyWindow,
    StatsCard,
    calendar_grid,
    calendar_weeks,
    daily_window,
    daily_series,
    monthly_series,
    ranked_sources,
    stats_card,
)
from .store import RecordStore
from .trend import (
    GoalProgress,
    PeriodComparison,
    Projection,
    compare_periods,
    goal_progress,
    project_month,
)
from .types import CalendarCellDict, RankedSourceDict, SeriesPointDict

__all__ = [
    "MonthlyReport",
    "YearlyReport",
    "build_month_report",
    "build_year_report",
    "RequestTicket",
    "ReportSession",
    "IncomeDashboard",
]

logger = logging.getLogger(__name__)

Report = Union["MonthlyReport", "YearlyReport"]


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MonthlyReport:
    """Everything the monthly views render, computed in one pass."""

    period: Period
    result: AggregationResult
    comparison: PeriodComparison
    projection: Optional[Projection]
    goal: Optional[GoalProgress]
    best_day: Optional[Aggregate]
    top_sources: List[RankedSourceDict]
    source_ranking: List[RankedSourceDict]
    series: List[SeriesPointDict]
    calendar: List[CalendarCellDict]
    weeks: List[List[Optional[CalendarCellDict]]]
    window: Optional[DailyWindow]
    stats: StatsCard

    @property
    def aggregate(self) -> PeriodAggregate:
        return self.result.value


@dataclass(frozen=True)
class YearlyReport:
    """Yearly rollup: 12 months, per-source totals and year-level trend."""

    period: Period
    result: AggregationResult
    comparison: Optional[PeriodComparison]
    projection: Optional[Projection]
    goal: Optional[GoalProgress]
    best_month: Optional[Aggregate]
    top_sources: List[RankedSourceDict]
    source_ranking: List[RankedSourceDict]
    series: List[SeriesPointDict]
    stats: StatsCard

    @property
    def aggregate(self) -> PeriodAggregate:
        return self.result.value


def build_month_report(
    period: Period,
    records: Iterable[IncomeRecord],
    previous_records: Iterable[IncomeRecord],
    catalog: SourceCatalog,
    *,
    today: date,
    day: Optional[date] = None,
    calendar: Optional[CalendarConfig] = None,
    config: Optional[ReportConfig] = None,
) -> MonthlyReport:
    """
    Build the monthly report from fetched records.

    Parameters
    ----------
    period : Period
        Month being reported.
    records : iterable of IncomeRecord
        Records of the month.
    previous_records : iterable of IncomeRecord
        Records of the previous month, used for the comparison only.
    catalog : SourceCatalog
    today : date
        Reference date for the projection.
    day : date, optional
        Centre of the daily window. Defaults to *today* when it falls in
        the month; otherwise the report has no window.
    calendar : CalendarConfig, optional
    config : ReportConfig, optional
    """
    config = config or ReportConfig()
    first_weekday = (calendar or CalendarConfig()).first_weekday
    result = aggregate_period(
        bucket_records(records, "day", calendar=calendar, period=period), catalog
    )
    month = result.value

    previous = aggregate_period(
        bucket_records(previous_records, "day", calendar=calendar, period=period.previous()),
        catalog,
    ).value

    comparison = compare_periods(month.total, previous.total)
    projection = project_month(month.total, period, today)
    goal = goal_progress(month.total, config.monthly_goal) if config.monthly_goal else None
    focus = day or (today if period.contains(today) else None)
    window = None
    if focus is not None:
        window = daily_window(month, focus, radius=config.daily_window_radius)
    cells = calendar_grid(month)

    return MonthlyReport(
        period=period,
        result=result,
        comparison=comparison,
        projection=projection,
        goal=goal,
        best_day=best_bucket(month),
        top_sources=ranked_sources(month.by_source, catalog, raw_total=month.total, n=config.top_n),
        source_ranking=ranked_sources(month.by_source, catalog, raw_total=month.total, n=None),
        series=daily_series(month),
        calendar=cells,
        weeks=calendar_weeks(cells, period.year, period.month, first_weekday=first_weekday),
        window=window,
        stats=stats_card(month, comparison=comparison, projection=projection, goal=goal),
    )


def build_year_report(
    year: int,
    data: Iterable[Union[IncomeRecord, MonthlySourceTotal]],
    catalog: SourceCatalog,
    *,
    today: date,
    previous_data: Optional[Iterable[Union[IncomeRecord, MonthlySourceTotal]]] = None,
    calendar: Optional[CalendarConfig] = None,
    config: Optional[ReportConfig] = None,
) -> YearlyReport:
    """
    Build the yearly report from raw records or pre-aggregated rows.

    The comparison against the previous year is omitted when
    ``previous_data`` is None.
    """
    config = config or ReportConfig()
    period = Period(year)
    result = aggregate_year(data, year, catalog, calendar=calendar)
    annual = result.value

    comparison = None
    if previous_data is not None:
        previous = aggregate_year(previous_data, year - 1, catalog, calendar=calendar).value
        comparison = compare_periods(annual.total, previous.total)
    projection = project_month(annual.total, period, today)
    goal = goal_progress(annual.total, config.yearly_goal) if config.yearly_goal else None

    return YearlyReport(
        period=period,
        result=result,
        comparison=comparison,
        projection=projection,
        goal=goal,
        best_month=best_bucket(annual),
        top_sources=ranked_sources(
            annual.by_source, catalog, raw_total=annual.total, n=config.yearly_top_n
        ),
        source_ranking=ranked_sources(annual.by_source, catalog, raw_total=annual.total, n=None),
        series=monthly_series(annual),
        stats=stats_card(annual, comparison=comparison, projection=projection, goal=goal),
    )


# ---------------------------------------------------------------------------
# Last-request-wins session
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RequestTicket:
    """Identity of one fetch request."""

    request_id: int
    period: Period


class ReportSession:
    """
    Rendered state of a view, guarded by last-request-wins ordering.

    Attributes
    ----------
    report : MonthlyReport or YearlyReport or None
        Last successfully applied report. Survives fetch failures.
    last_error : FetchFailed or None
        Error of the latest request, cleared by the next success.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._latest: Optional[RequestTicket] = None
        self.report: Optional[Report] = None
        self.last_error: Optional[FetchFailed] = None

    @property
    def pending(self) -> Optional[RequestTicket]:
        """Latest issued request, or None once it has been resolved."""
        return self._latest

    @property
    def period(self) -> Optional[Period]:
        if self._latest is not None:
            return self._latest.period
        return self.report.period if self.report is not None else None

    def begin(self, period: Period) -> RequestTicket:
        ticket = RequestTicket(request_id=next(self._ids), period=period)
        self._latest = ticket
        return ticket

    def is_current(self, ticket: RequestTicket) -> bool:
        return self._latest is not None and ticket.request_id == self._latest.request_id

    def complete(self, ticket: RequestTicket, report: Report) -> bool:
        """Apply *report* if *ticket* is still the latest request."""
        if not self.is_current(ticket):
            logger.debug(
                "Discarding stale response #%d for %s", ticket.request_id, ticket.period.key
            )
            return False
        self.report = report
        self.last_error = None
        self._latest = None
        return True

    def fail(self, ticket: RequestTicket, error: FetchFailed) -> bool:
        """Record a failure for the latest request; the current report stays."""
        if not self.is_current(ticket):
            logger.debug(
                "Ignoring stale failure #%d for %s", ticket.request_id, ticket.period.key
            )
            return False
        logger.warning("Fetch failed for %s: %s", ticket.period.key, error)
        self.last_error = error
        self._latest = None
        return True


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------

class IncomeDashboard:
    """
    Income reporting facade.

    Parameters
    ----------
    store : RecordStore
        Source of raw records.
    catalog : SourceCatalog
        Read-only source lookup.
    calendar : CalendarConfig, optional
        Calendar for bucketing and for "today". Defaults to UTC.
    config : ReportConfig, optional
    clock : callable, optional
        Returns today's date; defaults to ``calendar.today``.
    """

    def __init__(
        self,
        store: RecordStore,
        catalog: SourceCatalog,
        *,
        calendar: Optional[CalendarConfig] = None,
        config: Optional[ReportConfig] = None,
        clock: Optional[Callable[[], date]] = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.calendar = calendar or CalendarConfig()
        self.config = config or ReportConfig()
        self.clock = clock or self.calendar.today
        self.session = ReportSession()

    def _fetch(self, period: Period, fn: Callable[[], list]) -> list:
        try:
            return list(fn())
        except FetchFailed:
            raise
        except OSError as exc:
            raise FetchFailed(f"{period.key}: {exc}", period_key=period.key) from exc

    # -- one-shot reports --------------------------------------------------

    def month_report(
        self,
        year: int,
        month: int,
        *,
        today: Optional[date] = None,
        day: Optional[date] = None,
    ) -> MonthlyReport:
        """
        Fetch a month and its predecessor and build the monthly report.

        *day* selects the centre of the daily window.

        Raises
        ------
        FetchFailed
            If the store cannot deliver either month.
        """
        period = Period(year, month)
        prev = period.previous()
        records = self._fetch(period, lambda: self.store.fetch_by_month(period.year, period.month))
        previous = self._fetch(prev, lambda: self.store.fetch_by_month(prev.year, prev.month))
        logger.info("Building monthly report %s from %d record(s)", period.key, len(records))
        return build_month_report(
            period,
            records,
            previous,
            self.catalog,
            today=today or self.clock(),
            day=day,
            calendar=self.calendar,
            config=self.config,
        )

    def year_report(
        self,
        year: int,
        *,
        today: Optional[date] = None,
        compare: bool = True,
    ) -> YearlyReport:
        """Fetch a year (and optionally the previous one) and build the yearly report."""
        period = Period(year)
        data = self._fetch(period, lambda: self.store.fetch_by_year(year))
        previous = None
        if compare:
            prev = period.previous()
            previous = self._fetch(prev, lambda: self.store.fetch_by_year(prev.year))
        logger.info("Building yearly report %s from %d item(s)", period.key, len(data))
        return build_year_report(
            year,
            data,
            self.catalog,
            today=today or self.clock(),
            previous_data=previous,
            calendar=self.calendar,
            config=self.config,
        )

    # -- session-driven views ----------------------------------------------

    def request(self, period: Period) -> RequestTicket:
        """Issue a request for *period*; supersedes any pending one."""
        return self.session.begin(period)

    def resolve(self, ticket: RequestTicket, *, today: Optional[date] = None) -> bool:
        """
        Perform the fetch for *ticket* and apply it if still current.

        Returns True when the session state changed (report applied or
        failure recorded), False when the response was stale.
        """
        period = ticket.period
        try:
            if period.is_month:
                report: Report = self.month_report(period.year, period.month, today=today)
            else:
                report = self.year_report(period.year, today=today)
        except FetchFailed as exc:
            return self.session.fail(ticket, exc)
        return self.session.complete(ticket, report)

    def show_month(self, year: int, month: int, *, today: Optional[date] = None) -> bool:
        return self.resolve(self.request(Period(year, month)), today=today)

    def show_year(self, year: int, *, today: Optional[date] = None) -> bool:
        return self.resolve(self.request(Period(year)), today=today)

    def refresh(self, *, today: Optional[date] = None) -> bool:
        """Re-run the current period in full (no incremental update)."""
        period = self.session.period
        if period is None:
            raise ValueError("Nothing to refresh: no period has been shown yet.")
        return self.resolve(self.request(period), today=today)

    def navigate(self, steps: int, *, today: Optional[date] = None) -> bool:
        """Move the current view *steps* periods forward (negative: back)."""
        period = self.session.period
        if period is None:
            period = Period.containing(today or self.clock())
        for _ in range(abs(steps)):
            period = period.next() if steps > 0 else period.previous()
        return self.resolve(self.request(period), today=today)
