"""
Trend and projection engine for IncomeLens.

Purpose
-------
Compares a period total against the adjacent period and extrapolates a
full-period total from a partial one.

Key components
--------------
- compare_periods:
    Signed absolute delta and percentage delta with an explicit policy for
    an empty previous period:

        previous > 0                 -> (current - previous) / previous * 100
        previous == 0, current == 0  -> None ("no prior data", never 0%)
        previous == 0, current > 0   -> 100 (a full gain, by convention)

- project_period / project_month:
    ``average_per_day = total / days_elapsed`` and
    ``projected = total + average_per_day * max(0, days - days_elapsed)``.
    No projection exists before the period starts (``days_elapsed <= 0``).
    Month lengths come from the calendar, never a fixed 30.

- goal_progress:
    Share of an income goal reached, capped at 100%.

Note
----
``Projection.average_per_day`` divides by elapsed calendar days, including
days without income. It is a different figure from
``aggregation.average_per_active_bucket`` and the two are never swapped.

Example
-------
>>> compare_periods(150, 200).delta_percentage
-25.0
>>> project_period(1000, days_elapsed=10, days_in_period=30).projected_total
3000.0
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional

from .bucketing import Period
from .constants import FULL_GAIN_PERCENTAGE
from .utils import check_non_negative, check_positive

__all__ = [
    "PeriodComparison",
    "Projection",
    "GoalProgress",
    "compare_periods",
    "project_period",
    "project_month",
    "days_elapsed_in",
    "goal_progress",
]


@dataclass(frozen=True)
class PeriodComparison:
    """
    Current period against the previous one.

    Attributes
    ----------
    current_total : float
    previous_total : float
    delta_absolute : float
        ``current - previous`` (signed).
    delta_percentage : float or None
        None when both periods are empty.
    """

    current_total: float
    previous_total: float
    delta_absolute: float
    delta_percentage: Optional[float]

    @property
    def has_prior_data(self) -> bool:
        return self.delta_percentage is not None

    @property
    def direction(self) -> Optional[Literal["up", "down", "flat"]]:
        if self.delta_percentage is None:
            return None
        if self.delta_absolute > 0:
            return "up"
        if self.delta_absolute < 0:
            return "down"
        return "flat"


@dataclass(frozen=True)
class Projection:
    """
    Full-period extrapolation from a partial period.

    Attributes
    ----------
    days_elapsed : int
    days_in_period : int
    average_per_day : float
        Current total divided by elapsed calendar days.
    projected_total : float
    """

    days_elapsed: int
    days_in_period: int
    average_per_day: float
    projected_total: float

    @property
    def days_remaining(self) -> int:
        return max(0, self.days_in_period - self.days_elapsed)


@dataclass(frozen=True)
class GoalProgress:
    """Progress toward an income goal."""

    total: float
    goal: float
    percentage: float
    remaining: float

    @property
    def achieved(self) -> bool:
        return self.total >= self.goal


def compare_periods(current_total: float, previous_total: float) -> PeriodComparison:
    """
    Compare two adjacent period totals.

    Parameters
    ----------
    current_total : float
        Non-negative total of the current period.
    previous_total : float
        Non-negative total of the previous period.

    Returns
    -------
    PeriodComparison

    Raises
    ------
    ValueError
        If either total is negative.

    Examples
    --------
    >>> compare_periods(0, 0).delta_percentage is None
    True
    >>> compare_periods(100, 0).delta_percentage
    100.0
    """
    check_non_negative("current_total", current_total)
    check_non_negative("previous_total", previous_total)
    current = float(current_total)
    previous = float(previous_total)
    delta = current - previous

    if previous > 0:
        pct: Optional[float] = delta / previous * 100.0
    elif current > 0:
        pct = FULL_GAIN_PERCENTAGE
    else:
        pct = None

    return PeriodComparison(
        current_total=current,
        previous_total=previous,
        delta_absolute=delta,
        delta_percentage=pct,
    )


def project_period(
    current_total: float,
    days_elapsed: int,
    days_in_period: int,
) -> Optional[Projection]:
    """
    Extrapolate a full-period total at the current daily pace.

    Parameters
    ----------
    current_total : float
        Income so far.
    days_elapsed : int
        Calendar days of the period already elapsed (today included).
    days_in_period : int
        Calendar length of the period.

    Returns
    -------
    Projection or None
        None when ``days_elapsed <= 0`` (the period has not started).
    """
    check_non_negative("current_total", current_total)
    check_positive("days_in_period", days_in_period)
    if days_elapsed <= 0:
        return None
    average = float(current_total) / days_elapsed
    remaining = max(0, days_in_period - days_elapsed)
    return Projection(
        days_elapsed=int(days_elapsed),
        days_in_period=int(days_in_period),
        average_per_day=average,
        projected_total=float(current_total) + average * remaining,
    )


def days_elapsed_in(period: Period, today: date) -> int:
    """
    Calendar days of *period* elapsed as of *today*, today included.

    0 before the period starts, the full length once it is over.
    """
    if today < period.start:
        return 0
    if today > period.end:
        return period.days
    return (today - period.start).days + 1


def project_month(current_total: float, period: Period, today: date) -> Optional[Projection]:
    """
    Projection for a month (or year) period as of *today*.

    The period length is its real calendar length (28-31 days for months).
    """
    return project_period(current_total, days_elapsed_in(period, today), period.days)


def goal_progress(total: float, goal: float) -> GoalProgress:
    """
    Progress of *total* toward *goal*.

    The percentage is capped at 100 and the remaining amount floored at 0.

    >>> goal_progress(12_500, 25_000).percentage
    50.0
    """
    check_positive("goal", goal)
    check_non_negative("total", total)
    return GoalProgress(
        total=float(total),
        goal=float(goal),
        percentage=min(total / goal * 100.0, 100.0),
        remaining=max(goal - total, 0.0),
    )
