"""
Unit tests for trend.py module.

Tests the period comparison policy, end-of-period projection and goal
progress.
"""

from datetime import date

import pytest

from incomelens.bucketing import Period
from incomelens.trend import (
    compare_periods,
    days_elapsed_in,
    goal_progress,
    project_month,
    project_period,
)


class TestComparePeriods:

    def test_both_empty_is_no_prior_data(self):
        cmp = compare_periods(0, 0)
        assert cmp.delta_percentage is None
        assert cmp.delta_absolute == 0.0
        assert not cmp.has_prior_data
        assert cmp.direction is None

    def test_empty_previous_is_full_gain(self):
        cmp = compare_periods(100, 0)
        assert cmp.delta_percentage == pytest.approx(100.0)
        assert cmp.delta_absolute == pytest.approx(100.0)
        assert cmp.direction == "up"

    def test_decrease(self):
        cmp = compare_periods(150, 200)
        assert cmp.delta_absolute == pytest.approx(-50)
        assert cmp.delta_percentage == pytest.approx(-25.0)
        assert cmp.direction == "down"

    def test_drop_to_zero(self):
        cmp = compare_periods(0, 80)
        assert cmp.delta_percentage == pytest.approx(-100.0)

    def test_flat(self):
        assert compare_periods(50, 50).direction == "flat"

    def test_negative_totals_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            compare_periods(-1, 0)
        with pytest.raises(ValueError, match="non-negative"):
            compare_periods(1, -5)


class TestProjection:

    def test_thirty_day_month(self):
        proj = project_period(1000, days_elapsed=10, days_in_period=30)
        assert proj.average_per_day == pytest.approx(100)
        assert proj.projected_total == pytest.approx(3000)
        assert proj.days_remaining == 20

    def test_not_started(self):
        assert project_period(0, days_elapsed=0, days_in_period=30) is None

    def test_period_over_projects_actual_total(self):
        proj = project_period(900, days_elapsed=30, days_in_period=30)
        assert proj.projected_total == pytest.approx(900)
        assert proj.days_remaining == 0

    def test_projected_never_below_current(self):
        proj = project_period(1234.5, days_elapsed=7, days_in_period=31)
        assert proj.projected_total >= 1234.5

    def test_project_month_uses_real_month_length(self, feb):
        proj = project_month(1400, feb, date(2025, 2, 14))
        assert proj.days_in_period == 28
        assert proj.days_elapsed == 14
        assert proj.average_per_day == pytest.approx(100)
        assert proj.projected_total == pytest.approx(2800)

    def test_days_elapsed_in(self, feb):
        assert days_elapsed_in(feb, date(2025, 1, 31)) == 0
        assert days_elapsed_in(feb, date(2025, 2, 1)) == 1
        assert days_elapsed_in(feb, date(2025, 2, 28)) == 28
        assert days_elapsed_in(feb, date(2025, 6, 1)) == 28

    def test_future_month_has_no_projection(self):
        assert project_month(0, Period(2025, 3), date(2025, 2, 14)) is None

    def test_year_projection(self):
        proj = project_month(3650, Period(2025), date(2025, 1, 10))
        assert proj.days_in_period == 365
        assert proj.average_per_day == pytest.approx(365)


class TestGoalProgress:

    def test_half_way(self):
        goal = goal_progress(12_500, 25_000)
        assert goal.percentage == pytest.approx(50.0)
        assert goal.remaining == pytest.approx(12_500)
        assert not goal.achieved

    def test_capped_when_exceeded(self):
        goal = goal_progress(30_000, 25_000)
        assert goal.percentage == pytest.approx(100.0)
        assert goal.remaining == 0.0
        assert goal.achieved

    def test_goal_must_be_positive(self):
        with pytest.raises(ValueError):
            goal_progress(10, 0)
