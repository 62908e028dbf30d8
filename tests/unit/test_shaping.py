"""
Unit tests for shaping.py module.

Tests chart series, the calendar grid, ranked source lists, the source
matrix, the daily window and the statistics card.
"""

from datetime import date

import pandas as pd
import pytest

from incomelens.aggregation import aggregate_period, aggregate_year
from incomelens.bucketing import bucket_records
from incomelens.exceptions import ValidationError
from incomelens.shaping import (
    calendar_grid,
    calendar_weeks,
    daily_series,
    daily_window,
    monthly_series,
    ranked_sources,
    source_matrix,
    stats_card,
)
from incomelens.trend import compare_periods, goal_progress, project_month


@pytest.fixture
def month(feb_records, feb, catalog):
    return aggregate_period(bucket_records(feb_records, "day", period=feb), catalog).value


@pytest.fixture
def month_with_unknown(feb_records, unknown_source_record, feb, catalog):
    bucketing = bucket_records(feb_records + [unknown_source_record], "day", period=feb)
    with pytest.warns(UserWarning):
        return aggregate_period(bucketing, catalog).value


class TestSeries:

    def test_daily_series_active_days_only(self, month):
        points = daily_series(month)
        assert [p["label"] for p in points] == [1, 3, 10, 14, 20]
        assert [p["key"] for p in points] == sorted(p["key"] for p in points)
        assert sum(p["amount"] for p in points) == pytest.approx(month.total)

    def test_daily_series_including_empty_days(self, month):
        assert len(daily_series(month, include_empty=True)) == 28

    def test_daily_series_as_pandas(self, month):
        series = daily_series(month, output="series")
        assert isinstance(series, pd.Series)
        assert series.name == "income"
        assert series.index[0] == pd.Timestamp("2025-02-01")
        assert series.sum() == pytest.approx(1400)

    def test_invalid_output(self, month):
        with pytest.raises(ValueError, match="output"):
            daily_series(month, output="csv")

    def test_monthly_series_keeps_empty_months(self, feb_records, jan_records, catalog):
        year = aggregate_year(jan_records + feb_records, 2025, catalog).value
        points = monthly_series(year)
        assert len(points) == 12
        assert points[0]["label"] == 1
        assert points[1]["amount"] == pytest.approx(1400)
        assert points[11]["amount"] == 0.0

    def test_granularity_mismatch(self, month):
        with pytest.raises(ValidationError):
            monthly_series(month)


class TestCalendar:

    def test_one_cell_per_day(self, month):
        cells = calendar_grid(month)
        assert len(cells) == 28
        assert [c["day"] for c in cells] == list(range(1, 29))

    def test_single_best_day_matches_stats_card(self, month):
        cells = calendar_grid(month)
        best = [c for c in cells if c["is_best"]]
        assert len(best) == 1
        assert best[0]["key"] == "2025-02-10"
        assert best[0]["key"] == stats_card(month).best_bucket_key

    def test_has_income_flags(self, month):
        cells = calendar_grid(month)
        assert sum(c["has_income"] for c in cells) == 5
        assert cells[1]["amount"] == 0.0

    def test_empty_month_has_no_best_day(self, feb, catalog):
        empty = aggregate_period(bucket_records([], "day", period=feb), catalog).value
        assert not any(c["is_best"] for c in calendar_grid(empty))

    def test_weeks_padding(self, month):
        # 2025-02-01 is a Saturday
        weeks = calendar_weeks(calendar_grid(month), 2025, 2)
        assert len(weeks) == 5
        assert weeks[0][:5] == [None] * 5
        assert weeks[0][5]["day"] == 1
        assert all(len(w) == 7 for w in weeks)

    def test_weeks_starting_sunday(self, month):
        weeks = calendar_weeks(calendar_grid(month), 2025, 2, first_weekday=6)
        assert weeks[0][6]["day"] == 1


class TestRankedSources:

    def test_rank_order_and_shares(self, month, catalog):
        ranked = ranked_sources(month.by_source, catalog, raw_total=month.total, n=3)
        assert [r["source_id"] for r in ranked] == ["yt", "fb", "ml"]
        assert [r["rank"] for r in ranked] == [1, 2, 3]
        assert ranked[0]["share_pct"] == pytest.approx(800 / 1400 * 100)
        assert ranked[0]["logo_ref"] == "/logos/youtube.png"
        assert sum(r["share_pct"] for r in ranked) == pytest.approx(100.0)

    def test_short_names(self, month, catalog):
        ranked = ranked_sources(month.by_source, catalog, raw_total=month.total, short_names=True)
        assert ranked[0]["display_name"] == "Flat Tire TV"

    def test_shares_below_hundred_with_uncategorized(self, month_with_unknown, catalog):
        m = month_with_unknown
        ranked = ranked_sources(m.by_source, catalog, raw_total=m.total, n=None)
        assert sum(r["share_pct"] for r in ranked) == pytest.approx(1400 / 1475 * 100)

    def test_source_matrix(self, month, catalog):
        df = source_matrix(month, catalog)
        assert list(df.columns) == [
            "YouTube Flat Tire TV", "Facebook Flat Tire", "Mercado Libre", "TikTok Tires",
        ]
        assert df.index.name == "bucket"
        assert len(df) == 28
        assert df.loc["2025-02-10", "YouTube Flat Tire TV"] == pytest.approx(300)
        assert df.sum(axis=1).tolist() == pytest.approx(list(month.totals().values()))

    def test_source_matrix_uncategorized_column(self, month_with_unknown, catalog):
        df = source_matrix(month_with_unknown, catalog)
        assert "Uncategorized" in df.columns
        assert df.loc["2025-02-14", "Uncategorized"] == pytest.approx(75)
        assert df.to_numpy().sum() == pytest.approx(1475)


class TestDailyWindow:

    def test_window_around_day(self, month):
        window = daily_window(month, date(2025, 2, 10), radius=3)
        assert [d["key"] for d in window.days] == [
            f"2025-02-{d:02d}" for d in range(7, 14)
        ]
        assert window.current_total == pytest.approx(400)
        assert window.days[3]["is_current"]
        # Feb 9 had no income
        assert window.comparison.delta_percentage == pytest.approx(100.0)

    def test_window_at_month_start(self, month):
        window = daily_window(month, date(2025, 2, 1), radius=2)
        assert window.days[0]["amount"] is None
        assert window.days[1]["amount"] is None
        assert window.days[2]["amount"] == pytest.approx(150)
        assert window.comparison is None

    def test_center_outside_period(self, month):
        with pytest.raises(ValidationError):
            daily_window(month, date(2025, 3, 1))


class TestStatsCard:

    def test_figures_come_from_shared_sources(self, month, feb, today):
        projection = project_month(month.total, feb, today)
        comparison = compare_periods(month.total, 700)
        card = stats_card(
            month,
            comparison=comparison,
            projection=projection,
            goal=goal_progress(month.total, 2_000),
        )
        assert card.total == pytest.approx(1400)
        assert card.average_per_active_bucket == pytest.approx(280)
        assert card.average_per_elapsed_day == pytest.approx(100)
        assert card.best_bucket_key == "2025-02-10"
        assert card.best_bucket_total == pytest.approx(400)
        assert card.days_remaining == 14
        assert card.projected_total == pytest.approx(2800)
        assert card.delta_percentage == pytest.approx(100.0)
        assert card.goal_percentage == pytest.approx(70.0)
        assert not card.has_uncategorized

    def test_without_trend(self, month):
        card = stats_card(month)
        assert card.projected_total is None
        assert card.previous_total is None
        assert card.to_dict()["total"] == pytest.approx(1400)

    def test_uncategorized_flag(self, month_with_unknown):
        card = stats_card(month_with_unknown)
        assert card.has_uncategorized
        assert card.total - card.display_total == pytest.approx(card.unresolved_total)
