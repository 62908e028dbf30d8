"""
Unit tests for plotting.py module.
"""

import pytest

# Use non-interactive backend for testing
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from incomelens.aggregation import aggregate_period, aggregate_year
from incomelens.bucketing import bucket_records
from incomelens.dashboard import build_month_report, build_year_report
from incomelens.plotting import (
    plot_daily_income,
    plot_report,
    plot_top_sources,
    plot_yearly_by_source,
)
from incomelens.shaping import ranked_sources


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


@pytest.fixture
def month(feb_records, feb, catalog):
    return aggregate_period(bucket_records(feb_records, "day", period=feb), catalog).value


@pytest.fixture
def year(feb_records, jan_records, catalog):
    return aggregate_year(jan_records + feb_records, 2025, catalog).value


def test_daily_income_bars(month):
    fig, ax = plot_daily_income(month, return_fig_ax=True)
    assert len(ax.patches) == 28
    heights = [p.get_height() for p in ax.patches]
    assert max(heights) == pytest.approx(400)
    assert "2025-02" in ax.get_title()


def test_daily_income_saves(month, tmp_path):
    path = tmp_path / "daily.png"
    plot_daily_income(month, save_path=str(path))
    assert path.exists()


def test_yearly_stacked_bars(year, catalog):
    fig, ax = plot_yearly_by_source(year, catalog, return_fig_ax=True)
    # yt, fb, ml have income; tk is dropped
    assert len(ax.containers) == 3
    labels = [t.get_text() for t in ax.get_legend().get_texts()]
    assert "TikTok Tires" not in labels
    assert [t.get_text() for t in ax.get_xticklabels()][:2] == ["Jan", "Feb"]


def test_top_sources(month, catalog):
    ranked = ranked_sources(month.by_source, catalog, raw_total=month.total)
    fig, ax = plot_top_sources(ranked, return_fig_ax=True)
    assert len(ax.patches) == 3


def test_plot_report_dispatch(feb, feb_records, jan_records, catalog, today):
    monthly = build_month_report(feb, feb_records, jan_records, catalog, today=today)
    yearly = build_year_report(2025, jan_records + feb_records, catalog, today=today)
    _, ax = plot_report(monthly, catalog, return_fig_ax=True)
    assert ax.get_xlabel() == "Day"
    _, ax = plot_report(yearly, catalog, return_fig_ax=True)
    assert ax.get_legend() is not None
