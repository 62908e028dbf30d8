"""
IncomeLens - Income Aggregation and Reporting

Turns raw income records (amount, timestamp, source) into the figures an
income dashboard shows: daily and monthly totals, per-source breakdowns,
period-over-period changes, end-of-period projections and top sources.

Modules
-------
- records       : Income records, source catalog, pre-aggregated yearly rows
- bucketing     : Calendar periods and day/month bucketing under a time zone
- aggregation   : Bucket/period totals, rankings, Ok/PartialOk results
- trend         : Period comparison, projection, goal progress
- shaping       : Chart series, calendar grid, ranked lists, statistics card
- store         : Record store protocol, in-memory and JSON-file stores
- dashboard     : Report builders and last-request-wins view session
- plotting      : Matplotlib charts of reports
- serialization : JSON records/catalog files and report export
- config        : Pydantic configuration and environment settings
- cli           : Command-line interface

"""

from .records import IncomeRecord, Source, SourceCatalog, MonthlySourceTotal
from .bucketing import Period, bucket_records
from .aggregation import (
    Ok,
    PartialOk,
    aggregate_period,
    aggregate_year,
    top_sources,
    best_bucket,
)
from .trend import compare_periods, project_period, project_month
from .dashboard import IncomeDashboard, build_month_report, build_year_report
from .config import CalendarConfig, ReportConfig
from . import utils

__version__ = "0.1.0"
