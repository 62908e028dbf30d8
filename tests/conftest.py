"""
Pytest configuration and fixtures for the IncomeLens test suite.

February 2025 fixture month (UTC):

    day  | yt   fb   ml  | total
    -----+---------------+------
    01   | 100  50       |  150
    03   |           200 |  200
    10   | 300       100 |  400   <- ties with the 20th, earliest wins
    14   |      250      |  250
    20   | 400           |  400
    -----+---------------+------
         | 800  300  300 | 1400

January 2025 holds a single 700 record, so February is +100%.
"""

import json
from datetime import date
from typing import List

import pytest

from incomelens.bucketing import Period
from incomelens.config import CalendarConfig, ReportConfig
from incomelens.records import IncomeRecord, Source, SourceCatalog
from incomelens.store import InMemoryRecordStore


# ---------------------------------------------------------------------------
# Calendar Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def utc() -> CalendarConfig:
    return CalendarConfig()


@pytest.fixture
def bogota() -> CalendarConfig:
    """UTC-5 all year, no DST."""
    return CalendarConfig(timezone="America/Bogota")


@pytest.fixture
def feb() -> Period:
    return Period(2025, 2)


@pytest.fixture
def today() -> date:
    """Reference date half-way through the fixture month."""
    return date(2025, 2, 14)


@pytest.fixture
def report_config() -> ReportConfig:
    return ReportConfig(top_n=3, monthly_goal=2_000)


# ---------------------------------------------------------------------------
# Catalog and Records
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog() -> SourceCatalog:
    return SourceCatalog([
        Source("yt", "YouTube Flat Tire TV", "/logos/youtube.png"),
        Source("fb", "Facebook Flat Tire", "/logos/facebook.png"),
        Source("ml", "Mercado Libre"),
        Source("tk", "TikTok Tires"),
    ])


@pytest.fixture
def feb_records() -> List[IncomeRecord]:
    return [
        IncomeRecord("r01", 100, "2025-02-01T10:00:00", "yt"),
        IncomeRecord("r02", 50, "2025-02-01T15:00:00", "fb"),
        IncomeRecord("r03", 200, "2025-02-03", "ml"),
        IncomeRecord("r04", 300, "2025-02-10T08:00:00", "yt"),
        IncomeRecord("r05", 100, "2025-02-10T09:00:00", "ml"),
        IncomeRecord("r06", 250, "2025-02-14T12:00:00", "fb"),
        IncomeRecord("r07", 400, "2025-02-20T12:00:00", "yt"),
    ]


@pytest.fixture
def jan_records() -> List[IncomeRecord]:
    return [IncomeRecord("r90", 700, "2025-01-15T09:30:00", "yt")]


@pytest.fixture
def unknown_source_record() -> IncomeRecord:
    """75 on Feb 14 from a source missing from the catalog."""
    return IncomeRecord("r50", 75, "2025-02-14T18:00:00", "zz")


@pytest.fixture
def store(feb_records, jan_records) -> InMemoryRecordStore:
    return InMemoryRecordStore(jan_records + feb_records)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

@pytest.fixture
def data_files(tmp_path, feb_records, jan_records):
    """Records and catalog JSON files as the CLI reads them."""
    records_path = tmp_path / "incomes.json"
    catalog_path = tmp_path / "sources.json"
    records_path.write_text(json.dumps({
        "schema_version": "0.1.0",
        "records": [r.to_dict() for r in jan_records + feb_records],
    }), encoding="utf-8")
    catalog_path.write_text(json.dumps({"sources": [
        {"id": "yt", "name": "YouTube Flat Tire TV", "logo": "/logos/youtube.png"},
        {"id": "fb", "name": "Facebook Flat Tire"},
        {"id": "ml", "name": "Mercado Libre"},
    ]}), encoding="utf-8")
    return records_path, catalog_path
