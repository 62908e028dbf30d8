"""
Serialization module for IncomeLens.

Purpose
-------
JSON persistence for income records and the source catalog, and JSON
export of computed reports.

File formats
------------
Records file::

    {"schema_version": "0.1.0",
     "records": [{"id": "r1", "amount": 120.0,
                  "created_at": "2025-02-14T10:00:00", "source_id": "yt"}]}

A bare list of record dicts is accepted as well.

Catalog file::

    {"sources": [{"id": "yt", "name": "YouTube Flat Tire TV", "logo": "/logos/youtube.png"}]}

Example
-------
>>> from pathlib import Path
>>> from incomelens.serialization import load_records, load_catalog
>>> records = load_records(Path("incomes.json"))
>>> catalog = load_catalog(Path("sources.json"))
"""

from __future__ import annotations

import json
import warnings
from dataclasses import asdict, is_dataclass
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List

from .exceptions import ValidationError
from .records import IncomeRecord, SourceCatalog
from .types import RawRecordDict, SourceDict

if TYPE_CHECKING:
    from .dashboard import MonthlyReport, YearlyReport

__all__ = [
    "SCHEMA_VERSION",
    "records_to_payload",
    "records_from_payload",
    "load_records",
    "save_records",
    "load_catalog",
    "catalog_to_payload",
    "report_to_dict",
    "save_report",
]


# ---------------------------------------------------------------------------
# Schema Version
# ---------------------------------------------------------------------------

SCHEMA_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def records_to_payload(records: List[IncomeRecord]) -> Dict[str, Any]:
    """Records file payload, ordered by id."""
    rows: List[RawRecordDict] = [r.to_dict() for r in sorted(records, key=lambda r: r.id)]
    return {"schema_version": SCHEMA_VERSION, "records": rows}


def records_from_payload(payload: Any) -> List[IncomeRecord]:
    """
    Parse a records payload.

    Raises
    ------
    ValidationError
        If the payload is not a list or a mapping with a ``records`` list.
    """
    if isinstance(payload, dict):
        schema_version = payload.get("schema_version", SCHEMA_VERSION)
        if schema_version != SCHEMA_VERSION:
            warnings.warn(
                f"Records schema version {schema_version} differs from current "
                f"version {SCHEMA_VERSION}. May encounter compatibility issues.",
                UserWarning,
            )
        rows = payload.get("records")
    else:
        rows = payload
    if not isinstance(rows, list):
        raise ValidationError("Records payload must be a list or contain a 'records' list.")
    return [IncomeRecord.from_dict(row) for row in rows]


def load_records(path: Path) -> List[IncomeRecord]:
    """Load records from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return records_from_payload(json.load(f))


def save_records(records: List[IncomeRecord], path: Path) -> None:
    """Write records to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records_to_payload(records), f, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def catalog_to_payload(catalog: SourceCatalog) -> Dict[str, Any]:
    sources: List[SourceDict] = [
        {"id": s.id, "name": s.display_name, "logo": s.logo_ref} for s in catalog
    ]
    return {"sources": sources}


def load_catalog(path: Path) -> SourceCatalog:
    """Load the source catalog from a JSON file (list or ``{"sources": [...]}``)."""
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    rows = payload.get("sources") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise ValidationError("Catalog payload must be a list or contain a 'sources' list.")
    return SourceCatalog.from_dicts(rows)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def _plain(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        return {k: _plain(v) for k, v in asdict(obj).items()}
    if isinstance(obj, dict):
        return {str(k): _plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_plain(v) for v in obj]
    if isinstance(obj, date):
        return obj.isoformat()
    return obj


def report_to_dict(report: MonthlyReport | YearlyReport) -> Dict[str, Any]:
    """
    Plain-JSON view of a monthly or yearly report.

    Aggregates are flattened to bucket totals; anomalies are listed with
    their kind so consumers can flag uncategorized income.
    """
    period = report.aggregate
    data: Dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "period": report.period.key,
        "complete": report.result.is_complete,
        "total": period.total,
        "display_total": period.display_total,
        "unresolved_total": period.unresolved_total,
        "buckets": period.totals(),
        "by_source": dict(period.by_source),
        "unresolved": dict(period.unresolved),
        "top_sources": _plain(report.top_sources),
        "stats": report.stats.to_dict(),
        "anomalies": _plain(list(report.result.anomalies)),
    }
    window = getattr(report, "window", None)
    if window is not None:
        data["window"] = _plain(window)
    return data


def save_report(report: MonthlyReport | YearlyReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report_to_dict(report), f, indent=2, ensure_ascii=False)
