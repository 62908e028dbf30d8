"""
Date-bucketing engine for IncomeLens.

Purpose
-------
Groups raw income records into calendar buckets (day or month) under an
explicit calendar. Bucket keys are pure functions of ``created_at`` and the
configured time zone, so the same wall-clock day always lands in the same
bucket regardless of the time-of-day component or the host time zone.

Key components
--------------
- parse_created_at:
    Turns a stored timestamp (ISO string, datetime or date) into a calendar
    date in the configured zone. Raises MalformedRecordError otherwise.

- Period:
    A calendar month or a calendar year with navigation (previous/next)
    and the ordered list of bucket keys it spans.

- bucket_records:
    Maps records to bucket keys. Records with unparseable dates and records
    outside the requested period are reported as anomalies, never silently
    dropped and never fatal for the batch.

Design principles
-----------------
- Deterministic: input order never changes bucket membership; records
  inside a bucket are ordered by id.
- Dense periods: when a Period is given every day (or month) of it gets a
  bucket, with lengths taken from the real calendar (Feb 2025 has 28 days).

Example
-------
>>> from incomelens.bucketing import Period, bucket_records
>>> result = bucket_records(records, "day", period=Period(2025, 2))
>>> len(result.buckets)
28
"""

from __future__ import annotations

import calendar as _calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Literal, Optional, Tuple

from .config import CalendarConfig
from .constants import DAY_KEY_FORMAT, MONTH_KEY_FORMAT, MONTHS_PER_YEAR
from .exceptions import Anomaly, MalformedRecordError, PeriodError, ValidationError
from .records import IncomeRecord

__all__ = [
    "Granularity",
    "Period",
    "BucketingResult",
    "parse_created_at",
    "day_key",
    "month_key",
    "bucket_key",
    "days_in_month",
    "bucket_records",
]

Granularity = Literal["day", "month"]

_GRANULARITIES = ("day", "month")
_SHORT_OFFSET = re.compile(r"([+-]\d{2})$")
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")
_DEFAULT_CALENDAR = CalendarConfig()


# ---------------------------------------------------------------------------
# Timestamp parsing and keys
# ---------------------------------------------------------------------------

def parse_created_at(value, calendar: Optional[CalendarConfig] = None) -> date:
    """
    Resolve a stored timestamp to its calendar date.

    Parameters
    ----------
    value : str, datetime or date
        Timestamp as stored. Strings may be ``YYYY-MM-DD`` or full ISO 8601
        timestamps with ``T`` or space separator, trailing ``Z`` or numeric
        offsets (``+00``, ``-05:00``).
    calendar : CalendarConfig, optional
        Calendar whose time zone defines the day boundary. Defaults to UTC.

    Returns
    -------
    date
        The wall-clock date of the timestamp in the calendar's zone.

    Raises
    ------
    MalformedRecordError
        If the value is empty, of an unsupported type, or not a real date
        (e.g. ``2025-02-30``).

    Notes
    -----
    Aware timestamps are converted into the calendar zone before taking the
    date. Naive timestamps and bare dates are already wall-clock values in
    that zone and are taken as-is.
    """
    cal = calendar or _DEFAULT_CALENDAR

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(cal.tzinfo()).date()
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise MalformedRecordError(
            f"created_at must be an ISO date string, datetime or date (got {type(value).__name__})"
        )

    text = value.strip()
    if not text:
        raise MalformedRecordError("created_at is empty")
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _SHORT_OFFSET.sub(r"\1:00", text)
        text = _COMPACT_OFFSET.sub(r"\1:\2", text)
        # fromisoformat before 3.11 takes only 3 or 6 fraction digits
        text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text)
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise MalformedRecordError(f"created_at {value!r} is not a valid timestamp") from exc
    return parse_created_at(parsed, cal)


def day_key(d: date) -> str:
    """Daily bucket key, ``YYYY-MM-DD``."""
    return d.strftime(DAY_KEY_FORMAT)


def month_key(d: date) -> str:
    """Monthly bucket key, ``YYYY-MM``."""
    return d.strftime(MONTH_KEY_FORMAT)


def bucket_key(d: date, granularity: Granularity) -> str:
    """Bucket key of *d* at the given granularity."""
    _check_granularity(granularity)
    return day_key(d) if granularity == "day" else month_key(d)


def days_in_month(year: int, month: int) -> int:
    """Actual number of days in a calendar month (28-31)."""
    if not 1 <= month <= MONTHS_PER_YEAR:
        raise PeriodError(f"month must be in 1..12 (got {month}).")
    return _calendar.monthrange(year, month)[1]


def _check_granularity(granularity: str) -> None:
    if granularity not in _GRANULARITIES:
        raise ValidationError(
            f"granularity must be one of {_GRANULARITIES} (got {granularity!r})."
        )


# ---------------------------------------------------------------------------
# Periods
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Period:
    """
    A calendar month (``month`` set) or a calendar year (``month=None``).

    Examples
    --------
    >>> Period(2025, 1).previous()
    Period(year=2024, month=12)
    >>> Period(2024, 2).days
    29
    >>> Period(2025).key
    '2025'
    """

    year: int
    month: Optional[int] = None

    def __post_init__(self) -> None:
        if not 1 <= int(self.year) <= 9999:
            raise PeriodError(f"year must be in 1..9999 (got {self.year}).")
        if self.month is not None and not 1 <= int(self.month) <= MONTHS_PER_YEAR:
            raise PeriodError(f"month must be in 1..12 (got {self.month}).")

    @classmethod
    def containing(cls, d: date, *, yearly: bool = False) -> Period:
        return cls(d.year) if yearly else cls(d.year, d.month)

    @property
    def is_month(self) -> bool:
        return self.month is not None

    @property
    def key(self) -> str:
        if self.month is None:
            return f"{self.year:04d}"
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def start(self) -> date:
        return date(self.year, self.month or 1, 1)

    @property
    def end(self) -> date:
        """Last day of the period (inclusive)."""
        if self.month is None:
            return date(self.year, 12, 31)
        return date(self.year, self.month, days_in_month(self.year, self.month))

    @property
    def days(self) -> int:
        """Calendar length in days."""
        return (self.end - self.start).days + 1

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def previous(self) -> Period:
        if self.month is None:
            return Period(self.year - 1)
        if self.month == 1:
            return Period(self.year - 1, 12)
        return Period(self.year, self.month - 1)

    def next(self) -> Period:
        if self.month is None:
            return Period(self.year + 1)
        if self.month == MONTHS_PER_YEAR:
            return Period(self.year + 1, 1)
        return Period(self.year, self.month + 1)

    def dates(self) -> List[date]:
        """Every day of the period in order."""
        return [self.start + timedelta(days=i) for i in range(self.days)]

    def bucket_keys(self, granularity: Granularity) -> List[str]:
        """Ordered bucket keys spanning the period."""
        _check_granularity(granularity)
        if granularity == "day":
            return [day_key(d) for d in self.dates()]
        if self.month is not None:
            return [self.key]
        return [f"{self.year:04d}-{m:02d}" for m in range(1, MONTHS_PER_YEAR + 1)]


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BucketingResult:
    """
    Records grouped by bucket key.

    Attributes
    ----------
    granularity : {"day", "month"}
    buckets : dict
        Bucket key -> tuple of records, ordered by key. Dense over the period
        when one was given.
    anomalies : tuple of Anomaly
        ``malformed_record`` and ``out_of_period`` entries, ordered by record id.
    period : Period, optional
        Period the buckets were restricted to.
    """

    granularity: Granularity
    buckets: Dict[str, Tuple[IncomeRecord, ...]]
    anomalies: Tuple[Anomaly, ...] = ()
    period: Optional[Period] = None

    @property
    def keys(self) -> List[str]:
        return list(self.buckets)

    @property
    def record_count(self) -> int:
        """Number of records placed in a bucket."""
        return sum(len(recs) for recs in self.buckets.values())

    @property
    def malformed_count(self) -> int:
        return sum(1 for a in self.anomalies if a.kind == "malformed_record")

    def records(self, key: str) -> Tuple[IncomeRecord, ...]:
        return self.buckets.get(key, ())


def bucket_records(
    records: Iterable[IncomeRecord],
    granularity: Granularity,
    *,
    calendar: Optional[CalendarConfig] = None,
    period: Optional[Period] = None,
) -> BucketingResult:
    """
    Group records into calendar buckets.

    Parameters
    ----------
    records : iterable of IncomeRecord
        Records in any order.
    granularity : {"day", "month"}
        Bucket size.
    calendar : CalendarConfig, optional
        Calendar defining day boundaries. Defaults to UTC.
    period : Period, optional
        Restrict and densify buckets to this period. Records dated outside
        it are reported as ``out_of_period`` anomalies.

    Returns
    -------
    BucketingResult
        Buckets ordered by key plus anomalies for every record that could
        not be placed. ``record_count + len(anomalies)`` equals the number
        of input records.

    Raises
    ------
    ValidationError
        If granularity is not "day" or "month".
    """
    _check_granularity(granularity)
    cal = calendar or _DEFAULT_CALENDAR

    grouped: Dict[str, List[IncomeRecord]] = {}
    if period is not None:
        grouped = {key: [] for key in period.bucket_keys(granularity)}
    anomalies: List[Anomaly] = []

    for record in records:
        try:
            d = parse_created_at(record.created_at, cal)
        except MalformedRecordError as exc:
            anomalies.append(Anomaly(
                kind="malformed_record",
                record_id=record.id,
                detail=str(exc),
                amount=record.amount,
                source_id=record.source_id,
            ))
            continue
        if period is not None and not period.contains(d):
            anomalies.append(Anomaly(
                kind="out_of_period",
                record_id=record.id,
                detail=f"{day_key(d)} is outside {period.key}",
                amount=record.amount,
                source_id=record.source_id,
            ))
            continue
        grouped.setdefault(bucket_key(d, granularity), []).append(record)

    buckets = {
        key: tuple(sorted(grouped[key], key=lambda r: r.id))
        for key in sorted(grouped)
    }
    anomalies.sort(key=lambda a: (a.record_id or "", a.kind))
    return BucketingResult(
        granularity=granularity,
        buckets=buckets,
        anomalies=tuple(anomalies),
        period=period,
    )
