"""
Aggregation engine for IncomeLens.

Purpose
-------
Reduces bucketed records into per-bucket totals, per-source totals and
whole-period figures. These numbers are the single source of truth for
every view: calendar cells, chart series, ranked lists and the statistics
card all read them instead of re-summing records.

Key components
--------------
- Aggregate:
    Totals of one bucket. ``total`` is the raw total and counts every record,
    including those whose source is missing from the catalog. ``by_source``
    holds resolved sources only and ``unresolved`` holds the rest, so the
    display total (``display_total``) can never be mistaken for the raw one.

- PeriodAggregate:
    Ordered buckets of a month or year with period-level totals.

- Ok / PartialOk:
    Discriminated result of aggregation. PartialOk carries the anomalies
    (malformed dates, unresolved sources, out-of-period records) next to the
    figures computed from everything that could be used.

- top_sources, best_bucket, average_per_active_bucket:
    Deterministic rankings and summary figures.

- aggregate_year:
    Yearly rollup that accepts raw records or server-side pre-aggregated
    ``{month, source, total}`` rows and produces the same contract.

Invariants
----------
- ``total == display_total + unresolved_total`` for every bucket and period.
- ``PeriodAggregate.total == sum(bucket.total)``.
- Rankings never depend on insertion order: ties in top-N lists break by
  ascending source id, ties for the best bucket by earliest key.

Example
-------
>>> from incomelens.aggregation import aggregate_period, top_sources
>>> result = aggregate_period(bucket_records(records, "day", period=Period(2025, 2)), catalog)
>>> month = result.value
>>> top_sources(month.by_source, n=3)
[('yt', 1200.0), ('ml', 450.0), ('fb', 450.0)]
"""

from __future__ import annotations

import warnings
from collections import defaultdict
from dataclasses import dataclass, field
from typing import (
    Dict,
    Generic,
    Iterable,
    List,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from .bucketing import BucketingResult, Granularity, Period, bucket_records
from .config import CalendarConfig
from .constants import DEFAULT_TOP_N, MONTHS_PER_YEAR
from .exceptions import Anomaly, UnresolvedSourceWarning, ValidationError
from .records import IncomeRecord, MonthlySourceTotal, SourceCatalog
from .types import MonthlySourceRowDict, RawRecordDict
from .utils import money_sum

__all__ = [
    "Aggregate",
    "PeriodAggregate",
    "Ok",
    "PartialOk",
    "AggregationResult",
    "aggregate_bucket",
    "aggregate_period",
    "aggregate_year",
    "top_sources",
    "best_bucket",
    "average_per_active_bucket",
]

T = TypeVar("T")

# (source_id, amount, record_id)
_Entry = Tuple[str, float, Optional[str]]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Ok(Generic[T]):
    """Every input record was bucketed and every source resolved."""

    value: T
    kind: Literal["ok"] = "ok"

    @property
    def anomalies(self) -> Tuple[Anomaly, ...]:
        return ()

    @property
    def is_complete(self) -> bool:
        return True


@dataclass(frozen=True)
class PartialOk(Generic[T]):
    """Figures computed from the usable records plus the anomalies found."""

    value: T
    anomalies: Tuple[Anomaly, ...]
    kind: Literal["partial"] = "partial"

    @property
    def is_complete(self) -> bool:
        return False

    def count(self, kind: str) -> int:
        """Number of anomalies of the given kind."""
        return sum(1 for a in self.anomalies if a.kind == kind)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Aggregate:
    """
    Totals of a single bucket.

    Attributes
    ----------
    bucket_key : str
        ``YYYY-MM-DD`` or ``YYYY-MM``.
    total : float
        Raw total: every record in the bucket.
    by_source : dict
        Source id -> amount, resolvable sources only.
    unresolved : dict
        Source id -> amount for ids missing from the catalog.
    record_count : int
        Records (or pre-aggregated rows) that contributed.
    """

    bucket_key: str
    total: float
    by_source: Dict[str, float] = field(default_factory=dict)
    unresolved: Dict[str, float] = field(default_factory=dict)
    record_count: int = 0

    @property
    def display_total(self) -> float:
        """Sum over resolved sources only."""
        return money_sum(self.by_source.values())

    @property
    def unresolved_total(self) -> float:
        return money_sum(self.unresolved.values())

    @property
    def is_complete(self) -> bool:
        """True when no amount belongs to an unknown source."""
        return not self.unresolved

    @property
    def has_income(self) -> bool:
        return self.total > 0


@dataclass(frozen=True)
class PeriodAggregate:
    """
    Ordered bucket aggregates of one period plus period-level totals.

    Attributes
    ----------
    granularity : {"day", "month"}
    buckets : tuple of Aggregate
        Ordered by bucket key.
    by_source : dict
        Period totals per resolved source.
    unresolved : dict
        Period totals per unresolved source id.
    period : Period, optional
    """

    granularity: Granularity
    buckets: Tuple[Aggregate, ...]
    by_source: Dict[str, float] = field(default_factory=dict)
    unresolved: Dict[str, float] = field(default_factory=dict)
    period: Optional[Period] = None

    @property
    def total(self) -> float:
        """Raw total of the period, equal to the sum of bucket totals."""
        return money_sum(b.total for b in self.buckets)

    @property
    def display_total(self) -> float:
        return money_sum(self.by_source.values())

    @property
    def unresolved_total(self) -> float:
        return money_sum(self.unresolved.values())

    @property
    def record_count(self) -> int:
        return sum(b.record_count for b in self.buckets)

    @property
    def active_buckets(self) -> Tuple[Aggregate, ...]:
        return tuple(b for b in self.buckets if b.total > 0)

    def totals(self) -> Dict[str, float]:
        """Bucket key -> raw total, in key order."""
        return {b.bucket_key: b.total for b in self.buckets}

    def get(self, key: str) -> Optional[Aggregate]:
        for b in self.buckets:
            if b.bucket_key == key:
                return b
        return None


AggregationResult = Union[Ok[PeriodAggregate], PartialOk[PeriodAggregate]]


# ---------------------------------------------------------------------------
# Core reductions
# ---------------------------------------------------------------------------

def _reduce(key: str, entries: Sequence[_Entry], catalog: SourceCatalog) -> Aggregate:
    resolved: Dict[str, List[float]] = defaultdict(list)
    unresolved: Dict[str, List[float]] = defaultdict(list)
    for source_id, amount, _ in entries:
        target = resolved if catalog.resolves(source_id) else unresolved
        target[source_id].append(amount)
    return Aggregate(
        bucket_key=key,
        total=money_sum(amount for _, amount, _ in entries),
        by_source={sid: money_sum(v) for sid, v in sorted(resolved.items())},
        unresolved={sid: money_sum(v) for sid, v in sorted(unresolved.items())},
        record_count=len(entries),
    )


def _build(
    granularity: Granularity,
    keyed: Mapping[str, Sequence[_Entry]],
    catalog: SourceCatalog,
    anomalies: Iterable[Anomaly],
    period: Optional[Period],
) -> AggregationResult:
    buckets = tuple(_reduce(key, keyed[key], catalog) for key in sorted(keyed))

    period_resolved: Dict[str, List[float]] = defaultdict(list)
    period_unresolved: Dict[str, List[float]] = defaultdict(list)
    unresolved_anomalies: List[Anomaly] = []
    for key in sorted(keyed):
        for source_id, amount, record_id in keyed[key]:
            if catalog.resolves(source_id):
                period_resolved[source_id].append(amount)
                continue
            period_unresolved[source_id].append(amount)
            unresolved_anomalies.append(Anomaly(
                kind="unresolved_source",
                record_id=record_id,
                detail=f"source {source_id!r} is not in the catalog ({key})",
                amount=amount,
                source_id=source_id,
            ))

    value = PeriodAggregate(
        granularity=granularity,
        buckets=buckets,
        by_source={sid: money_sum(v) for sid, v in sorted(period_resolved.items())},
        unresolved={sid: money_sum(v) for sid, v in sorted(period_unresolved.items())},
        period=period,
    )

    if unresolved_anomalies:
        warnings.warn(
            f"{len(unresolved_anomalies)} record(s) reference sources missing from the "
            f"catalog: {sorted(period_unresolved)}. Counted in raw totals only.",
            UnresolvedSourceWarning,
            stacklevel=3,
        )

    all_anomalies = tuple(anomalies) + tuple(
        sorted(unresolved_anomalies, key=lambda a: (a.record_id or "", a.source_id or ""))
    )
    if all_anomalies:
        return PartialOk(value=value, anomalies=all_anomalies)
    return Ok(value=value)


def aggregate_bucket(
    key: str,
    records: Iterable[IncomeRecord],
    catalog: SourceCatalog,
) -> Aggregate:
    """
    Totals of a single bucket.

    Parameters
    ----------
    key : str
        Bucket key the records belong to.
    records : iterable of IncomeRecord
    catalog : SourceCatalog

    Returns
    -------
    Aggregate
        Raw total over all records; ``by_source`` restricted to resolvable
        sources; unresolved amounts kept apart.
    """
    entries = [(r.source_id, r.amount, r.id) for r in records]
    return _reduce(key, entries, catalog)


def aggregate_period(bucketing: BucketingResult, catalog: SourceCatalog) -> AggregationResult:
    """
    Aggregate every bucket of a bucketing result.

    Parameters
    ----------
    bucketing : BucketingResult
        Output of `bucket_records`. Its anomalies are carried over.
    catalog : SourceCatalog
        Read-only source lookup.

    Returns
    -------
    Ok or PartialOk
        ``Ok`` when nothing was skipped and every source resolved,
        ``PartialOk`` otherwise. The figures are valid in both cases.

    Warns
    -----
    UnresolvedSourceWarning
        When at least one record references an unknown source.
    """
    keyed = {
        key: [(r.source_id, r.amount, r.id) for r in recs]
        for key, recs in bucketing.buckets.items()
    }
    return _build(bucketing.granularity, keyed, catalog, bucketing.anomalies, bucketing.period)


def aggregate_year(
    data: Iterable[Union[IncomeRecord, MonthlySourceTotal, MonthlySourceRowDict, RawRecordDict]],
    year: int,
    catalog: SourceCatalog,
    *,
    calendar: Optional[CalendarConfig] = None,
) -> AggregationResult:
    """
    Yearly rollup into 12 monthly buckets.

    Accepts either raw records or pre-aggregated monthly rows, the two shapes
    a store may return for the yearly path. Both produce the same
    PeriodAggregate contract.

    Parameters
    ----------
    data : iterable
        IncomeRecord / MonthlySourceTotal instances, or store dicts of either
        shape (dicts with ``month`` and ``total`` are treated as rows).
    year : int
        Calendar year.
    catalog : SourceCatalog
    calendar : CalendarConfig, optional
        Used for raw records only.

    Raises
    ------
    ValidationError
        If raw records and pre-aggregated rows are mixed.
    """
    period = Period(year)
    records: List[IncomeRecord] = []
    rows: List[MonthlySourceTotal] = []
    anomalies: List[Anomaly] = []
    saw_raw = False

    for item in data:
        if isinstance(item, IncomeRecord):
            saw_raw = True
            records.append(item)
        elif isinstance(item, MonthlySourceTotal):
            rows.append(item)
        elif isinstance(item, Mapping) and "total" in item and ("month" in item or "mes" in item):
            try:
                rows.append(MonthlySourceTotal.from_dict(item, catalog))
            except ValidationError as exc:
                anomalies.append(Anomaly("malformed_record", None, str(exc)))
        elif isinstance(item, Mapping):
            saw_raw = True
            try:
                records.append(IncomeRecord.from_dict(item))
            except ValidationError as exc:
                anomalies.append(Anomaly("malformed_record", item.get("id"), str(exc)))
        else:
            raise ValidationError(f"Unsupported yearly item: {item!r}")

    if saw_raw and rows:
        raise ValidationError("Yearly input mixes raw records and pre-aggregated rows.")

    if saw_raw:
        bucketing = bucket_records(records, "month", calendar=calendar, period=period)
        by_month = {
            key: [(r.source_id, r.amount, r.id) for r in recs]
            for key, recs in bucketing.buckets.items()
        }
        anomalies.extend(bucketing.anomalies)
        return _build("month", by_month, catalog, anomalies, period)

    keyed: Dict[str, List[_Entry]] = {key: [] for key in period.bucket_keys("month")}
    for row in rows:
        if not 1 <= row.month <= MONTHS_PER_YEAR or row.total < 0:
            anomalies.append(Anomaly(
                kind="malformed_record",
                record_id=None,
                detail=f"yearly row month={row.month} total={row.total} is out of range",
                amount=max(row.total, 0.0),
                source_id=row.source_id,
            ))
            continue
        keyed[f"{year:04d}-{row.month:02d}"].append((row.source_id, row.total, None))
    return _build("month", keyed, catalog, anomalies, period)


# ---------------------------------------------------------------------------
# Rankings and summary figures
# ---------------------------------------------------------------------------

def top_sources(
    by_source: Mapping[str, float],
    n: Optional[int] = DEFAULT_TOP_N,
) -> List[Tuple[str, float]]:
    """
    Rank sources by total.

    Parameters
    ----------
    by_source : mapping
        Source id -> total (normally ``Aggregate.by_source`` or
        ``PeriodAggregate.by_source``).
    n : int or None, default 5
        Number of entries to keep. None keeps all (full reports).

    Returns
    -------
    list of (source_id, total)
        Descending by total, ties broken by ascending source id. Sources
        with a zero total are omitted.
    """
    if n is not None and n < 1:
        raise ValidationError(f"n must be >= 1 or None (got {n}).")
    ranked = sorted(
        ((sid, total) for sid, total in by_source.items() if total > 0),
        key=lambda item: (-item[1], item[0]),
    )
    return ranked if n is None else ranked[:n]


def best_bucket(period: PeriodAggregate) -> Optional[Aggregate]:
    """
    Bucket with the highest raw total.

    Ties go to the earliest bucket key. Returns None when no bucket has
    income.
    """
    best: Optional[Aggregate] = None
    for bucket in sorted(period.buckets, key=lambda b: b.bucket_key):
        if bucket.total > 0 and (best is None or bucket.total > best.total):
            best = bucket
    return best


def average_per_active_bucket(period: PeriodAggregate) -> float:
    """
    Period total divided by the number of buckets with income.

    Zero-income buckets do not count. This differs from the projection's
    average per elapsed day, which divides by calendar days. Returns 0.0
    when no bucket has income.
    """
    active = period.active_buckets
    if not active:
        return 0.0
    return money_sum(b.total for b in active) / len(active)
