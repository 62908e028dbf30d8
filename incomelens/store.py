"""
Record store adapters for IncomeLens.

Purpose
-------
The record store is an external collaborator: it owns the raw income rows
and answers range queries. IncomeLens only depends on the `RecordStore`
protocol below. Two implementations ship with the package:

- InMemoryRecordStore: list-backed store used by tests and embedding code.
  ``fetch_by_year`` can optionally answer with pre-aggregated
  ``{month, source_id, total}`` rows, as a server-side rollup would.
- JsonFileRecordStore: the in-memory store persisted to a JSON file.

Both filter by calendar month or year under an explicit CalendarConfig.
A record whose timestamp cannot be placed in any period is returned by
every range query so that the reporting engine reports it as malformed
instead of it disappearing from every view.

Errors
------
Failures to reach or read the backing storage surface as `FetchFailed`.
`insert`, `update` and `delete` belong to the surrounding CRUD screens and
are never called by the reporting engine.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from .bucketing import Period, parse_created_at
from .config import CalendarConfig
from .exceptions import (
    FetchFailed,
    MalformedRecordError,
    RecordNotFoundError,
    ValidationError,
)
from .records import IncomeRecord, MonthlySourceTotal
from .serialization import load_records, save_records
from .utils import money_sum

__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
]

logger = logging.getLogger(__name__)

YearlyPayload = List[Union[IncomeRecord, MonthlySourceTotal]]


class RecordStore(Protocol):
    """Data contract of the remote record store."""

    def fetch_by_month(self, year: int, month: int) -> List[IncomeRecord]:  # pragma: no cover - interface
        ...

    def fetch_by_year(self, year: int) -> YearlyPayload:  # pragma: no cover - interface
        ...

    def insert(self, record: IncomeRecord) -> IncomeRecord:  # pragma: no cover - interface
        ...

    def update(self, record_id: str, patch: Mapping[str, Any]) -> IncomeRecord:  # pragma: no cover - interface
        ...

    def delete(self, record_id: str) -> None:  # pragma: no cover - interface
        ...


class InMemoryRecordStore:
    """
    List-backed record store.

    Parameters
    ----------
    records : iterable of IncomeRecord, optional
        Initial rows. Ids must be unique.
    calendar : CalendarConfig, optional
        Calendar used to place records in months. Defaults to UTC.
    pre_aggregate_yearly : bool, default False
        Answer ``fetch_by_year`` with MonthlySourceTotal rows instead of raw
        records.
    """

    def __init__(
        self,
        records: Iterable[IncomeRecord] = (),
        *,
        calendar: Optional[CalendarConfig] = None,
        pre_aggregate_yearly: bool = False,
    ) -> None:
        self.calendar = calendar or CalendarConfig()
        self.pre_aggregate_yearly = pre_aggregate_yearly
        self._records: Dict[str, IncomeRecord] = {}
        for record in records:
            self.insert(record)

    def __len__(self) -> int:
        return len(self._records)

    def all(self) -> List[IncomeRecord]:
        return list(self._records.values())

    def _matching(self, period: Period) -> List[IncomeRecord]:
        out = []
        for record in self._records.values():
            try:
                d = parse_created_at(record.created_at, self.calendar)
            except MalformedRecordError:
                out.append(record)
                continue
            if period.contains(d):
                out.append(record)
        return out

    # -- queries -----------------------------------------------------------

    def fetch_by_month(self, year: int, month: int) -> List[IncomeRecord]:
        period = Period(year, month)
        records = self._matching(period)
        logger.debug("fetch_by_month %s -> %d record(s)", period.key, len(records))
        return records

    def fetch_by_year(self, year: int) -> YearlyPayload:
        period = Period(year)
        records = self._matching(period)
        if not self.pre_aggregate_yearly:
            logger.debug("fetch_by_year %s -> %d record(s)", period.key, len(records))
            return records

        sums: Dict[tuple, List[float]] = defaultdict(list)
        for record in records:
            try:
                d = parse_created_at(record.created_at, self.calendar)
            except MalformedRecordError:
                # A rollup query cannot group rows without a valid date
                continue
            sums[(d.month, record.source_id)].append(record.amount)
        rows: YearlyPayload = [
            MonthlySourceTotal(month=m, source_id=sid, total=money_sum(v))
            for (m, sid), v in sorted(sums.items())
        ]
        logger.debug("fetch_by_year %s -> %d pre-aggregated row(s)", period.key, len(rows))
        return rows

    # -- CRUD --------------------------------------------------------------

    def insert(self, record: IncomeRecord) -> IncomeRecord:
        if record.id in self._records:
            raise ValidationError(f"Record id {record.id!r} already exists.")
        self._records[record.id] = record
        return record

    def update(self, record_id: str, patch: Mapping[str, Any]) -> IncomeRecord:
        try:
            current = self._records[record_id]
        except KeyError:
            raise RecordNotFoundError(f"No record with id {record_id!r}.") from None
        updated = current.with_changes(**dict(patch))
        self._records[record_id] = updated
        return updated

    def delete(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is None:
            raise RecordNotFoundError(f"No record with id {record_id!r}.")


class JsonFileRecordStore(InMemoryRecordStore):
    """
    Record store persisted to a JSON records file.

    The file is re-read on every fetch so edits made by other tools show up
    on the next refresh. Read errors are reported as FetchFailed.
    """

    def __init__(
        self,
        path: Path,
        *,
        calendar: Optional[CalendarConfig] = None,
        pre_aggregate_yearly: bool = False,
    ) -> None:
        super().__init__(calendar=calendar, pre_aggregate_yearly=pre_aggregate_yearly)
        self.path = Path(path)

    def _reload(self, period_key: str) -> None:
        if not self.path.exists():
            self._records = {}
            return
        try:
            records = load_records(self.path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Could not read %s: %s", self.path, exc)
            raise FetchFailed(f"{period_key}: cannot read {self.path}: {exc}", period_key=period_key) from exc
        self._records = {r.id: r for r in records}

    def _persist(self) -> None:
        save_records(list(self._records.values()), self.path)

    def fetch_by_month(self, year: int, month: int) -> List[IncomeRecord]:
        self._reload(Period(year, month).key)
        return super().fetch_by_month(year, month)

    def fetch_by_year(self, year: int) -> YearlyPayload:
        self._reload(Period(year).key)
        return super().fetch_by_year(year)

    def insert(self, record: IncomeRecord) -> IncomeRecord:
        self._reload("insert")
        inserted = super().insert(record)
        self._persist()
        return inserted

    def update(self, record_id: str, patch: Mapping[str, Any]) -> IncomeRecord:
        self._reload("update")
        updated = super().update(record_id, patch)
        self._persist()
        return updated

    def delete(self, record_id: str) -> None:
        self._reload("delete")
        super().delete(record_id)
        self._persist()
