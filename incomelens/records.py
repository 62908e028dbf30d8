"""
Income records and the source catalog.

Purpose
-------
Defines the immutable inputs of the reporting engine:

- IncomeRecord:
    A single dated, source-tagged amount. Owned by the record store and
    never mutated by IncomeLens. ``created_at`` is kept exactly as supplied;
    only the bucketing engine interprets it, so a bad timestamp becomes an
    anomaly instead of a constructor failure.

- Source / SourceCatalog:
    Static reference data joined by id. The catalog is read-only.

- MonthlySourceTotal:
    A pre-aggregated yearly row ({month, source, total}) as some stores
    return for the yearly path.

Example
-------
>>> from incomelens.records import IncomeRecord, Source, SourceCatalog
>>> catalog = SourceCatalog([Source("yt", "YouTube Flat Tire TV")])
>>> rec = IncomeRecord(id="r1", amount=120.0, created_at="2025-02-14T10:00:00", source_id="yt")
>>> catalog.resolves(rec.source_id)
True
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Union

from .constants import SOURCE_NAME_PREFIXES
from .exceptions import ValidationError
from .utils import check_non_negative

__all__ = [
    "IncomeRecord",
    "Source",
    "SourceCatalog",
    "MonthlySourceTotal",
    "clean_display_name",
]

_FIELD_ALIASES = {"createdAt": "created_at", "sourceId": "source_id"}

CreatedAt = Union[str, datetime, date, None]


@dataclass(frozen=True)
class IncomeRecord:
    """
    Immutable income record.

    Parameters
    ----------
    id : str
        Store-assigned identifier.
    amount : float
        Non-negative amount in the passthrough currency.
    created_at : str, datetime or date
        Timestamp as supplied by the store.
    source_id : str
        Reference into the SourceCatalog. May be unknown to the catalog.
    """

    id: str
    amount: float
    created_at: CreatedAt
    source_id: str

    def __post_init__(self) -> None:
        try:
            amount = float(self.amount)
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                f"Record {self.id!r}: amount must be numeric (got {self.amount!r})."
            ) from exc
        try:
            check_non_negative("amount", amount)
        except ValueError as exc:
            raise ValidationError(f"Record {self.id!r}: {exc}") from exc
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "source_id", str(self.source_id))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IncomeRecord:
        """
        Build a record from a store row.

        Accepts both ``snake_case`` and ``camelCase`` keys
        (``created_at``/``createdAt``, ``source_id``/``sourceId``).
        """
        if not isinstance(data, Mapping):
            raise ValidationError(f"Record row must be an object (got {data!r}).")
        source_id = data.get("source_id", data.get("sourceId"))
        if source_id is None:
            raise ValidationError(f"Record row is missing field 'source_id': {dict(data)!r}")
        try:
            return cls(
                id=data["id"],
                amount=data["amount"],
                created_at=data.get("created_at", data.get("createdAt")),
                source_id=source_id,
            )
        except KeyError as exc:
            raise ValidationError(f"Record row is missing field {exc.args[0]!r}.") from exc

    def to_dict(self) -> Dict[str, Any]:
        created = self.created_at
        if isinstance(created, (datetime, date)):
            created = created.isoformat()
        return {
            "id": self.id,
            "amount": self.amount,
            "created_at": created,
            "source_id": self.source_id,
        }

    def with_changes(self, **patch: Any) -> IncomeRecord:
        """Return a copy with *patch* applied. The id cannot change."""
        patch = {_FIELD_ALIASES.get(k, k): v for k, v in patch.items()}
        unknown = sorted(set(patch) - {f.name for f in fields(self)})
        if unknown:
            raise ValidationError(f"Record {self.id!r}: unknown field(s) in update: {unknown}.")
        if "id" in patch and str(patch["id"]) != self.id:
            raise ValidationError("Record id cannot be changed by an update.")
        return replace(self, **patch)


def clean_display_name(name: str) -> str:
    """
    Strip platform prefixes for compact labels.

    >>> clean_display_name("YouTube Flat Tire TV")
    'Flat Tire TV'
    >>> clean_display_name("Mercado Libre")
    'Mercado Libre'
    """
    pattern = r"(?:%s)\s?" % "|".join(re.escape(p) for p in SOURCE_NAME_PREFIXES)
    cleaned = re.sub(pattern, "", name, flags=re.IGNORECASE).strip()
    return cleaned or name


@dataclass(frozen=True)
class Source:
    """Catalog entry: where income comes from."""

    id: str
    display_name: str
    logo_ref: Optional[str] = None

    @property
    def short_name(self) -> str:
        return clean_display_name(self.display_name)


class SourceCatalog:
    """
    Read-only lookup of sources by id.

    Lookups by display name exist for pre-aggregated yearly rows that carry
    a source name instead of an id. Duplicate ids are rejected.
    """

    def __init__(self, sources: Iterable[Source] = ()) -> None:
        by_id: Dict[str, Source] = {}
        for source in sources:
            if source.id in by_id:
                raise ValidationError(f"Duplicate source id {source.id!r} in catalog.")
            by_id[source.id] = source
        self._by_id = by_id
        self._by_name = {s.display_name: s for s in by_id.values()}

    @classmethod
    def from_dicts(cls, rows: Iterable[Mapping[str, Any]]) -> SourceCatalog:
        return cls(
            Source(
                id=str(row["id"]),
                display_name=row.get("display_name", row.get("name", str(row["id"]))),
                logo_ref=row.get("logo_ref", row.get("logo")),
            )
            for row in rows
        )

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[Source]:
        return iter(self._by_id.values())

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._by_id

    def get(self, source_id: str) -> Optional[Source]:
        return self._by_id.get(source_id)

    def resolves(self, source_id: str) -> bool:
        return source_id in self._by_id

    def by_name(self, display_name: str) -> Optional[Source]:
        return self._by_name.get(display_name)

    def display_name(self, source_id: str) -> str:
        source = self._by_id.get(source_id)
        return source.display_name if source else source_id


@dataclass(frozen=True)
class MonthlySourceTotal:
    """
    Pre-aggregated yearly row.

    Parameters
    ----------
    month : int
        Calendar month 1..12.
    source_id : str
        Source identifier (resolved from ``source_name`` when rows carry names).
    total : float
        Sum of the month's records for that source.
    """

    month: int
    source_id: str
    total: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "total", float(self.total))
        object.__setattr__(self, "source_id", str(self.source_id))

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        catalog: Optional[SourceCatalog] = None,
    ) -> MonthlySourceTotal:
        """
        Build a row from a store payload.

        Rows may name the source (``source_name``) instead of giving its id;
        the catalog maps the name back to an id. Unknown names are kept
        as-is so they surface as unresolved sources.
        """
        month = data.get("month", data.get("mes"))
        source_id = data.get("source_id", data.get("sourceId"))
        if source_id is None and "source_name" in data:
            name = data["source_name"]
            source = catalog.by_name(name) if catalog is not None else None
            source_id = source.id if source else name
        if month is None or source_id is None or "total" not in data:
            raise ValidationError(f"Malformed yearly row: {dict(data)!r}")
        try:
            return cls(month=int(month), source_id=source_id, total=data["total"])
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed yearly row: {dict(data)!r}") from exc
