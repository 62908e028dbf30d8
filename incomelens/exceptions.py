"""
Custom exceptions and anomaly types for IncomeLens.

Purpose
-------
Provides a unified exception hierarchy for consistent error handling
across all IncomeLens modules. All exceptions inherit from IncomeLensError,
enabling catch-all handling when needed.

Aggregation never raises for a single bad record. Record-level problems are
collected as `Anomaly` values and returned next to the partial result, so one
broken row cannot blank an entire period's report.

Exception Hierarchy
-------------------
IncomeLensError (base)
├── ConfigurationError - Invalid configuration or parameters
├── ValidationError - Data validation failures
│   ├── MalformedRecordError - Record date cannot be parsed
│   └── PeriodError - Invalid year or month
├── FetchFailed - Record store could not deliver a period
└── RecordNotFoundError - Update/delete of an unknown record id

Warning categories
------------------
UnresolvedSourceWarning (UserWarning) - record references a source id absent
from the catalog; counted in raw totals, excluded from per-source views.

Usage
-----
>>> from incomelens.exceptions import FetchFailed, IncomeLensError
>>>
>>> try:
...     report = dashboard.month_report(2025, 2)
... except FetchFailed as e:
...     print(f"Store unavailable: {e}")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

__all__ = [
    "IncomeLensError",
    "ConfigurationError",
    "ValidationError",
    "MalformedRecordError",
    "PeriodError",
    "FetchFailed",
    "RecordNotFoundError",
    "UnresolvedSourceWarning",
    "Anomaly",
    "AnomalyKind",
]


class IncomeLensError(Exception):
    """
    Base exception for all IncomeLens errors.

    Examples
    --------
    >>> try:
    ...     dashboard.year_report(2025)
    ... except IncomeLensError as e:
    ...     logger.error("Report failed: %s", e)
    """
    pass


class ConfigurationError(IncomeLensError):
    """
    Invalid configuration or parameters.

    Raised when configuration is invalid, such as:
    - Unknown IANA time zone name
    - Non-positive income goal
    - Top-N limit below 1
    """
    pass


class ValidationError(IncomeLensError):
    """
    Data validation failures.

    Raised when input data fails validation checks, such as:
    - Negative record amounts
    - Unknown bucket granularity
    """
    pass


class MalformedRecordError(ValidationError):
    """
    A record's ``created_at`` cannot be parsed into a calendar date.

    Raised by `incomelens.bucketing.parse_created_at`. The bucketing engine
    catches it per record and reports a ``malformed_record`` anomaly instead
    of aborting the batch.

    Examples
    --------
    >>> raise MalformedRecordError(
    ...     "created_at '2025-02-30' is not a valid calendar date"
    ... )
    """

    def __init__(self, message: str, *, record_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.record_id = record_id


class PeriodError(ValidationError):
    """
    Invalid period (month outside 1..12, year below 1).
    """
    pass


class FetchFailed(IncomeLensError):
    """
    The record store could not deliver the requested period.

    Callers keep the previously rendered report in place when this is
    raised; a transient failure never flashes the view to empty.

    Examples
    --------
    >>> raise FetchFailed("2025-03: connection reset by peer")
    """

    def __init__(self, message: str, *, period_key: Optional[str] = None) -> None:
        super().__init__(message)
        self.period_key = period_key


class RecordNotFoundError(IncomeLensError):
    """
    Update or delete targeted a record id the store does not hold.
    """
    pass


class UnresolvedSourceWarning(UserWarning):
    """
    A record references a source id that the catalog does not know.

    The amount still counts toward the raw total but is left out of every
    per-source breakdown and shows up as "uncategorized".
    """
    pass


AnomalyKind = Literal["malformed_record", "unresolved_source", "out_of_period"]


@dataclass(frozen=True)
class Anomaly:
    """
    A record-level problem found while bucketing or aggregating.

    Parameters
    ----------
    kind : {"malformed_record", "unresolved_source", "out_of_period"}
        Category of the problem.
    record_id : str or None
        Id of the offending record, when it has one.
    detail : str
        Human-readable description.
    amount : float, default 0.0
        Amount carried by the record. For ``unresolved_source`` this amount
        is part of the raw total; for the other kinds it is excluded.
    source_id : str or None
        Source id of the record, if known.
    """

    kind: AnomalyKind
    record_id: Optional[str]
    detail: str
    amount: float = 0.0
    source_id: Optional[str] = None
