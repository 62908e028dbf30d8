"""
Type definitions for IncomeLens.

Purpose
-------
Provides TypedDict definitions for the plain data structures exchanged with
the record store and emitted to views. Using TypedDicts documents the
expected dictionary structures and enables IDE autocompletion.

Type Definitions
----------------
RawRecordDict
    Income row as returned by the record store: {"id", "amount", "created_at", "source_id"}

MonthlySourceRowDict
    Pre-aggregated yearly row: {"month", "source_id" | "source_name", "total"}

SeriesPointDict
    One point of a time-ordered chart series

CalendarCellDict
    One day of a calendar grid

RankedSourceDict
    One entry of a rank-ordered source list
"""

from typing import Optional, Union

from typing_extensions import NotRequired, TypedDict

__all__ = [
    "RawRecordDict",
    "MonthlySourceRowDict",
    "SourceDict",
    "SeriesPointDict",
    "CalendarCellDict",
    "RankedSourceDict",
    "WindowDayDict",
]


class RawRecordDict(TypedDict):
    """
    Income row as stored remotely.

    ``created_at`` is an ISO timestamp string; the store never validates it.
    """

    id: str
    amount: float
    created_at: str
    source_id: str


class MonthlySourceRowDict(TypedDict):
    """
    Pre-aggregated yearly row (server-side rollup).

    Either ``source_id`` or ``source_name`` identifies the source.
    """

    month: int
    total: float
    source_id: NotRequired[str]
    source_name: NotRequired[str]


class SourceDict(TypedDict):
    """Catalog entry as stored in JSON."""

    id: str
    name: str
    logo: NotRequired[Optional[str]]


class SeriesPointDict(TypedDict):
    """Chart point. ``label`` is the day of month or month number."""

    key: str
    label: int
    amount: float


class CalendarCellDict(TypedDict):
    """Calendar cell for a single day of the month."""

    day: int
    key: str
    amount: float
    is_best: bool
    has_income: bool


class RankedSourceDict(TypedDict):
    """Entry of a top-sources list."""

    rank: int
    source_id: str
    display_name: str
    logo_ref: Optional[str]
    amount: float
    share_pct: float


class WindowDayDict(TypedDict):
    """Day of the daily window; amount is None outside the fetched period."""

    key: str
    offset: int
    amount: Union[float, None]
    is_current: bool
