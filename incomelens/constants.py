"""
Global constants for IncomeLens.

Purpose
-------
Centralizes default values and magic numbers used throughout the IncomeLens
codebase. Using constants instead of hardcoded values keeps bucketing,
ranking and formatting consistent between modules.

Usage
-----
>>> from incomelens.constants import DEFAULT_TOP_N, DAY_KEY_FORMAT
>>>
>>> ranked = top_sources(period.by_source, n=DEFAULT_TOP_N)

Categories
----------
- Calendar: bucket key formats, default time zone
- Ranking: top-N defaults
- Views: daily window radius, default goal
- Formatting: currencies, figure sizes
"""

from typing import Dict, Tuple

__all__ = [
    # Calendar
    "DAY_KEY_FORMAT",
    "MONTH_KEY_FORMAT",
    "DEFAULT_TIMEZONE",
    "MONTHS_PER_YEAR",
    # Ranking
    "DEFAULT_TOP_N",
    "DEFAULT_YEARLY_TOP_N",
    # Views
    "DEFAULT_DAILY_WINDOW_RADIUS",
    "FULL_GAIN_PERCENTAGE",
    "UNCATEGORIZED_LABEL",
    "SOURCE_NAME_PREFIXES",
    # Formatting
    "DEFAULT_CURRENCY",
    "CURRENCY_DECIMALS",
    "DEFAULT_FIGSIZE",
    "DEFAULT_FIGSIZE_WIDE",
]


# =============================================================================
# Calendar
# =============================================================================

DAY_KEY_FORMAT: str = "%Y-%m-%d"
"""Canonical daily bucket key, e.g. 2025-02-14."""

MONTH_KEY_FORMAT: str = "%Y-%m"
"""Canonical monthly bucket key, e.g. 2025-02."""

DEFAULT_TIMEZONE: str = "UTC"
"""Calendar used for bucketing when none is configured."""

MONTHS_PER_YEAR: int = 12


# =============================================================================
# Ranking
# =============================================================================

DEFAULT_TOP_N: int = 5
"""Number of sources shown in summary views."""

DEFAULT_YEARLY_TOP_N: int = 3
"""Number of sources highlighted on the yearly report."""


# =============================================================================
# Views
# =============================================================================

DEFAULT_DAILY_WINDOW_RADIUS: int = 3
"""Days shown on each side of the selected day (3 before, 3 after)."""

FULL_GAIN_PERCENTAGE: float = 100.0
"""Delta reported when the previous period had no income and the current one does."""

UNCATEGORIZED_LABEL: str = "Uncategorized"
"""Label for amounts whose source is missing from the catalog."""

SOURCE_NAME_PREFIXES: Tuple[str, ...] = ("YouTube", "Facebook", "TikTok")
"""Platform prefixes stripped from source names for compact labels."""


# =============================================================================
# Formatting
# =============================================================================

DEFAULT_CURRENCY: str = "COP"

CURRENCY_DECIMALS: Dict[str, int] = {
    "COP": 0,
    "USD": 2,
}
"""Fraction digits per currency label (no conversion is ever applied)."""

DEFAULT_FIGSIZE: Tuple[int, int] = (12, 5)

DEFAULT_FIGSIZE_WIDE: Tuple[int, int] = (14, 6)
