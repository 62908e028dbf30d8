"""General utilities for IncomeLens

Contents
--------
- Validation helpers
- Exact, order-independent money sums
- Percentage helpers
- Currency formatting (label only, never converts)
- Matplotlib formatters
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

from .constants import CURRENCY_DECIMALS, DEFAULT_CURRENCY

__all__ = [
    # Validation
    "check_non_negative",
    "check_positive",
    # Sums
    "money_sum",
    # Percentages
    "share_percentage",
    # Formatting
    "format_currency",
    "thousands_formatter",
]

# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def check_non_negative(name: str, value: float) -> None:
    """Raise if *value* is negative or not a finite number."""
    if not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number (got {value}).")
    if value < 0:
        raise ValueError(f"{name} must be non-negative (got {value}).")


def check_positive(name: str, value: float) -> None:
    """Raise if *value* is not strictly positive."""
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be positive (got {value}).")


# ---------------------------------------------------------------------------
# Sums
# ---------------------------------------------------------------------------

def money_sum(values: Iterable[float]) -> float:
    """Correctly rounded sum of *values*.

    Uses math.fsum so the result does not depend on the order values arrive
    in; re-ordering a fetch never changes a bucket total.
    """
    return float(math.fsum(values))


# ---------------------------------------------------------------------------
# Percentages
# ---------------------------------------------------------------------------

def share_percentage(part: float, whole: float) -> float:
    """Return ``part / whole * 100``, or 0.0 when *whole* is not positive."""
    if whole <= 0:
        return 0.0
    return part / whole * 100.0


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_currency(
    amount: Optional[float],
    currency: str = DEFAULT_CURRENCY,
    *,
    symbol: str = "$",
) -> str:
    """
    Format an amount for display with the grouping of its currency label.

    COP uses ``.`` for thousands and no decimals; USD uses ``,`` for
    thousands and two decimals. The amount is never converted.

    Parameters
    ----------
    amount : float or None
        Amount to format. None and NaN render as an empty amount of zero.
    currency : {"COP", "USD"}, default "COP"
        Currency label.
    symbol : str, default '$'
        Prefix symbol.

    Examples
    --------
    >>> format_currency(1234567)
    '$1.234.567'
    >>> format_currency(1234.5, "USD")
    '$1,234.50'
    >>> format_currency(-2500)
    '-$2.500'
    """
    if currency not in CURRENCY_DECIMALS:
        raise ValueError(
            f"currency must be one of {sorted(CURRENCY_DECIMALS)} (got {currency!r})."
        )
    if amount is None or (isinstance(amount, float) and math.isnan(amount)):
        amount = 0.0
    decimals = CURRENCY_DECIMALS[currency]
    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):,.{decimals}f}"
    if currency == "COP":
        # es-CO grouping: swap separators
        text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}{symbol}{text}"


def thousands_formatter(x, pos):
    """
    Format axis values compactly for matplotlib FuncFormatter.

    - 2_500_000 → "2.5M"
    - 45_000 → "45K"
    - 0 → "0"
    """
    if x == 0:
        return "0"
    if abs(x) >= 1e6:
        val = x / 1e6
        return f"{val:.0f}M" if val == int(val) else f"{val:.1f}M"
    if abs(x) >= 1e3:
        val = x / 1e3
        return f"{val:.0f}K" if val == int(val) else f"{val:.1f}K"
    return f"{x:.0f}"
