"""Shared helpers for the diagnostic modules."""
from typing import Iterable, Optional

# Placeholder used in narrative text when an operand is unknown
UNKNOWN = "?"

STATUS_PASS = "pass"
STATUS_WARNING = "warning"
STATUS_FAIL = "fail"
STATUS_NO_DATA = "no_data"

STATUS_SEVERITY = {
    STATUS_NO_DATA: -1,
    STATUS_PASS: 0,
    STATUS_WARNING: 1,
    STATUS_FAIL: 2,
}


def worst_status(statuses: Iterable[str]) -> str:
    """Most severe status; pass for an empty input."""
    worst = STATUS_PASS
    for status in statuses:
        if STATUS_SEVERITY[status] > STATUS_SEVERITY[worst]:
            worst = status
    return worst


def mean_defined(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-None values, None if there are none."""
    valid = [v for v in values if v is not None]
    if not valid:
        return None
    return sum(valid) / len(valid)


def pct_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    """Percentage change; None when previous is missing or zero."""
    if current is None or not previous:
        return None
    return (current - previous) / previous * 100


def money(value: Optional[float], decimals: int = 0) -> str:
    """Narrative currency: $1,234 / -$56 / ?"""
    if value is None:
        return f"${UNKNOWN}"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{decimals}f}"


def number(value: Optional[float], decimals: int = 0) -> str:
    if value is None:
        return UNKNOWN
    return f"{value:,.{decimals}f}"


def percent(value: Optional[float], decimals: int = 0) -> str:
    if value is None:
        return f"{UNKNOWN}%"
    return f"{value:.{decimals}f}%"
