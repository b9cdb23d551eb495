"""
Consistent number and display formatting.
"""
import pandas as pd
from typing import Union, Optional

from governor.config import PVA_GOOD, PVA_WATCH, CAC_PVA_GOOD, CAC_PVA_WATCH


# =============================================================================
# NUMBER FORMATTERS
# =============================================================================

def _missing(value) -> bool:
    return value is None or pd.isna(value)


def fmt_currency(value: Union[float, int, None], decimals: int = 0) -> str:
    """Format as currency: $1,234 / -$1,234.56"""
    if _missing(value):
        return "—"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{decimals}f}"


def fmt_percent(value: Union[float, int, None], decimals: int = 0) -> str:
    """Format percentage: 12%"""
    if _missing(value):
        return "—"
    return f"{value:,.{decimals}f}%"


def fmt_count(value: Union[float, int, None]) -> str:
    """Format count: 1,234"""
    if _missing(value):
        return "—"
    return f"{int(round(value)):,}"


def fmt_input(value: Optional[float]) -> Optional[float]:
    """Editor cell value: None stays None so the grid shows a blank."""
    if _missing(value):
        return None
    return float(value)


# =============================================================================
# STATUS INDICATORS
# =============================================================================

STATUS_ICONS = {
    "pass": "✓",
    "fail": "✗",
    "warning": "⚠",
    "no_data": "—",
}

STATUS_COLORS = {
    "pass": "#28a745",
    "fail": "#dc3545",
    "warning": "#ffc107",
    "no_data": "#6c757d",
}

VERDICT_LABELS = {
    "cm_problem": "CM Problem",
    "volume_problem": "Volume Problem",
    "both": "CM + Volume Problem",
    "neither": "No Structural Issue",
}

SCALE_LABELS = {
    "denied": "DENIED",
    "leak_hunt_only": "LEAK HUNT ONLY",
    "allowed": "ALLOWED",
}


def status_badge(status: str) -> str:
    """Icon plus status word, e.g. '✗ fail'."""
    return f"{STATUS_ICONS.get(status, '?')} {status.replace('_', ' ')}"


def pva_color(value: Optional[float], field: str) -> str:
    """
    Colour for a PvA cell.

    CAC is inverted: spending above plan is bad.
    """
    if _missing(value):
        return STATUS_COLORS["no_data"]
    if field == "cac_pva":
        if value <= CAC_PVA_GOOD:
            return STATUS_COLORS["pass"]
        if value <= CAC_PVA_WATCH:
            return STATUS_COLORS["warning"]
        return STATUS_COLORS["fail"]
    if value >= PVA_GOOD:
        return STATUS_COLORS["pass"]
    if value >= PVA_WATCH:
        return STATUS_COLORS["warning"]
    return STATUS_COLORS["fail"]


# =============================================================================
# DATAFRAME FORMATTERS
# =============================================================================

def style_pva_table(df: pd.DataFrame):
    """
    Colour a metric x week PvA table (index = PvA field name).
    """
    def color_row(row: pd.Series):
        return [f"color: {pva_color(v, row.name)}" for v in row]

    labels = {
        "cm_pva": "CM PvA",
        "count_pva": "Count PvA",
        "aov_pva": "AOV PvA",
        "cac_pva": "CAC PvA",
    }
    styled = df.style.apply(color_row, axis=1).format(fmt_percent)
    return styled.relabel_index([labels.get(i, i) for i in df.index], axis=0)
