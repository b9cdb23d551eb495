"""
Traction scorecard parsing.

The scorecard is a wide table: the first row holds week labels (column 0 is
the metric label), and each following row is one metric across weeks.
"""
from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from governor.config import CM_SCALE, TIER2_FIELDS
from governor.data.schema import WeekRecord

logger = logging.getLogger(__name__)


class ScorecardParseError(ValueError):
    """Raised when scorecard text has no rows or no week columns."""
    pass


_NUMBER_RE = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?")
_CLEAN_RE = re.compile(r"[$,%\s]")
_FORECAST_RE = re.compile(r"f(orecast|cast)", re.IGNORECASE)

# (label pattern, actual field, forecast field, multiplier); first match wins
ROW_PATTERNS: List[Tuple[re.Pattern, str, Optional[str], float]] = [
    (re.compile(r"1st Order CM", re.IGNORECASE), "cm_actual", "cm_forecast", CM_SCALE),
    (re.compile(r"1st Order Count", re.IGNORECASE), "count_actual", "count_forecast", 1),
    (re.compile(r"AOV", re.IGNORECASE), "aov_actual", "aov_forecast", 1),
    (re.compile(r"CAC", re.IGNORECASE), "cac_actual", "cac_forecast", 1),
    (re.compile(r"Ad Spend", re.IGNORECASE), "ad_spend", None, 1),
]

_PLAN_VS_ACTUAL_RE = re.compile(r"plan\s*v", re.IGNORECASE)


def parse_value(raw) -> Optional[float]:
    """'$1,234.5' / '-$1.1' / '66%' -> float; blank or unparsable -> None."""
    if raw is None:
        return None
    cleaned = _CLEAN_RE.sub("", str(raw))
    if cleaned == "":
        return None
    match = _NUMBER_RE.match(cleaned)
    if not match:
        return None
    return float(match.group(0))


def match_row(label: str) -> Optional[Tuple[str, float]]:
    """Map a scorecard row label to (field, multiplier), or None to skip it."""
    clean = (label or "").strip()
    if not clean or _PLAN_VS_ACTUAL_RE.search(clean):
        return None

    for pattern, actual_field, forecast_field, multiplier in ROW_PATTERNS:
        if pattern.search(clean):
            if forecast_field and _FORECAST_RE.search(clean):
                return forecast_field, multiplier
            return actual_field, multiplier
    return None


def read_grid(text: str, sep: Optional[str] = None) -> pd.DataFrame:
    """
    Read pasted or downloaded scorecard text into a string grid.

    Tab-separated when the text carries tabs (spreadsheet paste), otherwise
    comma-separated (CSV export).
    """
    if not text or not text.strip():
        raise ScorecardParseError("Scorecard is empty")
    if sep is None:
        sep = "\t" if "\t" in text else ","
    # Rows are ragged; size the frame to the widest line
    width = max(line.count(sep) + 1 for line in text.splitlines() if line.strip())
    # Spreadsheet paste is raw cell text; quotes only delimit cells in CSV
    quoting = csv.QUOTE_NONE if sep == "\t" else csv.QUOTE_MINIMAL
    try:
        grid = pd.read_csv(
            io.StringIO(text),
            sep=sep,
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            quoting=quoting,
            engine="python",
        )
    except (pd.errors.ParserError, csv.Error) as e:
        raise ScorecardParseError(f"Could not read scorecard: {e}") from e
    return grid.fillna("")


def parse_scorecard(text: str, sep: Optional[str] = None) -> List[WeekRecord]:
    """Parse scorecard text into one WeekRecord per labelled week column."""
    grid = read_grid(text, sep=sep)
    if len(grid) < 2:
        raise ScorecardParseError("Scorecard has no data rows")

    header = grid.iloc[0].tolist()
    week_columns = [
        (col, str(header[col]).strip())
        for col in range(1, len(header))
        if str(header[col]).strip()
    ]
    if not week_columns:
        raise ScorecardParseError("No week columns found in scorecard")

    values: List[Dict[str, float]] = [{} for _ in week_columns]
    matched_rows = 0
    for _, row in grid.iloc[1:].iterrows():
        match = match_row(row.iloc[0])
        if match is None:
            continue
        field_name, multiplier = match
        matched_rows += 1
        for i, (col, _label) in enumerate(week_columns):
            parsed = parse_value(row.iloc[col])
            if parsed is not None:
                values[i][field_name] = parsed * multiplier

    logger.info("Parsed scorecard: %d weeks, %d metric rows", len(week_columns), matched_rows)

    return [
        WeekRecord(label=label, week_num=i + 1, **values[i])
        for i, (_col, label) in enumerate(week_columns)
    ]


def csv_to_tsv(csv_text: str) -> str:
    """Re-serialise CSV text as TSV (quoted cells honoured)."""
    grid = read_grid(csv_text, sep=",")
    return grid.to_csv(sep="\t", header=False, index=False).rstrip("\n")


# =============================================================================
# TIER 2 GRID PASTE
# =============================================================================

def _parse_cell(raw: str) -> Optional[float]:
    cleaned = (raw or "").strip()
    if cleaned in ("", "-"):
        return None
    return parse_value(cleaned)


def parse_clipboard(text: str) -> List[List[str]]:
    """Tab/newline separated clipboard text -> 2D grid, blank lines dropped."""
    lines = (text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return [line.split("\t") for line in lines if line.strip() != ""]


def apply_tier2_grid(weeks: Sequence[WeekRecord], text: str,
                     start_row: int = 0, start_col: int = 0) -> List[WeekRecord]:
    """
    Apply a pasted tier-2 grid onto weeks.

    Rows follow TIER2_FIELDS order (CPM, CTR, CPC, Frequency, Meta Clicks,
    Shopify Sessions, CVR); columns are weeks. Cells outside the table are
    ignored, blank or '-' cells clear the value.
    """
    updated = list(weeks)
    grid = parse_clipboard(text)
    for r, cells in enumerate(grid):
        row_idx = start_row + r
        if row_idx >= len(TIER2_FIELDS):
            break
        field_name = TIER2_FIELDS[row_idx]
        for c, raw in enumerate(cells):
            col_idx = start_col + c
            if col_idx >= len(updated):
                break
            updated[col_idx] = updated[col_idx].with_tier2(**{field_name: _parse_cell(raw)})
    return updated


def clear_tier2(weeks: Sequence[WeekRecord]) -> List[WeekRecord]:
    """Reset every tier-2 field to unknown."""
    blank = {name: None for name in TIER2_FIELDS}
    return [replace(week, **blank) for week in weeks]
