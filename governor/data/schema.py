"""
Week record schema, field tiers and DataFrame conversion.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

from governor.config import TIER1_FIELDS, TIER2_FIELDS, DATA_PRESENCE_FIELDS


class SchemaValidationError(Exception):
    """Raised when required columns are missing."""
    pass


@dataclass(frozen=True)
class WeekRecord:
    """
    One calendar week of scorecard inputs.

    Every metric is optional: None means "not yet known", which is not the
    same thing as zero.
    """
    label: str = ""
    week_num: int = 0

    # Tier 1: source of truth
    ad_spend: Optional[float] = None
    cm_forecast: Optional[float] = None
    cm_actual: Optional[float] = None
    count_forecast: Optional[float] = None
    count_actual: Optional[float] = None
    aov_forecast: Optional[float] = None
    aov_actual: Optional[float] = None
    cac_forecast: Optional[float] = None
    cac_actual: Optional[float] = None

    # Tier 2: directional
    cpm: Optional[float] = None
    ctr: Optional[float] = None
    cpc: Optional[float] = None
    frequency: Optional[float] = None
    meta_clicks: Optional[float] = None
    shopify_sessions: Optional[float] = None
    cvr: Optional[float] = None

    @property
    def has_data(self) -> bool:
        return any(getattr(self, name) is not None for name in DATA_PRESENCE_FIELDS)

    @property
    def display_label(self) -> str:
        return self.label or f"WK {self.week_num}"

    def tier2_values(self) -> Dict[str, float]:
        """Non-null tier-2 values keyed by field name."""
        values = {}
        for name in TIER2_FIELDS:
            value = getattr(self, name)
            if value is not None:
                values[name] = value
        return values

    def with_tier2(self, **values) -> "WeekRecord":
        """Return a copy with tier-2 fields replaced; tier 1 is never touched."""
        unknown = [name for name in values if name not in TIER2_FIELDS]
        if unknown:
            raise ValueError(f"Not tier-2 fields: {unknown}")
        return replace(self, **values)


WEEK_COLUMNS = ["label", "week_num"] + TIER1_FIELDS + TIER2_FIELDS

# Columns a week frame must carry to be evaluated
REQUIRED_COLUMNS = ["label"] + TIER1_FIELDS

OPTIONAL_COLUMNS = ["week_num"] + TIER2_FIELDS


def weeks_to_frame(weeks: Iterable[WeekRecord]) -> pd.DataFrame:
    """One row per week, NaN for unknown values."""
    rows = []
    for week in weeks:
        rows.append({name: getattr(week, name) for name in WEEK_COLUMNS})
    df = pd.DataFrame(rows, columns=WEEK_COLUMNS)
    numeric_cols = TIER1_FIELDS + TIER2_FIELDS
    df[numeric_cols] = df[numeric_cols].apply(pd.to_numeric, errors="coerce").astype(float)
    return df


def validate_weeks_frame(df: pd.DataFrame, strict: bool = True) -> Dict:
    """
    Validate a week frame before conversion.

    Args:
        df: DataFrame with one row per week
        strict: If True, raise error on missing required columns

    Returns:
        Dict with validation results
    """
    missing_required = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    missing_optional = [col for col in OPTIONAL_COLUMNS if col not in df.columns]
    present_numeric = [col for col in TIER1_FIELDS + TIER2_FIELDS if col in df.columns]

    non_numeric = []
    for col in present_numeric:
        coerced = pd.to_numeric(df[col], errors="coerce")
        if (coerced.isna() & df[col].notna()).any():
            non_numeric.append(col)

    result = {
        "is_valid": len(missing_required) == 0 and len(non_numeric) == 0,
        "missing_required": missing_required,
        "missing_optional": missing_optional,
        "non_numeric": non_numeric,
        "total_rows": len(df),
        "weeks_with_data": int(np.sum(df.reindex(columns=DATA_PRESENCE_FIELDS).notna().any(axis=1))),
    }

    if strict and not result["is_valid"]:
        raise SchemaValidationError(
            f"Invalid week frame: missing {missing_required}, non-numeric {non_numeric}"
        )

    return result