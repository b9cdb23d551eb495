"""Derived per-week metrics: plan-vs-actual ratios and unit economics."""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Iterable, Optional, Sequence, Tuple

import pandas as pd

from governor.data.schema import WeekRecord, WEEK_COLUMNS

DERIVED_COLUMNS = [
    "cm_pva",
    "count_pva",
    "aov_pva",
    "cac_pva",
    "unit_cm_actual",
    "unit_cm_forecast",
    "cac_aov_gap",
    "click_session_ratio",
]


@dataclass(frozen=True)
class DerivedWeek(WeekRecord):
    """A WeekRecord plus the metrics computed from it."""
    cm_pva: Optional[float] = None
    count_pva: Optional[float] = None
    aov_pva: Optional[float] = None
    cac_pva: Optional[float] = None
    unit_cm_actual: Optional[float] = None
    unit_cm_forecast: Optional[float] = None
    cac_aov_gap: Optional[float] = None
    click_session_ratio: Optional[float] = None


def plan_vs_actual(actual: Optional[float], forecast: Optional[float]) -> Optional[float]:
    """Actual as a percentage of forecast; None when not comparable."""
    if actual is None or forecast is None or forecast == 0:
        return None
    return actual / forecast * 100


def safe_ratio(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    """numerator / denominator for a strictly positive denominator."""
    if numerator is None or denominator is None or denominator <= 0:
        return None
    return numerator / denominator


def derive_week(week: WeekRecord) -> DerivedWeek:
    base = {f.name: getattr(week, f.name) for f in fields(WeekRecord)}

    cac_aov_gap = None
    if week.cac_actual is not None and week.aov_actual is not None:
        cac_aov_gap = week.cac_actual - week.aov_actual

    return DerivedWeek(
        **base,
        cm_pva=plan_vs_actual(week.cm_actual, week.cm_forecast),
        count_pva=plan_vs_actual(week.count_actual, week.count_forecast),
        aov_pva=plan_vs_actual(week.aov_actual, week.aov_forecast),
        cac_pva=plan_vs_actual(week.cac_actual, week.cac_forecast),
        unit_cm_actual=safe_ratio(week.cm_actual, week.count_actual),
        unit_cm_forecast=safe_ratio(week.cm_forecast, week.count_forecast),
        cac_aov_gap=cac_aov_gap,
        click_session_ratio=safe_ratio(week.meta_clicks, week.shopify_sessions),
    )


def derive_weeks(weeks: Iterable[WeekRecord]) -> Tuple[DerivedWeek, ...]:
    """Derive every week, preserving input order one-to-one."""
    return tuple(derive_week(week) for week in weeks)


def derived_frame(derived: Sequence[DerivedWeek]) -> pd.DataFrame:
    """Derived series as a frame (one row per week) for tables and charts."""
    columns = WEEK_COLUMNS + DERIVED_COLUMNS
    rows = [{name: getattr(week, name) for name in columns} for week in derived]
    df = pd.DataFrame(rows, columns=columns)
    numeric_cols = [col for col in columns if col not in ("label", "week_num")]
    df[numeric_cols] = df[numeric_cols].apply(pd.to_numeric, errors="coerce").astype(float)
    df["display_label"] = [week.display_label for week in derived]
    return df
