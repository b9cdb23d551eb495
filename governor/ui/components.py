"""
Dashboard panels: data input tables, Module 1 and Module 2.
"""
from typing import List, Optional

import pandas as pd
import streamlit as st

from governor.config import TIER1_FIELDS, TIER1_LABELS, TIER2_FIELDS, TIER2_LABELS
from governor.data.schema import WeekRecord
from governor.data.sheets import apply_tier2_grid, clear_tier2
from governor.metrics.derived import derived_frame
from governor.metrics.economic_governor import GovernorResult, VERDICT_NEITHER, VERDICT_VOLUME
from governor.metrics.funnel_diagnostician import DiagnosticianResult
from governor.ui.charts import pva_trend_chart, unit_cm_chart
from governor.ui.formatting import (
    fmt_currency,
    fmt_count,
    fmt_input,
    status_badge,
    style_pva_table,
    SCALE_LABELS,
    VERDICT_LABELS,
)
from governor.ui.layout import section_header

CURRENCY_FIELDS = {"ad_spend", "cm_forecast", "cm_actual", "aov_forecast", "aov_actual",
                   "cac_forecast", "cac_actual"}


def _week_columns(weeks: List[WeekRecord]) -> List[str]:
    """Unique column headers, one per week."""
    columns = []
    for week in weeks:
        label = week.display_label
        if label in columns:
            label = f"{label} ({week.week_num})"
        columns.append(label)
    return columns


# =============================================================================
# DATA INPUT
# =============================================================================

def render_tier1_table(weeks: List[WeekRecord]):
    """Read-only tier-1 grid: metrics as rows, weeks as columns."""
    section_header("Data Input", "Tier 1: Source of Truth (from spreadsheet). Read-only.")

    columns = _week_columns(weeks)
    rows = {}
    for field in TIER1_FIELDS:
        formatter = fmt_currency if field in CURRENCY_FIELDS else fmt_count
        rows[TIER1_LABELS[field]] = [formatter(getattr(w, field)) for w in weeks]

    df = pd.DataFrame.from_dict(rows, orient="index", columns=columns)
    st.dataframe(df, use_container_width=True)


def render_tier2_editor(weeks: List[WeekRecord]) -> Optional[List[WeekRecord]]:
    """
    Editable tier-2 grid with bulk paste and clear.

    Returns the updated weeks when anything changed, else None.
    """
    section_header(
        "Tier 2: Directional Data Input",
        "Enter Meta Ads + Shopify funnel metrics to unlock the full diagnostic. "
        "Do this per funnel or account-wide; pick one, don't mix.",
    )

    c1, c2 = st.columns([1, 1])
    with c1:
        with st.popover("Bulk Paste"):
            st.caption(
                "Rows: CPM, CTR, CPC, Frequency, Meta Clicks, Shopify Sessions, CVR. "
                "Columns: one per week (tab-separated)."
            )
            bulk_text = st.text_area("Paste Tier 2 data", key="tier2_bulk_text", height=160)
            if st.button("Apply Data", disabled=not bulk_text.strip()):
                return apply_tier2_grid(weeks, bulk_text)
    with c2:
        if st.button("Clear All Tier 2"):
            return clear_tier2(weeks)

    columns = _week_columns(weeks)
    grid = pd.DataFrame(
        [[fmt_input(getattr(w, field)) for w in weeks] for field in TIER2_FIELDS],
        index=[TIER2_LABELS[f] for f in TIER2_FIELDS],
        columns=columns,
        dtype=float,
    )
    edited = st.data_editor(grid, use_container_width=True, key="tier2_editor")

    updated = []
    changed = False
    for week, col in zip(weeks, columns):
        values = {field: fmt_input(edited.at[TIER2_LABELS[field], col]) for field in TIER2_FIELDS}
        if values != {field: getattr(week, field) for field in TIER2_FIELDS}:
            changed = True
            week = week.with_tier2(**values)
        updated.append(week)

    return updated if changed else None


# =============================================================================
# MODULE 1: ECONOMIC GOVERNOR
# =============================================================================

def render_governor(result: GovernorResult):
    section_header("Module 1: Economic Governor", "Math-first economic verdict. No storytelling.")

    verdict_text = f"**Verdict: {VERDICT_LABELS[result.verdict]}**. {result.verdict_explanation}"
    if result.verdict == VERDICT_NEITHER:
        st.success(verdict_text)
    elif result.verdict == VERDICT_VOLUME:
        st.warning(verdict_text)
    else:
        st.error(verdict_text)

    c1, c2, c3 = st.columns(3)
    with c1:
        st.metric("Scale Permission", SCALE_LABELS[result.scale_permission])
        st.caption(result.scale_reason)
    with c2:
        st.metric("Anchor Week", result.latest_week.display_label)
        st.caption(f"Unit CM {fmt_currency(result.latest_week.unit_cm_actual)} "
                   f"vs {fmt_currency(result.latest_week.unit_cm_forecast)} plan")
    with c3:
        leak = result.biggest_leak
        if leak is not None:
            st.metric("Biggest Dollar Leak", f"{fmt_currency(leak.weekly_dollars)}/week")
            st.caption(leak.description)

    if result.cm_mirage:
        st.warning(f"**CM Mirage Detected**: {result.cm_mirage_explanation}")

    df = derived_frame(result.weeks)
    pva = df[["cm_pva", "count_pva", "aov_pva", "cac_pva"]].T
    pva.columns = _week_columns(result.weeks)
    st.dataframe(style_pva_table(pva), use_container_width=True)

    t1, t2 = st.tabs(["PvA Trend", "Unit CM"])
    with t1:
        st.plotly_chart(pva_trend_chart(df), use_container_width=True, key="gov-pva-trend")
    with t2:
        st.plotly_chart(unit_cm_chart(df), use_container_width=True, key="gov-unit-cm")

    for warning in result.warnings:
        st.caption(f"⚠ {warning}")


# =============================================================================
# MODULE 2: FUNNEL DIAGNOSTICIAN
# =============================================================================

def render_funnel(result: DiagnosticianResult):
    section_header("Module 2: Funnel Diagnostician", result.allowed_scope)

    steps_df = pd.DataFrame([
        {
            "Step": s.step,
            "Status": status_badge(s.status),
            "Title": s.title,
            "What it checks": s.check,
            "Analysis": s.finding + (f" ⚠ {s.caution}" if s.caution else ""),
            "Data": s.data_used,
        }
        for s in result.steps
    ])
    st.dataframe(steps_df, use_container_width=True, hide_index=True)

    rca = result.rca_summary
    st.markdown("#### Root Cause Analysis")
    st.markdown(f"**Action:** {rca.action}")
    st.markdown(f"**Root Cause:** {rca.root_cause}")
    st.markdown(f"**Discussion:** {rca.discussion}")
    st.markdown(f"**Solve:** {rca.solve}")
    st.markdown(f"**Do NOT Do:** {rca.do_not_do}")

    if result.action_table:
        st.markdown("#### Tier 2 Diagnostic: Action Table")
        st.caption("Based on Tier 2 directional data only. No profitability conclusions.")
        actions_df = pd.DataFrame([
            {
                "Step": f"{row.step}. {row.title}",
                "Action": row.action,
                "Identify": row.identify,
                "Root Cause": row.root_cause,
                "Discuss": row.discuss,
                "Solve": row.solve,
                "Assign": row.assign,
            }
            for row in result.action_table
        ])
        st.dataframe(actions_df, use_container_width=True, hide_index=True)
