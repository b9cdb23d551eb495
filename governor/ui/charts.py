"""
Plotly figures for the governor panel.
"""
import plotly.graph_objects as go
import pandas as pd
import numpy as np

from governor.config import VOLUME_PROBLEM_PVA, PVA_GOOD
from governor.ui.formatting import STATUS_COLORS


SERIES_COLORS = {
    "cm": "#2b6cb0",
    "count": "#dd6b20",
    "aov": "#2f855a",
    "cac": "#c53030",
    "reference": "#718096",
}

FIGURE_DEFAULTS = {
    "template": "simple_white",
    "font": {"size": 12},
    "margin": {"l": 40, "r": 20, "t": 48, "b": 40},
    "legend": {"orientation": "h", "y": -0.2},
}

PVA_SERIES = [
    ("cm_pva", "CM PvA", SERIES_COLORS["cm"]),
    ("count_pva", "Count PvA", SERIES_COLORS["count"]),
    ("aov_pva", "AOV PvA", SERIES_COLORS["aov"]),
    ("cac_pva", "CAC PvA", SERIES_COLORS["cac"]),
]


def styled(fig: go.Figure, **overrides) -> go.Figure:
    fig.update_layout(**{**FIGURE_DEFAULTS, **overrides})
    return fig


def pva_trend_chart(derived_df: pd.DataFrame, title: str = "Plan vs Actual by Week") -> go.Figure:
    """
    PvA lines per week with the volume-problem and on-plan reference lines.

    Weeks without data leave gaps rather than dropping to zero.
    """
    fig = go.Figure()
    for col, name, color in PVA_SERIES:
        if col not in derived_df.columns:
            continue
        fig.add_trace(go.Scatter(
            x=derived_df["display_label"],
            y=derived_df[col],
            mode="lines+markers",
            name=name,
            line=dict(color=color, width=2),
            connectgaps=False,
        ))

    fig.add_hline(y=PVA_GOOD, line_dash="dot", line_color=SERIES_COLORS["reference"],
                  annotation_text="On plan")
    fig.add_hline(y=VOLUME_PROBLEM_PVA, line_dash="dash", line_color=STATUS_COLORS["fail"],
                  annotation_text="Volume problem")

    return styled(fig, title=title, height=360, yaxis_title="% of plan")


def unit_cm_chart(derived_df: pd.DataFrame, title: str = "Unit CM per New Customer") -> go.Figure:
    """Actual vs forecast unit CM; actual bars red when negative."""
    actual = derived_df["unit_cm_actual"]
    colors = np.where(actual.fillna(0) < 0, STATUS_COLORS["fail"], STATUS_COLORS["pass"])

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=derived_df["display_label"],
        y=actual,
        name="Actual",
        marker_color=colors,
    ))
    fig.add_trace(go.Scatter(
        x=derived_df["display_label"],
        y=derived_df["unit_cm_forecast"],
        mode="lines+markers",
        name="Forecast",
        line=dict(color=SERIES_COLORS["reference"], dash="dash"),
    ))
    fig.add_hline(y=0, line_color=SERIES_COLORS["reference"])

    return styled(fig, title=title, height=320, yaxis_title="$ / customer")
