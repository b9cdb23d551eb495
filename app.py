"""
Economic Governor + Full-Funnel Diagnostician

Main entry point for Streamlit app.
"""
import streamlit as st
from pathlib import Path

# Page config must be first Streamlit command
st.set_page_config(
    page_title="Economic Governor",
    page_icon="📉",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent))

from governor.config import config, configure_logging
from governor.data.loader import SheetSyncError, fetch_sheet_tsv, load_default_weeks, load_weeks
from governor.data.sheets import ScorecardParseError
from governor.data.tier2_store import save_tier2
from governor.metrics.economic_governor import evaluate_economics, has_usable_weeks
from governor.metrics.funnel_diagnostician import evaluate_funnel
from governor.ui.components import render_funnel, render_governor, render_tier1_table, render_tier2_editor
from governor.ui.layout import info_box, render_header, render_password_gate
from governor.ui.state import get_state, get_weeks, init_state, is_authed, set_state, set_weeks


def render_data_controls():
    """Sidebar: sync from the published sheet or paste a scorecard."""
    st.sidebar.markdown("### Data Source")

    if st.sidebar.button("Sync from Sheet", use_container_width=True):
        with st.spinner("Syncing scorecard..."):
            try:
                text = fetch_sheet_tsv(config.sheet_csv_url)
                set_weeks(load_weeks(text, config.tier2_store_path), scorecard_text=text)
                set_state("load_error", None)
            except (SheetSyncError, ScorecardParseError) as e:
                set_state("load_error", str(e))

    if st.sidebar.button("Paste from Sheet", use_container_width=True):
        set_state("show_paste", not get_state("show_paste"))

    if get_state("show_paste"):
        pasted = st.sidebar.text_area(
            "Paste the Traction Scorecard (tab-separated, header row first)",
            height=200,
        )
        if st.sidebar.button("Load Pasted Data", disabled=not pasted.strip()):
            try:
                set_weeks(load_weeks(pasted, config.tier2_store_path), scorecard_text=pasted)
                set_state("load_error", None)
                set_state("show_paste", False)
            except ScorecardParseError as e:
                set_state("load_error", str(e))

    if st.sidebar.button("Reset to Bundled Data", use_container_width=True):
        set_weeks(load_default_weeks(config.tier2_store_path), scorecard_text="")
        set_state("load_error", None)

    if get_state("load_error"):
        st.sidebar.error(get_state("load_error"))

    if not config.is_prod:
        st.sidebar.caption(f"Environment: {config.app_env}")


def main():
    """Main app entry point."""
    configure_logging()
    init_state()

    if not is_authed():
        render_password_gate()
        return

    render_header()
    render_data_controls()

    weeks = get_weeks()
    if weeks is None:
        weeks = load_default_weeks(config.tier2_store_path)
        set_weeks(weeks)

    render_tier1_table(weeks)
    updated = render_tier2_editor(weeks)
    if updated is not None:
        save_tier2(updated, config.tier2_store_path)
        set_weeks(updated)
        st.session_state.pop("tier2_editor", None)
        st.rerun()

    st.markdown("---")

    if not has_usable_weeks(weeks):
        info_box(
            "Insufficient data",
            "No week has Ad Spend, CM actuals or 1st Order Count. "
            "Sync or paste the Traction Scorecard to run the diagnosis.",
            type="warning",
        )
        return

    governor = evaluate_economics(weeks)
    render_governor(governor)

    st.markdown("---")
    render_funnel(evaluate_funnel(governor))


if __name__ == "__main__":
    main()
