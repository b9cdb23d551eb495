"""
Glossary & Method Page

Definitions, thresholds and decision rules behind the verdict.
"""
import streamlit as st
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from governor.config import (
    VOLUME_WINDOW_WEEKS,
    VOLUME_PROBLEM_PVA,
    PLANNED_LOSS_MULTIPLIER,
    MIRAGE_CM_PVA,
    MIRAGE_COUNT_PVA,
    SPEND_ORDER_GAP_POINTS,
    CPM_ELEVATED,
    CTR_FAIL,
    CTR_WARNING,
    FREQUENCY_FAIL,
    FREQUENCY_WARNING,
    CLICK_SESSION_FAIL,
    CLICK_SESSION_WARNING,
    CVR_FAIL,
    CVR_WARNING,
    COUNT_PVA_PASS,
    COUNT_PVA_WARNING,
    UNIT_CM_FAIL,
)
from governor.metrics.economic_governor import ATTRIBUTION_WARNINGS
from governor.ui.state import init_state, is_authed
from governor.ui.layout import section_header, render_password_gate


st.set_page_config(page_title="Glossary & Method", page_icon="📖", layout="wide")

init_state()


def main():
    if not is_authed():
        render_password_gate()
        return

    st.title("Glossary & Method")
    st.caption("Definitions, formulas, and decision rules")

    # =========================================================================
    # DATA TIERS
    # =========================================================================
    section_header("Data Tiers")

    st.markdown("""
    | Tier | Source | Used for |
    |------|--------|----------|
    | **Tier 1** | Traction Scorecard (Ad Spend, 1st Order CM / Count / AOV / CAC, forecast + actual) | Every economic conclusion |
    | **Tier 2** | Meta Ads + Shopify (CPM, CTR, CPC, Frequency, Clicks, Sessions, CVR) | Directional funnel diagnosis only |

    A week **has data** when any of Ad Spend, CM actual or 1st Order Count is present.
    The **anchor week** is the last week with data; all rules are evaluated against it.
    """)

    st.markdown("---")

    # =========================================================================
    # DERIVED METRICS
    # =========================================================================
    section_header("Derived Metrics")

    st.markdown("""
    | Metric | Formula | Notes |
    |--------|---------|-------|
    | **PvA %** | `Actual / Forecast × 100` | Undefined when forecast is missing or zero |
    | **Unit CM** | `1st Order CM / 1st Order Count` | Per new customer; undefined when count ≤ 0 |
    | **CAC-AOV Gap** | `CAC actual - AOV actual` | Positive = paying more to acquire than customers spend |
    | **Click/Session Ratio** | `Meta Clicks / Shopify Sessions` | > 1 means clicks are lost before the site |
    """)

    st.markdown("---")

    # =========================================================================
    # ECONOMIC GOVERNOR
    # =========================================================================
    section_header("Module 1: Economic Governor")

    st.markdown(f"""
    **Volume problem:** mean count PvA over the last {VOLUME_WINDOW_WEEKS} weeks with data
    is below {VOLUME_PROBLEM_PVA:.0f}%.

    **CM problem** (anchor week):
    - Plan is a loss per customer and actual unit CM is worse than {PLANNED_LOSS_MULTIPLIER:.0f}× that planned loss, or
    - Plan is break-even or better and actual unit CM is negative, or
    - CAC exceeds AOV.

    | Verdict | Scale Permission | Allowed Scope |
    |---------|------------------|---------------|
    | CM Problem | Denied | Leak hunting only |
    | Both | Denied | Leak hunting only |
    | Volume Problem | Allowed | Volume growth allowed |
    | Neither | Allowed | No issues flagged |

    **CM mirage:** CM PvA above {MIRAGE_CM_PVA:.0f}% while count PvA is below {MIRAGE_COUNT_PVA:.0f}%.
    Total CM only looks good because fewer loss-making customers were acquired.

    **Biggest dollar leak:** the larger of CAC overspend and AOV shortfall per customer,
    multiplied by the week's actual customer count.
    """)

    st.markdown("**Attribution warnings** (always shown):")
    for warning in ATTRIBUTION_WARNINGS:
        st.markdown(f"- {warning}")

    st.markdown("---")

    # =========================================================================
    # FUNNEL DIAGNOSTICIAN
    # =========================================================================
    section_header("Module 2: Funnel Diagnostician")

    st.markdown(f"""
    | Step | Checkpoint | Fail | Warning |
    |------|------------|------|---------|
    | 1 | Spend → Orders | Spend up, orders flat/down, gap ≥ {SPEND_ORDER_GAP_POINTS:.0f}pp; or CAC > AOV with no prior week | Gap ≥ {SPEND_ORDER_GAP_POINTS:.0f}pp |
    | 2 | Attention Quality | CTR < {CTR_FAIL}% or Frequency > {FREQUENCY_FAIL:.0f} | CPM > ${CPM_ELEVATED:.0f}, CTR < {CTR_WARNING}%, Frequency > {FREQUENCY_WARNING:.0f} |
    | 3 | Click → Session | Ratio > {CLICK_SESSION_FAIL} | Ratio > {CLICK_SESSION_WARNING} |
    | 4 | Conversion | CVR < {CVR_FAIL}% | CVR < {CVR_WARNING}% |
    | 5 | New Customer Reality | Count PvA < {COUNT_PVA_WARNING:.0f}% | Count PvA < {COUNT_PVA_PASS:.0f}% |
    | 6 | Cash & CM Leak | Unit CM ≤ -${abs(UNIT_CM_FAIL):.0f} | Unit CM below $0 |

    Steps 2-4 drive the root-cause summary. When none of them has Tier 2 data, the
    summary asks for data collection instead of guessing.
    """)


if __name__ == "__main__":
    main()
