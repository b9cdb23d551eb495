"""
Session state management for Streamlit app.
"""
import hmac
import logging
from typing import Any, List, Optional

import streamlit as st

from governor.config import config
from governor.data.schema import WeekRecord

logger = logging.getLogger(__name__)


# =============================================================================
# DEFAULT VALUES
# =============================================================================

DEFAULTS = {
    "authed": False,
    "weeks": None,              # List[WeekRecord], None until first load
    "scorecard_text": None,     # last pasted/synced scorecard (TSV)
    "show_paste": False,
    "load_error": None,
}


# =============================================================================
# STATE HELPERS
# =============================================================================

def init_state():
    """Initialize all session state keys with defaults."""
    for key, default in DEFAULTS.items():
        if key not in st.session_state:
            st.session_state[key] = default


def get_state(key: str) -> Any:
    """Get state value with default fallback."""
    init_state()
    return st.session_state.get(key, DEFAULTS.get(key))


def set_state(key: str, value: Any):
    """Set state value."""
    st.session_state[key] = value


# =============================================================================
# WEEKS
# =============================================================================

def get_weeks() -> Optional[List[WeekRecord]]:
    return get_state("weeks")


def set_weeks(weeks: List[WeekRecord], scorecard_text: Optional[str] = None):
    """Replace the whole week series; results are recomputed from scratch."""
    set_state("weeks", list(weeks))
    if scorecard_text is not None:
        set_state("scorecard_text", scorecard_text)


# =============================================================================
# PASSWORD GATE
# =============================================================================

def is_authed() -> bool:
    if not config.password_required:
        return True
    return bool(get_state("authed"))


def try_login(password: str) -> bool:
    ok = hmac.compare_digest(password.encode("utf-8"), config.app_password.encode("utf-8"))
    set_state("authed", ok)
    if not ok:
        logger.info("Rejected dashboard login")
    return ok
