"""
Scorecard loading: bundled default, pasted text and live sheet sync.
"""
import logging
from pathlib import Path
from typing import List, Optional

import requests
import streamlit as st

from governor.config import config
from governor.data.defaults import DEFAULT_SCORECARD_TSV
from governor.data.schema import WeekRecord
from governor.data.sheets import parse_scorecard, csv_to_tsv
from governor.data.tier2_store import load_tier2, merge_tier2

logger = logging.getLogger(__name__)


class SheetSyncError(RuntimeError):
    """Raised when the published scorecard cannot be fetched."""
    pass


def fetch_sheet_csv(url: Optional[str] = None, timeout: Optional[float] = None) -> str:
    """Download the published CSV export of the scorecard."""
    url = url or config.sheet_csv_url
    timeout = timeout if timeout is not None else config.sheet_timeout_seconds
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning("Sheet sync failed: %s", e)
        raise SheetSyncError(f"Sync failed: {e}") from e
    logger.info("Fetched scorecard (%d bytes)", len(response.content))
    return response.text


@st.cache_data(ttl=config.cache_ttl_seconds, show_spinner=False)
def fetch_sheet_tsv(url: str) -> str:
    """Fetch the sheet and normalise it to the pasted TSV layout."""
    return csv_to_tsv(fetch_sheet_csv(url))


def load_weeks(text: str, store_path: Optional[Path] = None) -> List[WeekRecord]:
    """Parse scorecard text and overlay cached tier-2 inputs."""
    weeks = parse_scorecard(text)
    return merge_tier2(weeks, load_tier2(store_path))


def load_default_weeks(store_path: Optional[Path] = None) -> List[WeekRecord]:
    return load_weeks(DEFAULT_SCORECARD_TSV, store_path)
