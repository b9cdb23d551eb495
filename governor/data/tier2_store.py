"""
Key-value cache of tier-2 (directional) inputs.

Tier-2 metrics are typed in by hand, so they are kept across scorecard
reloads: stored as {week_label: {field: value}} and merged back onto freshly
parsed weeks by label. Tier-1 values are never stored here.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from governor.config import config, TIER2_FIELDS
from governor.data.schema import WeekRecord

logger = logging.getLogger(__name__)

Tier2Map = Dict[str, Dict[str, float]]


def _store_path(path: Optional[Path]) -> Path:
    return Path(path) if path is not None else config.tier2_store_path


def collect_tier2(weeks: Sequence[WeekRecord]) -> Tier2Map:
    """Non-null tier-2 values keyed by week label; weeks without any are omitted."""
    tier2_map = {}
    for week in weeks:
        values = week.tier2_values()
        if values and week.label:
            tier2_map[week.label] = values
    return tier2_map


def merge_tier2(weeks: Sequence[WeekRecord], tier2_map: Tier2Map) -> List[WeekRecord]:
    """Overlay stored tier-2 values onto weeks with a matching label."""
    merged = []
    for week in weeks:
        saved = tier2_map.get(week.label)
        if not saved:
            merged.append(week)
            continue
        values = {
            name: float(saved[name])
            for name in TIER2_FIELDS
            if saved.get(name) is not None
        }
        merged.append(week.with_tier2(**values))
    return merged


def load_tier2(path: Optional[Path] = None) -> Tier2Map:
    """Read the store; a missing or unreadable file is an empty store."""
    store = _store_path(path)
    if not store.exists():
        return {}
    try:
        with open(store, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable tier-2 store %s: %s", store, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring malformed tier-2 store %s", store)
        return {}
    return {
        str(label): {k: v for k, v in values.items() if k in TIER2_FIELDS}
        for label, values in data.items()
        if isinstance(values, dict)
    }


def save_tier2(weeks: Sequence[WeekRecord], path: Optional[Path] = None) -> Path:
    """Persist the tier-2 values of weeks, replacing the stored map."""
    store = _store_path(path)
    store.parent.mkdir(parents=True, exist_ok=True)
    tier2_map = collect_tier2(weeks)
    with open(store, "w", encoding="utf-8") as f:
        json.dump(tier2_map, f, indent=2, sort_keys=True)
    logger.debug("Saved tier-2 inputs for %d weeks to %s", len(tier2_map), store)
    return store
