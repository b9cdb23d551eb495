"""
Application configuration management.
"""
import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir:
        return Path(env_dir)
    return Path("./data")


@dataclass
class AppConfig:
    """Application configuration with environment overrides."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)

    # Environment
    app_env: str = field(default_factory=lambda: os.getenv("APP_ENV", "dev"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Cache settings
    cache_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "900")))

    # Sheet sync
    sheet_csv_url: str = field(default_factory=lambda: os.getenv(
        "SHEET_CSV_URL",
        "https://docs.google.com/spreadsheets/d/1sE1p-OfzS013SPOX4kubi3q-Jy5KN9kqHY9rFYPNhZs/export?format=csv&gid=289043970",
    ))
    sheet_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("SHEET_TIMEOUT_SECONDS", "10")))

    # Access
    app_password: str = field(default_factory=lambda: os.getenv("APP_PASSWORD", ""))

    @property
    def tier2_store_path(self) -> Path:
        return self.data_dir / "tier2_inputs.json"

    @property
    def password_required(self) -> bool:
        return bool(self.app_password)

    @property
    def is_prod(self) -> bool:
        return self.app_env.lower() == "prod"


# Global config instance
config = AppConfig()


def configure_logging(level: Optional[str] = None):
    """Configure root logging once for the app and scripts."""
    logging.basicConfig(
        level=(level or config.log_level).upper(),
        format="%(asctime)s | %(levelname)-8s | %(name)s - %(message)s",
    )


# =============================================================================
# FIELD TIERS
# =============================================================================

# Tier 1: source of truth, parsed from the traction scorecard
TIER1_FIELDS = [
    "ad_spend",
    "cm_forecast",
    "cm_actual",
    "count_forecast",
    "count_actual",
    "aov_forecast",
    "aov_actual",
    "cac_forecast",
    "cac_actual",
]

# Tier 2: directional, entered by hand and cached by week label
TIER2_FIELDS = [
    "cpm",
    "ctr",
    "cpc",
    "frequency",
    "meta_clicks",
    "shopify_sessions",
    "cvr",
]

# A week "has data" when any of these is present
DATA_PRESENCE_FIELDS = ["ad_spend", "cm_actual", "count_actual"]

TIER2_LABELS = {
    "cpm": "CPM",
    "ctr": "CTR",
    "cpc": "CPC",
    "frequency": "Frequency",
    "meta_clicks": "Meta Clicks",
    "shopify_sessions": "Shopify Sessions",
    "cvr": "Site CVR",
}

TIER1_LABELS = {
    "ad_spend": "Ad Spend Meta USD",
    "cm_forecast": "1st Order CM Forecast",
    "cm_actual": "1st Order CM Actuals",
    "count_forecast": "1st Order Count Forecast",
    "count_actual": "1st Order Count Actuals",
    "aov_forecast": "NC AOV Forecast",
    "aov_actual": "NC AOV Actuals",
    "cac_forecast": "CAC Forecast",
    "cac_actual": "CAC Actuals",
}

# Scorecard CM rows are reported in thousands
CM_SCALE = 1000


# =============================================================================
# RULE THRESHOLDS
# =============================================================================

# Economic governor
VOLUME_WINDOW_WEEKS = 3
VOLUME_PROBLEM_PVA = 70.0
PLANNED_LOSS_MULTIPLIER = 2.0
MIRAGE_CM_PVA = 95.0
MIRAGE_COUNT_PVA = 50.0

# Funnel step 1
SPEND_ORDER_GAP_POINTS = 15.0

# Funnel step 2
CPM_ELEVATED = 30.0
CTR_FAIL = 1.0
CTR_WARNING = 1.5
FREQUENCY_FAIL = 3.0
FREQUENCY_WARNING = 2.0

# Funnel step 3
CLICK_SESSION_FAIL = 1.5
CLICK_SESSION_WARNING = 1.2

# Funnel step 4
CVR_FAIL = 1.5
CVR_WARNING = 2.5

# Funnel step 5
COUNT_PVA_PASS = 85.0
COUNT_PVA_WARNING = 50.0

# Funnel step 6
UNIT_CM_FAIL = -50.0

# PvA colour bands for display
PVA_GOOD = 95.0
PVA_WATCH = 85.0
CAC_PVA_GOOD = 105.0
CAC_PVA_WATCH = 120.0

