from __future__ import annotations

import os
from typing import Dict, Tuple


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    values = tuple(v.strip().lower() for v in raw.split(",") if v.strip())
    return values or default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# ============================================================
# Sheet source configuration
# ============================================================

GOOGLE_SHEETS_API_KEY = os.getenv("GOOGLE_SHEETS_API_KEY", "")
SHEETS_API_URL = os.getenv("SHEETS_API_URL", "https://sheets.googleapis.com/v4/spreadsheets")

OPS_SHEET_ID = os.getenv("FLEETDASH_OPS_SHEET_ID", "1GPDqOSURZNALalPzfHNbMft0HQ1c_fIkgfu_V3fSroY")
ISSUES_SHEET_ID = os.getenv("FLEETDASH_ISSUES_SHEET_ID", "1oHapc5HADod_2zPi0l1r8Ef2PjQlb4pfe-p9cKZFB2I")

MISALIGNMENT_RANGE = os.getenv("FLEETDASH_MISALIGNMENT_RANGE", "Misalignment_Tracking!A:Z")
ALERTS_RANGE = os.getenv("FLEETDASH_ALERTS_RANGE", "Alert_Tracking!A:Z")
ISSUES_RANGE = os.getenv("FLEETDASH_ISSUES_RANGE", "Issues- Realtime!A:Z")

FETCH_TIMEOUT_SECONDS = float(os.getenv("FLEETDASH_FETCH_TIMEOUT", "30"))

# ============================================================
# Refresh schedule
# ============================================================

REFRESH_INTERVAL_SECONDS = float(os.getenv("FLEETDASH_REFRESH_SECONDS", str(5 * 60)))
AUTO_REFRESH = _env_flag("FLEETDASH_AUTO_REFRESH", True)

FETCH_ERROR_MESSAGE = "Failed to fetch data. Please check your internet connection."

# ============================================================
# Column roles (role -> lower-cased header substring)
# ============================================================

MISALIGNMENT_COLUMNS: Dict[str, str] = {
    "date": "date",
    "vehicles": "vehicle",
    "client": "client",
}

ALERT_COLUMNS: Dict[str, str] = {
    "date": "date",
    "alert_type": "alert type",
    "client": "client",
}

ISSUE_COLUMNS: Dict[str, str] = {
    "raised_at": "timestamp issues raised",
    "resolved_at": "timestamp issues resolved",
    "issue": "issue",
    "client": "client",
}

# ============================================================
# Row filters (lower-cased substrings)
# ============================================================

ALERT_SKIP_PHRASES = _env_list("FLEETDASH_ALERT_SKIP_PHRASES", ("no l2 alerts found",))
HISTORICAL_VIDEO_PHRASES = _env_list("FLEETDASH_HISTORICAL_VIDEO_PHRASES", ("historical video request",))

UNKNOWN_CLIENT = "Unknown"
