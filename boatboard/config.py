"""
Application configuration from environment variables.

All settings except the RevSport credentials have sensible defaults.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from datetime import time
from pathlib import Path

from dotenv import load_dotenv

from boatboard.services.revsport.config import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEZONE,
    RevSportSettings,
    SessionWindow,
)

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")

# ── RevSport ──────────────────────────────────────────────────────────────

REVSPORT_BASE_URL: str = os.getenv("REVSPORT_BASE_URL", DEFAULT_BASE_URL)
REVSPORT_USERNAME: str = os.getenv("REVSPORT_USERNAME", "")
REVSPORT_PASSWORD: str = os.getenv("REVSPORT_PASSWORD", "")
CLUB_TIMEZONE: str = os.getenv("CLUB_TIMEZONE", DEFAULT_TIMEZONE)

# ── Cache & fetching ──────────────────────────────────────────────────────

CACHE_TTL_SECONDS: float = float(os.getenv("CACHE_TTL_SECONDS", "600"))

# How often the background refresher forces a new cycle (0 disables it).
REFRESH_INTERVAL_SECONDS: float = float(os.getenv("REFRESH_INTERVAL_SECONDS", "600"))

FETCH_BATCH_SIZE: int = int(os.getenv("FETCH_BATCH_SIZE", "5"))
FETCH_BATCH_DELAY_SECONDS: float = float(os.getenv("FETCH_BATCH_DELAY_SECONDS", "0.5"))
BOOKING_WINDOW_DAYS: int = int(os.getenv("BOOKING_WINDOW_DAYS", "7"))
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

# ── Login ─────────────────────────────────────────────────────────────────

LOGIN_MAX_ATTEMPTS: int = int(os.getenv("LOGIN_MAX_ATTEMPTS", "3"))
LOGIN_BACKOFF_SECONDS: float = float(os.getenv("LOGIN_BACKOFF_SECONDS", "1.0"))

# Statuses on the login post that still go on to verification.
# RevSport returns 500 for a successful login.
LOGIN_TOLERATED_STATUSES: str = os.getenv("LOGIN_TOLERATED_STATUSES", "500")

# ── Sessions ──────────────────────────────────────────────────────────────

SESSION_1_START: str = os.getenv("SESSION_1_START", "06:30")
SESSION_1_END: str = os.getenv("SESSION_1_END", "07:30")
SESSION_2_START: str = os.getenv("SESSION_2_START", "07:30")
SESSION_2_END: str = os.getenv("SESSION_2_END", "08:30")


def parse_statuses(value: str) -> frozenset[int]:
    """Parse "500, 502" into {500, 502}; blanks are ignored."""
    return frozenset(int(part) for part in value.split(",") if part.strip())


def load_settings() -> RevSportSettings:
    """Build the pipeline settings from the values above.

    Raises ValueError when credentials are missing or a value is out of range.
    """
    return RevSportSettings(
        username=REVSPORT_USERNAME,
        password=REVSPORT_PASSWORD,
        base_url=REVSPORT_BASE_URL,
        timezone=CLUB_TIMEZONE,
        cache_ttl_seconds=CACHE_TTL_SECONDS,
        refresh_interval_seconds=REFRESH_INTERVAL_SECONDS,
        batch_size=FETCH_BATCH_SIZE,
        batch_delay_seconds=FETCH_BATCH_DELAY_SECONDS,
        window_days=BOOKING_WINDOW_DAYS,
        request_timeout_seconds=REQUEST_TIMEOUT_SECONDS,
        login_max_attempts=LOGIN_MAX_ATTEMPTS,
        login_backoff_seconds=LOGIN_BACKOFF_SECONDS,
        login_tolerated_statuses=parse_statuses(LOGIN_TOLERATED_STATUSES),
        sessions=(
            SessionWindow("morning1", time.fromisoformat(SESSION_1_START), time.fromisoformat(SESSION_1_END)),
            SessionWindow("morning2", time.fromisoformat(SESSION_2_START), time.fromisoformat(SESSION_2_END)),
        ),
    )
