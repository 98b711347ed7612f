"""
RevSport integration configuration.

Constants that describe how to talk to the club's RevSport booking site,
plus the settings object the pipeline is constructed with.  Nothing in
here touches the environment; boatboard.config builds the settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from zoneinfo import ZoneInfo

# ── Upstream paths ────────────────────────────────────────────────────────

DEFAULT_BASE_URL = "https://www.lakemacquarierowingclub.org.au"

LOGIN_PATH = "/login"
BOOKINGS_PATH = "/bookings"
CALENDAR_PATH = "/bookings/retrieve-calendar/{asset_id}"
BOOKING_URL = "/bookings/{asset_id}"

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-AU,en;q=0.9",
}

# Statuses that mean "your session is gone" on an authenticated request.
UNAUTHORIZED_STATUSES = frozenset({401, 403})

# ── HTML selectors ────────────────────────────────────────────────────────

ASSET_CARD_SELECTOR = ".card.card-hover"
ASSET_NAME_SELECTOR = ".mr-3"
ASSET_CALENDAR_LINK_SELECTOR = 'a[href*="/bookings/calendar/"]'

CSRF_FIELD = "_token"
# Tried in order; the first non-empty hit wins.
CSRF_SELECTORS: tuple[tuple[str, str], ...] = (
    ('input[name="_token"]', "value"),
    ('meta[name="csrf-token"]', "content"),
    ('meta[name="X-CSRF-TOKEN"]', "content"),
)

LOGOUT_SELECTORS = ('a[href*="logout"]', 'form[action*="logout"]')
LOGIN_FORM_SELECTORS = ('form[action*="login"]', 'input[name="password"]')
LOGIN_ERROR_SELECTORS = (".alert-danger", ".error")

# ── Defaults ──────────────────────────────────────────────────────────────

DEFAULT_TIMEZONE = "Australia/Sydney"
DEFAULT_CACHE_TTL_SECONDS = 600.0
DEFAULT_REFRESH_INTERVAL_SECONDS = 600.0
DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_SECONDS = 0.5
DEFAULT_WINDOW_DAYS = 7
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
DEFAULT_LOGIN_MAX_ATTEMPTS = 3
DEFAULT_LOGIN_BACKOFF_SECONDS = 1.0
# RevSport answers a *successful* login post with a 500.
DEFAULT_LOGIN_TOLERATED_STATUSES = frozenset({500})


@dataclass(frozen=True)
class SessionWindow:
    """A named on-water session, e.g. the 06:30–07:30 morning row."""

    name: str
    start: time
    end: time


DEFAULT_SESSIONS: tuple[SessionWindow, ...] = (
    SessionWindow("morning1", time(6, 30), time(7, 30)),
    SessionWindow("morning2", time(7, 30), time(8, 30)),
)


@dataclass(frozen=True)
class RevSportSettings:
    """Everything the pipeline needs, injected by the config collaborator."""

    username: str
    password: str = field(repr=False)
    base_url: str = DEFAULT_BASE_URL
    timezone: str = DEFAULT_TIMEZONE
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS
    batch_size: int = DEFAULT_BATCH_SIZE
    batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS
    window_days: int = DEFAULT_WINDOW_DAYS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    login_max_attempts: int = DEFAULT_LOGIN_MAX_ATTEMPTS
    login_backoff_seconds: float = DEFAULT_LOGIN_BACKOFF_SECONDS
    login_tolerated_statuses: frozenset[int] = DEFAULT_LOGIN_TOLERATED_STATUSES
    sessions: tuple[SessionWindow, ...] = DEFAULT_SESSIONS

    def __post_init__(self) -> None:
        if not self.username or not self.password:
            raise ValueError("Missing username or password in configuration")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.window_days < 1:
            raise ValueError("window_days must be at least 1")
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        if self.login_max_attempts < 1:
            raise ValueError("login_max_attempts must be at least 1")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        object.__setattr__(
            self, "login_tolerated_statuses", frozenset(self.login_tolerated_statuses),
        )

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def login_url(self) -> str:
        return f"{self.base_url}{LOGIN_PATH}"
