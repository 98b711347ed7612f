"""
In-memory stand-in for the RevSport website.

Plugged into RevSportClient through httpx.MockTransport, so the real
client code (cookies, redirects, form posts) runs against it without
any network.  Sessions are cookie based, like the real site, and the
login post answers 500 on success by default.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any
from urllib.parse import parse_qs

import httpx

BASE_URL = "https://club.test"
USERNAME = "rower@example.com"
PASSWORD = "s3cret!"
SESSION_COOKIE = "revsport_session"

LOGIN_PAGE_INPUT = """
<html><body>
<form action="/login" method="post">
  <input type="hidden" name="_token" value="input-token-1234567890">
  <input name="username"><input name="password" type="password">
</form>
</body></html>
"""

LOGIN_PAGE_META = """
<html><head><meta name="csrf-token" content="meta-token-abcdefghij"></head>
<body>
<form action="/login" method="post">
  <input name="username"><input name="password" type="password">
</form>
</body></html>
"""

LOGIN_PAGE_META_ALT = """
<html><head><meta name="X-CSRF-TOKEN" content="alt-meta-token-0987"></head>
<body>
<form action="/login" method="post">
  <input name="username"><input name="password" type="password">
</form>
</body></html>
"""

LOGIN_PAGE_NO_TOKEN = """
<html><body>
<form action="/login" method="post">
  <input name="username"><input name="password" type="password">
</form>
</body></html>
"""

DEFAULT_BOATS: list[tuple[int, str]] = [
    (101, "1X - Carmody single scull ( Go For Gold )"),
    (102, "2X RACER - Swift double/pair 70 KG (Ian Krix)"),
    (103, "4X - Ausrowtec coxed quad/four 90 KG Hunter"),
    (104, "2X/- RACER - Partridge 95 KG"),
]


def listing_html(boats: list[tuple[int | None, str]]) -> str:
    """The /bookings page as a logged-in member sees it."""
    cards = []
    for asset_id, name in boats:
        link = (
            f'<a href="/bookings/calendar/{asset_id}">Calendar</a>'
            if asset_id is not None
            else '<a href="/bookings/other">Calendar</a>'
        )
        cards.append(
            f'<div class="card card-hover"><div class="card-body">'
            f'<span class="mr-3">{name}</span>{link}</div></div>'
        )
    return (
        '<html><body><nav><a href="/logout">Log out</a></nav>'
        + "".join(cards)
        + "</body></html>"
    )


def booking_event(day: str, start: str, end: str, member: str) -> dict[str, Any]:
    return {
        "id": f"{day}-{start}",
        "title": f"Booked by {member}",
        "start": f"{day}T{start}:00+11:00",
        "end": f"{day}T{end}:00+11:00",
        "url": "https://club.test/bookings/view/1",
    }


class FakeRevSport:
    """Scriptable RevSport: flip the attributes to simulate upstream moods."""

    def __init__(
        self,
        *,
        login_page: str = LOGIN_PAGE_INPUT,
        login_status: int = 500,
        boats: list[tuple[int | None, str]] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.login_page = login_page
        self.login_status = login_status
        self.boats = list(DEFAULT_BOATS if boats is None else boats)
        self.listing_override: str | None = None
        self.calendars: dict[int, Any] = {}
        self.timeouts: set[int] = set()
        self.calendar_errors: dict[int, int] = {}
        self.reject_logins = False
        self.always_reject_calendar = False
        self.login_page_sets_cookie = False
        self.delay = delay

        self.calls: Counter[tuple[str, str]] = Counter()
        self.login_forms: list[dict[str, str]] = []
        self.login_headers: list[httpx.Headers] = []
        self.calendar_params: list[dict[str, str]] = []
        self._sessions: set[str] = set()
        self._issued = 0

    # ── Knobs ─────────────────────────────────────────────────────────

    def expire_sessions(self) -> None:
        self._sessions.clear()

    @property
    def login_posts(self) -> int:
        return self.calls[("POST", "/login")]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # ── Request handling ──────────────────────────────────────────────

    def _authenticated(self, request: httpx.Request) -> bool:
        cookie_header = request.headers.get("cookie", "")
        for part in cookie_header.split(";"):
            name, _, value = part.strip().partition("=")
            if name == SESSION_COOKIE and value in self._sessions:
                return True
        return False

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if self.delay:
            await asyncio.sleep(self.delay)

        path = request.url.path
        self.calls[(request.method, path)] += 1

        if path == "/login" and request.method == "GET":
            self.login_headers.append(request.headers)
            headers = {"set-cookie": "XSRF-TOKEN=xsrf; Path=/"} if self.login_page_sets_cookie else {}
            return httpx.Response(200, headers=headers, text=self.login_page)

        if path == "/login" and request.method == "POST":
            return self._login(request)

        if path == "/bookings":
            if not self._authenticated(request):
                return httpx.Response(302, headers={"location": "/login"})
            return httpx.Response(200, text=self.listing_override or listing_html(self.boats))

        if path.startswith("/bookings/retrieve-calendar/"):
            return self._calendar(request, int(path.rsplit("/", 1)[1]))

        return httpx.Response(404, text="not found")

    def _login(self, request: httpx.Request) -> httpx.Response:
        self.login_headers.append(request.headers)
        form = {k: v[0] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}
        self.login_forms.append(form)

        if self.reject_logins or form.get("password") != PASSWORD or form.get("username") != USERNAME:
            return httpx.Response(
                422,
                text='<div class="alert-danger">These credentials do not match our records.</div>',
            )

        self._issued += 1
        token = f"session-{self._issued}"
        self._sessions.add(token)
        return httpx.Response(
            self.login_status,
            headers={"set-cookie": f"{SESSION_COOKIE}={token}; Path=/"},
            text="<html><body>Server Error</body></html>",
        )

    def _calendar(self, request: httpx.Request, asset_id: int) -> httpx.Response:
        self.calendar_params.append(dict(request.url.params))
        if asset_id in self.timeouts:
            raise httpx.ReadTimeout("timed out", request=request)
        if self.always_reject_calendar or not self._authenticated(request):
            return httpx.Response(403, text="Forbidden")
        if asset_id in self.calendar_errors:
            return httpx.Response(self.calendar_errors[asset_id], text="error")

        payload = self.calendars.get(asset_id, [])
        if isinstance(payload, str):
            return httpx.Response(200, text=payload)
        return httpx.Response(200, json=payload)
