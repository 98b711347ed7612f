"""
Session client for the RevSport booking site.

RevSport has no API: we log in like a browser (CSRF token + form post),
keep the session cookies in the httpx client, and confirm the login by
looking for a logout link on an authenticated page.  The login post
itself answers with a 500 even when it worked, so its status is only a
hint; the verification page is what decides.

One instance is shared by every worker of a refresh cycle.  Logins are
serialised by a lock, and a worker that hits a rejected session only
re-logs in if nobody else has already done so since that session was
issued.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from boatboard.errors import AuthError, NeedsReauth, TransportError
from boatboard.services.revsport.config import (
    BOOKINGS_PATH,
    CSRF_FIELD,
    DEFAULT_HEADERS,
    LOGIN_PATH,
    UNAUTHORIZED_STATUSES,
    RevSportSettings,
)
from boatboard.services.revsport.parser import (
    extract_csrf_token,
    extract_login_error,
    is_logged_in,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """An authenticated context; the cookies live in the client itself."""

    generation: int
    csrf_token: str = field(repr=False)
    established_at: datetime


class RevSportClient:
    """Async HTTP client that owns the RevSport login session."""

    def __init__(
        self,
        settings: RevSportSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            headers=DEFAULT_HEADERS,
            timeout=settings.request_timeout_seconds,
            follow_redirects=True,
            transport=transport,
        )
        self._sleep = sleep
        self._login_lock = asyncio.Lock()
        self._session: Session | None = None
        self._generation = 0
        # generation whose re-login just failed, and why
        self._failed_generation: int | None = None
        self._failed_error: AuthError | None = None

        logger.debug(
            "Credentials loaded (username length=%d, password length=%d)",
            len(settings.username),
            len(settings.password),
        )

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def session(self) -> Session | None:
        return self._session

    # ── Authentication ────────────────────────────────────────────────

    async def ensure_session(self) -> Session:
        """Return the current session, logging in first if there is none."""
        if self._session is not None:
            return self._session
        async with self._login_lock:
            if self._session is not None:
                logger.debug("Login finished while waiting, reusing session")
                return self._session
            return await self._login_with_retry()

    async def _reauthenticate(self, rejected: Session) -> Session:
        async with self._login_lock:
            current = self._session
            if current is not None and current.generation != rejected.generation:
                logger.debug("Session already renewed by another worker")
                return current
            if current is None and self._failed_generation == rejected.generation:
                logger.debug("Re-login for generation %d already failed", rejected.generation)
                raise AuthError(str(self._failed_error)) from self._failed_error

            self._session = None
            try:
                return await self._login_with_retry()
            except AuthError as exc:
                self._failed_generation = rejected.generation
                self._failed_error = exc
                raise

    async def _login_with_retry(self) -> Session:
        attempts = self._settings.login_max_attempts
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                session = await self._login()
            except (AuthError, httpx.HTTPError) as exc:
                last_error = exc
                logger.warning("Login attempt %d/%d failed: %s", attempt, attempts, exc)
                if attempt < attempts:
                    backoff = self._settings.login_backoff_seconds * 2 ** (attempt - 1)
                    logger.debug("Waiting %.1fs before next login attempt", backoff)
                    await self._sleep(backoff)
                continue

            self._session = session
            self._failed_generation = None
            self._failed_error = None
            logger.info("RevSport session established (generation %d)", session.generation)
            return session

        raise AuthError(
            f"Authentication failed after {attempts} attempts: {last_error}"
        ) from last_error

    def _auth_headers(self) -> dict[str, str]:
        # RevSport's CSRF check rejects requests without these.
        return {
            "Referer": self._settings.login_url,
            "Origin": self._settings.base_url,
        }

    async def _login(self) -> Session:
        logger.info("Authenticating with RevSport...")
        self._client.cookies.clear()
        headers = self._auth_headers()

        page = await self._client.get(LOGIN_PATH, headers=headers)
        if page.status_code >= 400:
            raise AuthError(f"Login page returned status {page.status_code}")

        token = extract_csrf_token(page.text)
        if token is None:
            logger.debug("No CSRF token on login page, submitting an empty one")
        else:
            logger.debug("CSRF token found: %s...", token[:10])

        resp = await self._client.post(
            LOGIN_PATH,
            data={
                CSRF_FIELD: token or "",
                "username": self._settings.username,
                "password": self._settings.password,
                "remember": "on",
            },
            headers=headers,
        )
        self._check_login_response(resp)

        verify = await self._client.get(BOOKINGS_PATH, headers=headers)
        if not is_logged_in(verify.text):
            raise AuthError("Authentication verification failed: no logout marker")

        self._generation += 1
        return Session(
            generation=self._generation,
            csrf_token=token or "",
            established_at=datetime.now(timezone.utc),
        )

    def _check_login_response(self, resp: httpx.Response) -> None:
        status = resp.status_code
        logger.debug(
            "Login response: status=%d cookies=%d", status, len(self._client.cookies),
        )
        if status == 403:
            logger.error("403 Forbidden on login post, upstream may be blocking us")
        elif status == 429:
            logger.error(
                "429 Too Many Requests on login post (retry-after=%s)",
                resp.headers.get("retry-after"),
            )

        if status in self._settings.login_tolerated_statuses:
            logger.debug("Login returned tolerated status %d, verifying session", status)
            return
        # A rejected login lands back on the form with an alert, often with
        # cookies already set by the login page itself.
        message = extract_login_error(resp.text)
        if message:
            raise AuthError(message)
        if status < 400:
            return
        if len(self._client.cookies) == 0:
            raise AuthError(f"Login failed with status {status}")
        logger.debug("Login returned %d but set cookies, verifying session", status)

    # ── Authenticated requests ────────────────────────────────────────

    async def request(
        self,
        session: Session,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Send a request on *session*.

        A rejected session triggers exactly one re-login and one retry.
        Raises NeedsReauth if the retry is rejected too, AuthError if the
        re-login fails, and TransportError for anything network-shaped.
        """
        used = self._session or session
        resp = await self._send(method, path, params)
        if not self._is_unauthorized(resp):
            return self._checked(resp, method, path)

        logger.warning(
            "Session rejected (status %d) on %s, re-authenticating", resp.status_code, path,
        )
        await self._reauthenticate(used)

        resp = await self._send(method, path, params)
        if self._is_unauthorized(resp):
            raise NeedsReauth(f"{method} {path} rejected after re-authentication")
        return self._checked(resp, method, path)

    async def _send(
        self, method: str, path: str, params: dict[str, str] | None,
    ) -> httpx.Response:
        logger.debug("%s %s %s", method, path, params or "")
        try:
            return await self._client.request(method, path, params=params)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc!r}") from exc

    @staticmethod
    def _is_unauthorized(resp: httpx.Response) -> bool:
        if resp.status_code in UNAUTHORIZED_STATUSES:
            return True
        # An expired session gets bounced to the login page.
        return resp.url.path.rstrip("/") == LOGIN_PATH

    @staticmethod
    def _checked(resp: httpx.Response, method: str, path: str) -> httpx.Response:
        if resp.status_code >= 400:
            raise TransportError(f"{method} {path} returned status {resp.status_code}")
        return resp
