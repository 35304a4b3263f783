"""Open Prices authenticated session lifecycle."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx

from ..config import DEFAULT_SESSION_URL
from ..credentials import AuthMethod, CredentialBundle

logger = logging.getLogger(__name__)

_SESSION_COOKIE = re.compile(r"(?:^|[;,\s])session=([^;,\s]+)")

# JSON body fields that may carry the session identifier, in priority order
_TOKEN_FIELDS = ("access_token", "token", "session_id")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AuthSession:
    """Holds one authenticated Open Prices session.

    ``expires_at`` of None means the session never expires (token auth, or a
    login made without a timeout).
    """

    method: AuthMethod = AuthMethod.NONE
    access_token: str | None = None
    expires_at: datetime | None = None
    session_cookie: str | None = None

    def clear(self) -> None:
        self.access_token = None
        self.session_cookie = None


@dataclass(frozen=True)
class AuthStatus:
    authenticated: bool
    method: AuthMethod
    expired: bool
    has_stored_credentials: bool


def extract_session_cookie(response: httpx.Response) -> str | None:
    """Return the value of a ``session=`` attribute in Set-Cookie, if any."""
    for header in response.headers.get_list("set-cookie"):
        match = _SESSION_COOKIE.search(header)
        if match and match.group(1):
            return match.group(1)
    return None


def extract_token(response: httpx.Response) -> str | None:
    """Return the first non-empty token field of a JSON body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in _TOKEN_FIELDS:
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class AuthSessionManager:
    """Owns login, expiry tracking and refresh for one Open Prices session.

    ``configure`` and ``refresh`` run under a single lock. A caller that
    waited on the lock while another refresh succeeded gets that result
    instead of logging in again, so concurrent 401s cost one login.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        session_url: str = DEFAULT_SESSION_URL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._http = http_client
        self._session_url = session_url
        self._clock = clock
        self._session = AuthSession()
        # Kept apart from the session: refresh clears the session fields
        self._bundle: CredentialBundle | None = None
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def session(self) -> AuthSession:
        return self._session

    @property
    def method(self) -> AuthMethod:
        return self._session.method

    @property
    def generation(self) -> int:
        """Incremented each time a session is (re)established."""
        return self._generation

    async def configure(self, bundle: CredentialBundle) -> bool:
        """Establish a session from resolved credentials.

        Returns False for ``AuthMethod.NONE`` (read-only mode) and for a
        failed login; neither raises.
        """
        async with self._lock:
            self._bundle = bundle
            self._session = AuthSession(method=bundle.method)

            match bundle.method:
                case AuthMethod.API_TOKEN:
                    if not bundle.token:
                        logger.warning("Open Prices token is empty; staying read-only")
                        return False
                    self._session.access_token = bundle.token
                    self._generation += 1
                    logger.info("Open Prices authentication configured (api_token)")
                    return True
                case AuthMethod.LOGIN_PASSWORD:
                    return await self._login()
                case _:
                    logger.info("Open Prices running in read-only mode (no credentials)")
                    return False

    async def refresh(self, observed_generation: int | None = None) -> bool:
        """Re-establish the session from the stored credentials.

        Args:
            observed_generation: ``generation`` as seen by the caller before
                its request failed. If a refresh has completed since, the
                current session is reused.
        """
        async with self._lock:
            if (
                observed_generation is not None
                and observed_generation != self._generation
                and self.is_authenticated()
            ):
                logger.debug("Open Prices session already refreshed; reusing it")
                return True

            bundle = self._bundle
            if bundle is None or bundle.method is AuthMethod.NONE:
                logger.warning("Cannot refresh Open Prices session: no stored credentials")
                return False

            self._session.clear()

            if bundle.method is AuthMethod.API_TOKEN:
                # Tokens don't expire; put the stored one back
                if not bundle.token:
                    return False
                self._session.access_token = bundle.token
                self._generation += 1
                return True

            if not (bundle.username and bundle.password):
                logger.warning("Cannot refresh Open Prices session: incomplete login")
                return False

            logger.info("Refreshing Open Prices session")
            return await self._login()

    def is_expired(self) -> bool:
        session = self._session
        if session.method is not AuthMethod.LOGIN_PASSWORD:
            return False
        if session.expires_at is None:
            return False
        return self._clock() > session.expires_at

    def is_authenticated(self) -> bool:
        return self._session.access_token is not None and not self.is_expired()

    def status(self) -> AuthStatus:
        bundle = self._bundle
        return AuthStatus(
            authenticated=self.is_authenticated(),
            method=self._session.method,
            expired=self.is_expired(),
            has_stored_credentials=bundle is not None
            and bundle.method is not AuthMethod.NONE,
        )

    def reset(self) -> None:
        """Forget the session and the stored credentials."""
        self._session = AuthSession()
        self._bundle = None

    async def _login(self) -> bool:
        """Form-encoded credential exchange against the session endpoint.

        Caller must hold the lock.
        """
        bundle = self._bundle
        assert bundle is not None

        form = {
            "user_id": bundle.username or "",
            "password": bundle.password or "",
            "action": "process",
        }
        try:
            response = await self._http.post(self._session_url, data=form)
        except httpx.HTTPError as e:
            logger.warning("Open Prices login failed: %s", e)
            return False

        if not response.is_success:
            logger.warning("Open Prices login rejected (HTTP %d)", response.status_code)
            return False

        cookie = extract_session_cookie(response)
        token = cookie or extract_token(response)
        if not token:
            logger.warning("Open Prices login succeeded but returned no session id")
            return False

        self._session.access_token = token
        self._session.session_cookie = cookie
        # A non-positive timeout means the session carries no expiry
        if bundle.session_timeout > 0:
            self._session.expires_at = self._clock() + timedelta(
                seconds=bundle.session_timeout
            )
        else:
            self._session.expires_at = None
        self._generation += 1
        logger.info(
            "Open Prices session established for %s (expires %s)",
            bundle.username,
            self._session.expires_at or "never",
        )
        return True
