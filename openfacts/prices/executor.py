"""Authorized requests against Open Prices with a single 401 retry."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..credentials import AuthMethod
from .session import AuthSessionManager

logger = logging.getLogger(__name__)


class AuthenticatedRequestExecutor:
    """Sends one logical request with the session's auth header.

    Retry policy: only a 401 on a login/password session triggers a
    refresh, and the request is resent at most once. Other statuses are
    returned unchanged; transport errors (``httpx.HTTPError``) propagate.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        sessions: AuthSessionManager,
        base_url: str,
        user_agent: str | None = None,
    ) -> None:
        self._http = http_client
        self._sessions = sessions
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent

    @property
    def sessions(self) -> AuthSessionManager:
        return self._sessions

    def build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._user_agent:
            headers["User-Agent"] = self._user_agent

        session = self._sessions.session
        match session.method:
            case AuthMethod.API_TOKEN if session.access_token:
                headers["Authorization"] = f"Bearer {session.access_token}"
            case AuthMethod.LOGIN_PASSWORD if session.session_cookie:
                headers["Cookie"] = f"session={session.session_cookie}"
            case AuthMethod.LOGIN_PASSWORD if session.access_token:
                headers["Authorization"] = f"Bearer {session.access_token}"
        return headers

    async def execute(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        sessions = self._sessions
        generation = sessions.generation

        if sessions.method is AuthMethod.LOGIN_PASSWORD and sessions.is_expired():
            logger.info("Open Prices session expired; refreshing before %s %s", method, path)
            await sessions.refresh(observed_generation=generation)
            generation = sessions.generation

        response = await self._send(method, path, params, json)

        if response.status_code != 401 or sessions.method is not AuthMethod.LOGIN_PASSWORD:
            return response

        logger.info("Open Prices rejected %s %s (401); refreshing session", method, path)
        if not await sessions.refresh(observed_generation=generation):
            return response

        return await self._send(method, path, params, json)

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None,
        json: Any,
    ) -> httpx.Response:
        url = f"{self._base_url}/{path.lstrip('/')}"
        return await self._http.request(
            method,
            url,
            params=params,
            json=json,
            headers=self.build_headers(),
        )
