from __future__ import annotations
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx

from .config import LOGIN_PATH
from .errors import InputRejected, LoginFailed, ServiceRejected, SessionExpired, TransportFailure
from .logger import mask_token, setup_logger
from .models import SessionToken
from .settings import settings

logger = setup_logger("session")

CANNOT_REACH_MESSAGE = "Cannot connect to server"
LOGIN_FAILED_MESSAGE = "Login failed"
REQUEST_FAILED_MESSAGE = "Request failed. Please try again."


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """Sole owner of the admin token.

    Everything that needs the token goes through ``authenticated_request``;
    nothing else reads or writes it. A 401 from any request clears the whole
    session.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        duration: Optional[timedelta] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._duration = duration or timedelta(minutes=settings.session_duration_minutes)
        self._timeout = settings.request_timeout_seconds if timeout is None else timeout
        self._transport = transport
        self._clock = clock
        self._token: Optional[SessionToken] = None
        self._identity: Optional[str] = None
        self._authenticating = False

    @property
    def state(self) -> SessionState:
        if self._authenticating:
            return SessionState.AUTHENTICATING
        return SessionState.AUTHENTICATED if self.is_valid() else SessionState.ANONYMOUS

    @property
    def identity(self) -> Optional[str]:
        return self._identity if self._token else None

    def is_valid(self) -> bool:
        if self._token is None:
            return False
        if self._token.is_valid(self._clock()):
            return True
        self._clear("expired")
        return False

    def expires_in(self) -> Optional[timedelta]:
        if not self.is_valid():
            return None
        return self._token.expires_at - self._clock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout, transport=self._transport)

    def _clear(self, reason: str) -> None:
        if self._token is not None:
            logger.info(f"session cleared ({reason}) for {self._identity or 'unknown'}")
        self._token = None
        self._identity = None

    async def login(self, identifier: str, secret: str) -> None:
        identifier = (identifier or "").strip()
        if not identifier or not secret:
            raise InputRejected("Please enter your email and password")

        self._clear("new login")
        self._authenticating = True
        try:
            try:
                async with self._client() as client:
                    resp = await client.post(LOGIN_PATH, json={"email": identifier, "password": secret})
            except httpx.HTTPError as e:
                logger.error(f"login request failed: {e!r}")
                raise LoginFailed(CANNOT_REACH_MESSAGE, detail=str(e)) from e

            if resp.status_code >= 400:
                logger.warning(f"login rejected for {identifier}: HTTP {resp.status_code}")
                raise LoginFailed(LOGIN_FAILED_MESSAGE, status_code=resp.status_code)
            try:
                body = resp.json()
            except ValueError as e:
                logger.error(f"unreadable login reply: {resp.text[:200]}")
                raise LoginFailed(LOGIN_FAILED_MESSAGE, detail=str(e), status_code=resp.status_code) from e

            token = body.get("token") if isinstance(body, dict) and body.get("success") is True else None
            if not isinstance(token, str) or not token:
                logger.warning(f"login reply without token for {identifier}")
                raise LoginFailed(LOGIN_FAILED_MESSAGE, status_code=resp.status_code)

            self._token = SessionToken(token=token, expires_at=self._clock() + self._duration)
            self._identity = identifier
            logger.info(f"admin {identifier} logged in, token {mask_token(token)}, "
                        f"expires {self._token.expires_at.isoformat()}")
        finally:
            self._authenticating = False

    async def authenticated_request(
        self,
        path: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """Send ``method path`` with the bearer token and return the JSON body."""
        if not self.is_valid():
            raise SessionExpired()

        headers = {"Authorization": f"Bearer {self._token.token}", "Accept": "application/json"}
        try:
            async with self._client() as client:
                resp = await client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e!r}")
            raise TransportFailure(CANNOT_REACH_MESSAGE, detail=str(e)) from e

        if resp.status_code == 401:
            logger.warning(f"{method} {path} returned 401, ending session")
            self._clear("rejected by server")
            raise SessionExpired()
        if resp.status_code >= 400:
            logger.error(f"{method} {path} returned {resp.status_code}: {resp.text[:200]}")
            raise ServiceRejected(REQUEST_FAILED_MESSAGE, detail=resp.text[:500], status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"{method} {path} returned non-JSON body: {resp.text[:200]}")
            raise ServiceRejected(REQUEST_FAILED_MESSAGE, detail=str(e), status_code=resp.status_code) from e

    def logout(self) -> None:
        self._clear("logout")
