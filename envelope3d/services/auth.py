"""
Authentication provider for the geometry and feature-layer services.

The pipeline only needs three things from authentication: whether the caller
is currently authenticated, a bearer header for requests, and a coroutine to
log in again when a secured layer answers 401.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from ..core.config import settings

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    @property
    def is_authenticated(self) -> bool: ...

    def auth_header(self) -> dict[str, str]: ...

    async def login(self) -> None: ...


@dataclass
class UserInfo:
    id: str
    username: str = ""
    email: str = ""
    name: str = ""


def decode_token_user(token: str) -> UserInfo:
    """Read user info from a JWT payload without verifying it."""
    try:
        payload_b64 = token.split(".")[1]
        payload_b64 += "=" * (-len(payload_b64) % 4)
        payload = json.loads(base64.urlsafe_b64decode(payload_b64))
    except (IndexError, ValueError) as exc:
        logger.warning(f"Could not decode token payload: {exc}")
        return UserInfo(id="unknown", username="User", name="User")

    username = payload.get("cognito:username", "")
    return UserInfo(
        id=payload.get("sub") or username,
        username=username,
        email=payload.get("email", ""),
        name=payload.get("name") or payload.get("email") or username,
    )


class TokenAuthSession:
    """
    Bearer-token session against the service's `/auth/login` endpoint.

    Usage:
        auth = TokenAuthSession(username="me", password="secret")
        await auth.login()
        headers = auth.auth_header()
    """

    LOGIN_PATH = "/auth/login"

    def __init__(
        self,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.username = username if username is not None else settings.username
        self.password = password if password is not None else settings.password
        self.timeout = timeout or settings.request_timeout_s
        self.token: Optional[str] = None
        self.user: Optional[UserInfo] = None
        self.error: str = ""

        token = token if token is not None else settings.api_token
        if token:
            self._store(token)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def auth_header(self) -> dict[str, str]:
        if not self.token:
            logger.debug("No token available for auth header")
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _store(self, token: str) -> None:
        self.token = token
        self.user = decode_token_user(token)

    def _login_blocking(self) -> None:
        response = requests.post(
            f"{self.base_url}{self.LOGIN_PATH}",
            json={"username": self.username, "password": self.password},
            timeout=self.timeout,
        )
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if not response.ok:
            raise requests.HTTPError(body.get("message") or "Login failed", response=response)
        token = body.get("access_token")
        if not isinstance(token, str) or not token:
            raise ValueError("Login response has no access token")
        self._store(token)

    async def login(self) -> None:
        """
        Log in with the configured credentials.

        Failures leave the session unauthenticated and set `error`; callers
        check `is_authenticated` afterwards.
        """
        self.error = ""
        if not self.username or not self.password:
            self.error = "No credentials configured"
            logger.warning("Login requested but no credentials are configured")
            return

        try:
            await asyncio.to_thread(self._login_blocking)
        except (requests.RequestException, KeyError, ValueError) as exc:
            self.invalidate()
            self.error = str(exc) or "Login failed"
            logger.error(f"Login failed: {self.error}")
            return

        logger.info(f"Logged in as {self.user.name if self.user else self.username}")

    def invalidate(self) -> None:
        """Drop the current token (e.g. after the service answered 401)."""
        self.token = None
        self.user = None

    def logout(self) -> None:
        self.invalidate()
        self.error = ""
