from __future__ import annotations

import logging
from collections.abc import Callable

import httpx

from smartmarks.client.models import Identity
from smartmarks.client.store import StoreError, normalize_error, response_error

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

AuthListener = Callable[[str, Identity | None], None]


class IdentityClient:
    """Bearer-token identity shared by every request on ``http``."""

    def __init__(self, http: httpx.AsyncClient, token: str | None = None):
        self.http = http
        self._listeners: list[AuthListener] = []
        if token:
            self._install_token(token)

    @property
    def token(self) -> str | None:
        header = self.http.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return header.removeprefix("Bearer ")

    def _install_token(self, token: str | None) -> None:
        if token:
            self.http.headers["Authorization"] = f"Bearer {token}"
        else:
            self.http.headers.pop("Authorization", None)

    async def get_user(self) -> Identity | None:
        if not self.token:
            return None
        try:
            response = await self.http.get("/api/v1/auth/me")
        except httpx.HTTPError as exc:
            logger.warning("Identity lookup failed: %s", normalize_error(exc))
            return None
        if response.status_code != 200:
            return None
        try:
            return Identity.from_dict(response.json())
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Identity lookup returned an unreadable body: %s", exc)
            return None

    async def sign_in(self, username: str, password: str) -> Identity:
        try:
            response = await self.http.post(
                "/api/v1/auth/token",
                json={
                    "username": username,
                    "password": password,
                    "token_name": "SmartMarks session",
                },
            )
        except httpx.HTTPError as exc:
            raise StoreError(normalize_error(exc)) from exc
        if response.status_code != 200:
            raise StoreError(response_error(response), response.status_code)

        try:
            token = response.json()["token"]
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError("token response was unreadable") from exc
        self._install_token(token)
        user = await self.get_user()
        if user is None:
            raise StoreError("token was issued but could not be used")
        self._emit(SIGNED_IN, user)
        return user

    async def sign_out(self) -> None:
        if self.token:
            try:
                await self.http.post("/api/v1/auth/token/revoke")
            except httpx.HTTPError as exc:
                logger.warning("Token revoke failed: %s", normalize_error(exc))
        self._install_token(None)
        self._emit(SIGNED_OUT, None)

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str, user: Identity | None) -> None:
        for listener in list(self._listeners):
            listener(event, user)
