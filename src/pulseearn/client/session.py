"""
Identity capability over the auth endpoints.

SessionStore owns the tokens, persists them through a TokenStorage and tells
subscribers about every session change with an AuthEvent.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from pulseearn.client.errors import AuthError, ClientError

if TYPE_CHECKING:
    from pulseearn.client.api import ApiClient

logger = structlog.get_logger()


class AuthEvent(str, enum.Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    TOKEN_REFRESH_FAILED = "TOKEN_REFRESH_FAILED"
    USER_UPDATED = "USER_UPDATED"


@dataclass
class Session:
    access_token: str
    refresh_token: str
    user: dict[str, Any]
    profile: dict[str, Any] | None = field(default=None)

    @classmethod
    def from_token_response(cls, body: dict[str, Any]) -> Session:
        return cls(
            access_token=body["access_token"],
            refresh_token=body["refresh_token"],
            user=body["user"],
            profile=body.get("profile"),
        )


AuthListener = Callable[[AuthEvent, "Session | None"], Awaitable[None]]


# ---------------------------------------------------------------------------
# Token storage
# ---------------------------------------------------------------------------


class TokenStorage(Protocol):
    def load(self) -> dict[str, str] | None: ...

    def save(self, tokens: dict[str, str]) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStorage:
    def __init__(self, tokens: dict[str, str] | None = None) -> None:
        self._tokens = dict(tokens) if tokens else None

    def load(self) -> dict[str, str] | None:
        return dict(self._tokens) if self._tokens else None

    def save(self, tokens: dict[str, str]) -> None:
        self._tokens = dict(tokens)

    def clear(self) -> None:
        self._tokens = None


class JsonFileTokenStorage:
    """Tokens kept in a small JSON file, e.g. ``~/.pulseearn/session.json``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, str] | None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("token_storage_unreadable", path=str(self.path))
            return None
        return data if isinstance(data, dict) and data.get("refresh_token") else None

    def save(self, tokens: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(tokens), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Session store
# ---------------------------------------------------------------------------


class SessionStore:
    def __init__(self, api: ApiClient, storage: TokenStorage | None = None) -> None:
        self.api = api
        self.storage = storage or MemoryTokenStorage()
        self.session: Session | None = None
        self._listeners: list[AuthListener] = []
        self._generation = 0

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Subscribe to session changes. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: AuthEvent) -> None:
        logger.debug("auth_event", auth_event=event.value)
        for listener in list(self._listeners):
            await listener(event, self.session)

    def _set_session(self, session: Session | None) -> None:
        self._generation += 1
        self.session = session
        if session is None:
            self.api.access_token = None
            self.storage.clear()
        else:
            self.api.access_token = session.access_token
            self.storage.save({"access_token": session.access_token, "refresh_token": session.refresh_token})

    async def _refresh(self, refresh_token: str) -> Session:
        body = await self.api.post("/api/v1/auth/refresh", {"refresh_token": refresh_token})
        return Session.from_token_response(body)

    async def initialize(self) -> Session | None:
        """Restore a stored session (by refreshing it) and emit INITIAL_SESSION."""
        tokens = self.storage.load()
        if tokens and tokens.get("refresh_token"):
            generation = self._generation
            try:
                restored = await self._refresh(tokens["refresh_token"])
            except ClientError as e:
                logger.info("stored_session_rejected", error=e.message)
                restored = None
            # Sessions set while the refresh was in flight are newer
            if self._generation == generation:
                self._set_session(restored)
        await self._emit(AuthEvent.INITIAL_SESSION)
        return self.session

    def get_session(self) -> Session | None:
        return self.session

    async def sign_up(
        self,
        email: str,
        password: str,
        name: str | None = None,
        country: str | None = None,
        referral_code: str | None = None,
    ) -> Session:
        body = await self.api.post(
            "/api/v1/auth/register",
            {
                "email": email,
                "password": password,
                "name": name,
                "country": country,
                "referral_code": referral_code,
            },
        )
        self._set_session(Session.from_token_response(body))
        await self._emit(AuthEvent.SIGNED_IN)
        return self.session  # type: ignore[return-value]

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        body = await self.api.post("/api/v1/auth/login", {"email": email, "password": password})
        self._set_session(Session.from_token_response(body))
        await self._emit(AuthEvent.SIGNED_IN)
        return self.session  # type: ignore[return-value]

    async def sign_out(self, local_only: bool = False) -> None:
        """
        Clear the local session, emit SIGNED_OUT, then revoke the refresh token.

        Raises:
            ClientError: If the remote revocation fails. Local state stays cleared.
        """
        refresh_token = self.session.refresh_token if self.session else None
        self._set_session(None)
        await self._emit(AuthEvent.SIGNED_OUT)
        if refresh_token and not local_only:
            await self.api.post("/api/v1/auth/logout", {"refresh_token": refresh_token})

    async def refresh_session(self) -> Session | None:
        """Rotate the tokens. A rejected refresh ends the session with TOKEN_REFRESH_FAILED."""
        if self.session is None:
            return None
        try:
            self._set_session(await self._refresh(self.session.refresh_token))
        except AuthError:
            self._set_session(None)
            await self._emit(AuthEvent.TOKEN_REFRESH_FAILED)
            return None
        await self._emit(AuthEvent.TOKEN_REFRESHED)
        return self.session

    async def fetch_profile(self) -> dict[str, Any]:
        profile = await self.api.get("/api/v1/profiles/me")
        if self.session is not None:
            self.session.profile = profile
        return profile

    async def update_profile(self, fields: dict[str, Any]) -> dict[str, Any]:
        profile = await self.api.patch("/api/v1/profiles/me", fields)
        if self.session is not None:
            self.session.profile = profile
        await self._emit(AuthEvent.USER_UPDATED)
        return profile
