"""
Client-side session lifecycle.

States: UNKNOWN until the first INITIAL_SESSION event, then AUTHENTICATED or
ANONYMOUS. A profile fetch failure while authenticated leaves ``user`` set and
``profile`` None; role checks then see the lowest role.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from pulseearn.auth.roles import DEFAULT_ROLE
from pulseearn.client.errors import AuthError, ClientError, Result
from pulseearn.client.session import AuthEvent

if TYPE_CHECKING:
    from pulseearn.client.session import Session, SessionStore

logger = structlog.get_logger()


class AuthState(str, enum.Enum):
    UNKNOWN = "unknown"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class Notifier(Protocol):
    """Transient user-facing messages (toasts)."""

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...


class LogNotifier:
    """Notifier that only logs; used when no UI is attached."""

    def success(self, message: str) -> None:
        logger.info("notify_success", message=message)

    def error(self, message: str) -> None:
        logger.warning("notify_error", message=message)

    def info(self, message: str) -> None:
        logger.info("notify_info", message=message)


@dataclass(frozen=True)
class SignOutResult:
    """Local state is always cleared first; ``confirmed`` reports the remote outcome."""

    optimistic: bool = True
    confirmed: bool = False
    error: str | None = None


class AuthCoordinator:
    def __init__(self, store: SessionStore, notifier: Notifier | None = None) -> None:
        self.store = store
        self.notifier = notifier or LogNotifier()
        self.state = AuthState.UNKNOWN
        self.user: dict[str, Any] | None = None
        self.profile: dict[str, Any] | None = None
        self.session: Session | None = None
        self.loading = True
        self._mounted = False
        self._other_event_seen = False
        self._unsubscribe = None

    @property
    def role(self) -> str:
        return (self.profile or {}).get("role") or DEFAULT_ROLE

    async def start(self) -> None:
        """Subscribe to session events and bootstrap from stored tokens."""
        self._mounted = True
        self._unsubscribe = self.store.on_auth_state_change(self._on_auth_event)
        await self.store.initialize()

    def close(self) -> None:
        self._mounted = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _clear(self) -> None:
        self.user = None
        self.profile = None
        self.session = None
        self.state = AuthState.ANONYMOUS

    async def _apply_session(self, session: Session | None) -> None:
        if session is None:
            self._clear()
            self.loading = False
            return
        self.session = session
        self.user = session.user
        self.state = AuthState.AUTHENTICATED
        self.profile = session.profile
        if self.profile is None:
            try:
                profile = await self.store.fetch_profile()
            except ClientError as e:
                logger.warning("profile_fetch_failed", user_id=session.user.get("id"), error=e.message)
                profile = None
            if self._mounted and self.session is session:
                self.profile = profile
        self.loading = False

    async def _on_auth_event(self, event: AuthEvent, session: Session | None) -> None:
        if not self._mounted:
            return
        if event is AuthEvent.INITIAL_SESSION:
            # A sign-in or sign-out that landed during bootstrap wins over it
            if self._other_event_seen:
                logger.debug("stale_initial_session_ignored")
                return
        else:
            self._other_event_seen = True
        if event in (AuthEvent.SIGNED_OUT, AuthEvent.TOKEN_REFRESH_FAILED):
            self._clear()
            self.loading = False
            return
        await self._apply_session(session)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def sign_up(
        self,
        email: str,
        password: str,
        name: str | None = None,
        country: str | None = None,
        referral_code: str | None = None,
    ) -> Result[None]:
        try:
            await self.store.sign_up(email, password, name, country, referral_code)
        except ClientError as e:
            self.notifier.error(e.message)
            return Result.failure(e)
        self.notifier.success("Account created successfully!")
        return Result.success()

    async def sign_in(self, email: str, password: str) -> Result[None]:
        """
        Sign in. ``loading`` is cleared by the resulting SIGNED_IN event on
        success and explicitly here on failure.
        """
        self.loading = True
        try:
            await self.store.sign_in_with_password(email, password)
        except ClientError as e:
            if isinstance(e, AuthError) and e.status_code == 401:
                await self.store.sign_out(local_only=True)
            self.loading = False
            self.notifier.error(e.message)
            return Result.failure(e)
        self.notifier.success("Signed in successfully!")
        return Result.success()

    async def sign_out(self) -> SignOutResult:
        """Clear local state immediately; a failed remote sign-out is reported, not rolled back."""
        self._clear()
        self.loading = False
        try:
            await self.store.sign_out()
        except ClientError as e:
            logger.warning("sign_out_unconfirmed", error=e.message)
            self.notifier.error(f"Sign out may not have completed: {e.message}")
            return SignOutResult(confirmed=False, error=e.message)
        self.notifier.success("Signed out successfully")
        return SignOutResult(confirmed=True)

    async def update_profile(self, fields: dict[str, Any]) -> Result[dict[str, Any]]:
        if self.user is None:
            return Result.failure("No user logged in")
        try:
            profile = await self.store.update_profile(fields)
        except ClientError as e:
            self.notifier.error(e.message)
            return Result.failure(e)
        self.profile = profile
        self.notifier.success("Profile updated successfully")
        return Result.success(profile)
