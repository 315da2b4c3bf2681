"""Access decisions for role-protected views."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pulseearn.auth.roles import DEFAULT_ROLE, has_role

if TYPE_CHECKING:
    from pulseearn.client.auth_coordinator import AuthCoordinator, Notifier


class AccessState(str, enum.Enum):
    LOADING = "loading"
    SIGN_IN_REQUIRED = "sign_in_required"
    ACCESS_DENIED = "access_denied"
    GRANTED = "granted"


@dataclass(frozen=True)
class AccessDecision:
    state: AccessState
    required_role: str
    message: str | None = None

    @property
    def granted(self) -> bool:
        return self.state is AccessState.GRANTED


class RouteGuard:
    """
    Evaluates the coordinator's current state against a required role.

    ``evaluate`` can be called on every render. The sign-in toast fires only on
    the transition from loading to anonymous, not on each evaluation.
    """

    def __init__(
        self,
        coordinator: AuthCoordinator,
        required_role: str = DEFAULT_ROLE,
        notifier: Notifier | None = None,
    ) -> None:
        has_role(None, required_role)  # rejects unknown roles early
        self.coordinator = coordinator
        self.required_role = required_role
        self.notifier = notifier or coordinator.notifier
        self._was_loading = True

    def evaluate(self) -> AccessDecision:
        coordinator = self.coordinator
        if coordinator.loading:
            self._was_loading = True
            return AccessDecision(AccessState.LOADING, self.required_role)

        if coordinator.user is None:
            message = "Please sign in to access this page"
            if self._was_loading:
                self.notifier.info(message)
            self._was_loading = False
            return AccessDecision(AccessState.SIGN_IN_REQUIRED, self.required_role, message)

        self._was_loading = False
        if not has_role(coordinator.role, self.required_role):
            return AccessDecision(
                AccessState.ACCESS_DENIED,
                self.required_role,
                f"You need {self.required_role} privileges to access this page",
            )
        return AccessDecision(AccessState.GRANTED, self.required_role)
