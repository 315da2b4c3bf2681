"""Async Python client for the PulseEarn API."""

from pulseearn.client.ad_service import AdConfig, AdService
from pulseearn.client.api import ApiClient
from pulseearn.client.auth_coordinator import AuthCoordinator, AuthState, LogNotifier, Notifier, SignOutResult
from pulseearn.client.bootstrap import AppServices, build_app_services
from pulseearn.client.errors import (
    AuthError,
    ClientError,
    NotFoundError,
    PermissionDeniedError,
    RemoteServiceError,
    Result,
    ValidationError,
)
from pulseearn.client.payouts import PayoutForm
from pulseearn.client.resources import (
    AmbassadorDashboardResource,
    LeaderboardResource,
    RewardHistoryResource,
    RewardStatusResource,
)
from pulseearn.client.route_guard import AccessDecision, AccessState, RouteGuard
from pulseearn.client.session import (
    AuthEvent,
    JsonFileTokenStorage,
    MemoryTokenStorage,
    Session,
    SessionStore,
    TokenStorage,
)
from pulseearn.client.settings_service import SettingsService
from pulseearn.client.theme_service import ThemeService
from pulseearn.client.trivia_session import TriviaGameSession, TriviaPhase, start_game

__all__ = [
    "AccessDecision",
    "AccessState",
    "AdConfig",
    "AdService",
    "AmbassadorDashboardResource",
    "ApiClient",
    "AppServices",
    "AuthCoordinator",
    "AuthError",
    "AuthEvent",
    "AuthState",
    "ClientError",
    "JsonFileTokenStorage",
    "LeaderboardResource",
    "LogNotifier",
    "MemoryTokenStorage",
    "NotFoundError",
    "Notifier",
    "PayoutForm",
    "PermissionDeniedError",
    "RemoteServiceError",
    "Result",
    "RewardHistoryResource",
    "RewardStatusResource",
    "RouteGuard",
    "Session",
    "SessionStore",
    "SettingsService",
    "SignOutResult",
    "ThemeService",
    "TokenStorage",
    "TriviaGameSession",
    "TriviaPhase",
    "ValidationError",
    "start_game",
]
