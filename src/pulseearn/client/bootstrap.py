"""Builds the client services once, in dependency order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pulseearn.client.ad_service import AdService
from pulseearn.client.api import ApiClient
from pulseearn.client.auth_coordinator import AuthCoordinator, LogNotifier, Notifier
from pulseearn.client.session import SessionStore, TokenStorage
from pulseearn.client.settings_service import SettingsService
from pulseearn.client.theme_service import ThemeService

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from pulseearn.config import Settings


@dataclass
class AppServices:
    api: ApiClient
    settings: SettingsService
    theme: ThemeService
    ads: AdService
    auth: AuthCoordinator

    async def aclose(self) -> None:
        self.auth.close()
        await self.api.aclose()


async def build_app_services(
    base_url: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    storage: TokenStorage | None = None,
    notifier: Notifier | None = None,
    saved_theme: str | None = None,
    prefers_dark: Callable[[], bool] | None = None,
    config: Settings | None = None,
) -> AppServices:
    """Settings load before Theme and Ads, which read them; auth starts last."""
    notifier = notifier or LogNotifier()
    api = ApiClient(base_url, transport=transport)

    settings = SettingsService(api, notifier)
    await settings.load()
    theme = ThemeService(settings, saved_theme=saved_theme, prefers_dark=prefers_dark)
    ads = AdService(settings, config)
    await ads.load()

    auth = AuthCoordinator(SessionStore(api, storage), notifier)
    await auth.start()
    return AppServices(api=api, settings=settings, theme=theme, ads=ads, auth=auth)
