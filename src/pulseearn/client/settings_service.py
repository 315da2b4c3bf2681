"""Remote platform settings merged over built-in defaults."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from pulseearn.client.errors import ClientError, Result

if TYPE_CHECKING:
    from pulseearn.client.api import ApiClient
    from pulseearn.client.auth_coordinator import Notifier

logger = structlog.get_logger()

DEFAULT_GENERAL_SETTINGS: dict[str, Any] = {
    "platformName": "PulseEarn",
    "platformDescription": "Community-powered platform for polls, trivia, and rewards",
    "defaultLanguage": "en",
    "defaultTheme": "system",
    "allowThemeSelection": True,
    "logoUrl": "/assets/logo.png",
    "faviconUrl": "/assets/favicon.ico",
    "seoKeywords": "polls, trivia, rewards, community, earning, games",
    "ogImageUrl": "",
    "marketingEnabled": True,
}


class SettingsService:
    def __init__(self, api: ApiClient, notifier: Notifier | None = None) -> None:
        self.api = api
        self.notifier = notifier
        self.general: dict[str, Any] = dict(DEFAULT_GENERAL_SETTINGS)
        self.loading = False
        self.error: str | None = None

    async def get_settings(self, category: str) -> Result[dict[str, Any]]:
        """One public settings document; ``data`` is None when it was never saved."""
        try:
            body = await self.api.get(f"/api/v1/settings/{category}")
        except ClientError as e:
            return Result.failure(e)
        return Result.success(body.get("settings"))

    async def load(self) -> Result[dict[str, Any]]:
        """Fetch general and marketing settings. Defaults stay in place on failure."""
        self.loading = True
        self.error = None
        try:
            general = await self.get_settings("general")
            if not general.ok:
                self.error = general.error
                logger.warning("settings_load_failed", category="general", error=general.error)
                if self.notifier is not None:
                    self.notifier.error(f"Failed to load general settings: {general.error}")
                return Result.failure(general.error or "Failed to load settings")

            marketing = await self.get_settings("marketing")
            if not marketing.ok:
                logger.warning("settings_load_failed", category="marketing", error=marketing.error)
            marketing_data = marketing.data or {}

            self.general = {
                **DEFAULT_GENERAL_SETTINGS,
                **(general.data or {}),
                "marketingEnabled": marketing_data.get("is_enabled", True),
            }
            return Result.success(self.general)
        finally:
            self.loading = False

    def get(self, key: str, default: Any = None) -> Any:
        return self.general.get(key, default)

    @property
    def page_title(self) -> str:
        name = self.general.get("platformName") or DEFAULT_GENERAL_SETTINGS["platformName"]
        return f"{name} - Community Platform for Polls, Trivia & Rewards"
