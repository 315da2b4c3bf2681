"""Ad placement configuration from the integrations settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from pulseearn.config import Settings, get_settings

if TYPE_CHECKING:
    from pulseearn.client.settings_service import SettingsService

logger = structlog.get_logger()

AD_SLOTS = ("header", "footer", "sidebar", "content", "mobile")


@dataclass(frozen=True)
class AdConfig:
    enabled: bool = True
    client_id: str | None = None
    slots: dict[str, str | None] = field(default_factory=lambda: dict.fromkeys(AD_SLOTS))

    def slot(self, name: str) -> str | None:
        return self.slots.get(name)


def default_ad_config(settings: Settings) -> AdConfig:
    """Configured AdSense ids, used whenever remote integrations are unavailable."""
    return AdConfig(
        enabled=True,
        client_id=settings.adsense_client_id or None,
        slots={name: getattr(settings, f"adsense_{name}_slot") or None for name in AD_SLOTS},
    )


class AdService:
    def __init__(self, settings_service: SettingsService, config: Settings | None = None) -> None:
        self.settings_service = settings_service
        self._defaults = default_ad_config(config or get_settings())
        self.config = self._defaults
        self.loading = False

    async def load(self) -> AdConfig:
        self.loading = True
        try:
            result = await self.settings_service.get_settings("integrations")
            if not result.ok:
                logger.warning("ad_settings_load_failed", error=result.error)
            data = result.data
            if not data:
                self.config = self._defaults
            else:
                self.config = AdConfig(
                    enabled=data.get("adsenseEnabled") is not False,
                    client_id=data.get("adsenseClientId") or None,
                    slots={name: data.get(f"adsense{name.capitalize()}Slot") or None for name in AD_SLOTS},
                )
        finally:
            self.loading = False
        return self.config
