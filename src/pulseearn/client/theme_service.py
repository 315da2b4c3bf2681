"""Light/dark theme selection driven by the user's choice and platform settings."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pulseearn.client.settings_service import SettingsService

THEMES = ("light", "dark")


class ThemeService:
    """
    Resolution order: saved preference, then the platform ``defaultTheme``
    unless it is "system", then the OS preference, then light.
    """

    def __init__(
        self,
        settings: SettingsService,
        saved_theme: str | None = None,
        prefers_dark: Callable[[], bool] | None = None,
    ) -> None:
        self.settings = settings
        self.saved_theme = saved_theme if saved_theme in THEMES else None
        self._prefers_dark = prefers_dark or (lambda: False)

    @property
    def allow_theme_selection(self) -> bool:
        return self.settings.get("allowThemeSelection") is not False

    @property
    def theme(self) -> str:
        if self.saved_theme:
            return self.saved_theme
        default = self.settings.get("defaultTheme")
        if default in THEMES:
            return default
        return "dark" if self._prefers_dark() else "light"

    def set_theme(self, theme: str) -> bool:
        """Persist an explicit choice. Returns False when selection is disabled."""
        if theme not in THEMES:
            msg = f"Unknown theme: {theme}"
            raise ValueError(msg)
        if not self.allow_theme_selection:
            return False
        self.saved_theme = theme
        return True

    def toggle(self) -> bool:
        return self.set_theme("dark" if self.theme == "light" else "light")
