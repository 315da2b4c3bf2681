"""Settings, theme and ad services, app bootstrap and read-model resources."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.client.ad_service import AdService
from pulseearn.client.api import ApiClient
from pulseearn.client.auth_coordinator import AuthState
from pulseearn.client.bootstrap import build_app_services
from pulseearn.client.resources import LeaderboardResource, Resource, RewardHistoryResource, RewardStatusResource
from pulseearn.client.session import MemoryTokenStorage
from pulseearn.client.settings_service import DEFAULT_GENERAL_SETTINGS, SettingsService
from pulseearn.client.theme_service import ThemeService
from pulseearn.config import get_settings
from tests.conftest import auth_headers, register


async def _put_settings(client: AsyncClient, admin_tokens: dict, category: str, document: dict) -> None:
    response = await client.put(
        f"/api/v1/settings/{category}", json={"settings": document}, headers=auth_headers(admin_tokens)
    )
    assert response.status_code == 200, response.text


class TestSettingsService:
    async def test_defaults_when_nothing_saved(self, api: ApiClient):
        service = SettingsService(api)
        result = await service.load()
        assert result.ok
        assert service.general == DEFAULT_GENERAL_SETTINGS
        assert service.page_title == "PulseEarn - Community Platform for Polls, Trivia & Rewards"

    async def test_remote_values_merged_over_defaults(self, api: ApiClient, client: AsyncClient, admin_tokens: dict):
        await _put_settings(client, admin_tokens, "general", {"platformName": "PollPeak", "defaultTheme": "dark"})
        await _put_settings(client, admin_tokens, "marketing", {"is_enabled": False})

        service = SettingsService(api)
        await service.load()
        assert service.get("platformName") == "PollPeak"
        assert service.get("defaultLanguage") == "en"
        assert service.get("marketingEnabled") is False
        assert service.page_title.startswith("PollPeak - ")

    async def test_private_category_reported(self, api: ApiClient):
        result = await SettingsService(api).get_settings("points")
        assert not result.ok


class TestThemeService:
    def _settings(self, api: ApiClient, **overrides) -> SettingsService:
        service = SettingsService(api)
        service.general.update(overrides)
        return service

    async def test_resolution_order(self, api: ApiClient):
        assert ThemeService(self._settings(api), saved_theme="dark").theme == "dark"
        assert ThemeService(self._settings(api, defaultTheme="dark")).theme == "dark"
        assert ThemeService(self._settings(api), prefers_dark=lambda: True).theme == "dark"
        assert ThemeService(self._settings(api)).theme == "light"
        assert ThemeService(self._settings(api), saved_theme="neon").theme == "light"

    async def test_toggle(self, api: ApiClient):
        theme = ThemeService(self._settings(api))
        assert theme.toggle() is True
        assert theme.theme == "dark"
        assert theme.toggle() is True
        assert theme.theme == "light"

    async def test_selection_disabled(self, api: ApiClient):
        theme = ThemeService(self._settings(api, allowThemeSelection=False, defaultTheme="dark"))
        assert theme.set_theme("light") is False
        assert theme.theme == "dark"


class TestAdService:
    async def test_configured_defaults_without_integrations(self, api: ApiClient):
        config = get_settings().model_copy(update={"adsense_client_id": "ca-pub-1", "adsense_header_slot": "111"})
        ads = AdService(SettingsService(api), config)
        loaded = await ads.load()
        assert loaded.client_id == "ca-pub-1"
        assert loaded.slot("header") == "111"
        assert loaded.slot("footer") is None
        assert ads.loading is False

    async def test_integrations_document_wins(self, api: ApiClient, client: AsyncClient, admin_tokens: dict):
        await _put_settings(
            client,
            admin_tokens,
            "integrations",
            {"adsenseEnabled": False, "adsenseClientId": "ca-pub-2", "adsenseSidebarSlot": "333"},
        )
        loaded = await AdService(SettingsService(api)).load()
        assert loaded.enabled is False
        assert loaded.client_id == "ca-pub-2"
        assert loaded.slot("sidebar") == "333"
        assert loaded.slot("header") is None


class TestBootstrap:
    async def test_builds_services_in_order(self, transport, client: AsyncClient, admin_tokens: dict):
        await _put_settings(client, admin_tokens, "general", {"platformName": "PollPeak", "defaultTheme": "dark"})
        tokens = await register(client, email="boot@example.com")
        storage = MemoryTokenStorage({"access_token": "stale", "refresh_token": tokens["refresh_token"]})

        services = await build_app_services("http://test", transport=transport, storage=storage)
        try:
            assert services.settings.get("platformName") == "PollPeak"
            assert services.theme.theme == "dark"
            assert services.ads.config.enabled is True
            assert services.auth.state is AuthState.AUTHENTICATED
            assert services.auth.user["email"] == "boot@example.com"
        finally:
            await services.aclose()


class TestResources:
    async def test_reward_actions_refetch_status(self, api: ApiClient, client: AsyncClient):
        tokens = await register(client)
        api.access_token = tokens["access_token"]
        status = RewardStatusResource(api)
        await status.refetch()
        assert status.data["can_watch_ad"] is True

        result = await status.watch_ad()
        assert result.ok
        assert result.data["points_earned"] == 15
        assert status.data["can_watch_ad"] is False

        again = await status.watch_ad()
        assert not again.ok
        assert status.error == again.error

    async def test_history_and_leaderboard(self, api: ApiClient, client: AsyncClient):
        tokens = await register(client, country="US")
        api.access_token = tokens["access_token"]
        await RewardStatusResource(api).watch_ad()

        history = RewardHistoryResource(api, reward_type="watch")
        await history.refetch()
        assert [e["reward_type"] for e in history.data] == ["watch"]

        board = LeaderboardResource(api, country="US")
        await board.refetch()
        assert board.data[0]["points"] == 15

    async def test_error_without_token(self, api: ApiClient):
        status = RewardStatusResource(api)
        result = await status.refetch()
        assert not result.ok
        assert status.error
        assert status.loading is False

    async def test_closed_resource_not_updated(self, api: ApiClient, client: AsyncClient):
        tokens = await register(client)
        api.access_token = tokens["access_token"]
        status = RewardStatusResource(api)
        status.close()
        result = await status.refetch()
        assert result.ok
        assert status.data is None

    async def test_base_resource_requires_fetch(self, api: ApiClient):
        with pytest.raises(TypeError):
            Resource(api)

        class Incomplete(Resource[dict]):
            pass

        with pytest.raises(TypeError):
            Incomplete(api)
