"""AuthCoordinator lifecycle and RouteGuard decisions."""

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.client.api import ApiClient
from pulseearn.client.auth_coordinator import AuthCoordinator, AuthState
from pulseearn.client.route_guard import AccessState, RouteGuard
from pulseearn.client.session import AuthEvent, MemoryTokenStorage, SessionStore
from tests.conftest import TEST_PASSWORD, register, set_role


@pytest.fixture
def coordinator(api: ApiClient, notifier) -> AuthCoordinator:
    return AuthCoordinator(SessionStore(api), notifier)


class TestLifecycle:
    async def test_starts_anonymous_without_tokens(self, coordinator: AuthCoordinator):
        assert coordinator.state is AuthState.UNKNOWN
        assert coordinator.loading is True
        await coordinator.start()
        assert coordinator.state is AuthState.ANONYMOUS
        assert coordinator.loading is False

    async def test_restores_session_and_profile(self, api: ApiClient, client, notifier):
        tokens = await register(client, name="Restored")
        storage = MemoryTokenStorage({"access_token": "x", "refresh_token": tokens["refresh_token"]})
        coordinator = AuthCoordinator(SessionStore(api, storage), notifier)

        await coordinator.start()
        assert coordinator.state is AuthState.AUTHENTICATED
        assert coordinator.user["id"] == tokens["user"]["id"]
        assert coordinator.profile["name"] == "Restored"
        assert coordinator.role == "user"

    async def test_sign_up(self, coordinator: AuthCoordinator, notifier):
        await coordinator.start()
        result = await coordinator.sign_up("new@example.com", TEST_PASSWORD, name="Newbie")
        assert result.ok
        assert coordinator.state is AuthState.AUTHENTICATED
        assert coordinator.profile["name"] == "Newbie"
        assert notifier.of("success") == ["Account created successfully!"]

    async def test_sign_up_duplicate(self, coordinator: AuthCoordinator, client, notifier):
        await register(client)
        await coordinator.start()
        result = await coordinator.sign_up("testuser@example.com", TEST_PASSWORD)
        assert not result.ok
        assert result.error == "Email already registered"
        assert coordinator.state is AuthState.ANONYMOUS

    async def test_sign_in_and_profile_update(self, coordinator: AuthCoordinator, client, notifier):
        await register(client)
        await coordinator.start()

        result = await coordinator.sign_in("testuser@example.com", TEST_PASSWORD)
        assert result.ok
        assert coordinator.loading is False
        assert coordinator.state is AuthState.AUTHENTICATED

        updated = await coordinator.update_profile({"name": "Changed"})
        assert updated.ok
        assert coordinator.profile["name"] == "Changed"

    async def test_bad_credentials_clear_loading(self, coordinator: AuthCoordinator, client, notifier):
        await register(client)
        await coordinator.start()

        result = await coordinator.sign_in("testuser@example.com", "WrongP@ss1")
        assert not result.ok
        assert result.error == "Invalid email or password"
        assert coordinator.loading is False
        assert coordinator.user is None
        assert notifier.of("error") == ["Invalid email or password"]

    async def test_update_profile_requires_user(self, coordinator: AuthCoordinator):
        await coordinator.start()
        result = await coordinator.update_profile({"name": "Nobody"})
        assert result.error == "No user logged in"

    async def test_close_stops_updates(self, coordinator: AuthCoordinator, client):
        await register(client)
        await coordinator.start()
        coordinator.close()
        await coordinator.store.sign_in_with_password("testuser@example.com", TEST_PASSWORD)
        assert coordinator.user is None


class TestSignOut:
    async def test_sign_out_confirmed(self, coordinator: AuthCoordinator, client, notifier):
        await register(client)
        await coordinator.start()
        await coordinator.sign_in("testuser@example.com", TEST_PASSWORD)
        refresh_token = coordinator.session.refresh_token

        outcome = await coordinator.sign_out()
        assert outcome.optimistic is True
        assert outcome.confirmed is True
        assert coordinator.state is AuthState.ANONYMOUS

        refresh = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        assert refresh.status_code == 401

    async def test_sign_out_is_optimistic_when_remote_fails(self, notifier):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/v1/auth/login":
                return httpx.Response(
                    200,
                    json={
                        "access_token": "access",
                        "refresh_token": "refresh",
                        "user": {"id": 1, "email": "a@example.com"},
                        "profile": {"id": 1, "name": "A", "role": "user"},
                    },
                )
            return httpx.Response(503, json={"detail": "Service unavailable"})

        storage = MemoryTokenStorage()
        async with ApiClient("http://test", transport=httpx.MockTransport(handler)) as api:
            coordinator = AuthCoordinator(SessionStore(api, storage), notifier)
            coordinator._mounted = True
            coordinator.store.on_auth_state_change(coordinator._on_auth_event)
            await coordinator.sign_in("a@example.com", TEST_PASSWORD)
            assert coordinator.user == {"id": 1, "email": "a@example.com"}

            outcome = await coordinator.sign_out()

        assert outcome.confirmed is False
        assert outcome.error == "Service unavailable"
        assert coordinator.user is None
        assert coordinator.state is AuthState.ANONYMOUS
        assert storage.load() is None
        assert notifier.of("error") == ["Sign out may not have completed: Service unavailable"]


class TestStaleBootstrap:
    async def test_sign_in_during_bootstrap_wins(self, api: ApiClient, client, notifier):
        await register(client)
        store = SessionStore(api)
        coordinator = AuthCoordinator(store, notifier)
        coordinator._mounted = True
        store.on_auth_state_change(coordinator._on_auth_event)

        await store.sign_in_with_password("testuser@example.com", TEST_PASSWORD)
        # A late INITIAL_SESSION carrying no session must not sign the user out
        await coordinator._on_auth_event(AuthEvent.INITIAL_SESSION, None)
        assert coordinator.state is AuthState.AUTHENTICATED


class TestRouteGuard:
    async def test_loading_then_sign_in_required_toasts_once(self, coordinator: AuthCoordinator, notifier):
        guard = RouteGuard(coordinator, "user")
        assert guard.evaluate().state is AccessState.LOADING

        await coordinator.start()
        first = guard.evaluate()
        second = guard.evaluate()
        assert first.state is AccessState.SIGN_IN_REQUIRED
        assert second.state is AccessState.SIGN_IN_REQUIRED
        assert notifier.of("info") == ["Please sign in to access this page"]

    async def test_role_below_requirement(self, coordinator: AuthCoordinator, client):
        await register(client)
        await coordinator.start()
        await coordinator.sign_in("testuser@example.com", TEST_PASSWORD)

        decision = RouteGuard(coordinator, "ambassador").evaluate()
        assert decision.state is AccessState.ACCESS_DENIED
        assert decision.message == "You need ambassador privileges to access this page"

    async def test_higher_role_granted(self, coordinator: AuthCoordinator, client, db_session: AsyncSession):
        tokens = await register(client)
        await set_role(db_session, tokens["user"]["id"], "admin")
        await coordinator.start()
        await coordinator.sign_in("testuser@example.com", TEST_PASSWORD)

        assert RouteGuard(coordinator, "ambassador").evaluate().granted
        assert RouteGuard(coordinator, "admin").evaluate().granted

    async def test_unknown_role_rejected(self, coordinator: AuthCoordinator):
        with pytest.raises(ValueError, match="Unknown role"):
            RouteGuard(coordinator, "superuser")
