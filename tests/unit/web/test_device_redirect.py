"""Tests for the device gate at the HTTP edge: cookies and the redirect contract."""

from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from roomboard.config import Config
from roomboard.core.modules.device.gate import DeviceGate
from roomboard.core.modules.device.models import RegisterStatus
from roomboard.core.modules.device.tokens import hash_device_token
from roomboard.core.modules.filter.models import FilterOptions, ListingBootstrap
from roomboard.core.modules.room.models import RoomRow
from roomboard.core.pagination import CursorPage
from roomboard.web.server import create_fastapi_app

AUTH_TOKEN = "auth-token-1"


class StubApp:
    """The slice of App used by the gated routes, with the real DeviceGate over an in-memory store."""

    def __init__(self, store, user) -> None:
        self.device_gate = DeviceGate(store=store, sign_out=self.sign_out)
        self.sessions = {AUTH_TOKEN: user}
        self.signed_out: list[str] = []

    async def sign_out(self, auth_token):
        self.signed_out.append(auth_token)
        self.sessions.pop(auth_token, None)

    async def is_auth_token_valid(self, auth_token):
        return auth_token in self.sessions

    async def get_optional_user(self, auth_token):
        return self.sessions.get(auth_token) if auth_token else None

    async def list_rooms(self, auth_token, request):
        return CursorPage[RoomRow](items=[], next_cursor=None, limit=request.limit, total=0)

    async def get_bootstrap(self, auth_token):
        return ListingBootstrap(admin_level=0, role_tier="public", filters=FilterOptions(districts=[], room_types=[]))

    async def logout_device(self, device_token):
        await self.device_gate.logout(device_token)

    async def logout(self, auth_token, device_token):
        await self.device_gate.logout(device_token)
        if auth_token is not None:
            await self.sign_out(auth_token)


@pytest.fixture
def config():
    return Config(
        database_url="mongodb://localhost:27017/roomboard_test",
        host="127.0.0.1",
        port=8000,
        debug=False,
    )


@pytest.fixture
def stub_app(device_store, mock_user):
    return StubApp(device_store, mock_user)


@pytest.fixture
def client(stub_app, config):
    return TestClient(create_fastapi_app(stub_app, config), follow_redirects=False)


def _cookie_headers(response) -> dict[str, str]:
    """Set-Cookie headers by cookie name."""
    return {header.split("=", 1)[0]: header for header in response.headers.get_list("set-cookie")}


def _fill_devices(store, user_id: UUID) -> None:
    store.add_device(user_id, "phone", hash_device_token("phone-token"))
    store.add_device(user_id, "laptop", hash_device_token("laptop-token"))


class TestAnonymousVisitor:
    def test_rooms_served_without_device_cookies(self, client, device_store):
        response = client.get("/api/v1/rooms")
        assert response.status_code == 200
        assert response.json()["items"] == []
        assert response.headers.get_list("set-cookie") == []
        assert device_store.validate_calls == []


class TestSignedInDevice:
    def test_first_request_sets_device_cookies(self, client, device_store, mock_user):
        response = client.get("/api/v1/rooms", headers={"Cookie": f"auth_token={AUTH_TOKEN}"})

        assert response.status_code == 200
        cookies = _cookie_headers(response)
        assert {"device_token", "device_id"} <= set(cookies)
        assert "httponly" in cookies["device_token"].lower()
        assert "samesite=lax" in cookies["device_token"].lower()
        assert "Max-Age=2592000" in cookies["device_token"]
        assert device_store.live_count(mock_user.id) == 1

    def test_known_device_passes_without_new_cookies(self, client, device_store, mock_user):
        device_store.add_device(mock_user.id, "phone", hash_device_token("phone-token"))

        response = client.get(
            "/api/v1/bootstrap",
            headers={"Cookie": f"auth_token={AUTH_TOKEN}; device_token=phone-token; device_id=phone"},
        )

        assert response.status_code == 200
        assert response.headers.get_list("set-cookie") == []

    def test_store_outage_fails_open(self, client, device_store):
        device_store.fail_validate = True

        response = client.get("/api/v1/rooms", headers={"Cookie": f"auth_token={AUTH_TOKEN}"})

        assert response.status_code == 200


class TestRejectedDevice:
    """A device over the limit is signed out, stripped of its cookies and sent home with a marker."""

    def test_third_device_kicked(self, client, stub_app, device_store, mock_user):
        _fill_devices(device_store, mock_user.id)

        response = client.get(
            "/api/v1/rooms",
            headers={"Cookie": f"auth_token={AUTH_TOKEN}; device_token=tablet-token; device_id=tablet"},
        )

        assert device_store.register_results == [RegisterStatus.LIMIT_REACHED]
        assert response.status_code == 303
        assert response.headers["location"] == "/?auth=kicked"
        cookies = _cookie_headers(response)
        for name in ("device_token", "device_id", "auth_token"):
            assert "Max-Age=0" in cookies[name]
        assert stub_app.signed_out == [AUTH_TOKEN]
        assert device_store.live_count(mock_user.id) == 2

    def test_failed_revalidation_uses_limit_marker(self, client, device_store):
        device_store.forget_registrations = True

        response = client.get("/api/v1/rooms", headers={"Cookie": f"auth_token={AUTH_TOKEN}"})

        assert response.status_code == 303
        assert response.headers["location"] == "/?auth=limit"

    def test_sign_in_routes_not_gated(self, client, device_store, mock_user):
        _fill_devices(device_store, mock_user.id)

        response = client.post(
            "/api/v1/auth/logout",
            headers={"Cookie": f"auth_token={AUTH_TOKEN}; device_token=phone-token; device_id=phone"},
        )

        assert response.status_code == 204
        assert device_store.revoked == [hash_device_token("phone-token")]
        assert device_store.live_count(mock_user.id) == 1
        assert "Max-Age=0" in _cookie_headers(response)["device_token"]

    def test_device_logout_keeps_auth_session(self, client, stub_app, device_store, mock_user):
        device_store.add_device(mock_user.id, "phone", hash_device_token("phone-token"))

        response = client.post("/api/v1/device/logout", headers={"Cookie": "device_token=phone-token; device_id=phone"})

        assert response.status_code == 204
        assert device_store.live_count(mock_user.id) == 0
        assert stub_app.signed_out == []
        cookies = _cookie_headers(response)
        assert "Max-Age=0" in cookies["device_token"]
        assert "auth_token" not in cookies


class TestAppFactory:
    def test_no_server_side_session_middleware(self, stub_app, config):
        # Sign-in state lives in the auth token and device cookies only
        fastapi_app = create_fastapi_app(stub_app, config)
        assert "SessionMiddleware" not in [middleware.cls.__name__ for middleware in fastapi_app.user_middleware]

    def test_signed_in_response_sets_only_auth_and_device_cookies(self, client):
        response = client.get("/api/v1/rooms", headers={"Cookie": f"auth_token={AUTH_TOKEN}"})
        assert set(_cookie_headers(response)) == {"device_token", "device_id"}
