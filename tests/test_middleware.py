"""
Tests for AccessGateMiddleware using Starlette's TestClient.
"""
from datetime import date
from unittest.mock import MagicMock

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from naturalization.core.config import Settings
from naturalization.core.exceptions import SupabaseError
from naturalization.domain.fields import META_UNLOCK_DATE
from naturalization.middleware.access_gate import AccessGateMiddleware
from naturalization.services.lockout import LockoutService

USER = "42"
TODAY = date(2025, 1, 1)


class FakeAuthMiddleware(BaseHTTPMiddleware):
    """Stands in for the host's auth layer: user id from a header."""

    async def dispatch(self, request, call_next):
        user_id = request.headers.get("X-User-Id")
        if user_id:
            request.state.user_id = user_id
        return await call_next(request)


async def page(request):
    return PlainTextResponse(request.url.path)


def build_client(lockout_service, settings):
    routes = [
        Route("/application/residences/", page),
        Route("/application/documents/", page),
        Route("/purgatory/", page),
        Route("/home/", page),
        Route("/application/dashboard/", page),
        Route("/application/dashboard/wait/", page),
    ]
    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(FakeAuthMiddleware),
            Middleware(
                AccessGateMiddleware,
                lockout_service=lockout_service,
                settings=settings,
                today=lambda: TODAY,
            ),
        ],
    )
    return TestClient(app)


@pytest.fixture
def client(lockout_service, settings):
    return build_client(lockout_service, settings)


class TestAccessGateMiddleware:
    def test_locked_user_redirected_from_topic_page(self, client, lockout_service):
        lockout_service.set_lockout(USER, "2025-03-15", "wait")

        response = client.get(
            "/application/residences/", headers={"X-User-Id": USER}, follow_redirects=False
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/purgatory/"

    def test_query_string_variant_redirected(self, client, lockout_service):
        lockout_service.set_lockout(USER, "2025-03-15", "wait")

        response = client.get(
            "/application/residences/?entry=9", headers={"X-User-Id": USER}, follow_redirects=False
        )

        assert response.status_code == 302

    def test_locked_user_reaches_waiting_room_and_documents(self, client, lockout_service):
        lockout_service.set_lockout(USER, "2025-03-15", "wait")

        for path in ("/purgatory/", "/application/documents/", "/home/"):
            response = client.get(path, headers={"X-User-Id": USER}, follow_redirects=False)
            assert response.status_code == 200

    def test_unlocked_user_passes(self, client):
        response = client.get("/application/residences/", headers={"X-User-Id": USER})
        assert response.status_code == 200
        assert response.text == "/application/residences/"

    def test_anonymous_request_passes(self, client, lockout_service):
        lockout_service.set_lockout(USER, "2025-03-15", "wait")

        response = client.get("/application/residences/", follow_redirects=False)
        assert response.status_code == 200

    def test_expired_lock_cleared_on_request(self, client, lockout_service, user_store):
        lockout_service.set_lockout(USER, "2024-12-31", "wait")

        response = client.get(
            "/application/residences/", headers={"X-User-Id": USER}, follow_redirects=False
        )

        assert response.status_code == 200
        assert user_store.get_user_meta(USER, META_UNLOCK_DATE) is None

    def test_lock_resolved_only_for_restricted_pages(self, settings):
        lockout_service = MagicMock()
        lockout_service.is_locked_out.return_value = True
        client = build_client(lockout_service, settings)

        client.get("/home/", headers={"X-User-Id": USER})
        client.get("/application/documents/", headers={"X-User-Id": USER})
        lockout_service.is_locked_out.assert_not_called()

        response = client.get(
            "/application/residences/", headers={"X-User-Id": USER}, follow_redirects=False
        )
        assert response.status_code == 302
        lockout_service.is_locked_out.assert_called_once_with(USER, TODAY)

    def test_custom_waiting_room_path(self, lockout_service):
        settings = Settings(environment="test", waiting_room_path="/home/", _env_file=None)
        client = build_client(lockout_service, settings)
        lockout_service.set_lockout(USER, "2025-03-15", "wait")

        response = client.get(
            "/application/residences/", headers={"X-User-Id": USER}, follow_redirects=False
        )

        assert response.headers["location"] == "/home/"

    def test_waiting_room_under_restricted_prefix_does_not_loop(self, lockout_service):
        settings = Settings(
            environment="test", waiting_room_path="/application/dashboard/wait/", _env_file=None
        )
        client = build_client(lockout_service, settings)
        lockout_service.set_lockout(USER, "2025-03-15", "wait")

        redirected = client.get(
            "/application/dashboard/", headers={"X-User-Id": USER}, follow_redirects=False
        )
        assert redirected.status_code == 302
        assert redirected.headers["location"] == "/application/dashboard/wait/"

        response = client.get(
            "/application/dashboard/wait/", headers={"X-User-Id": USER}, follow_redirects=False
        )
        assert response.status_code == 200
        assert response.text == "/application/dashboard/wait/"

    def test_unreadable_profile_store_lets_request_through(self, settings):
        store = MagicMock()
        store.get_user_meta.side_effect = SupabaseError("down")
        client = build_client(LockoutService(store, unlock_lead_months=6), settings)

        response = client.get(
            "/application/residences/", headers={"X-User-Id": USER}, follow_redirects=False
        )

        assert response.status_code == 200
        store.apply_user_meta.assert_not_called()
