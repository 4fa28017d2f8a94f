"""
Tests for the error body, request ids and response headers.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from anime_api.core.deps import anime_repository_dep
from anime_api.core.exception_handlers import DEVELOPER_MESSAGE
from tests.mocks.auth_mocks import USER_AUTH
from tests.mocks.repository_mocks import FailingAnimeRepository


class TestErrorBody:
    def test_not_found_body_shape(self, client):
        response = client.get("/anime/42", auth=USER_AUTH, headers={"X-Request-ID": "req-12345678"})

        body = response.json()
        assert set(body) == {"timestamp", "path", "status", "error", "message", "requestId", "developerMessage"}
        assert body["error"] == "Not Found"
        assert body["requestId"] == "req-12345678"
        assert body["developerMessage"] == DEVELOPER_MESSAGE

    def test_validation_error_names_the_field(self, client):
        response = client.get("/anime/abc", auth=USER_AUTH)

        body = response.json()
        assert body["error"] == "Bad Request"
        assert "anime_id" in body["message"]

    def test_unknown_route_uses_same_shape(self, client):
        response = client.get("/nothing-here")

        assert response.status_code == 404
        assert response.json()["status"] == 404
        assert response.json()["path"] == "/nothing-here"

    def test_store_failure_surfaces_as_500(self, app):
        app.dependency_overrides[anime_repository_dep] = lambda: FailingAnimeRepository()
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/anime/1", auth=USER_AUTH)

        assert response.status_code == 500
        body = response.json()
        assert body["status"] == 500
        assert "developerMessage" not in body
        assert "unreachable" not in body["message"]


class TestRequestId:
    def test_generated_when_absent(self, client):
        response = client.get("/healthz")

        assert len(response.headers["X-Request-ID"]) == 32

    def test_valid_incoming_id_is_echoed(self, client):
        response = client.get("/healthz", headers={"X-Request-ID": "trace-abcdef01"})

        assert response.headers["X-Request-ID"] == "trace-abcdef01"

    @pytest.mark.parametrize("incoming", ["short", "bad id with spaces", "x" * 80])
    def test_invalid_incoming_id_is_replaced(self, client, incoming):
        response = client.get("/healthz", headers={"X-Request-ID": incoming})

        assert response.headers["X-Request-ID"] != incoming


class TestSecurityHeaders:
    def test_headers_present_on_success(self, client):
        response = client.get("/anime", auth=USER_AUTH)

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"

    def test_headers_present_on_errors(self, client):
        response = client.get("/anime")

        assert response.status_code == 401
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_no_hsts_outside_prod(self, client):
        assert "Strict-Transport-Security" not in client.get("/healthz").headers
