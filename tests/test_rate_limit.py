"""
Tests for RateLimitMiddleware.

Redis is replaced by an AsyncMock whose ``eval`` plays the INCR script.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from anime_api.core.deps import anime_repository_dep
from anime_api.main import create_app
from tests.mocks.auth_mocks import USER_AUTH


def create_counting_redis() -> AsyncMock:
    """
    Creates a redis mock whose ``eval`` returns an increasing counter.

    Returns:
        AsyncMock: Mocked redis client
    """
    redis_mock = AsyncMock()
    counter = {"value": 0}

    async def _eval(script, numkeys, key, ttl):
        counter["value"] += 1
        return counter["value"]

    redis_mock.eval = AsyncMock(side_effect=_eval)
    return redis_mock


@pytest.fixture
def limited_app(settings, repository):
    limited = settings.model_copy(update={"rate_limit_enabled": True, "rate_limit_requests": 2, "rate_limit_window_seconds": 60})
    application = create_app(limited)
    application.dependency_overrides[anime_repository_dep] = lambda: repository
    return application


class TestRateLimitMiddleware:
    def test_requests_under_limit_pass(self, limited_app):
        limited_app.state.redis = create_counting_redis()
        client = TestClient(limited_app)

        assert client.get("/anime", auth=USER_AUTH).status_code == 200
        assert client.get("/anime", auth=USER_AUTH).status_code == 200

    def test_request_over_limit_gets_429(self, limited_app):
        limited_app.state.redis = create_counting_redis()
        client = TestClient(limited_app)

        for _ in range(2):
            client.get("/anime", auth=USER_AUTH)
        response = client.get("/anime", auth=USER_AUTH)

        assert response.status_code == 429
        assert response.json()["status"] == 429
        assert 1 <= int(response.headers["Retry-After"]) <= 60

    def test_key_is_per_client_and_window(self, limited_app):
        redis_mock = create_counting_redis()
        limited_app.state.redis = redis_mock
        client = TestClient(limited_app)

        client.get("/anime", auth=USER_AUTH)

        _, numkeys, key, ttl = redis_mock.eval.call_args.args
        assert numkeys == 1
        assert key.startswith("rl:testclient:")
        assert ttl == 61

    def test_health_is_exempt(self, limited_app):
        redis_mock = create_counting_redis()
        limited_app.state.redis = redis_mock
        client = TestClient(limited_app)

        for _ in range(5):
            assert client.get("/healthz").status_code == 200
        redis_mock.eval.assert_not_called()

    def test_fails_open_when_redis_errors(self, limited_app):
        redis_mock = AsyncMock()
        redis_mock.eval = AsyncMock(side_effect=ConnectionError("redis down"))
        limited_app.state.redis = redis_mock
        client = TestClient(limited_app)

        for _ in range(4):
            assert client.get("/anime", auth=USER_AUTH).status_code == 200

    def test_passes_through_without_redis(self, limited_app):
        client = TestClient(limited_app)

        for _ in range(4):
            assert client.get("/anime", auth=USER_AUTH).status_code == 200

    def test_disabled_limit_never_touches_redis(self, app):
        redis_mock = create_counting_redis()
        app.state.redis = redis_mock
        client = TestClient(app)

        for _ in range(4):
            client.get("/anime", auth=USER_AUTH)
        redis_mock.eval.assert_not_called()
