"""
Pytest configuration and fixtures for testing.

Builds the application with cheap password hashes and an in-memory
repository so no PostgreSQL or redis is needed.
"""

from __future__ import annotations

import os

import pytest
from argon2 import PasswordHasher
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Set before anything reads settings
os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from anime_api.core.config import DevSettings, Settings, default_user_accounts  # noqa: E402
from anime_api.core.deps import anime_repository_dep  # noqa: E402
from anime_api.core.passwords import PasswordEncoder  # noqa: E402
from anime_api.main import create_app  # noqa: E402
from tests.mocks.repository_mocks import InMemoryAnimeRepository, create_seeded_repository  # noqa: E402


@pytest.fixture(scope="session")
def fast_encoder() -> PasswordEncoder:
    """
    Provides an argon2 encoder with minimal cost parameters.

    Returns:
        PasswordEncoder: Encoder producing quick-to-verify hashes
    """
    return PasswordEncoder(hasher=PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1))


@pytest.fixture(scope="session")
def settings(fast_encoder: PasswordEncoder) -> Settings:
    """
    Provides dev settings with the default ``user``/``admin`` accounts.

    Returns:
        Settings: Application settings
    """
    accounts = [account.model_dump() for account in default_user_accounts(fast_encoder)]
    return DevSettings(SECURITY_USERS=accounts, LOG_LEVEL="WARNING", LOG_JSON=False, RATE_LIMIT_ENABLED=False)


@pytest.fixture
def repository() -> InMemoryAnimeRepository:
    """
    Provides a fake repository seeded with ``Anime(1, "Hellsing")``.

    Returns:
        InMemoryAnimeRepository: Fake repository
    """
    return create_seeded_repository()


@pytest.fixture
def app(settings: Settings, repository: InMemoryAnimeRepository) -> FastAPI:
    """
    Provides the application wired to the fake repository.

    Returns:
        FastAPI: Application instance
    """
    application = create_app(settings)
    application.dependency_overrides[anime_repository_dep] = lambda: repository
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """
    Provides an unauthenticated test client. The lifespan is not entered.

    Returns:
        TestClient: HTTP client bound to the app
    """
    return TestClient(app)
