from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from anime_api.core.auth import AccessPolicy, UserDirectory
from anime_api.core.config import Settings, get_settings
from anime_api.core.context import username_ctx_var
from anime_api.core.errors import UnauthorizedError
from anime_api.domain.entities import AuthenticatedUser
from anime_api.domain.ports.anime_repository import AnimeRepository
from anime_api.repositories.anime_repository_sqlalchemy import SqlAlchemyAnimeRepository
from anime_api.services.anime_service import AnimeService

logger = logging.getLogger(__name__)

_basic = HTTPBasic(auto_error=False)


def settings_dep() -> Settings:
    return get_settings()


def _sessionmaker(request: Request) -> async_sessionmaker[AsyncSession]:
    sm: async_sessionmaker[AsyncSession] | None = getattr(request.app.state, "sessionmaker", None)
    if sm is None:
        raise RuntimeError("DB sessionmaker is not initialized")
    return sm


async def db_session_dep(request: Request) -> AsyncGenerator[AsyncSession, None]:
    sm = _sessionmaker(request)
    async with sm() as session:
        yield session


def anime_repository_dep(
    session: AsyncSession = Depends(db_session_dep),
    settings: Settings = Depends(settings_dep),
) -> AnimeRepository:
    return SqlAlchemyAnimeRepository(session=session, timeout_seconds=settings.repository_timeout_seconds)


def anime_service_dep(repo: AnimeRepository = Depends(anime_repository_dep)) -> AnimeService:
    return AnimeService(repository=repo)


def user_directory_dep(request: Request) -> UserDirectory:
    directory: UserDirectory | None = getattr(request.app.state, "user_directory", None)
    if directory is None:
        raise RuntimeError("User directory is not initialized")
    return directory


def access_policy_dep(request: Request) -> AccessPolicy:
    policy: AccessPolicy | None = getattr(request.app.state, "access_policy", None)
    if policy is None:
        raise RuntimeError("Access policy is not initialized")
    return policy


async def current_user_dep(
    credentials: HTTPBasicCredentials | None = Depends(_basic),
    directory: UserDirectory = Depends(user_directory_dep),
    settings: Settings = Depends(settings_dep),
) -> AuthenticatedUser:
    if credentials is None:
        raise UnauthorizedError("Full authentication is required", realm=settings.auth_realm)

    user = await directory.authenticate_async(credentials.username, credentials.password)
    if user is None:
        logger.info("auth_failed", extra={"attempted_user": credentials.username})
        raise UnauthorizedError("Invalid Credentials", realm=settings.auth_realm)

    username_ctx_var.set(user.username)
    return user


def authorize_dep(
    request: Request,
    user: AuthenticatedUser = Depends(current_user_dep),
    policy: AccessPolicy = Depends(access_policy_dep),
    settings: Settings = Depends(settings_dep),
) -> AuthenticatedUser:
    path = request.url.path
    prefix = settings.api_prefix.rstrip("/")
    if prefix and path.startswith(prefix):
        path = path[len(prefix) :] or "/"
    policy.check(user, method=request.method, path=path)
    return user
