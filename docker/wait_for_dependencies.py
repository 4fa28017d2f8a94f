"""Block container start-up until PostgreSQL (and redis, when configured) answer."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import asyncpg
import redis.asyncio as redis_async

logger = logging.getLogger("wait_for_dependencies")


@dataclass(frozen=True)
class WaitConfig:
    postgres_dsn: str
    redis_dsn: str | None
    connect_timeout_seconds: float
    overall_timeout_seconds: float
    poll_interval_seconds: float


def _require_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise RuntimeError(f"{name} is required")
    return value


def _asyncpg_dsn(dsn: str) -> str:
    return dsn.replace("+asyncpg", "")


async def _ping_postgres(cfg: WaitConfig) -> None:
    conn = await asyncpg.connect(dsn=_asyncpg_dsn(cfg.postgres_dsn), timeout=cfg.connect_timeout_seconds)
    try:
        await conn.execute("SELECT 1;")
    finally:
        await conn.close()


async def _ping_redis(cfg: WaitConfig) -> None:
    client = redis_async.Redis.from_url(
        cfg.redis_dsn or "",
        socket_connect_timeout=cfg.connect_timeout_seconds,
        socket_timeout=cfg.connect_timeout_seconds,
    )
    try:
        await client.ping()
    finally:
        await client.aclose()


async def _wait_for(name: str, probe: Callable[[WaitConfig], Awaitable[None]], cfg: WaitConfig) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + cfg.overall_timeout_seconds
    last_err: Exception | None = None
    attempts = 0
    while loop.time() < deadline:
        attempts += 1
        try:
            await probe(cfg)
            logger.info("%s reachable after %d attempt(s)", name, attempts)
            return
        except Exception as exc:  # noqa: BLE001
            last_err = exc
            await asyncio.sleep(cfg.poll_interval_seconds)
    raise RuntimeError(f"{name} is not reachable") from last_err


async def main() -> int:
    cfg = WaitConfig(
        postgres_dsn=_require_env("POSTGRES_DSN"),
        redis_dsn=os.getenv("REDIS_DSN", "").strip() or None,
        connect_timeout_seconds=float(os.getenv("WAIT_CONNECT_TIMEOUT_SECONDS", "2.0")),
        overall_timeout_seconds=float(os.getenv("WAIT_OVERALL_TIMEOUT_SECONDS", "60.0")),
        poll_interval_seconds=float(os.getenv("WAIT_POLL_INTERVAL_SECONDS", "1.0")),
    )

    await _wait_for("postgres", _ping_postgres, cfg)
    if cfg.redis_dsn:
        await _wait_for("redis", _ping_redis, cfg)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        raise SystemExit(130)
