from __future__ import annotations

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter
from redis import asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from src.core.config import get_settings
from src.infrastructure.db.session import get_session_factory

router = APIRouter(tags=["Observability"])
logger = structlog.get_logger()


async def check_database() -> dict:
    try:
        session_factory = get_session_factory()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        return {"status": "error", "message": str(exc)[:100]}
    return {"status": "ok"}


async def check_notification_queue() -> dict:
    settings = get_settings()
    if not settings.notifications_enabled:
        return {"status": "disabled"}
    client = aioredis.from_url(settings.redis_url)
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        return {"status": "error", "message": str(exc)[:100]}
    finally:
        await client.aclose()
    return {"status": "ok"}


@router.get("/health", summary="Service health probe")
async def health_check() -> dict:
    """Return service metadata and datastore reachability."""
    settings = get_settings()

    database_status = await check_database()
    queue_status = await check_notification_queue()

    overall_status = "ok"
    if database_status["status"] != "ok" or queue_status["status"] == "error":
        overall_status = "degraded"

    payload = {
        "service": settings.app_name,
        "version": settings.version,
        "status": overall_status,
        "timestamp": datetime.now(UTC).isoformat(),
        "datastores": {
            "database": database_status,
            "redis": queue_status,
        },
    }
    logger.info("health_probe", **payload)
    return payload
