"""Liveness, readiness and version checks. Not rate limited."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.config import get_settings
from pulseearn.database import get_session
from pulseearn.redis_client import get_redis

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


async def _check_database(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return f"error: {e}"
    return "ok"


async def _check_redis() -> str:
    try:
        await get_redis().ping()
    except (RedisError, RuntimeError) as e:
        return f"error: {e}"
    return "ok"


@router.get("/ready")
async def readiness(db: AsyncSession = Depends(get_session)) -> JSONResponse:
    """200 when the database and Redis both answer, 503 otherwise."""
    checks = {"database": await _check_database(db), "redis": await _check_redis()}
    ready = all(result == "ok" for result in checks.values())
    return JSONResponse(
        {"status": "ready" if ready else "degraded", "checks": checks},
        status_code=200 if ready else 503,
    )


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"name": "pulseearn", "version": settings.app_version, "environment": settings.environment}
