"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from pulseearn.ambassador.router import router as ambassador_router
from pulseearn.app_settings.router import router as settings_router
from pulseearn.auth.router import router as auth_router
from pulseearn.config import get_settings
from pulseearn.database import close_db, init_db, session_scope
from pulseearn.health.router import router as health_router
from pulseearn.leaderboard.router import router as leaderboard_router
from pulseearn.middleware import setup_middleware
from pulseearn.payments.router import router as payments_router
from pulseearn.payouts.router import router as payouts_router
from pulseearn.payouts.service import seed_payout_methods
from pulseearn.polls.router import router as polls_router
from pulseearn.profiles.badge_service import seed_badges
from pulseearn.profiles.router import router as profiles_router
from pulseearn.redis_client import close_redis, init_redis
from pulseearn.rewards.router import router as rewards_router
from pulseearn.trivia.router import router as trivia_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, settings.redis_max_connections)

    try:
        async with session_scope() as db:
            await seed_payout_methods(db)
            await seed_badges(db)
            await db.commit()
    except SQLAlchemyError:
        logger.warning("startup_seeding_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="PulseEarn API",
        description="Backend API for PulseEarn: polls, trivia, rewards and the ambassador program",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(profiles_router)
    app.include_router(rewards_router)
    app.include_router(trivia_router)
    app.include_router(leaderboard_router)
    app.include_router(polls_router)
    app.include_router(ambassador_router)
    app.include_router(payouts_router)
    app.include_router(settings_router)
    app.include_router(payments_router)

    return app


app = create_app()
