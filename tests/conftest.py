"""Shared test fixtures."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fakeredis import FakeAsyncRedis
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.jwt import reset_keys
from pulseearn.config import get_settings
from pulseearn.database import close_db, get_engine, init_db, session_scope
from pulseearn.db.base import Base
from pulseearn.db.models import Profile, TriviaGame, TriviaQuestion
from pulseearn.redis_client import set_redis

TEST_PASSWORD = "SecureP@ss1"


def _ensure_test_keys() -> None:
    """Generate a throwaway RSA key pair once per test run."""
    if os.environ.get("PULSEEARN_JWT_PRIVATE_KEY_PATH"):
        return
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    tmpdir = Path(tempfile.mkdtemp(prefix="pulseearn_test_keys_"))
    private_path = tmpdir / "jwt_private.pem"
    public_path = tmpdir / "jwt_public.pem"
    private_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    os.environ["PULSEEARN_JWT_PRIVATE_KEY_PATH"] = str(private_path)
    os.environ["PULSEEARN_JWT_PUBLIC_KEY_PATH"] = str(public_path)


_ensure_test_keys()
os.environ.setdefault("PULSEEARN_LOG_FORMAT", "console")
os.environ.setdefault("PULSEEARN_LOG_LEVEL", "WARNING")
get_settings.cache_clear()
reset_keys()


@pytest_asyncio.fixture
async def app_db(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database and in-process Redis for one test."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'pulseearn_test.db'}"
    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    from pulseearn.payouts.service import seed_payout_methods
    from pulseearn.profiles.badge_service import seed_badges

    async with session_scope() as session:
        await seed_payout_methods(session)
        await seed_badges(session)
        await session.commit()

    set_redis(FakeAsyncRedis(decode_responses=True))
    yield
    set_redis(None)
    await close_db()


@pytest.fixture
def app() -> FastAPI:
    from pulseearn.main import create_app

    return create_app()


@pytest_asyncio.fixture
async def client(app_db: None, app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client against a fresh app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(app_db: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for setup and assertions."""
    async with session_scope() as session:
        yield session


async def register(
    client: AsyncClient,
    email: str = "testuser@example.com",
    password: str = TEST_PASSWORD,
    **extra: object,
) -> dict:
    """Register via the API and return the token response body."""
    response = await client.post("/api/v1/auth/register", json={"email": email, "password": password, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(tokens: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {tokens['access_token']}"}


async def set_role(db: AsyncSession, user_id: int, role: str) -> None:
    await db.execute(update(Profile).where(Profile.id == user_id).values(role=role))
    await db.commit()


async def make_ambassador(
    client: AsyncClient,
    db: AsyncSession,
    email: str = "ambassador@example.com",
    country: str = "US",
    earnings: Decimal | None = None,
) -> dict:
    """Register a user, appoint them ambassador and optionally credit earnings."""
    from pulseearn.ambassador.service import appoint_ambassador

    tokens = await register(client, email=email, country=country)
    details = await appoint_ambassador(db, tokens["user"]["id"], country)
    if earnings is not None:
        details.total_earnings = earnings
    await db.commit()
    return tokens


@pytest_asyncio.fixture
async def user_tokens(client: AsyncClient) -> dict:
    return await register(client, name="Test User", country="US")


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user_tokens: dict) -> AsyncClient:
    """Client authenticated as a regular user."""
    client.headers["Authorization"] = f"Bearer {user_tokens['access_token']}"
    return client


@pytest_asyncio.fixture
async def admin_tokens(client: AsyncClient, db_session: AsyncSession) -> dict:
    tokens = await register(client, email="admin@example.com", name="Admin")
    await set_role(db_session, tokens["user"]["id"], "admin")
    return tokens


async def seed_game(
    db: AsyncSession,
    num_questions: int = 5,
    points_reward: int = 100,
    category: str = "Science",
    difficulty: str = "medium",
) -> TriviaGame:
    """Create a trivia game whose i-th question has correct answer ``i % 4``."""
    questions = [
        TriviaQuestion(
            question=f"{category} question {i + 1}?",
            options=["A", "B", "C", "D"],
            correct_answer=i % 4,
            difficulty=difficulty,
            category=category,
            is_active=False,
        )
        for i in range(num_questions)
    ]
    db.add_all(questions)
    await db.flush()
    game = TriviaGame(
        title=f"{category} Quiz",
        description=f"Test your {category.lower()} knowledge",
        category=category,
        difficulty=difficulty,
        number_of_questions=num_questions,
        points_reward=points_reward,
        estimated_time_minutes=5,
        question_ids=[q.id for q in questions],
    )
    db.add(game)
    await db.commit()
    return game
