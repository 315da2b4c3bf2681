"""Process-wide async Redis client, used for login lockout and rate limiting."""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 50) -> None:
    global _client  # noqa: PLW0603
    _client = redis.from_url(url, decode_responses=True, max_connections=max_connections)  # type: ignore[no-untyped-call]


def set_redis(client: redis.Redis | None) -> None:
    """Install a prebuilt client, e.g. fakeredis in tests."""
    global _client  # noqa: PLW0603
    _client = client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
    _client = None


def get_redis() -> redis.Redis:
    """FastAPI dependency returning the shared client."""
    if _client is None:
        msg = "Redis client is not initialised"
        raise RuntimeError(msg)
    return _client
