"""Fixtures for the client package: an ApiClient wired to the in-process app."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport

from pulseearn.client.api import ApiClient


class RecordingNotifier:
    """Collects toasts as (level, message) pairs."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def of(self, level: str) -> list[str]:
        return [m for lvl, m in self.messages if lvl == level]


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def transport(app_db: None, app: FastAPI) -> ASGITransport:
    return ASGITransport(app=app)


@pytest_asyncio.fixture
async def api(transport: ASGITransport) -> AsyncGenerator[ApiClient, None]:
    async with ApiClient("http://test", transport=transport) as client:
        yield client
