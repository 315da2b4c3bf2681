"""
Read-model holders exposing ``data``, ``loading``, ``error`` and ``refetch()``.

Each holder issues its own reads; nothing is shared or cached between them.
After ``close()`` an in-flight fetch no longer updates the holder.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import structlog

from pulseearn.client.errors import ClientError, Result

if TYPE_CHECKING:
    from pulseearn.client.api import ApiClient

logger = structlog.get_logger()

T = TypeVar("T")


class Resource(ABC, Generic[T]):
    def __init__(self, api: ApiClient) -> None:
        self.api = api
        self.data: T | None = None
        self.loading = False
        self.error: str | None = None
        self._mounted = True

    @abstractmethod
    async def _fetch(self) -> T:
        """Read the current value from the API."""

    async def refetch(self) -> Result[T]:
        self.loading = True
        self.error = None
        try:
            data = await self._fetch()
        except ClientError as e:
            if self._mounted:
                self.error = e.message
                self.loading = False
            logger.info("resource_fetch_failed", resource=type(self).__name__, error=e.message)
            return Result.failure(e)
        if self._mounted:
            self.data = data
            self.loading = False
        return Result.success(data)

    def close(self) -> None:
        self._mounted = False


class RewardStatusResource(Resource[dict[str, Any]]):
    """Daily reward status plus the claim actions, which refetch status on success."""

    async def _fetch(self) -> dict[str, Any]:
        return await self.api.get("/api/v1/rewards/status")

    async def _action(self, method: str, path: str, body: Any = None) -> Result[dict[str, Any]]:
        try:
            result = await self.api.request(method, path, json=body)
        except ClientError as e:
            self.error = e.message
            return Result.failure(e)
        await self.refetch()
        return Result.success(result)

    async def spin(self) -> Result[dict[str, Any]]:
        return await self._action("POST", "/api/v1/rewards/spin")

    async def daily_trivia_question(self, country: str | None = None) -> Result[dict[str, Any]]:
        try:
            return Result.success(await self.api.get("/api/v1/rewards/trivia/daily", country=country))
        except ClientError as e:
            return Result.failure(e)

    async def answer_trivia(self, question_id: int, selected_answer: int) -> Result[dict[str, Any]]:
        return await self._action(
            "POST",
            "/api/v1/rewards/trivia/daily",
            {"question_id": question_id, "selected_answer": selected_answer},
        )

    async def watch_ad(self) -> Result[dict[str, Any]]:
        return await self._action("POST", "/api/v1/rewards/ad-watch")


class RewardHistoryResource(Resource[list[dict[str, Any]]]):
    def __init__(
        self,
        api: ApiClient,
        limit: int = 50,
        reward_type: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> None:
        super().__init__(api)
        self.limit = limit
        self.reward_type = reward_type
        self.start_date = start_date
        self.end_date = end_date

    async def _fetch(self) -> list[dict[str, Any]]:
        body = await self.api.get(
            "/api/v1/rewards/history",
            limit=self.limit,
            reward_type=self.reward_type,
            start_date=self.start_date.isoformat() if self.start_date else None,
            end_date=self.end_date.isoformat() if self.end_date else None,
        )
        return body["entries"]


class LeaderboardResource(Resource[list[dict[str, Any]]]):
    def __init__(self, api: ApiClient, limit: int = 50, country: str | None = None) -> None:
        super().__init__(api)
        self.limit = limit
        self.country = country

    async def _fetch(self) -> list[dict[str, Any]]:
        return await self.api.get("/api/v1/leaderboard", limit=self.limit, country=self.country)


class AmbassadorDashboardResource(Resource[dict[str, Any]]):
    async def _fetch(self) -> dict[str, Any]:
        return await self.api.get("/api/v1/ambassador/me/dashboard")
