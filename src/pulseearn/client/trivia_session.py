"""
Timed trivia game session.

Phases: LOADING -> READY(q=0) -> ANSWERING -> ANSWERED -> READY(q+1) or
COMPLETED. ANSWERED lasts ``answer_delay`` seconds. The countdown runs on its
own task; when it reaches zero the game is submitted with whatever answers are
recorded, unanswered slots staying -1. COMPLETED is terminal: playing again
means building a new session.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import structlog

from pulseearn.client.errors import ClientError
from pulseearn.trivia.scoring import UNANSWERED, count_correct, score_percent

if TYPE_CHECKING:
    from pulseearn.client.api import ApiClient

logger = structlog.get_logger()

ANSWER_DELAY_SECONDS = 1.5

Submitter = Callable[[list[int]], Awaitable[dict[str, Any]]]


class TriviaPhase(str, enum.Enum):
    LOADING = "loading"
    READY = "ready"
    ANSWERING = "answering"
    ANSWERED = "answered"
    COMPLETED = "completed"


class InvalidTransitionError(RuntimeError):
    """An action was attempted in a phase that does not allow it."""


class TriviaGameSession:
    def __init__(
        self,
        game: dict[str, Any],
        submit: Submitter,
        answer_delay: float = ANSWER_DELAY_SECONDS,
        tick_seconds: float = 1.0,
    ) -> None:
        self.game = game
        self._submit = submit
        self.answer_delay = answer_delay
        self.tick_seconds = tick_seconds

        self.phase = TriviaPhase.LOADING
        self.questions: list[dict[str, Any]] = []
        self.selected_answers: list[int] = []
        self.index = 0
        self.selected: int | None = None
        self.last_answer_correct: bool | None = None
        self.remaining_seconds = int(game.get("estimated_time_minutes") or 0) * 60
        self.result: dict[str, Any] | None = None
        self.error: str | None = None

        self._timer: asyncio.Task[None] | None = None
        self._advance: asyncio.Task[None] | None = None
        self._completed = asyncio.Event()

    @property
    def current_question(self) -> dict[str, Any] | None:
        if 0 <= self.index < len(self.questions):
            return self.questions[self.index]
        return None

    def _require(self, *phases: TriviaPhase) -> None:
        if self.phase not in phases:
            msg = f"Not allowed while {self.phase.value}"
            raise InvalidTransitionError(msg)

    def load(self, questions: list[dict[str, Any]]) -> None:
        """Install the questions and start the countdown."""
        self._require(TriviaPhase.LOADING)
        if not questions:
            self.error = "This game has no questions"
            self.phase = TriviaPhase.COMPLETED
            self._completed.set()
            return
        self.questions = list(questions)
        self.selected_answers = [UNANSWERED] * len(self.questions)
        self.phase = TriviaPhase.READY
        self._timer = asyncio.create_task(self._countdown())

    def begin(self) -> None:
        self._require(TriviaPhase.READY)
        self.selected = None
        self.last_answer_correct = None
        self.phase = TriviaPhase.ANSWERING

    def select(self, option: int) -> None:
        self._require(TriviaPhase.ANSWERING)
        options = self.questions[self.index].get("options") or []
        if not 0 <= option < len(options):
            msg = "Invalid option"
            raise ValueError(msg)
        self.selected = option

    def answer(self) -> None:
        """Record the selected option and show it for ``answer_delay`` seconds."""
        self._require(TriviaPhase.ANSWERING)
        if self.selected is None:
            msg = "Select an option first"
            raise InvalidTransitionError(msg)
        self.selected_answers[self.index] = self.selected
        correct = self.questions[self.index].get("correct_answer")
        self.last_answer_correct = None if correct is None else self.selected == correct
        self.phase = TriviaPhase.ANSWERED
        self._advance = asyncio.create_task(self._advance_after_delay())

    async def _advance_after_delay(self) -> None:
        await asyncio.sleep(self.answer_delay)
        if self.phase is not TriviaPhase.ANSWERED:
            return
        if self.index >= len(self.questions) - 1:
            await self.finalize()
        else:
            self.index += 1
            self.phase = TriviaPhase.READY

    async def _countdown(self) -> None:
        while self.remaining_seconds > 0:
            await asyncio.sleep(self.tick_seconds)
            self.remaining_seconds -= 1
        logger.info("trivia_time_expired", game_id=self.game.get("id"))
        await self.finalize()

    async def expire(self) -> dict[str, Any] | None:
        """Force the end of the game now and return the submission result."""
        self.remaining_seconds = 0
        return await self.finalize()

    async def finalize(self) -> dict[str, Any] | None:
        """Submit the recorded answers once. The server response is authoritative."""
        if self.phase is TriviaPhase.COMPLETED:
            await self._completed.wait()
            return self.result
        self.phase = TriviaPhase.COMPLETED
        self._cancel_tasks()
        try:
            self.result = await self._submit(list(self.selected_answers))
        except ClientError as e:
            self.error = e.message
            logger.warning("trivia_submit_failed", game_id=self.game.get("id"), error=e.message)
        finally:
            self._completed.set()
        return self.result

    async def wait_completed(self) -> dict[str, Any] | None:
        await self._completed.wait()
        return self.result

    def local_score(self) -> int:
        """Advisory score from the served correct answers; the submission result is authoritative."""
        correct = [q.get("correct_answer", UNANSWERED) for q in self.questions]
        return score_percent(count_correct(self.selected_answers, correct), len(self.questions))

    def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        for task in (self._timer, self._advance):
            if task is not None and task is not current and not task.done():
                task.cancel()

    async def close(self) -> None:
        self._cancel_tasks()
        for task in (self._timer, self._advance):
            if task is not None and task is not asyncio.current_task():
                with contextlib.suppress(asyncio.CancelledError):
                    await task


def api_submitter(api: ApiClient, game_id: int) -> Submitter:
    async def submit(answers: list[int]) -> dict[str, Any]:
        return await api.post(f"/api/v1/trivia/games/{game_id}/submit", {"answers": answers})

    return submit


async def start_game(api: ApiClient, game_id: int, **kwargs: Any) -> TriviaGameSession:
    """Fetch a game and its questions and return a loaded session."""
    game = await api.get(f"/api/v1/trivia/games/{game_id}")
    questions = await api.get(f"/api/v1/trivia/games/{game_id}/questions")
    session = TriviaGameSession(game, api_submitter(api, game_id), **kwargs)
    session.load(questions)
    return session
