"""Timed trivia game session state machine."""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.client.api import ApiClient
from pulseearn.client.errors import RemoteServiceError
from pulseearn.client.trivia_session import (
    InvalidTransitionError,
    TriviaGameSession,
    TriviaPhase,
    start_game,
)
from tests.conftest import register, seed_game

QUESTIONS = [
    {"id": 1, "question": "One?", "options": ["A", "B", "C"], "correct_answer": 0},
    {"id": 2, "question": "Two?", "options": ["A", "B", "C"], "correct_answer": 2},
]


class FakeSubmitter:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[list[int]] = []
        self.fail = fail

    async def __call__(self, answers: list[int]) -> dict:
        self.calls.append(answers)
        if self.fail:
            raise RemoteServiceError("Network down")
        return {"score": 50, "answers": answers}


async def _settle(session: TriviaGameSession) -> None:
    while session.phase is TriviaPhase.ANSWERED:
        await asyncio.sleep(0)


async def _play(session: TriviaGameSession, option: int) -> None:
    session.begin()
    session.select(option)
    session.answer()
    await _settle(session)


def _session(submit: FakeSubmitter, minutes: int = 1, tick: float = 10.0) -> TriviaGameSession:
    return TriviaGameSession({"id": 7, "estimated_time_minutes": minutes}, submit, answer_delay=0, tick_seconds=tick)


class TestTransitions:
    async def test_walks_through_questions(self):
        submit = FakeSubmitter()
        session = _session(submit)
        assert session.phase is TriviaPhase.LOADING
        session.load(QUESTIONS)
        assert session.phase is TriviaPhase.READY
        assert session.remaining_seconds == 60

        await _play(session, 0)
        assert session.phase is TriviaPhase.READY
        assert session.index == 1
        assert session.last_answer_correct is True

        session.begin()
        session.select(1)
        session.answer()
        assert session.last_answer_correct is False
        result = await session.wait_completed()

        assert session.phase is TriviaPhase.COMPLETED
        assert submit.calls == [[0, 1]]
        assert result == {"score": 50, "answers": [0, 1]}
        assert session.local_score() == 50

    async def test_actions_rejected_out_of_phase(self):
        session = _session(FakeSubmitter())
        with pytest.raises(InvalidTransitionError):
            session.begin()
        session.load(QUESTIONS)
        with pytest.raises(InvalidTransitionError):
            session.answer()
        session.begin()
        with pytest.raises(InvalidTransitionError, match="Select an option first"):
            session.answer()
        with pytest.raises(ValueError, match="Invalid option"):
            session.select(3)
        await session.close()

    async def test_completed_is_terminal(self):
        submit = FakeSubmitter()
        session = _session(submit)
        session.load(QUESTIONS)
        await session.expire()
        await session.finalize()

        assert submit.calls == [[-1, -1]]
        with pytest.raises(InvalidTransitionError):
            session.begin()

    async def test_empty_game_completes_without_submitting(self):
        submit = FakeSubmitter()
        session = _session(submit)
        session.load([])
        assert session.phase is TriviaPhase.COMPLETED
        assert session.error == "This game has no questions"
        assert await session.wait_completed() is None
        assert submit.calls == []

    async def test_countdown_submits_recorded_answers(self):
        submit = FakeSubmitter()
        session = _session(submit, minutes=1, tick=0.001)
        session.load(QUESTIONS)
        await _play(session, 0)

        await asyncio.wait_for(session.wait_completed(), timeout=5)
        assert session.remaining_seconds == 0
        assert submit.calls == [[0, -1]]

    async def test_expire_returns_submission(self):
        submit = FakeSubmitter()
        session = _session(submit)
        session.load(QUESTIONS)
        await _play(session, 0)

        result = await session.expire()
        assert result == {"score": 50, "answers": [0, -1]}
        assert session.result == result

    async def test_submit_failure_recorded(self):
        submit = FakeSubmitter(fail=True)
        session = _session(submit)
        session.load(QUESTIONS)
        result = await session.expire()
        assert submit.calls == [[-1, -1]]
        assert result is None
        assert session.result is None
        assert session.error == "Network down"
        assert session.phase is TriviaPhase.COMPLETED


class TestAgainstApi:
    async def test_full_game(self, api: ApiClient, client, db_session: AsyncSession):
        game = await seed_game(db_session)
        tokens = await register(client)
        api.access_token = tokens["access_token"]

        session = await start_game(api, game.id, answer_delay=0, tick_seconds=0.01)
        assert len(session.questions) == 5
        assert [q["correct_answer"] for q in session.questions] == [0, 1, 2, 3, 0]

        await _play(session, 0)
        assert session.last_answer_correct is True
        await _play(session, 0)
        assert session.last_answer_correct is False
        for option in [2, 0]:
            await _play(session, option)
        session.begin()
        session.select(3)
        session.answer()
        result = await asyncio.wait_for(session.wait_completed(), timeout=5)

        assert result["score"] == 40
        assert result["points_earned"] == 40
        assert session.local_score() == result["score"]
        assert result["correct_answer_indexes"] == [0, 1, 2, 3, 0]

    async def test_expired_game_submits_blanks(self, api: ApiClient, client, db_session: AsyncSession):
        game = await seed_game(db_session)
        tokens = await register(client)
        api.access_token = tokens["access_token"]

        session = await start_game(api, game.id, answer_delay=0, tick_seconds=10)
        await _play(session, 0)
        await _play(session, 1)
        result = await session.expire()

        assert result["score"] == 40
        assert result["correct_answers"] == 2
        assert session.local_score() == 40
