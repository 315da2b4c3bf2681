"""Trivia game catalog and submission tests."""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import seed_game


class TestCatalog:
    async def test_games_sorted_by_category_then_difficulty(
        self, authed_client: AsyncClient, db_session: AsyncSession
    ):
        await seed_game(db_session, category="Sports", difficulty="hard")
        await seed_game(db_session, category="History", difficulty="hard")
        await seed_game(db_session, category="History", difficulty="easy")

        response = await authed_client.get("/api/v1/trivia/games")
        assert response.status_code == 200
        games = response.json()
        assert [(g["category"], g["difficulty"]) for g in games] == [
            ("History", "easy"),
            ("History", "hard"),
            ("Sports", "hard"),
        ]
        assert all(g["has_played"] is False for g in games)

    async def test_filter_by_category(self, authed_client: AsyncClient, db_session: AsyncSession):
        await seed_game(db_session, category="Sports")
        await seed_game(db_session, category="History")
        response = await authed_client.get("/api/v1/trivia/games", params={"category": "Sports"})
        assert [g["category"] for g in response.json()] == ["Sports"]

        everything = await authed_client.get("/api/v1/trivia/games", params={"category": "all"})
        assert len(everything.json()) == 2

    async def test_categories_and_difficulties(self, authed_client: AsyncClient, db_session: AsyncSession):
        await seed_game(db_session, category="Sports", difficulty="hard")
        await seed_game(db_session, category="History", difficulty="easy")

        categories = await authed_client.get("/api/v1/trivia/categories")
        assert categories.json() == ["History", "Sports"]
        difficulties = await authed_client.get("/api/v1/trivia/difficulties")
        assert difficulties.json() == ["easy", "hard"]

    async def test_game_questions_carry_answers(self, authed_client: AsyncClient, db_session: AsyncSession):
        game = await seed_game(db_session, num_questions=3)
        response = await authed_client.get(f"/api/v1/trivia/games/{game.id}/questions")
        assert response.status_code == 200
        questions = response.json()
        assert len(questions) == 3
        assert questions[0]["question"] == "Science question 1?"
        assert [q["correct_answer"] for q in questions] == [0, 1, 2]

    async def test_unknown_game(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/trivia/games/9999")
        assert response.status_code == 404


class TestSubmit:
    async def test_partial_score(self, authed_client: AsyncClient, db_session: AsyncSession):
        game = await seed_game(db_session, num_questions=5, points_reward=100)
        # Correct answers are [0, 1, 2, 3, 0]; three right, one wrong, one timed out
        response = await authed_client.post(
            f"/api/v1/trivia/games/{game.id}/submit",
            json={"answers": [0, 1, 2, 0, -1]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 60
        assert data["correct_answers"] == 3
        assert data["total_questions"] == 5
        assert data["points_earned"] == 60
        assert data["correct_answer_indexes"] == [0, 1, 2, 3, 0]

    async def test_perfect_score_badge(self, authed_client: AsyncClient, db_session: AsyncSession):
        game = await seed_game(db_session, num_questions=4, points_reward=80)
        response = await authed_client.post(
            f"/api/v1/trivia/games/{game.id}/submit",
            json={"answers": [0, 1, 2, 3]},
        )
        assert response.json()["points_earned"] == 80

        profile = await authed_client.get("/api/v1/profiles/me")
        assert profile.json()["badges"] == ["trivia_rookie", "perfect_score"]
        assert profile.json()["points"] == 80

    async def test_replay_earns_nothing(self, authed_client: AsyncClient, db_session: AsyncSession):
        game = await seed_game(db_session, num_questions=5)
        await authed_client.post(f"/api/v1/trivia/games/{game.id}/submit", json={"answers": [0, 1, 2, 3, 0]})

        replay = await authed_client.post(
            f"/api/v1/trivia/games/{game.id}/submit",
            json={"answers": [0, 1, 2, 3, 0]},
        )
        data = replay.json()
        assert data["points_earned"] == 0
        assert "already earned points" in data["message"]

        listing = await authed_client.get("/api/v1/trivia/games")
        assert listing.json()[0]["has_played"] is True

    async def test_zero_score_can_be_retried_for_points(
        self, authed_client: AsyncClient, db_session: AsyncSession
    ):
        game = await seed_game(db_session, num_questions=2, points_reward=50)
        miss = await authed_client.post(f"/api/v1/trivia/games/{game.id}/submit", json={"answers": [-1, -1]})
        assert miss.json()["points_earned"] == 0

        retry = await authed_client.post(f"/api/v1/trivia/games/{game.id}/submit", json={"answers": [0, 1]})
        assert retry.json()["points_earned"] == 50

    async def test_stats(self, authed_client: AsyncClient, db_session: AsyncSession):
        first = await seed_game(db_session, num_questions=5)
        second = await seed_game(db_session, num_questions=4, category="History")
        await authed_client.post(f"/api/v1/trivia/games/{first.id}/submit", json={"answers": [0, 1, 2, 0, -1]})
        await authed_client.post(f"/api/v1/trivia/games/{second.id}/submit", json={"answers": [0, 1, 2, 3]})

        response = await authed_client.get("/api/v1/trivia/me/stats")
        assert response.json() == {"total_games_played": 2, "best_score": 100}

    async def test_submit_unknown_game(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/trivia/games/9999/submit", json={"answers": []})
        assert response.status_code == 404
