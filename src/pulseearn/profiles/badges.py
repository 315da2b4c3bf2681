"""Badge catalog seed data and progress rules.

Every badge names one criteria type and a threshold. The user statistic for
that type is compared against the threshold; ``early_adopter`` instead checks
the signup date against ``criteria["before"]``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

CRITERIA_TYPES = (
    "poll_votes",
    "polls_created",
    "trivia_completed",
    "trivia_perfect",
    "total_points",
    "spin_streak",
    "total_spins",
    "spin_jackpot",
    "ads_watched",
    "referrals",
    "early_adopter",
)

BADGE_CATALOG: list[dict[str, Any]] = [
    {
        "slug": "first_vote",
        "name": "First Vote",
        "description": "Vote on your first poll",
        "icon": "vote",
        "criteria_type": "poll_votes",
        "threshold": 1,
        "sort_order": 1,
    },
    {
        "slug": "poll_enthusiast",
        "name": "Poll Enthusiast",
        "description": "Vote on 25 polls",
        "icon": "ballot",
        "criteria_type": "poll_votes",
        "threshold": 25,
        "sort_order": 2,
    },
    {
        "slug": "poll_creator",
        "name": "Poll Creator",
        "description": "Publish a poll of your own",
        "icon": "pencil",
        "criteria_type": "polls_created",
        "threshold": 1,
        "sort_order": 3,
    },
    {
        "slug": "trivia_rookie",
        "name": "Trivia Rookie",
        "description": "Finish your first trivia challenge",
        "icon": "brain",
        "criteria_type": "trivia_completed",
        "threshold": 1,
        "sort_order": 4,
    },
    {
        "slug": "trivia_buff",
        "name": "Trivia Buff",
        "description": "Finish 25 trivia challenges",
        "icon": "books",
        "criteria_type": "trivia_completed",
        "threshold": 25,
        "sort_order": 5,
    },
    {
        "slug": "perfect_score",
        "name": "Perfect Score",
        "description": "Answer every question of a trivia game correctly",
        "icon": "star",
        "criteria_type": "trivia_perfect",
        "threshold": 1,
        "sort_order": 6,
    },
    {
        "slug": "jackpot",
        "name": "Jackpot",
        "description": "Hit the jackpot on the daily spin",
        "icon": "diamond",
        "criteria_type": "spin_jackpot",
        "threshold": 1,
        "sort_order": 7,
    },
    {
        "slug": "hot_streak",
        "name": "Hot Streak",
        "description": "Win the daily spin 7 days in a row",
        "icon": "fire",
        "criteria_type": "spin_streak",
        "threshold": 7,
        "sort_order": 8,
    },
    {
        "slug": "ad_supporter",
        "name": "Supporter",
        "description": "Watch 10 sponsored videos",
        "icon": "tv",
        "criteria_type": "ads_watched",
        "threshold": 10,
        "sort_order": 9,
    },
    {
        "slug": "connector",
        "name": "Connector",
        "description": "Refer 5 friends",
        "icon": "handshake",
        "criteria_type": "referrals",
        "threshold": 5,
        "sort_order": 10,
    },
    {
        "slug": "point_collector",
        "name": "Point Collector",
        "description": "Hold 1,000 points",
        "icon": "coins",
        "criteria_type": "total_points",
        "threshold": 1000,
        "sort_order": 11,
    },
    {
        "slug": "early_adopter",
        "name": "Early Adopter",
        "description": "Joined during the launch year",
        "icon": "rocket",
        "criteria_type": "early_adopter",
        "threshold": 1,
        "criteria": {"before": "2026-01-01T00:00:00+00:00"},
        "sort_order": 12,
    },
]


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def criteria_progress(
    criteria_type: str,
    threshold: int,
    criteria: dict[str, Any] | None,
    stats: dict[str, int],
    joined_at: datetime | None,
) -> tuple[int, int]:
    """``(progress, max_progress)`` for one badge; earned when they are equal.

    Progress is capped at the threshold. Unknown criteria types never progress.
    """
    if criteria_type == "early_adopter":
        before = (criteria or {}).get("before")
        if before is None or joined_at is None:
            return 0, 1
        return int(_as_utc(joined_at) < _as_utc(datetime.fromisoformat(before))), 1
    if criteria_type not in CRITERIA_TYPES:
        return 0, 1
    target = max(threshold, 1)
    return min(stats.get(criteria_type, 0), target), target
