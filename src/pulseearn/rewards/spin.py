"""Spin wheel outcomes and streak bonus arithmetic.

The wheel is a cumulative table over a uniform roll in [0, 100). The streak
multiplier grows linearly with consecutive successful claims and is capped.
"""

from __future__ import annotations

import math
import secrets
from dataclasses import dataclass


@dataclass(frozen=True)
class SpinOutcome:
    result: str
    points: int
    message: str

    @property
    def success(self) -> bool:
        return self.points > 0


# (exclusive upper bound of the roll, outcome)
SPIN_TABLE: list[tuple[int, SpinOutcome]] = [
    (40, SpinOutcome("try_again", 0, "Try Again Tomorrow!")),
    (65, SpinOutcome("points_10", 10, "You won 10 points!")),
    (85, SpinOutcome("points_25", 25, "You won 25 points!")),
    (95, SpinOutcome("points_50", 50, "You won 50 points!")),
    (99, SpinOutcome("points_100", 100, "You won 100 points!")),
    (100, SpinOutcome("jackpot", 250, "JACKPOT! You won 250 points!")),
]


def roll() -> float:
    """Uniform roll in [0, 100) with two decimals of resolution."""
    return secrets.randbelow(10_000) / 100


def outcome_for_roll(value: float) -> SpinOutcome:
    """Map a roll in [0, 100) to its outcome."""
    if not 0 <= value < 100:
        msg = f"Roll out of range: {value}"
        raise ValueError(msg)
    for upper, outcome in SPIN_TABLE:
        if value < upper:
            return outcome
    return SPIN_TABLE[-1][1]


def next_streak(current: int, success: bool) -> int:
    """A successful claim extends the streak, a miss resets it."""
    return current + 1 if success else 0


def streak_multiplier(streak: int, increment: float, maximum: float) -> float:
    return min(1 + streak * increment, maximum)


def streak_bonus(base_points: int, multiplier: float) -> int:
    """Extra points on top of the base for a given multiplier."""
    if base_points <= 0:
        return 0
    # round() first so 1.1 - 1 does not floor 10 * 0.0999... down to 0
    return math.floor(round(base_points * (multiplier - 1), 6))
