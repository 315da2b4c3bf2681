"""Trivia scoring.

An answer is an option index; -1 marks an unanswered question and never
counts as correct. Percentages round half up.
"""

from __future__ import annotations

import math

UNANSWERED = -1

DIFFICULTY_ORDER = ("easy", "medium", "hard")


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def is_correct(selected: int | None, correct_answer: int) -> bool:
    if selected is None or selected == UNANSWERED:
        return False
    return selected == correct_answer


def count_correct(answers: list[int], correct_answers: list[int]) -> int:
    """Number of positions where the answer matches. Missing answers are unanswered."""
    return sum(
        1
        for i, correct in enumerate(correct_answers)
        if is_correct(answers[i] if i < len(answers) else UNANSWERED, correct)
    )


def score_percent(correct: int, total: int) -> int:
    """Whole-number percentage of correct answers."""
    if total <= 0:
        return 0
    return round_half_up(100 * correct / total)


def points_for_score(score: int, points_reward: int) -> int:
    """Share of the game's reward earned at a given percentage."""
    return round_half_up(score / 100 * points_reward)


def sort_difficulties(values: list[str]) -> list[str]:
    """Known difficulties in easy, medium, hard order; unknown ones after, alphabetically."""
    known = [d for d in DIFFICULTY_ORDER if d in values]
    return known + sorted(v for v in set(values) if v not in DIFFICULTY_ORDER)
