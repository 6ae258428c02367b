# rules/scoring.py

import math


DIFFICULTY_MULTIPLIERS = {
    "easy": 1.0,
    "medium": 1.5,
    "hard": 2.0,
}

# One point of penalty per ten seconds spent on the round.
SECONDS_PER_PENALTY_POINT = 10
POINTS_PER_CORRECT_ANSWER = 100


def difficulty_multiplier(difficulty: str) -> float:
    """Raises KeyError for an unknown difficulty; validation rejects those first."""
    return DIFFICULTY_MULTIPLIERS[difficulty]


def base_score(score: int, total_time: float) -> int:
    """
    Correct answers minus a time penalty.

    Can go negative on very slow rounds; it is deliberately not clamped.
    """
    penalty = math.floor(total_time / SECONDS_PER_PENALTY_POINT)
    return score * POINTS_PER_CORRECT_ANSWER - penalty


def composite_score(score: int, difficulty: str, total_time: float) -> int:
    """
    Example: 8 correct on medium in 95s -> (800 - 9) * 1.5 -> 1186
    """
    return math.floor(base_score(score, total_time) * difficulty_multiplier(difficulty))
