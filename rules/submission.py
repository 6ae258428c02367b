# rules/submission.py

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

from errors import ValidationError
from rules.scoring import DIFFICULTY_MULTIPLIERS
from utils import is_number, is_present


MAX_NAME_LENGTH = 20

# Keeps score * 100 * multiplier and time / 10 well inside float range.
MAX_SCORE = 10**9
MAX_TOTAL_TIME = 10**12


@dataclass(frozen=True)
class Submission:
    name: str
    score: int
    difficulty: str
    timer: Any
    total_time: Union[int, float]


def clean_player_name(name_raw: str) -> str:
    """Strip ends and cut to the display limit."""
    return (name_raw or "").strip()[:MAX_NAME_LENGTH]


def _check_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        return "Name is required."
    return ""


def _check_score(value: Any) -> str:
    if value is None:
        return "Score is required."
    if not is_number(value):
        return "Score must be a number."
    if value > MAX_SCORE:
        return "Score is out of range."
    if value < 0:
        return "Score cannot be negative."
    if not math.isfinite(value):
        return "Score must be a number."
    if value != int(value):
        return "Score must be a whole number."
    return ""


def _check_difficulty(value: Any) -> str:
    if not is_present(value):
        return "Difficulty is required."
    if not isinstance(value, str) or value not in DIFFICULTY_MULTIPLIERS:
        allowed = ", ".join(DIFFICULTY_MULTIPLIERS)
        return f"Difficulty must be one of: {allowed}."
    return ""


def _check_timer(value: Any) -> str:
    # Opaque label from the client; only its presence matters.
    if not is_present(value):
        return "Timer setting is required."
    return ""


def _check_total_time(value: Any) -> str:
    if value is None:
        return "Total time is required."
    if not is_number(value):
        return "Total time must be a number."
    if value > MAX_TOTAL_TIME:
        return "Total time is out of range."
    if value < 0:
        return "Total time cannot be negative."
    if not math.isfinite(value):
        return "Total time must be a number."
    return ""


_CHECKS = (
    ("name", _check_name),
    ("score", _check_score),
    ("difficulty", _check_difficulty),
    ("timer", _check_timer),
    ("totalTime", _check_total_time),
)


def validate_submission(payload: Mapping[str, Any]) -> Submission:
    """
    Check a raw leaderboard submission and return the cleaned values.

    Every field is checked so the error lists all problems at once.
    Raises ValidationError; nothing is written when it does.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError({"body": "Expected a JSON object."})

    problems: Dict[str, str] = {}
    for field, check in _CHECKS:
        err = check(payload.get(field))
        if err:
            problems[field] = err

    if problems:
        raise ValidationError(problems)

    return Submission(
        name=clean_player_name(payload["name"]),
        score=int(payload["score"]),
        difficulty=payload["difficulty"],
        timer=payload["timer"],
        total_time=payload["totalTime"],
    )
