# leaderboard.py
from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from errors import PersistenceError
from rules.scoring import composite_score
from rules.submission import Submission, validate_submission
from utils import is_number

logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("DATA_DIR", "data"))
LEADERBOARD_FILE = DATA_DIR / "leaderboard.json"

LEADERBOARD_LIMIT = 20


# =========================
# Models
# =========================

@dataclass(frozen=True)
class ScoreEntry:
    name: str
    score: int
    difficulty: str
    timer: Any
    total_time: int
    composite_score: int
    date: str  # ISO string

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "difficulty": self.difficulty,
            "timer": self.timer,
            "totalTime": self.total_time,
            "compositeScore": self.composite_score,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "ScoreEntry":
        """Rebuild a persisted row. Raises TypeError/KeyError/ValueError on bad rows."""
        if not isinstance(row, dict):
            raise TypeError(f"leaderboard row must be an object, got {type(row).__name__}")
        for key in ("score", "totalTime", "compositeScore"):
            if not is_number(row[key]):
                raise ValueError(f"leaderboard row has non-numeric {key!r}")
        return cls(
            name=str(row["name"]),
            score=row["score"],
            difficulty=row["difficulty"],
            timer=row["timer"],
            total_time=row["totalTime"],
            composite_score=row["compositeScore"],
            date=str(row["date"]),
        )


# =========================
# Ranking
# =========================

def rank_key(entry: ScoreEntry) -> Tuple[int, int, int]:
    """Best first: composite score desc, raw score desc, total time asc."""
    return (-entry.composite_score, -entry.score, entry.total_time)


def rank_entries(entries: List[ScoreEntry], limit: int = LEADERBOARD_LIMIT) -> List[ScoreEntry]:
    # sorted() is stable, so exact ties keep the earlier entry ahead
    return sorted(entries, key=rank_key)[:limit]


# =========================
# Load / persist
# =========================

def load_leaderboard() -> List[ScoreEntry]:
    """
    Read the canonical list from disk.

    A missing or corrupt file means "no scores yet" rather than an error.
    """
    try:
        with LEADERBOARD_FILE.open("r", encoding="utf-8") as f:
            rows = json.load(f)
    except FileNotFoundError:
        return []
    except (OSError, ValueError) as e:
        logger.warning(f"Leaderboard file unreadable, treating as empty: {e}")
        return []

    if not isinstance(rows, list):
        logger.warning("Leaderboard file is not a JSON array, treating as empty")
        return []

    try:
        entries = [ScoreEntry.from_dict(row) for row in rows]
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Leaderboard file has malformed rows, treating as empty: {e}")
        return []

    return rank_entries(entries)


def save_leaderboard(entries: List[ScoreEntry]) -> None:
    """
    Replace the canonical list in one step.

    Writes a temp file next to the target, fsyncs it, then renames it over
    the old file so readers see either the old list or the new one.
    """
    tmp_path: Optional[Path] = None
    try:
        LEADERBOARD_FILE.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=LEADERBOARD_FILE.parent,
            prefix=f"{LEADERBOARD_FILE.name}.",
            suffix=".tmp",
        )
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump([e.to_dict() for e in entries], f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(LEADERBOARD_FILE)
    except (OSError, TypeError, ValueError) as e:
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError:
                logger.warning(f"Could not remove temp leaderboard file {tmp_path}")
        raise PersistenceError("Failed to save score", details=str(e)) from e


# =========================
# Read / submit
# =========================

def read_leaderboard() -> List[ScoreEntry]:
    # No in-process cache: every read goes back to disk.
    return load_leaderboard()


def build_entry(submission: Submission, now: Optional[datetime] = None) -> ScoreEntry:
    now = now or datetime.now(timezone.utc)
    return ScoreEntry(
        name=submission.name,
        score=submission.score,
        difficulty=submission.difficulty,
        timer=submission.timer,
        total_time=math.floor(submission.total_time),
        composite_score=composite_score(
            submission.score, submission.difficulty, submission.total_time
        ),
        date=now.isoformat(timespec="milliseconds"),
    )


def submit_score(
    name: Any,
    score: Any,
    difficulty: Any,
    timer: Any,
    total_time: Any,
    now: Optional[datetime] = None,
) -> List[ScoreEntry]:
    """
    Record one finished round and return the new top list.

    Validation runs before anything is read or written. Two concurrent
    submits can both start from the same file; the later save wins.
    """
    submission = validate_submission(
        {
            "name": name,
            "score": score,
            "difficulty": difficulty,
            "timer": timer,
            "totalTime": total_time,
        }
    )
    entry = build_entry(submission, now=now)

    entries = load_leaderboard()
    entries.append(entry)
    top = rank_entries(entries)

    save_leaderboard(top)
    return top
