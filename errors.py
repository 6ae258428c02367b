# errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class QuizBackendError(Exception):
    """Base error; carries the HTTP status the request boundary should use."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# =========================
# Leaderboard
# =========================

class ValidationError(QuizBackendError):
    status_code = 400

    def __init__(self, fields: Dict[str, str]):
        self.fields = dict(fields)
        names = ", ".join(self.fields)
        super().__init__(f"Missing or invalid fields: {names}")

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "fields": self.fields}


class PersistenceError(QuizBackendError):
    status_code = 500


# =========================
# Plex gateway
# =========================

class NotConfigured(QuizBackendError):
    status_code = 400


class NoLibraryFound(QuizBackendError):
    status_code = 404


class ProviderUnavailable(QuizBackendError):
    status_code = 500


class ProviderTimeout(ProviderUnavailable):
    pass
