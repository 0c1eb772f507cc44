"""
Error taxonomy for quiz submission.

Each ``QuizMatchError`` maps to an HTTP status and a JSON body with an
``error`` key. ``UpstreamCatalogError`` never reaches a caller: the
resolver absorbs it and moves on to the next tier.
"""
from __future__ import annotations

from typing import Any


class QuizMatchError(Exception):
    status_code: int = 500
    public_message: str = "Failed to submit quiz"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(QuizMatchError):
    status_code = 400
    public_message = "Quiz ID and answers are required"


class NotFoundError(QuizMatchError):
    status_code = 404
    public_message = "Quiz not found or not active"


class LimitReachedError(QuizMatchError):
    status_code = 429
    public_message = "Usage limit reached"

    def __init__(self, current_usage: int, limit: int, reason: str | None = None) -> None:
        super().__init__(self.public_message)
        self.current_usage = current_usage
        self.limit = limit
        self.reason = reason

    def to_body(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "message": self.reason,
            "currentUsage": self.current_usage,
            "limit": self.limit,
        }


class PersistenceError(QuizMatchError):
    status_code = 500

    def to_body(self) -> dict[str, Any]:
        # Never leak driver or SQL details to storefront callers.
        return {"error": self.public_message}


class UpstreamCatalogError(QuizMatchError):
    """Raised by catalog implementations; the resolver degrades to the next tier."""


class SideEffectError(QuizMatchError):
    """A post-commit step failed. Logged, never surfaced to the caller."""
