"""
Quiz analytics counters.

All counter changes are store-level increments so that concurrent
completions or views of the same quiz never lose an update. The row is
created on first use; when two requests create it at once, the loser's
insert is rolled back to a savepoint and it increments the winner's row.
"""
from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import QuizAnalytics, utcnow

logger = logging.getLogger(__name__)


def _bump(db: Session, quiz_id: str, **increments: int) -> int:
    values = {
        name: getattr(QuizAnalytics, name) + amount for name, amount in increments.items()
    }
    values["updated_at"] = utcnow()
    result = db.execute(
        update(QuizAnalytics)
        .where(QuizAnalytics.quiz_id == quiz_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _increment(db: Session, quiz_id: str, **increments: int) -> None:
    if _bump(db, quiz_id, **increments):
        return
    try:
        with db.begin_nested():
            db.add(QuizAnalytics(quiz_id=quiz_id, **increments))
    except IntegrityError:
        logger.info("Analytics row for quiz %s created concurrently, incrementing it", quiz_id)
        if _bump(db, quiz_id, **increments) == 0:
            raise


def record_completion(db: Session, quiz_id: str, email_captured: bool) -> None:
    """Count a completion inside the caller's transaction. Does not commit."""
    increments = {"total_completions": 1}
    if email_captured:
        increments["email_capture_count"] = 1
    _increment(db, quiz_id, **increments)


def record_view(db: Session, quiz_id: str) -> None:
    """Best-effort view counter for the storefront quiz loader."""
    try:
        _increment(db, quiz_id, total_views=1)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to update view count for quiz %s", quiz_id, exc_info=True)


def get_quiz_analytics(db: Session, quiz_id: str) -> QuizAnalytics | None:
    return db.query(QuizAnalytics).filter(QuizAnalytics.quiz_id == quiz_id).first()
