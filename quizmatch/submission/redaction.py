from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.models import Quiz, QuizResult

logger = logging.getLogger(__name__)


def redact_customer(db: Session, shop: str, email: str | None) -> int:
    """Delete the quiz results a customer left on *shop*'s quizzes.

    Returns the number of deleted rows. Analytics counters are aggregates
    and are left alone.
    """
    if not email:
        return 0

    shop_quizzes = select(Quiz.id).where(Quiz.shop == shop)
    result = db.execute(
        delete(QuizResult)
        .where(QuizResult.email == email, QuizResult.quiz_id.in_(shop_quizzes))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    logger.info("Redacted %d quiz results for a customer of shop %s", result.rowcount, shop)
    return result.rowcount
