from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..db.models import Question, Quiz

logger = logging.getLogger(__name__)


def load_quiz(db: Session, quiz_id: str) -> Quiz | None:
    """Load a quiz with its questions and options in two extra queries."""
    stmt = (
        select(Quiz)
        .where(Quiz.id == quiz_id)
        .options(selectinload(Quiz.questions).selectinload(Question.options))
    )
    return db.execute(stmt).scalar_one_or_none()


def load_active_quiz(db: Session, quiz_id: str) -> Quiz | None:
    quiz = load_quiz(db, quiz_id)
    if quiz is None or quiz.status != "active":
        return None
    return quiz


def _json_or(raw: str | None, default: Any, what: str, owner_id: str) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Failed to parse %s for %s", what, owner_id)
        return default


def storefront_view(quiz: Quiz) -> dict[str, Any]:
    """Public shape of a quiz. Matching rules stay server-side."""
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "settings": _json_or(quiz.settings, {}, "settings", quiz.id),
        "questions": [
            {
                "id": q.id,
                "text": q.text,
                "type": q.type,
                "conditionalRules": _json_or(q.conditional_rules, None, "conditional rules", q.id),
                "options": [
                    {"id": o.id, "text": o.text, "imageUrl": o.image_url}
                    for o in q.options
                ],
            }
            for q in quiz.questions
        ],
    }
