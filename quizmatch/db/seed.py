"""
Seed a demo style quiz for local runs.

Usage:
    python -m quizmatch.db.seed
"""
from __future__ import annotations

import json
import logging

from sqlalchemy.orm import Session

from .database import SessionLocal, init_db
from .models import Question, QuestionOption, Quiz, QuizAnalytics

logger = logging.getLogger(__name__)

DEMO_SHOP = "demo-store.myshopify.com"

quiz_data = {
    "id": "demo-style-quiz",
    "title": "Find your style",
    "questions": [
        {
            "id": "q-budget",
            "text": "What's your budget?",
            "options": [
                {"id": "o-budget-low", "text": "Under $50"},
                {"id": "o-budget-mid", "text": "$50-$150"},
                {"id": "o-budget-high", "text": "Over $150"},
            ],
        },
        {
            "id": "q-style",
            "text": "Which style fits you best?",
            "options": [
                {"id": "o-style-casual", "text": "Laid back", "matching": {"tags": ["casual"]}},
                {"id": "o-style-formal", "text": "Sharp", "matching": {"tags": ["formal"]}},
                {"id": "o-style-active", "text": "On the move", "matching": {"tags": ["sport"], "types": ["Shoes"]}},
            ],
        },
        {
            "id": "q-pick",
            "text": "Want to see our staff pick?",
            "options": [
                {"id": "o-pick-yes", "text": "Yes please", "matching": {"productIds": ["prod-1004"]}},
                {"id": "o-pick-no", "text": "No thanks"},
            ],
        },
    ],
}


def seed_demo_quiz(db: Session, shop: str = DEMO_SHOP, data: dict = quiz_data) -> Quiz:
    existing = db.get(Quiz, data["id"])
    if existing:
        return existing

    quiz = Quiz(id=data["id"], shop=shop, title=data["title"], status="active")
    for q_pos, q in enumerate(data["questions"]):
        question = Question(id=q["id"], text=q["text"], order=q_pos)
        for o_pos, o in enumerate(q["options"]):
            matching = o.get("matching")
            question.options.append(QuestionOption(
                id=o["id"],
                text=o["text"],
                order=o_pos,
                product_matching=json.dumps(matching) if matching else None,
            ))
        quiz.questions.append(question)
    quiz.analytics = QuizAnalytics()

    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    return quiz


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    session = SessionLocal()
    try:
        seeded = seed_demo_quiz(session)
        logger.info("Seeded quiz %s for %s", seeded.id, seeded.shop)
    finally:
        session.close()
