"""Shared data builders for the test suite."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from quizmatch.db.models import Question, QuestionOption, Quiz, QuizAnalytics, Subscription

SHOP = "test-shop.myshopify.com"

SAMPLE_PRODUCTS: list[dict[str, Any]] = [
    {"id": "p-casual-cheap", "variant_id": "v-1", "title": "Canvas Sneaker", "handle": "canvas-sneaker",
     "status": "active", "price": 40.0, "currency": "USD", "tags": "casual", "product_type": "Shoes",
     "image_url": "https://cdn.test/sneaker.jpg", "images": "https://cdn.test/sneaker.jpg", "url": None},
    {"id": "p-casual-mid", "variant_id": "v-2", "title": "Linen Shirt", "handle": "linen-shirt",
     "status": "active", "price": 80.0, "currency": "USD", "tags": "casual,summer", "product_type": "Shirts",
     "image_url": None, "images": None, "url": "https://shop.test/products/linen-shirt"},
    {"id": "p-casual-upper", "variant_id": "v-3", "title": "Weekend Chino", "handle": "weekend-chino",
     "status": "active", "price": 140.0, "currency": "USD", "tags": "casual", "product_type": "Pants",
     "image_url": None, "images": None, "url": None},
    {"id": "p-formal-mid", "variant_id": "v-4", "title": "Silk Tie", "handle": "silk-tie",
     "status": "active", "price": 60.0, "currency": "USD", "tags": "formal", "product_type": "Accessories",
     "image_url": None, "images": None, "url": None},
    {"id": "p-formal-high", "variant_id": "v-5", "title": "Wool Blazer", "handle": "wool-blazer",
     "status": "active", "price": 240.0, "currency": "USD", "tags": "formal", "product_type": "Jackets",
     "image_url": None, "images": None, "url": None},
    {"id": "p-casual-archived", "variant_id": "v-6", "title": "Old Denim", "handle": "old-denim",
     "status": "archived", "price": 90.0, "currency": "USD", "tags": "casual", "product_type": "Jackets",
     "image_url": None, "images": None, "url": None},
]


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict]] = []

    def deliver(self, shop: str, event: str, data: dict) -> None:
        self.events.append((shop, event, data))


def add_quiz(
    db,
    questions: list[dict[str, Any]],
    *,
    quiz_id: str = "quiz-1",
    shop: str = SHOP,
    status: str = "active",
    with_analytics: bool = True,
) -> Quiz:
    """Create a quiz from ``[{"id", "text", "options": [{"id", "text", "matching"}]}]``."""
    quiz = Quiz(id=quiz_id, shop=shop, title="Style finder", status=status)
    for q_pos, q in enumerate(questions):
        question = Question(id=q["id"], text=q["text"], order=q_pos)
        for o_pos, o in enumerate(q["options"]):
            matching = o.get("matching")
            if matching is not None and not isinstance(matching, str):
                matching = json.dumps(matching)
            question.options.append(
                QuestionOption(id=o["id"], text=o["text"], order=o_pos, product_matching=matching)
            )
        quiz.questions.append(question)
    if with_analytics:
        quiz.analytics = QuizAnalytics()
    db.add(quiz)
    db.commit()
    return quiz


def add_subscription(
    db,
    *,
    shop: str = SHOP,
    tier: str = "free",
    completions: int = 0,
    start: datetime,
    end: datetime,
    status: str = "active",
) -> Subscription:
    sub = Subscription(
        shop=shop,
        tier=tier,
        current_period_completions=completions,
        current_period_start=start,
        current_period_end=end,
        status=status,
    )
    db.add(sub)
    db.commit()
    return sub


STYLE_QUIZ = [
    {
        "id": "q-budget",
        "text": "What's your budget?",
        "options": [
            {"id": "o-low", "text": "Under $50"},
            {"id": "o-mid", "text": "$50-$150"},
            {"id": "o-high", "text": "Over $150"},
        ],
    },
    {
        "id": "q-style",
        "text": "Pick a style",
        "options": [
            {"id": "o-casual", "text": "Casual", "matching": {"tags": ["casual"]}},
            {"id": "o-formal", "text": "Formal", "matching": {"tags": ["formal"]}},
            {"id": "o-picked", "text": "Staff pick", "matching": {"productIds": ["p-formal-high"]}},
        ],
    },
]

