"""
Quiz submission.

One submission runs ``validate -> limit-check -> resolve -> commit ->
side-effects``. Only the commit is transactional: the result row and the
analytics counters are written together or not at all.

The billed-usage increment is a separate step after the commit, outside
the transaction. It is best-effort: if it fails the shop gets one free
completion and the shopper still gets their recommendations.
"""
from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..analytics.store import record_completion
from ..billing.usage import check_and_advance, increment_completion
from ..db.models import QuizResult, utcnow
from ..errors import (
    LimitReachedError,
    NotFoundError,
    PersistenceError,
    SideEffectError,
    ValidationError,
)
from ..matching.criteria import extract_criteria
from ..quizzes.storefront import load_active_quiz
from ..recommendations.catalog import CatalogService
from ..recommendations.models import RecommendedProduct
from ..recommendations.retrieval import MAX_RECOMMENDATIONS, resolve_recommendations
from ..webhooks.notifier import EMAIL_CAPTURED, QUIZ_COMPLETED, Notifier
from .models import MAX_ANSWERS, SubmissionRequest, SubmissionResult

logger = logging.getLogger(__name__)

_FIELD_MESSAGES = {
    "quizId": "Quiz ID is required",
    "email": "Invalid email address",
    "startedAt": "Invalid startedAt timestamp",
    "completionTimeSeconds": "Invalid completionTimeSeconds",
}


def _describe(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    loc = error.get("loc") or ()
    field = loc[0] if loc else None
    if field == "answers":
        if error.get("type") == "too_long":
            return f"Too many answers (maximum {MAX_ANSWERS})"
        if error.get("type") == "too_short":
            return "At least one answer is required"
        return "Each answer needs a questionId and an optionId"
    return _FIELD_MESSAGES.get(field, "Invalid submission")


def parse_submission(payload: Any) -> SubmissionRequest:
    if isinstance(payload, SubmissionRequest):
        return payload
    if (
        not isinstance(payload, dict)
        or not payload.get("quizId")
        or not isinstance(payload.get("answers"), list)
    ):
        raise ValidationError("Quiz ID and answers are required")
    try:
        return SubmissionRequest.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


def _commit(
    db: Session,
    quiz_id: str,
    request: SubmissionRequest,
    products: list[RecommendedProduct],
    completed_at: datetime,
) -> str:
    result_id = str(uuid.uuid4())
    try:
        db.add(QuizResult(
            id=result_id,
            quiz_id=quiz_id,
            email=request.email,
            answers=json.dumps([a.model_dump(by_alias=True) for a in request.answers]),
            recommended_products=json.dumps([p.model_dump(by_alias=True) for p in products]),
            completed_at=completed_at,
            started_at=request.started_at,
            completion_time_seconds=request.completion_time_seconds,
        ))
        db.flush()
        record_completion(db, quiz_id, email_captured=request.email is not None)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to commit quiz result for quiz %s", quiz_id, exc_info=True)
        raise PersistenceError() from exc
    return result_id


def _bill(db: Session, shop: str) -> None:
    try:
        counted = increment_completion(db, shop)
    except Exception as exc:
        raise SideEffectError(f"Usage increment raised for shop {shop}") from exc
    if not counted:
        raise SideEffectError(f"Usage increment was not applied for shop {shop}")


def _notify(notifier: Notifier, shop: str, event: str, data: dict[str, Any]) -> None:
    try:
        notifier.deliver(shop, event, data)
    except Exception:
        logger.error("Failed to dispatch %s notification for shop %s", event, shop, exc_info=True)


def submit_quiz(
    db: Session,
    payload: Any,
    catalog: CatalogService,
    notifier: Notifier,
    now: datetime | None = None,
    limit: int = MAX_RECOMMENDATIONS,
) -> SubmissionResult:
    now = now or utcnow()

    # 1. Validate
    request = parse_submission(payload)
    quiz = load_active_quiz(db, request.quiz_id)
    if quiz is None:
        raise NotFoundError()
    shop, title = quiz.shop, quiz.title

    # 2. Usage gate
    usage = check_and_advance(db, shop, now)
    if not usage.allowed:
        logger.info("Submission for quiz %s blocked: %s", quiz.id, usage.reason)
        raise LimitReachedError(usage.current_usage, usage.limit, usage.reason)

    # 3. Recommendations
    criteria = extract_criteria(quiz, request.answers)
    products = resolve_recommendations(criteria, catalog, limit=limit)

    # 4. Result + analytics, all or nothing
    result_id = _commit(db, request.quiz_id, request, products, now)
    logger.info(
        "Recorded result %s for quiz %s with %d recommendations",
        result_id,
        request.quiz_id,
        len(products),
    )

    # 5. Best-effort side effects
    try:
        _bill(db, shop)
    except SideEffectError:
        logger.error("Completion not billed for shop %s", shop, exc_info=True)

    _notify(notifier, shop, QUIZ_COMPLETED, {
        "quizId": request.quiz_id,
        "quizTitle": title,
        "resultId": result_id,
        "email": request.email,
        "answerCount": len(request.answers),
        "recommendedProductIds": [p.id for p in products],
    })
    if request.email:
        _notify(notifier, shop, EMAIL_CAPTURED, {
            "quizId": request.quiz_id,
            "quizTitle": title,
            "resultId": result_id,
            "email": request.email,
        })

    return SubmissionResult(result_id=result_id, recommended_products=products)
