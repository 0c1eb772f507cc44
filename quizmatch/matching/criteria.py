from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Any

from .models import Answer, MatchingCriteria, ProductMatching
from .price_range import parse_price_range

logger = logging.getLogger(__name__)

BUDGET_QUESTION_RE = re.compile(r"budget|price|spend|cost|afford|willing to pay", re.IGNORECASE)


def is_budget_question(text: str | None) -> bool:
    return bool(text and BUDGET_QUESTION_RE.search(text))


def extract_criteria(quiz: Any, answers: Iterable[Answer]) -> MatchingCriteria:
    """Fold the selected options of *answers* into one set of matching criteria.

    Tags, types and hand-picked product ids are unioned across every answer.
    Price bounds come from budget questions: the option text is parsed, and
    if it yields nothing the option's explicit ``budgetMin``/``budgetMax``
    are used. When several answers carry bounds the last one wins.
    """
    criteria = MatchingCriteria()
    questions = {q.id: q for q in quiz.questions}

    for answer in answers:
        question = questions.get(answer.question_id)
        if question is None:
            logger.debug("Skipping answer for unknown question %s", answer.question_id)
            continue

        option = next((o for o in question.options if o.id == answer.option_id), None)
        if option is None:
            logger.debug(
                "Skipping answer for unknown option %s on question %s",
                answer.option_id,
                question.id,
            )
            continue

        try:
            rule = ProductMatching.from_raw(option.product_matching)
        except (ValueError, TypeError):
            logger.warning(
                "Ignoring malformed product matching on option %s", option.id, exc_info=True
            )
            rule = None

        if rule is not None:
            criteria.tags |= rule.tags
            criteria.types |= rule.types
            criteria.exact_product_ids |= rule.exact_product_ids

        if not is_budget_question(question.text):
            continue
        bounds = parse_price_range(option.text)
        if bounds is None and rule is not None:
            bounds = rule.budget
        if bounds is not None:
            criteria.min_price, criteria.max_price = bounds.min, bounds.max

    logger.debug(
        "Extracted criteria: tags=%s types=%s exact=%d price=[%s, %s]",
        sorted(criteria.tags),
        sorted(criteria.types),
        len(criteria.exact_product_ids),
        criteria.min_price,
        criteria.max_price,
    )
    return criteria
