"""
Per-shop usage counting and tier enforcement.

Concurrency rules:

* Period rollover is a conditional UPDATE guarded by
  ``current_period_end < now``. Whichever request's UPDATE matches the row
  performed the reset; every other request re-reads the row instead of
  trusting its stale copy. No application locks are taken.
* The completion increment is a single store-level ``x = x + 1`` with its
  own commit, run after the submission transaction. It is best-effort and
  not idempotent: a retried call counts twice.
"""
from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import Subscription, utcnow
from .tiers import DEFAULT_TIER, get_tier

logger = logging.getLogger(__name__)

LIMIT_REACHED_REASON = "Monthly completion limit reached. Please upgrade your plan."
INACTIVE_REASON = "Subscription is not active"


def add_months(moment: datetime, months: int = 1) -> datetime:
    """Calendar month arithmetic, clamped to the last day of the target month.

    ``add_months(datetime(2024, 1, 31))`` is 2024-02-29, never March 2nd.
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class UsageCheck:
    allowed: bool
    current_usage: int
    limit: int
    tier: str
    reason: str | None = None
    rolled_over: bool = False


def _find(db: Session, shop: str) -> Subscription | None:
    stmt = (
        select(Subscription)
        .where(Subscription.shop == shop)
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def get_or_create_subscription(db: Session, shop: str, now: datetime | None = None) -> Subscription:
    now = now or utcnow()
    subscription = _find(db, shop)
    if subscription is not None:
        return subscription

    subscription = Subscription(
        shop=shop,
        tier=DEFAULT_TIER,
        current_period_completions=0,
        current_period_start=now,
        current_period_end=add_months(now, 1),
        status="active",
    )
    db.add(subscription)
    try:
        db.commit()
    except IntegrityError:
        # Another request created it first.
        db.rollback()
        subscription = _find(db, shop)
        if subscription is None:
            raise
        return subscription

    logger.info("Created %s usage counter for shop %s", DEFAULT_TIER, shop)
    db.refresh(subscription)
    return subscription


def _roll_over(db: Session, shop: str, now: datetime) -> bool:
    """Reset the period if it is still expired. True if this call did it."""
    result = db.execute(
        update(Subscription)
        .where(Subscription.shop == shop, Subscription.current_period_end < now)
        .values(
            current_period_completions=0,
            current_period_start=now,
            current_period_end=add_months(now, 1),
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def check_and_advance(db: Session, shop: str, now: datetime | None = None) -> UsageCheck:
    """Decide whether *shop* may record another completion, rolling the period if due."""
    now = now or utcnow()
    subscription = get_or_create_subscription(db, shop, now)
    tier = get_tier(subscription.tier)

    if subscription.status != "active":
        return UsageCheck(
            allowed=False,
            reason=INACTIVE_REASON,
            current_usage=subscription.current_period_completions,
            limit=tier.monthly_completions,
            tier=subscription.tier,
        )

    rolled_over = False
    if now > subscription.current_period_end:
        rolled_over = _roll_over(db, shop, now)
        if rolled_over:
            logger.info("Rolled over usage period for shop %s", shop)
            return UsageCheck(
                allowed=True,
                current_usage=0,
                limit=tier.monthly_completions,
                tier=subscription.tier,
                rolled_over=True,
            )
        # Lost the race: someone else reset it, trust the stored row.
        db.refresh(subscription)

    usage = subscription.current_period_completions
    within_limit = tier.is_unlimited or usage < tier.monthly_completions
    return UsageCheck(
        allowed=within_limit,
        reason=None if within_limit else LIMIT_REACHED_REASON,
        current_usage=usage,
        limit=tier.monthly_completions,
        tier=subscription.tier,
        rolled_over=rolled_over,
    )


def increment_completion(db: Session, shop: str) -> bool:
    """Count one billed completion. Never raises; returns False when the write failed."""
    try:
        result = db.execute(
            update(Subscription)
            .where(Subscription.shop == shop)
            .values(current_period_completions=Subscription.current_period_completions + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Failed to increment completion count for shop %s", shop, exc_info=True)
        return False

    if result.rowcount != 1:
        logger.error("No usage counter to increment for shop %s", shop)
        return False
    return True


def get_usage_stats(db: Session, shop: str, now: datetime | None = None) -> dict:
    now = now or utcnow()
    subscription = get_or_create_subscription(db, shop, now)
    tier = get_tier(subscription.tier)
    usage = subscription.current_period_completions

    percent_used = 0 if tier.is_unlimited else round(usage / tier.monthly_completions * 100)
    seconds_left = (subscription.current_period_end - now).total_seconds()

    return {
        "tier": subscription.tier,
        "tier_name": tier.name,
        "current_usage": usage,
        "limit": tier.monthly_completions,
        "percent_used": percent_used,
        "days_until_reset": math.ceil(seconds_left / 86400),
        "period_start": subscription.current_period_start.isoformat(),
        "period_end": subscription.current_period_end.isoformat(),
        "status": subscription.status,
    }
