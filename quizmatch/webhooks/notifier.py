"""
Outbound event notifications.

``WebhookNotifier`` posts signed JSON to the URL a shop configured for the
event. Delivery retries with exponential backoff on network errors and 5xx
responses, gives up immediately on 4xx, and never raises to the caller.
"""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

import requests
from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import DEFAULT_WEBHOOK_CONFIG, WebhookConfig
from ..db.database import SessionLocal
from ..db.models import WebhookSettings

logger = logging.getLogger(__name__)

QUIZ_COMPLETED = "quiz_completed"
EMAIL_CAPTURED = "email_captured"

_URL_FIELDS = {
    QUIZ_COMPLETED: "quiz_completed_url",
    EMAIL_CAPTURED: "email_captured_url",
}

SIGNATURE_HEADER = "X-QuizMatch-Signature"


class Notifier(Protocol):
    def deliver(self, shop: str, event: str, data: dict[str, Any]) -> None:
        ...


def sign_payload(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    return hmac.compare_digest(sign_payload(body, secret), signature)


class WebhookNotifier:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        config: WebhookConfig = DEFAULT_WEBHOOK_CONFIG,
    ) -> None:
        self._session_factory = session_factory
        self.config = config

    def _target(self, shop: str, event: str) -> tuple[str, str | None] | None:
        field = _URL_FIELDS.get(event)
        if field is None:
            return None
        db = self._session_factory()
        try:
            settings = db.execute(
                select(WebhookSettings).where(WebhookSettings.shop == shop)
            ).scalar_one_or_none()
        finally:
            db.close()

        if settings is None or not settings.enabled:
            return None
        url = getattr(settings, field)
        if not url:
            return None
        return url, settings.webhook_secret

    def deliver(self, shop: str, event: str, data: dict[str, Any]) -> None:
        try:
            target = self._target(shop, event)
        except Exception:
            logger.error("Could not load webhook settings for shop %s", shop, exc_info=True)
            return
        if target is None:
            return

        url, secret = target
        payload = {
            "event": event,
            "shop": shop,
            "quizId": data.get("quizId"),
            "quizTitle": data.get("quizTitle"),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }
        self._post_with_retries(url, payload, secret)

    def _post_with_retries(self, url: str, payload: dict[str, Any], secret: str | None) -> bool:
        body = json.dumps(payload, separators=(",", ":")).encode()
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.config.user_agent,
        }
        if secret:
            headers[SIGNATURE_HEADER] = sign_payload(body, secret)

        for attempt in range(1, self.config.max_retries + 1):
            try:
                resp = requests.post(url, data=body, headers=headers, timeout=self.config.timeout)
                if resp.ok:
                    logger.info("Webhook %s delivered to %s on attempt %d", payload["event"], url, attempt)
                    return True
                logger.warning(
                    "Webhook attempt %d to %s failed with status %s", attempt, url, resp.status_code
                )
                if 400 <= resp.status_code < 500:
                    return False
            except requests.RequestException as exc:
                logger.warning("Webhook attempt %d to %s failed: %s", attempt, url, exc)

            if attempt < self.config.max_retries:
                time.sleep(self.config.base_delay * 2 ** (attempt - 1))

        logger.error("Webhook delivery to %s failed after %d attempts", url, self.config.max_retries)
        return False


class BackgroundNotifier:
    """Defers delivery until after the HTTP response has been sent."""

    def __init__(self, tasks: BackgroundTasks, notifier: Notifier) -> None:
        self._tasks = tasks
        self._notifier = notifier

    def deliver(self, shop: str, event: str, data: dict[str, Any]) -> None:
        self._tasks.add_task(self._notifier.deliver, shop, event, data)
