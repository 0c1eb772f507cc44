from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi import BackgroundTasks

from quizmatch.config import WebhookConfig
from quizmatch.db.models import WebhookSettings
from quizmatch.tests.helpers import SHOP, RecordingNotifier
from quizmatch.webhooks.notifier import (
    EMAIL_CAPTURED,
    QUIZ_COMPLETED,
    SIGNATURE_HEADER,
    BackgroundNotifier,
    WebhookNotifier,
    sign_payload,
    verify_signature,
)

FAST = WebhookConfig(timeout=2.0, max_retries=3, base_delay=0.5)


def _response(status: int) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 400
    return resp


def _configure(db, **overrides) -> WebhookSettings:
    values = {
        "shop": SHOP,
        "quiz_completed_url": "https://hooks.test/completed",
        "email_captured_url": "https://hooks.test/email",
        "webhook_secret": "s3cret",
        "enabled": True,
    }
    values.update(overrides)
    settings = WebhookSettings(**values)
    db.add(settings)
    db.commit()
    return settings


@pytest.fixture
def webhook(session_factory):
    return WebhookNotifier(session_factory=session_factory, config=FAST)


@pytest.fixture
def post():
    with patch("quizmatch.webhooks.notifier.requests.post") as mocked:
        yield mocked


@pytest.fixture
def sleep():
    with patch("quizmatch.webhooks.notifier.time.sleep") as mocked:
        yield mocked


def test_signature_round_trip():
    body = b'{"event":"quiz_completed"}'
    signature = sign_payload(body, "s3cret")

    assert signature.startswith("sha256=")
    assert verify_signature(body, signature, "s3cret")
    assert not verify_signature(body, signature, "other")
    assert not verify_signature(body + b" ", signature, "s3cret")


def test_delivers_signed_envelope(db, webhook, post, sleep):
    _configure(db)
    post.return_value = _response(200)

    webhook.deliver(SHOP, QUIZ_COMPLETED, {"quizId": "quiz-1"})

    post.assert_called_once()
    url = post.call_args.args[0]
    kwargs = post.call_args.kwargs
    assert url == "https://hooks.test/completed"
    assert kwargs["timeout"] == 2.0
    envelope = json.loads(kwargs["data"])
    assert envelope["event"] == QUIZ_COMPLETED
    assert envelope["shop"] == SHOP
    assert envelope["quizId"] == "quiz-1"
    assert envelope["data"] == {"quizId": "quiz-1"}
    assert envelope["timestamp"]
    assert verify_signature(kwargs["data"], kwargs["headers"][SIGNATURE_HEADER], "s3cret")
    sleep.assert_not_called()


def test_event_selects_url(db, webhook, post, sleep):
    _configure(db)
    post.return_value = _response(204)

    webhook.deliver(SHOP, EMAIL_CAPTURED, {"email": "a@b.co"})

    assert post.call_args.args[0] == "https://hooks.test/email"


def test_unsigned_when_no_secret(db, webhook, post, sleep):
    _configure(db, webhook_secret=None)
    post.return_value = _response(200)

    webhook.deliver(SHOP, QUIZ_COMPLETED, {})

    assert SIGNATURE_HEADER not in post.call_args.kwargs["headers"]


def test_retries_server_errors_with_backoff(db, webhook, post, sleep):
    _configure(db)
    post.side_effect = [_response(503), requests.ConnectionError("reset"), _response(200)]

    webhook.deliver(SHOP, QUIZ_COMPLETED, {})

    assert post.call_count == 3
    assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]


def test_gives_up_after_max_retries(db, webhook, post, sleep):
    _configure(db)
    post.return_value = _response(500)

    webhook.deliver(SHOP, QUIZ_COMPLETED, {})

    assert post.call_count == 3
    assert sleep.call_count == 2


def test_client_errors_are_not_retried(db, webhook, post, sleep):
    _configure(db)
    post.return_value = _response(410)

    webhook.deliver(SHOP, QUIZ_COMPLETED, {})

    assert post.call_count == 1
    sleep.assert_not_called()


@pytest.mark.parametrize(
    "overrides",
    [
        {"enabled": False},
        {"quiz_completed_url": None},
    ],
)
def test_nothing_sent_when_not_configured(db, webhook, post, overrides):
    _configure(db, **overrides)

    webhook.deliver(SHOP, QUIZ_COMPLETED, {})

    post.assert_not_called()


def test_nothing_sent_for_unknown_shop_or_event(db, webhook, post):
    _configure(db)

    webhook.deliver("other.myshopify.com", QUIZ_COMPLETED, {})
    webhook.deliver(SHOP, "order_created", {})

    post.assert_not_called()


def test_settings_lookup_failure_is_swallowed(post):
    def _broken_session():
        raise RuntimeError("pool exhausted")

    WebhookNotifier(session_factory=_broken_session, config=FAST).deliver(SHOP, QUIZ_COMPLETED, {})

    post.assert_not_called()


def test_background_notifier_defers_delivery():
    tasks = BackgroundTasks()
    inner = RecordingNotifier()

    BackgroundNotifier(tasks, inner).deliver(SHOP, QUIZ_COMPLETED, {"quizId": "quiz-1"})

    assert inner.events == []
    assert len(tasks.tasks) == 1
    task = tasks.tasks[0]
    task.func(*task.args, **task.kwargs)
    assert inner.events == [(SHOP, QUIZ_COMPLETED, {"quizId": "quiz-1"})]
