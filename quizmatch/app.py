from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import BackgroundTasks, Body, Depends, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .analytics.aggregator import summarize
from .analytics.store import get_quiz_analytics, record_view
from .billing.usage import get_usage_stats
from .config import DEFAULT_CATALOG_CONFIG, DEFAULT_RATE_LIMIT_CONFIG
from .db.database import get_db, init_db
from .errors import NotFoundError, QuizMatchError, ValidationError
from .logging_config import configure_logging
from .quizzes.storefront import load_active_quiz, load_quiz, storefront_view
from .ratelimit import InMemoryRateLimiter, RateLimiter, get_client_ip, submission_key
from .recommendations.catalog import CatalogService, get_default_catalog
from .submission.models import SubmissionResult
from .submission.redaction import redact_customer
from .submission.service import submit_quiz
from .webhooks.notifier import BackgroundNotifier, Notifier, WebhookNotifier

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Quiz Recommendation API", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


# ── Collaborators (overridable in tests) ─────────────────────────────────

_notifier = WebhookNotifier()
_rate_limiter = InMemoryRateLimiter.from_config()


def get_catalog() -> CatalogService:
    return get_default_catalog()


def get_notifier() -> Notifier:
    return _notifier


def get_rate_limiter() -> RateLimiter:
    return _rate_limiter


# ── Error mapping ────────────────────────────────────────────────────────


@app.exception_handler(QuizMatchError)
async def quizmatch_error_handler(request: Request, exc: QuizMatchError) -> JSONResponse:
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/quiz/{quiz_id}")
def get_storefront_quiz(quiz_id: str, response: Response, db: Session = Depends(get_db)) -> dict:
    quiz = load_active_quiz(db, quiz_id)
    if quiz is None:
        raise NotFoundError()

    view = storefront_view(quiz)
    record_view(db, quiz_id)
    response.headers["Cache-Control"] = "public, max-age=300"
    return view


@app.post("/api/quiz/submit", response_model=SubmissionResult)
def submit(
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog),
    notifier: Notifier = Depends(get_notifier),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> SubmissionResult:
    quiz_id = payload.get("quizId") if isinstance(payload, dict) else None
    key = submission_key(str(quiz_id or "unknown"), get_client_ip(request))
    if DEFAULT_RATE_LIMIT_CONFIG.enabled:
        if not limiter.allow(key):
            retry_after = int(DEFAULT_RATE_LIMIT_CONFIG.window_seconds)
            if isinstance(limiter, InMemoryRateLimiter):
                retry_after = limiter.retry_after(key) or retry_after
            logger.warning("Rate limit exceeded for %s", key)
            return JSONResponse(
                {"error": "Too many requests. Please try again later.", "retryAfter": retry_after},
                status_code=429,
                headers={"Retry-After": str(retry_after)},
            )
        if isinstance(limiter, InMemoryRateLimiter):
            response.headers.update(limiter.headers(key))

    try:
        return submit_quiz(
            db,
            payload,
            catalog,
            BackgroundNotifier(background_tasks, notifier),
            limit=DEFAULT_CATALOG_CONFIG.recommendation_limit,
        )
    except QuizMatchError:
        raise
    except Exception:
        logger.exception("Unexpected error submitting quiz %s", quiz_id)
        raise QuizMatchError() from None


# ── Merchant endpoints ───────────────────────────────────────────────────


@app.get("/api/quiz/{quiz_id}/analytics")
def quiz_analytics(quiz_id: str, db: Session = Depends(get_db)) -> dict:
    if load_quiz(db, quiz_id) is None:
        raise NotFoundError("Quiz not found")
    return summarize(quiz_id, get_quiz_analytics(db, quiz_id))


@app.get("/api/usage/{shop}")
def usage(shop: str, db: Session = Depends(get_db)) -> dict:
    return get_usage_stats(db, shop)


# ── Compliance webhooks ──────────────────────────────────────────────────


@app.post("/webhooks/customers/redact")
def customers_redact(
    payload: dict = Body(...),
    shop_header: str | None = Header(default=None, alias="X-Shopify-Shop-Domain"),
    db: Session = Depends(get_db),
) -> dict:
    shop = shop_header or payload.get("shop_domain")
    if not shop:
        raise ValidationError("Shop domain is required")

    customer = payload.get("customer") or {}
    email = customer.get("email")
    if not email:
        return {"success": True, "message": "No email to redact"}

    deleted = redact_customer(db, shop, email)
    return {"success": True, "deleted_records": deleted}
