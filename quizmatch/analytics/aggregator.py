from __future__ import annotations

from typing import Any

from ..db.models import QuizAnalytics


def summarize(quiz_id: str, row: QuizAnalytics | None) -> dict[str, Any]:
    views = row.total_views if row else 0
    completions = row.total_completions if row else 0
    emails = row.email_capture_count if row else 0

    return {
        "quiz_id": quiz_id,
        "total_views": views,
        "total_completions": completions,
        "email_capture_count": emails,
        "completion_rate": round(completions / views * 100, 1) if views else 0.0,
        "email_capture_rate": round(emails / completions * 100, 1) if completions else 0.0,
    }
