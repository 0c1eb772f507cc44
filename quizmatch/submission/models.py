from __future__ import annotations

import re
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..matching.models import Answer
from ..recommendations.models import RecommendedProduct

MAX_ANSWERS = 50
MAX_EMAIL_LENGTH = 254

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SubmissionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    quiz_id: str = Field(..., min_length=1)
    email: str | None = Field(default=None, max_length=MAX_EMAIL_LENGTH)
    answers: list[Answer] = Field(..., min_length=1, max_length=MAX_ANSWERS)
    started_at: datetime | None = None
    completion_time_seconds: float | None = Field(default=None, ge=0)

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email_is_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value or None

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value: str | None) -> str | None:
        if value is not None and not EMAIL_RE.match(value):
            raise ValueError("invalid email address")
        return value

    @field_validator("started_at")
    @classmethod
    def _naive_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class SubmissionResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    result_id: str
    recommended_products: list[RecommendedProduct]
