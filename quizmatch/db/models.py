from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite has no timezone-aware column type."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _uuid() -> str:
    return str(uuid.uuid4())


class Quiz(Base):
    __tablename__ = "quiz"

    id = Column(String(36), primary_key=True, default=_uuid)
    shop = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="draft")  # draft | active
    settings = Column(Text, nullable=True)  # JSON
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    questions = relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.order",
    )
    results = relationship("QuizResult", back_populates="quiz", cascade="all, delete-orphan")
    analytics = relationship(
        "QuizAnalytics", back_populates="quiz", uselist=False, cascade="all, delete-orphan"
    )


class Question(Base):
    __tablename__ = "question"

    id = Column(String(36), primary_key=True, default=_uuid)
    quiz_id = Column(String(36), ForeignKey("quiz.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(String, nullable=False)
    type = Column(String, nullable=False, default="single_choice")
    order = Column(Integer, nullable=False, default=0)
    conditional_rules = Column(Text, nullable=True)  # JSON, opaque to matching

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "QuestionOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionOption.order",
    )


class QuestionOption(Base):
    __tablename__ = "question_option"

    id = Column(String(36), primary_key=True, default=_uuid)
    question_id = Column(
        String(36), ForeignKey("question.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    product_matching = Column(Text, nullable=True)  # JSON: {tags, types, productIds, budgetMin, budgetMax}
    order = Column(Integer, nullable=False, default=0)

    question = relationship("Question", back_populates="options")


class QuizResult(Base):
    __tablename__ = "quiz_result"

    id = Column(String(36), primary_key=True, default=_uuid)
    quiz_id = Column(String(36), ForeignKey("quiz.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(254), nullable=True, index=True)
    answers = Column(Text, nullable=False)  # JSON
    recommended_products = Column(Text, nullable=False)  # JSON
    completed_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    started_at = Column(DateTime, nullable=True)
    completion_time_seconds = Column(Float, nullable=True)

    quiz = relationship("Quiz", back_populates="results")


class QuizAnalytics(Base):
    __tablename__ = "quiz_analytics"

    id = Column(String(36), primary_key=True, default=_uuid)
    quiz_id = Column(
        String(36), ForeignKey("quiz.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    total_views = Column(Integer, nullable=False, default=0)
    total_completions = Column(Integer, nullable=False, default=0)
    email_capture_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    quiz = relationship("Quiz", back_populates="analytics")


class Subscription(Base):
    """Per-shop usage counter and billing tier."""

    __tablename__ = "subscription"

    id = Column(String(36), primary_key=True, default=_uuid)
    shop = Column(String, nullable=False, unique=True, index=True)
    tier = Column(String, nullable=False, default="free")
    current_period_completions = Column(Integer, nullable=False, default=0)
    current_period_start = Column(DateTime, nullable=False, default=utcnow)
    current_period_end = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default="active")  # active | pending | cancelled | frozen
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class WebhookSettings(Base):
    __tablename__ = "webhook_settings"

    id = Column(String(36), primary_key=True, default=_uuid)
    shop = Column(String, nullable=False, unique=True, index=True)
    quiz_completed_url = Column(String, nullable=True)
    email_captured_url = Column(String, nullable=True)
    webhook_secret = Column(String, nullable=True)
    enabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
