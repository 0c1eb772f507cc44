"""
Runtime configuration for the quiz recommendation service.

Every setting has a sensible default and can be overridden through the
environment or a ``.env`` file at the project root.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

_DATA_DIR = Path(__file__).resolve().parent / "data"


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = os.getenv("DATABASE_URL", "sqlite:///./quizmatch.db")
    echo: bool = os.getenv("DATABASE_ECHO", "0") == "1"


@dataclass(frozen=True)
class CatalogConfig:
    csv_path: Path = Path(os.getenv("CATALOG_CSV", str(_DATA_DIR / "catalog.csv")))
    timeout: float = float(os.getenv("CATALOG_TIMEOUT_SECONDS", "5.0"))
    recommendation_limit: int = int(os.getenv("RECOMMENDATION_LIMIT", "6"))


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "10"))
    window_seconds: float = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "1") == "1"


@dataclass(frozen=True)
class WebhookConfig:
    timeout: float = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10.0"))
    max_retries: int = int(os.getenv("WEBHOOK_MAX_RETRIES", "3"))
    base_delay: float = float(os.getenv("WEBHOOK_BASE_DELAY_SECONDS", "1.0"))
    user_agent: str = "QuizMatch-Webhook/1.0"


DEFAULT_DB_CONFIG = DatabaseConfig()
DEFAULT_CATALOG_CONFIG = CatalogConfig()
DEFAULT_RATE_LIMIT_CONFIG = RateLimitConfig()
DEFAULT_WEBHOOK_CONFIG = WebhookConfig()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
