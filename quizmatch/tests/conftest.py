from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from quizmatch.app import app, get_catalog, get_notifier, get_rate_limiter
from quizmatch.db.database import Base, get_db
from quizmatch.ratelimit import InMemoryRateLimiter
from quizmatch.recommendations.catalog import DataFrameCatalog
from quizmatch.tests.helpers import SAMPLE_PRODUCTS, STYLE_QUIZ, RecordingNotifier, add_quiz


@pytest.fixture
def engine(tmp_path):
    # File-backed so every session gets its own connection.
    eng = create_engine(
        f"sqlite:///{tmp_path / 'quizmatch-test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog():
    return DataFrameCatalog.from_records(SAMPLE_PRODUCTS)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def style_quiz(db):
    return add_quiz(db, STYLE_QUIZ)


@pytest.fixture
def rate_limiter():
    return InMemoryRateLimiter(max_requests=1000)


@pytest.fixture
def client(session_factory, catalog, notifier, rate_limiter):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    yield TestClient(app)
    app.dependency_overrides.clear()
