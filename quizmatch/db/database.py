from __future__ import annotations

from collections.abc import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..config import DEFAULT_DB_CONFIG, DatabaseConfig

Base = declarative_base()


def build_engine(config: DatabaseConfig = DEFAULT_DB_CONFIG) -> Engine:
    connect_args: dict = {}
    if config.url.startswith("sqlite"):
        # FastAPI runs sync handlers in a threadpool.
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(config.url, echo=config.echo, connect_args=connect_args)


engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    # Import models so they register on Base.metadata.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
