# backend/core/database.py

from contextlib import contextmanager
from typing import Any, Iterator
import json

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def json_serializer(value: Any) -> str:
    """Serializer for JSON columns. Keeps non-ASCII text as-is so LIKE filters can match it."""
    return json.dumps(value, ensure_ascii=False)


class Database:
    """Engine and session factory for one application instance."""

    def __init__(self, url: str, echo: bool = False):
        engine_kwargs = {
            "echo": echo,
            "pool_pre_ping": True,
            "json_serializer": json_serializer,
        }

        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url in {"sqlite://", "sqlite:///:memory:"}:
                engine_kwargs["poolclass"] = StaticPool

        self.url = url
        self.engine = create_engine(url, **engine_kwargs)
        self.session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session for work done outside a request."""
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.services.database.session_factory()
    try:
        yield db
    finally:
        db.close()
