from __future__ import annotations

import os
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from sportsmeet.core.config import settings


class Base(DeclarativeBase):
    pass


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _ensure_sqlite_dir(database_url: str) -> None:
    """Create the parent folder for file-based SQLite URLs like sqlite:///./data/x.sqlite."""
    if not database_url.startswith("sqlite:///"):
        return

    path = database_url.replace("sqlite:///", "", 1)
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)


def _sqlite_pragmas(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA busy_timeout=5000;")
        cursor.close()


def get_engine(database_url: str | None = None) -> Engine:
    url = database_url or settings.database_url

    if _is_sqlite(url):
        _ensure_sqlite_dir(url)

    connect_args = {"check_same_thread": False} if _is_sqlite(url) else {}
    engine = create_engine(url, echo=False, connect_args=connect_args, pool_pre_ping=True)

    if _is_sqlite(url):
        _sqlite_pragmas(engine)

    return engine


# Single, shared engine for the app process
engine: Engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def register_models() -> None:
    """Import every model so Base.metadata knows all tables."""
    from sportsmeet.models.events import Event, Registration  # noqa: F401
    from sportsmeet.models.messages import ChatMessage  # noqa: F401
    from sportsmeet.models.users import User  # noqa: F401


def init_db() -> None:
    """Create missing tables (in production, use migrations such as Alembic)."""
    register_models()
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session closed after each request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
