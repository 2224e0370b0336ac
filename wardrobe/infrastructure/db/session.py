"""
Engine, session factory and unit-of-work helpers
"""
from contextlib import contextmanager
from typing import Iterator

import psycopg
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from wardrobe.config import get_settings


class Base(DeclarativeBase):
    """Declarative base of every budget, ledger and item-store table"""
    pass


_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def get_engine() -> Engine:
    """Process-wide engine, created on first use from DATABASE_URL"""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(
            settings.get_sqlalchemy_url(),
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
            echo=settings.DB_ECHO,
        )
    return _engine


def get_session_factory() -> sessionmaker:
    """
    Process-wide session factory

    autoflush is off: use cases flush explicitly before reading back rows
    they have just added (ledger sequence, event ids).
    """
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session for work outside a request (refresh job, scripts); always closed.

    Commits stay with the use cases.
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request"""
    with session_scope() as db:
        yield db


def check_db_connection() -> None:
    """
    Readiness probe: open a raw psycopg connection and run SELECT 1

    Raises:
        psycopg.OperationalError: the database is unreachable
    """
    with psycopg.connect(get_settings().DATABASE_URL, connect_timeout=3) as conn:
        conn.execute("SELECT 1").fetchone()
