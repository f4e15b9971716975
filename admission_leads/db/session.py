"""
admission_leads/db/session.py — SQLAlchemy engine and session factory.

Usage:
    from admission_leads.db.session import get_session

    with get_session() as db:
        ...
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from admission_leads.config import settings

_engine_options: dict = {"pool_pre_ping": True}   # reconnect on stale connections
if not settings.database_url.startswith("sqlite"):
    _engine_options.update(pool_size=5, max_overflow=10)

engine = create_engine(
    settings.database_url,
    echo=False,                  # set True to log all SQL (useful for debugging)
    **_engine_options,
)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Context manager for use in scripts and services."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
