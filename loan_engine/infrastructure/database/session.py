"""Database session management with connection pooling and transaction scope"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from loan_engine.config import settings
from loan_engine.domain.exceptions import ConcurrentModificationError

logger = logging.getLogger(__name__)

# Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,  # Verify connections before using
    pool_size=10,
    max_overflow=10,
    pool_recycle=3600,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    All-or-nothing unit of work on an existing session.

    Commits when the block exits cleanly; any exception rolls back every
    change made in the block and propagates. Version conflicts detected at
    flush or commit surface as ConcurrentModificationError.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning("Concurrent modification detected: %s", e)
        raise ConcurrentModificationError("record was modified by another transaction") from e
    except Exception:
        db.rollback()
        raise
