"""
Unit of Work boundary for the StreamTrack store.

Every store operation runs inside exactly one of these: multi-statement
writes (roster sync, future-schedule replacement) commit or roll back as a
whole.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .exceptions import StorageError


@contextlib.contextmanager
def session(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Database session context manager.

    Provides Unit of Work semantics:
    - Opens a DB session
    - Yields it for use
    - On success: commits the transaction
    - On exception: rolls back and re-raises the exception
      (SQLAlchemy errors are re-raised as StorageError)
    - Always closes the session

    Usage:
        with session(factory) as db:
            db.execute(stmt)
    """
    db = factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(str(exc)) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
