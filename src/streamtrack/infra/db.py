"""
Engine construction and schema bootstrap for the StreamTrack data file.

The whole store shares one DB-API connection (StaticPool); serialising access
to it is the store's job, not the engine's.
"""

from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.schema import MetaData

from .exceptions import MigrationError, StoreInitError
from .logging import get_logger
from .settings import settings

log = get_logger(__name__)

# Deterministic constraint/index names
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# Write-ahead log and shared-memory files travel with the database file.
SQLITE_SIDECAR_SUFFIXES = ("-wal", "-shm")


def migrate_legacy_file(db_path: Path, legacy_filename: str | None = None) -> bool:
    """Rename ``<dir>/<legacy_filename>`` to *db_path* if only the legacy file exists.

    Un-checkpointed ``-wal``/``-shm`` files next to the legacy file are moved
    along with it; leftovers of the same name next to *db_path* are removed so
    they are never replayed onto the migrated data.

    Returns True when a rename happened. Raises MigrationError if the rename fails.
    """
    legacy_name = legacy_filename or settings.legacy_db_filename
    legacy_path = db_path.parent / legacy_name
    if legacy_path == db_path or not legacy_path.exists() or db_path.exists():
        return False

    log.info("store.migrate", source=str(legacy_path), target=str(db_path))
    try:
        for suffix in SQLITE_SIDECAR_SUFFIXES:
            source = legacy_path.with_name(legacy_path.name + suffix)
            target = db_path.with_name(db_path.name + suffix)
            if source.exists():
                os.rename(source, target)
            elif target.exists():
                target.unlink()
        os.rename(legacy_path, db_path)
    except OSError as exc:
        raise MigrationError(f"Failed to rename {legacy_path} to {db_path}: {exc}") from exc
    return True


def create_store_engine(db_path: Path | None = None, *, echo: bool | None = None) -> Engine:
    """Create a single-connection SQLite engine.

    ``db_path=None`` gives a private in-memory database.
    """
    url = f"sqlite:///{db_path}" if db_path is not None else "sqlite://"
    engine = create_engine(
        url,
        echo=settings.echo_sql if echo is None else echo,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    if db_path is not None:

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL")
                cur.execute("PRAGMA synchronous=NORMAL")
            finally:
                cur.close()

    return engine


def init_schema(engine: Engine) -> None:
    """Create all tables and indexes if absent. Safe on a populated file."""
    # Register the ORM tables on Base.metadata
    from ..domain import entities  # noqa: F401

    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as exc:
        raise StoreInitError(f"Failed to create schema: {exc}") from exc
    log.info("store.schema_ready", url=str(engine.url))


def get_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
