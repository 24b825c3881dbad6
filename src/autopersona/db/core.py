"""Engine and session plumbing.

SQLite is the default backend (one file under ~/.autopersona/data); any
SQLAlchemy URL works through ``Settings.db_url``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.types import TypeDecorator

if TYPE_CHECKING:
    from autopersona.config.settings import Settings

logger = logging.getLogger("autopersona.db")


class Base(DeclarativeBase):
    pass


class UTCDateTime(TypeDecorator):
    """Stores datetimes as naive UTC and hands them back as aware UTC.

    Keeps comparisons (``next_scheduled_at <= now``) and compare-and-set
    equality consistent on backends without native timezone support.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite gets a generous busy timeout for concurrent workers."""
    connect_args: dict = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(url, echo=echo, future=True, connect_args=connect_args)
    logger.debug("Created database engine for %s", engine.url.render_as_string(hide_password=True))
    return engine


def engine_from_settings(settings: Settings) -> Engine:
    return create_db_engine(settings.database_url)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)


def init_db(engine: Engine) -> None:
    """Create all tables that don't exist yet."""
    # Importing registers the mappings on Base.metadata
    from autopersona.db import tables  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("Database schema ready")
