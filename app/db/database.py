"""Database engine and session management."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import DatabaseSettings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine suited to the URL's backend.

    SQLite connections are shared across the request threadpool, and an
    in-memory SQLite database is pinned to a single connection so every
    session sees the same tables.
    """
    parsed = make_url(url)
    kwargs: dict = {"echo": echo}

    if parsed.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(url, **kwargs)

    if parsed.get_backend_name() == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


class Database:
    """Own the engine and hand out sessions and transactions.

    Built once at startup and shared by reference, so tests can create
    isolated instances against throwaway databases.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.engine = build_engine(url, echo=echo)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, db_settings: DatabaseSettings) -> Database:
        return cls(db_settings.url, echo=db_settings.echo)

    def create_all(self) -> None:
        """Create every table registered on ``Base`` that does not exist yet."""
        # Import models so they register on the metadata
        from app.models import post  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info(
            "db.schema_ready",
            extra={"backend": self.engine.url.get_backend_name()},
        )

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Read-only unit of work: the session is always closed, never committed."""
        session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Transactional unit of work.

        Commits when the block exits normally, rolls back on any exception
        and closes the session on every path.

        Example:
            with db.transaction() as session:
                session.add(post)
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            logger.warning("db.transaction_rolled_back")
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
