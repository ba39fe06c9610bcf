"""Database base configuration"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def utcnow() -> datetime:
    """UTC 'now' as tz-naive datetime (what we store and compare against)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or url.startswith("sqlite:///:memory:?")


class Store:
    """Explicit handle on the relational store.

    Created once at process start, handed to every component that reads or
    writes, and closed once at shutdown.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        kwargs = {}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(database_url):
                # One shared connection, otherwise every session sees an empty database.
                kwargs["poolclass"] = StaticPool
        self.engine = create_engine(database_url, **kwargs)
        # Rows handed back to callers stay readable after their session closes.
        self._sessionmaker = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )
        self._closed = False

    def init_schema(self) -> None:
        """Create all tables"""
        # Ensure all models are imported so metadata is populated.
        import jiramirror.models  # noqa: F401  (import for side-effects)

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        if self._closed:
            raise RuntimeError("Store is closed")
        return self._sessionmaker()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on error."""
        db = self.session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def close(self) -> None:
        if self._closed:
            return
        self.engine.dispose()
        self._closed = True
        logger.info("Store closed")
