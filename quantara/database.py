"""SQLite datastore handle with an explicit open/close lifecycle."""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from quantara.exceptions import StorageError
from quantara.logger import get_logger
from quantara.tables import Base

logger = get_logger(__name__)


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and hands out transaction-scoped sessions.

    One instance is opened at process start, passed to every component that
    needs storage, and closed at shutdown.
    """

    def __init__(self, url: str):
        self.url = url
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def open(self) -> None:
        """Create the engine and any missing tables."""
        if self._engine is not None:
            return

        kwargs = {"connect_args": {"check_same_thread": False}}
        if self._is_memory():
            # Every session must see the same in-memory database
            kwargs["poolclass"] = StaticPool

        engine = create_engine(self.url, **kwargs)
        event.listen(engine, "connect", _enable_foreign_keys)
        Base.metadata.create_all(bind=engine)

        self._engine = engine
        self._sessionmaker = sessionmaker(
            bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
        )
        logger.info("database_opened", url=self.url)

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("database_closed", url=self.url)

    @contextmanager
    def session_scope(self, operation: str) -> Iterator[Session]:
        """Run one unit of work: commit on success, roll back on any error.

        SQLAlchemy failures are re-raised as ``StorageError`` so callers never
        see driver exceptions.
        """
        if self._sessionmaker is None:
            raise RuntimeError("Database is not open")

        session = self._sessionmaker()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("storage_error", operation=operation, error=str(e))
            raise StorageError(operation) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _is_memory(self) -> bool:
        return self.url in ("sqlite://", "sqlite:///:memory:")
