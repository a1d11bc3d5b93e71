"""
Store handle, per-request sessions and the transaction scope.

The Store owns the SQLAlchemy engine and session factory. It is built once when the
application starts (see main.create_app) and handed to request handlers through
``app.state``; nothing here is a module-level connection singleton.
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from errors import AppError, Conflict, Unexpected

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Store:
    """
    Relational store used by every service.

    Args:
        database_url: SQLAlchemy URL (postgresql://... in production, sqlite in tests)
        **engine_kwargs: Extra keyword arguments passed to create_engine

    Example:
        >>> store = Store("sqlite:///todo.db")
        >>> store.create_schema()
        >>> with store.session() as db:
        ...     db.query(models.User).count()
    """

    def __init__(self, database_url: str, **engine_kwargs: Any):
        self.database_url = database_url
        self.engine = create_engine(database_url, pool_pre_ping=True, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        logger.debug(f"Store created for dialect {self.engine.dialect.name}")

    def create_schema(self) -> None:
        # Import here so every table is registered on Base.metadata
        import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema ensured")

    def drop_schema(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database connections closed")


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request from the application's Store."""
    store: Store = request.app.state.store
    db = store.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, operation: str, conflict_message: str = "Conflicting change") -> Iterator[Session]:
    """
    Run a group of dependent writes as one all-or-nothing unit.

    Commits when the block finishes; on any failure rolls back every write in the
    group and re-raises. Application errors pass through unchanged, constraint
    violations become Conflict, anything else becomes Unexpected.

    Args:
        db: Session the writes are issued on
        operation: Name used in log messages
        conflict_message: Message for the Conflict raised on an IntegrityError

    Example:
        >>> with atomic(db, "create task"):
        ...     db.add(task)
        ...     db.flush()
        ...     replace_task_tags(db, task.id, ["work"])
    """
    try:
        yield db
        db.commit()
    except AppError:
        db.rollback()
        logger.info(f"{operation}: rolled back after application error")
        raise
    except IntegrityError as e:
        db.rollback()
        logger.info(f"{operation}: rolled back after constraint violation: {e.orig}")
        raise Conflict(conflict_message) from e
    except Exception as e:
        db.rollback()
        logger.exception(f"{operation}: rolled back after unexpected error")
        raise Unexpected() from e
