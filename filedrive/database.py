"""Database engine creation and scoped sessions."""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session


class DatabaseError(Exception):
    """Raised when the database cannot be reached or a query fails."""


def create_pool(database_url: str) -> Engine:
    """Create a pooled engine for the given database URL."""
    try:
        return create_engine(database_url)
    except (SQLAlchemyError, ValueError) as exc:
        raise DatabaseError(f"Failed to create database pool: {exc}") from exc


def create_pool_from_env() -> Engine:
    """Create a pooled engine from the DATABASE_URL environment variable."""
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL must be set")
    return create_pool(database_url)


@contextmanager
def get_db_conn(pool: Engine) -> Iterator[Session]:
    """Yield a session bound to the pool, committing on success.

    Failures to connect and errors raised by the database are re-raised
    as DatabaseError; other exceptions roll back and pass through.
    """
    session = Session(pool, expire_on_commit=False)
    try:
        session.connection()
    except SQLAlchemyError as exc:
        session.close()
        raise DatabaseError(f"DB pool error: {exc}") from exc
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise DatabaseError(str(exc)) from exc
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()