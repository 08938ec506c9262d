"""Queries over the files and users tables."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine

from .database import DatabaseError, get_db_conn
from .models import File, NewFile, NewUser, User


class NotFoundError(DatabaseError):
    """Raised when a requested record does not exist."""


@dataclass(frozen=True)
class FileMetadata:
    """Public file details, without the storage path."""

    name: str
    mime_type: Optional[str]
    size: int
    created_at: datetime


def insert_file(pool: Engine, new: NewFile) -> File:
    """Insert a file record and return it as stored."""
    record = File(**asdict(new))
    with get_db_conn(pool) as session:
        session.add(record)
        session.flush()
        session.refresh(record)
    return record


def load_all_files(pool: Engine) -> list[File]:
    """Return every file record."""
    with get_db_conn(pool) as session:
        return list(session.scalars(select(File)))


def find_file_by_id(pool: Engine, file_id: int) -> File:
    """Return the file with the given id, or raise NotFoundError."""
    with get_db_conn(pool) as session:
        record = session.scalars(select(File).where(File.id == file_id)).first()
    if record is None:
        raise NotFoundError("Record not found")
    return record


def delete_file_by_id(pool: Engine, file_id: int) -> int:
    """Delete the file record with the given id; return the rows removed."""
    with get_db_conn(pool) as session:
        result = session.execute(delete(File).where(File.id == file_id))
        return result.rowcount


def find_files_by_name(pool: Engine, search_query: str) -> list[File]:
    """Return files whose name contains the query, ignoring case."""
    with get_db_conn(pool) as session:
        statement = select(File).where(File.name.ilike(f"%{search_query}%"))
        return list(session.scalars(statement))


def get_file_metadata(pool: Engine, file_id: int) -> FileMetadata:
    """Return public metadata of a file, or raise NotFoundError."""
    with get_db_conn(pool) as session:
        row = session.execute(
            select(File.name, File.mime_type, File.size, File.created_at).where(
                File.id == file_id
            )
        ).first()
    if row is None:
        raise NotFoundError("Record not found")
    return FileMetadata(
        name=row.name, mime_type=row.mime_type, size=row.size, created_at=row.created_at
    )


def insert_user(pool: Engine, new_user: NewUser) -> User:
    """Insert a user and return it as stored."""
    record = User(**asdict(new_user))
    with get_db_conn(pool) as session:
        session.add(record)
        session.flush()
        session.refresh(record)
    return record


def find_user_by_oauth(pool: Engine, provider: str, oauth_id: str) -> Optional[User]:
    """Return the user with this provider and provider id, if any."""
    with get_db_conn(pool) as session:
        statement = (
            select(User)
            .where(User.oauth_provider == provider)
            .where(User.oauth_user_id == oauth_id)
        )
        return session.scalars(statement).first()