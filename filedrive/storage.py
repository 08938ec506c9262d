"""Storage back ends for uploaded file contents: local disk and S3."""

from __future__ import annotations

import mimetypes
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Any, Optional, Union

UPLOAD_DIR = "./uploads/"
DEFAULT_FILENAME = "file"
S3_KEY_PREFIX = "uploads/"


class StorageError(Exception):
    """Raised when file contents cannot be stored, read or removed."""


@dataclass(frozen=True)
class SavedUpload:
    """Result of storing an upload: its name, location, size and type."""

    original_name: str
    location: Union[Path, str]
    size: int
    mime_type: Optional[str]


def guess_mime_type(filename: str) -> Optional[str]:
    """Guess a MIME type from the file name's extension."""
    mime_type, _ = mimetypes.guess_type(filename, strict=False)
    return mime_type


def _extension(filename: str) -> str:
    name = PurePath(filename).name
    if name == "..":
        return ""
    dot = name.rfind(".")
    if dot <= 0:
        return ""
    return name[dot + 1 :]


def _unique_name(filename: str) -> str:
    file_id = str(uuid.uuid4())
    ext = _extension(filename)
    return f"{file_id}.{ext}" if ext else file_id


def _read_chunks(chunks: Iterable[bytes]) -> Iterator[bytes]:
    iterator = iter(chunks)
    while True:
        try:
            chunk = next(iterator)
        except StopIteration:
            return
        except Exception as exc:
            raise StorageError(f"Stream error: {exc}") from exc
        yield bytes(chunk)


class FilesStorage:
    """Stores uploads as files under a local directory."""

    def __init__(self, upload_dir: Union[str, Path] = UPLOAD_DIR) -> None:
        self.upload_dir = Path(upload_dir)

    def save_file(
        self,
        chunks: Iterable[bytes],
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> SavedUpload:
        """Write the chunks to a new uniquely named file and describe it."""
        try:
            self.ensure_upload_dir_exists()
        except OSError as exc:
            raise StorageError(f"Failed to create upload directory: {exc}") from exc

        original_name = filename or DEFAULT_FILENAME
        file_path = self.upload_dir / _unique_name(original_name)

        try:
            handle = file_path.open("wb")
        except OSError as exc:
            raise StorageError(f"Failed to create file: {exc}") from exc

        size = 0
        with handle:
            for chunk in _read_chunks(chunks):
                size += len(chunk)
                try:
                    handle.write(chunk)
                except OSError as exc:
                    raise StorageError(f"Write error: {exc}") from exc

        mime_type = content_type or guess_mime_type(original_name)
        return SavedUpload(original_name, file_path, size, mime_type)

    def delete_file(self, file_path: Union[str, Path]) -> None:
        """Remove a stored file; OSError is raised if that fails."""
        Path(file_path).unlink()

    def ensure_upload_dir_exists(self) -> None:
        """Create the upload directory and its parents if missing."""
        self.upload_dir.mkdir(parents=True, exist_ok=True)


class S3Storage:
    """Stores uploads as objects in an S3 bucket.

    The client is any object offering put_object, delete_object and
    get_object with Bucket, Key and Body keyword arguments.
    """

    def __init__(self, client: Any, bucket_name: str) -> None:
        self.client = client
        self.bucket_name = str(bucket_name)

    def save_file(
        self,
        chunks: Iterable[bytes],
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> SavedUpload:
        """Upload the chunks as one object under a unique key."""
        original_name = filename or DEFAULT_FILENAME
        key = S3_KEY_PREFIX + _unique_name(original_name)

        body = b"".join(_read_chunks(chunks))

        try:
            self.client.put_object(Bucket=self.bucket_name, Key=key, Body=body)
        except Exception as exc:
            raise StorageError(f"S3 upload error: {exc}") from exc

        mime_type = content_type or guess_mime_type(original_name)
        return SavedUpload(original_name, key, len(body), mime_type)

    def delete_file(self, key: str) -> None:
        """Delete the object stored under the key."""
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=str(key))
        except Exception as exc:
            raise StorageError(f"S3 delete error: {exc}") from exc

    def download_file(self, key: str) -> Any:
        """Return the body stream of the object stored under the key."""
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=str(key))
            return response["Body"]
        except Exception as exc:
            raise StorageError(f"S3 download error: {exc}") from exc