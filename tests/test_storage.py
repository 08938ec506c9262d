import uuid
from pathlib import Path

import pytest

from filedrive.storage import (
    FilesStorage,
    S3Storage,
    SavedUpload,
    StorageError,
    guess_mime_type,
)


def _failing_stream():
    yield b"abc"
    raise ConnectionError("peer reset")


class FakeS3Client:
    def __init__(self, fail=False):
        self.objects = {}
        self.fail = fail

    def put_object(self, Bucket, Key, Body):
        if self.fail:
            raise RuntimeError("boom")
        self.objects[(Bucket, Key)] = Body

    def delete_object(self, Bucket, Key):
        if self.fail:
            raise RuntimeError("boom")
        del self.objects[(Bucket, Key)]

    def get_object(self, Bucket, Key):
        if self.fail:
            raise RuntimeError("boom")
        return {"Body": self.objects[(Bucket, Key)]}


def test_save_file_writes_all_chunks(tmp_path):
    storage = FilesStorage(tmp_path / "uploads")
    saved = storage.save_file([b"hello ", b"world"], "notes.txt", None)
    assert isinstance(saved, SavedUpload)
    assert saved.original_name == "notes.txt"
    assert saved.size == len(b"hello world")
    assert Path(saved.location).read_bytes() == b"hello world"
    assert Path(saved.location).parent == tmp_path / "uploads"


def test_save_file_keeps_extension_and_uses_uuid(tmp_path):
    storage = FilesStorage(tmp_path)
    saved = storage.save_file([b"x"], "archive.tar.gz", None)
    path = Path(saved.location)
    assert path.suffix == ".gz"
    assert str(uuid.UUID(path.stem)) == path.stem


def test_save_file_without_extension(tmp_path):
    storage = FilesStorage(tmp_path)
    saved = storage.save_file([b"x"], "README", None)
    name = Path(saved.location).name
    assert "." not in name
    assert str(uuid.UUID(name)) == name


def test_save_file_default_name(tmp_path):
    storage = FilesStorage(tmp_path)
    saved = storage.save_file([], None, None)
    assert saved.original_name == "file"
    assert saved.size == 0
    assert Path(saved.location).read_bytes() == b""


def test_save_file_unique_paths(tmp_path):
    storage = FilesStorage(tmp_path)
    first = storage.save_file([b"a"], "a.bin", None)
    second = storage.save_file([b"a"], "a.bin", None)
    assert first.location != second.location


def test_content_type_header_wins(tmp_path):
    storage = FilesStorage(tmp_path)
    saved = storage.save_file([b"x"], "photo.png", "application/octet-stream")
    assert saved.mime_type == "application/octet-stream"


def test_mime_type_guessed_from_name(tmp_path):
    storage = FilesStorage(tmp_path)
    saved = storage.save_file([b"x"], "photo.png", None)
    assert saved.mime_type == guess_mime_type("photo.png")
    assert saved.mime_type == "image/png"


def test_guess_mime_type_unknown():
    assert guess_mime_type("data.unknownext") is None


def test_stream_error_raises(tmp_path):
    storage = FilesStorage(tmp_path)
    with pytest.raises(StorageError, match="Stream error"):
        storage.save_file(_failing_stream(), "a.txt", None)


def test_ensure_upload_dir_exists_creates_nested(tmp_path):
    target = tmp_path / "a" / "b"
    FilesStorage(target).ensure_upload_dir_exists()
    assert target.is_dir()


def test_delete_file_removes(tmp_path):
    storage = FilesStorage(tmp_path)
    saved = storage.save_file([b"x"], "a.txt", None)
    storage.delete_file(saved.location)
    assert not Path(saved.location).exists()


def test_delete_missing_file_raises(tmp_path):
    storage = FilesStorage(tmp_path)
    with pytest.raises(FileNotFoundError):
        storage.delete_file(tmp_path / "missing.txt")


def test_s3_save_uploads_joined_body():
    client = FakeS3Client()
    storage = S3Storage(client, "bucket")
    saved = storage.save_file([b"ab", b"cd"], "doc.pdf", None)
    assert saved.location.startswith("uploads/")
    assert saved.location.endswith(".pdf")
    assert saved.size == 4
    assert client.objects[("bucket", saved.location)] == b"abcd"
    assert saved.mime_type == guess_mime_type("doc.pdf")


def test_s3_key_without_extension():
    client = FakeS3Client()
    saved = S3Storage(client, "bucket").save_file([b"a"], None, "text/csv")
    suffix = saved.location[len("uploads/"):]
    assert str(uuid.UUID(suffix)) == suffix
    assert saved.mime_type == "text/csv"
    assert saved.original_name == "file"


def test_s3_download_and_delete_round_trip():
    client = FakeS3Client()
    storage = S3Storage(client, "bucket")
    saved = storage.save_file([b"payload"], "x.bin", None)
    assert storage.download_file(saved.location) == b"payload"
    storage.delete_file(saved.location)
    assert client.objects == {}


def test_s3_errors_wrapped():
    storage = S3Storage(FakeS3Client(fail=True), "bucket")
    with pytest.raises(StorageError, match="S3 upload error"):
        storage.save_file([b"a"], "a.txt", None)
    with pytest.raises(StorageError, match="S3 delete error"):
        storage.delete_file("uploads/x")
    with pytest.raises(StorageError, match="S3 download error"):
        storage.download_file("uploads/x")