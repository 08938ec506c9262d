"""HTTP application: file upload, listing, download, deletion and Google sign-in."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO, Optional

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request
from sqlalchemy.engine import Engine

from .database import DatabaseError, create_pool_from_env
from .google_oauth import GoogleOAuthClient, OAuthError
from .models import NewFile, NewUser
from .repositories import (
    NotFoundError,
    delete_file_by_id,
    find_file_by_id,
    find_files_by_name,
    find_user_by_oauth,
    get_file_metadata,
    insert_file,
    insert_user,
    load_all_files,
)
from .schemas import OAuthCallbackQuery, SearchQuery
from .storage import UPLOAD_DIR, FilesStorage, StorageError, guess_mime_type
from .tokens import COOKIE_NAME, Unauthorized, authenticate, create_jwt

log = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
_CHUNK_SIZE = 64 * 1024
_METADATA_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class _HttpError(Exception):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


def _request_chunks(stream: BinaryIO) -> Iterator[bytes]:
    while chunk := stream.read(_CHUNK_SIZE):
        yield chunk


def _stream_file(handle: BinaryIO) -> Iterator[bytes]:
    with handle:
        yield from _request_chunks(handle)


def _redirect(location: str) -> Response:
    return Response(status=302, headers={"Location": location})


def create_app(
    pool: Engine,
    storage: FilesStorage,
    oauth_client: GoogleOAuthClient,
    secret: Optional[bytes] = None,
) -> Flask:
    """Build the application around a database pool, storage and OAuth client."""
    app = Flask(__name__)

    @app.errorhandler(_HttpError)
    def _handle_http_error(exc: _HttpError) -> Response:
        return Response(exc.message, status=exc.status, mimetype="text/plain")

    @app.errorhandler(Unauthorized)
    def _handle_unauthorized(exc: Unauthorized) -> Response:
        return Response("Unauthorized", status=401, mimetype="text/plain")

    def current_user():
        return authenticate(request.cookies, secret)

    @app.get("/api/files")
    def list_files():
        log.info("Fetching all uploaded files")
        try:
            files = load_all_files(pool)
        except DatabaseError as exc:
            log.error("DB error while loading files: %s", exc)
            raise _HttpError(500, f"DB error: {exc}") from exc
        return jsonify([record.to_dict() for record in files])

    @app.post("/api/files")
    def upload_file():
        user = current_user()
        log.info("User: %s is uploading a file", user.user_id)
        try:
            saved = storage.save_file(
                _request_chunks(request.stream),
                request.headers.get("X-Filename"),
                request.headers.get("Content-Type"),
            )
        except StorageError as exc:
            raise _HttpError(500, str(exc)) from exc
        log.debug("Saved file: %s, size: %s", saved.original_name, saved.size)

        new_file = NewFile(
            name=saved.original_name,
            storage_path=str(saved.location),
            size=saved.size,
            mime_type=guess_mime_type(saved.original_name) or DEFAULT_MIME_TYPE,
            user_id=user.user_id,
        )
        try:
            insert_file(pool, new_file)
        except DatabaseError as exc:
            raise _HttpError(500, f"DB insert error: {exc}") from exc
        log.info("Inserted file '%s' into DB", saved.original_name)
        return jsonify("File uploaded successfully")

    @app.get("/api/files/search")
    def search_files():
        try:
            query = SearchQuery.from_mapping(request.args)
        except ValueError as exc:
            raise _HttpError(400, f"Query deserialize error: {exc}") from exc
        log.info("Searching files by name %s:", query.q)
        try:
            files = find_files_by_name(pool, query.q)
        except DatabaseError as exc:
            response = jsonify(f"Database error: {exc}")
            response.status_code = 500
            return response
        return jsonify([record.to_dict() for record in files])

    @app.get("/api/files/<int:file_id>")
    def download_file(file_id: int):
        log.info("Downloading file with ID: %s", file_id)
        try:
            record = find_file_by_id(pool, file_id)
        except DatabaseError as exc:
            log.warning("File not found for download: %s", exc)
            raise _HttpError(404, f"File not found: {exc}") from exc

        log.debug("Opening file from path: %s", record.storage_path)
        try:
            handle = Path(record.storage_path).open("rb")
        except OSError as exc:
            raise _HttpError(500, f"Failed to open file: {exc}") from exc

        return Response(
            _stream_file(handle),
            status=200,
            content_type=record.mime_type or DEFAULT_MIME_TYPE,
            headers={
                "Content-Disposition": f'attachment; filename="{record.name}"'
            },
        )

    @app.delete("/api/files/<int:file_id>")
    def delete_file(file_id: int):
        user = current_user()
        log.info("User %s attempts to delete file ID %s", user.user_id, file_id)
        try:
            record = find_file_by_id(pool, file_id)
        except DatabaseError as exc:
            log.warning("File not found for deletion: %s", exc)
            raise _HttpError(404, f"File not found: {exc}") from exc

        if record.user_id != user.user_id:
            log.warning(
                "User %s tried to delete someone else's file (ID: %s)",
                user.user_id,
                record.id,
            )
            raise _HttpError(403, "You do not own this file")

        log.debug("Deleting file from storage: %s", record.storage_path)
        try:
            storage.delete_file(record.storage_path)
        except (OSError, StorageError) as exc:
            raise _HttpError(500, f"Failed to delete file: {exc}") from exc

        try:
            delete_file_by_id(pool, record.id)
        except DatabaseError as exc:
            raise _HttpError(500, f"DB delete error: {exc}") from exc
        return jsonify("File deleted successfully")

    @app.get("/api/files/<int:file_id>/meta")
    def get_metadata(file_id: int):
        log.info("Fetching metadata for file_id: %s", file_id)
        try:
            meta = get_file_metadata(pool, file_id)
        except NotFoundError as exc:
            log.warning("Metadata not found for file_id %s", file_id)
            raise _HttpError(404, "File not found") from exc
        except DatabaseError as exc:
            log.error("Error fetching metadata: %s", exc)
            raise _HttpError(500, f"Database error: {exc}") from exc
        return jsonify(
            {
                "name": meta.name,
                "mime_type": meta.mime_type,
                "size": meta.size,
                "created_at": meta.created_at.strftime(_METADATA_TIME_FORMAT),
            }
        )

    @app.get("/auth/google")
    def google_auth():
        auth_url, _state = oauth_client.authorize_url()
        log.info("Redirecting to Google OAuth URL: %s", auth_url)
        return _redirect(auth_url)

    @app.get("/auth/google/callback")
    def google_callback():
        try:
            query = OAuthCallbackQuery.from_mapping(request.args)
        except ValueError as exc:
            raise _HttpError(400, f"Query deserialize error: {exc}") from exc

        if query.code is not None and query.error is None:
            return _complete_sign_in(query.code)
        if query.code is None and query.error is not None:
            log.error("OAuth error received: %s", query.error)
            return _redirect(f"/auth-error?error={query.error}")
        log.error("Invalid OAuth callback request")
        return _redirect("/auth-error?error=invalid_request")

    def _complete_sign_in(code: str) -> Response:
        log.info("Received OAuth callback with code")
        try:
            access_token = oauth_client.exchange_code(code)
        except OAuthError as exc:
            log.error("Token exchange failed: %s", exc)
            raise _HttpError(500, "Token exchange failed") from exc
        log.info("Token exchange successful")

        try:
            user_info = oauth_client.fetch_user_info(access_token)
        except OAuthError as exc:
            log.error("%s", exc)
            raise _HttpError(500, str(exc).partition(":")[0]) from exc
        log.info(
            "Fetched user info: email=%r, id=%r", user_info.email, user_info.sub
        )

        try:
            existing = find_user_by_oauth(pool, "google", user_info.sub)
        except DatabaseError as exc:
            log.error("Database error: %s", exc)
            raise _HttpError(500, "Database error") from exc

        if existing is not None:
            log.info("User already exists in DB: id=%s", existing.id)
            user_id = str(existing.id)
        else:
            log.info("User not found in DB, inserting new user")
            new_user = NewUser(
                oauth_provider="google",
                oauth_user_id=user_info.sub,
                email=user_info.email,
                username=user_info.name,
                avatar_url=user_info.picture,
            )
            try:
                created = insert_user(pool, new_user)
            except DatabaseError as exc:
                log.error("Failed to insert user: %s", exc)
                raise _HttpError(500, "Failed to insert user") from exc
            log.info("Inserted new user with id=%s", created.id)
            user_id = str(created.id)

        try:
            token = create_jwt(user_id, secret)
        except Exception as exc:
            log.error("JWT creation failed: %r", exc)
            raise _HttpError(500, "JWT creation failed") from exc
        log.info("JWT created for user_id=%s", user_id)

        response = _redirect("/auth-success")
        response.set_cookie(
            COOKIE_NAME,
            token,
            httponly=True,
            secure=False,
            path="/",
            samesite="Lax",
        )
        log.info("Setting auth_token cookie and redirecting to /auth-success")
        return response

    @app.post("/auth/protected")
    def protected_route():
        user = current_user()
        log.info("Accessing protected route by user_id: %s", user.user_id)
        return Response(f"Hello, user_id: {user.user_id}", status=200)

    return app


def main(argv: Optional[list[str]] = None) -> int:
    """Start the HTTP server configured from the environment."""
    parser = argparse.ArgumentParser(description="File storage HTTP server.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    load_dotenv()

    pool = create_pool_from_env()
    storage = FilesStorage(UPLOAD_DIR)
    oauth_client = GoogleOAuthClient.from_env()

    app = create_app(pool, storage, oauth_client)
    app.run(host=args.host, port=args.port)
    return 0