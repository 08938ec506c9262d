"""Google OAuth 2.0 client: authorization URL, code exchange, user info."""

from __future__ import annotations

import base64
import os
import secrets
from typing import Optional
from urllib.parse import quote_plus, urlencode

import httpx

from .schemas import GoogleUserInfo

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
SCOPES = ("email", "profile")


class OAuthError(Exception):
    """Raised when talking to the OAuth provider fails."""


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise RuntimeError(f"{name} must be set")
    return value


class GoogleOAuthClient:
    """Client credentials and HTTP access for Google sign-in."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.http_client = http_client if http_client is not None else httpx.Client()

    @classmethod
    def from_env(cls) -> "GoogleOAuthClient":
        """Build a client from CLIENT_ID, CLIENT_SECRET and REDIRECT_URI."""
        return cls(
            _require_env("CLIENT_ID"),
            _require_env("CLIENT_SECRET"),
            _require_env("REDIRECT_URI"),
        )

    def authorize_url(self, state: Optional[str] = None) -> tuple[str, str]:
        """Return the provider's authorization URL and the CSRF state in it."""
        csrf_state = state if state is not None else secrets.token_urlsafe(16)
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "state": csrf_state,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(SCOPES),
        }
        return f"{AUTH_URL}?{urlencode(params)}", csrf_state

    def _basic_auth_header(self) -> str:
        credentials = f"{quote_plus(self.client_id)}:{quote_plus(self.client_secret)}"
        return "Basic " + base64.b64encode(credentials.encode()).decode("ascii")

    def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token."""
        try:
            response = self.http_client.post(
                TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                },
                headers={
                    "Authorization": self._basic_auth_header(),
                    "Accept": "application/json",
                },
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise OAuthError(f"Token exchange failed: {exc}") from exc
        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(access_token, str):
            raise OAuthError("Token exchange failed: no access token in response")
        return access_token

    def fetch_user_info(self, access_token: str) -> GoogleUserInfo:
        """Fetch the signed-in user's profile with the access token."""
        try:
            response = self.http_client.get(
                USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
            )
        except httpx.HTTPError as exc:
            raise OAuthError(f"Failed to fetch user info: {exc}") from exc
        try:
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError("user info is not an object")
            return GoogleUserInfo.from_mapping(payload)
        except ValueError as exc:
            raise OAuthError(f"Failed to parse user info: {exc}") from exc