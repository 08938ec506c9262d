"""Request payloads: OAuth callback query, Google user info, search query."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional


def _required_str(data: Mapping[str, Any], key: str) -> str:
    if key not in data or data[key] is None:
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


@dataclass(frozen=True)
class OAuthCallbackQuery:
    """Query parameters of the OAuth provider's redirect back to us."""

    code: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OAuthCallbackQuery":
        return cls(code=_optional_str(data, "code"), error=_optional_str(data, "error"))


@dataclass(frozen=True)
class GoogleUserInfo:
    """The subset of Google's userinfo response that is used."""

    sub: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GoogleUserInfo":
        return cls(
            sub=_required_str(data, "sub"),
            email=_optional_str(data, "email"),
            name=_optional_str(data, "name"),
            picture=_optional_str(data, "picture"),
        )


@dataclass(frozen=True)
class SearchQuery:
    """Query parameters of a file name search."""

    q: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SearchQuery":
        return cls(q=_required_str(data, "q"))