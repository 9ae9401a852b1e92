from __future__ import annotations

import logging
from typing import Mapping, Protocol

import requests

from .config import Settings

logger = logging.getLogger(__name__)


class TokenResolver(Protocol):
    def resolve(self, token: str) -> str | None:
        ...


class StaticTokenResolver:
    """Fixed token -> user_id map, used for local runs and tests."""

    def __init__(self, tokens: Mapping[str, str] | None = None) -> None:
        self.tokens = dict(tokens or {})

    def resolve(self, token: str) -> str | None:
        return self.tokens.get(token)


class RemoteTokenResolver:
    def __init__(
        self,
        auth_url: str,
        api_key: str | None = None,
        timeout_sec: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self.auth_url = auth_url.rstrip("/")
        self.api_key = api_key
        self.timeout_sec = timeout_sec
        self.session = session or requests.Session()

    def resolve(self, token: str) -> str | None:
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        try:
            response = self.session.get(
                f"{self.auth_url}/auth/v1/user",
                headers=headers,
                timeout=self.timeout_sec,
            )
        except requests.RequestException as exc:
            logger.warning("auth provider unreachable: %s", exc)
            return None

        if not response.ok:
            logger.warning("auth provider rejected token (status %s)", response.status_code)
            return None
        try:
            payload = response.json()
        except ValueError:
            logger.warning("auth provider returned invalid JSON")
            return None

        user_id = payload.get("id") if isinstance(payload, dict) else None
        return str(user_id) if user_id else None


def build_token_resolver(settings: Settings) -> TokenResolver:
    if settings.auth_url:
        return RemoteTokenResolver(settings.auth_url, settings.auth_api_key)
    return StaticTokenResolver(settings.static_tokens)


def bearer_token(header: str | None) -> str | None:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None
