"""Intent cookie carrier.

Sign-in callbacks run before a response object exists, so writes are queued
here and flushed onto whatever response the route finally returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from starlette.responses import Response

from ..core import (
    AUTH_INTENT_TTL,
    COOKIE_DOMAIN,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    DEFAULT_LOCALE,
    OAUTH_STATE_TTL,
    SUPPORTED_LOCALES,
)
from .intents import normalize_intent

INTENT_COOKIE = "auth_intent"
STATE_COOKIE = "oauth_state_id"
LOCALE_COOKIE = "locale"

INTENT_COOKIES = (INTENT_COOKIE, STATE_COOKIE)


@dataclass
class _PendingCookie:
    value: Optional[str]
    max_age: int = 0
    same_site: Optional[str] = None
    secure: bool = False


def normalize_locale(value: str | None) -> str:
    candidate = (value or "").strip().lower()
    return candidate if candidate in SUPPORTED_LOCALES else DEFAULT_LOCALE


class IntentCookies:
    """Read incoming intent cookies and queue writes for the response."""

    def __init__(self, cookies: Mapping[str, str] | None = None) -> None:
        self._incoming: Dict[str, str] = dict(cookies or {})
        self._pending: Dict[str, _PendingCookie] = {}

    # Reads ---------------------------------------------------------------
    def _read(self, name: str) -> Optional[str]:
        if name in self._pending:
            return self._pending[name].value
        value = self._incoming.get(name)
        return value or None

    def read_intent(self) -> Optional[str]:
        return normalize_intent(self._read(INTENT_COOKIE))

    def read_correlation_key(self) -> Optional[str]:
        return self._read(STATE_COOKIE)

    def read_locale(self) -> str:
        return normalize_locale(self._read(LOCALE_COOKIE))

    # Writes --------------------------------------------------------------
    def set_intent(self, value: str, ttl: int = AUTH_INTENT_TTL) -> None:
        intent = normalize_intent(value)
        if intent is None:
            raise ValueError(f"invalid intent: {value!r}")
        self._pending[INTENT_COOKIE] = _PendingCookie(intent, ttl)

    def set_correlation_key(self, key: str, ttl: int = OAUTH_STATE_TTL) -> None:
        self._pending[STATE_COOKIE] = _PendingCookie(
            key, ttl, same_site="lax", secure=COOKIE_SECURE
        )

    def set_locale(self, locale: str, ttl: int = OAUTH_STATE_TTL) -> None:
        self._pending[LOCALE_COOKIE] = _PendingCookie(normalize_locale(locale), ttl)

    def clear(self, name: str) -> None:
        self._pending[name] = _PendingCookie(None)

    def clear_all(self) -> None:
        for name in INTENT_COOKIES:
            self.clear(name)

    def apply(self, response: Response) -> Response:
        """Write queued cookies onto ``response``."""

        for name, pending in self._pending.items():
            if pending.value is None:
                response.delete_cookie(name, path="/", domain=COOKIE_DOMAIN)
                continue
            response.set_cookie(
                name,
                pending.value,
                max_age=pending.max_age,
                path="/",
                domain=COOKIE_DOMAIN,
                httponly=True,
                secure=pending.secure or COOKIE_SECURE,
                samesite=pending.same_site or COOKIE_SAMESITE,
            )
        return response


__all__ = [
    "INTENT_COOKIE",
    "INTENT_COOKIES",
    "IntentCookies",
    "LOCALE_COOKIE",
    "STATE_COOKIE",
    "normalize_locale",
]
