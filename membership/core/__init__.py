"""Core configuration and infrastructure helpers."""

from .config import (
    ALLOWED_CORS_ORIGINS,
    AUTH_INTENT_TTL,
    COOKIE_DOMAIN,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    DB_RESET,
    DEFAULT_LOCALE,
    FRONTEND_ORIGIN,
    INTENT_RECENCY_FALLBACK,
    LOG_LEVEL,
    OAUTH_STATE_TTL,
    OAUTH_TRUST_EMAIL_VERIFIED,
    SECRET_KEY,
    SESSION_COOKIE,
    SESSION_MAX_AGE,
    SUPPORTED_LOCALES,
    VERIFICATION_TOKEN_TTL,
)
from .database import engine, get_session
from .time import utcnow

__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "AUTH_INTENT_TTL",
    "COOKIE_DOMAIN",
    "COOKIE_SAMESITE",
    "COOKIE_SECURE",
    "DB_RESET",
    "DEFAULT_LOCALE",
    "FRONTEND_ORIGIN",
    "INTENT_RECENCY_FALLBACK",
    "LOG_LEVEL",
    "OAUTH_STATE_TTL",
    "OAUTH_TRUST_EMAIL_VERIFIED",
    "SECRET_KEY",
    "SESSION_COOKIE",
    "SESSION_MAX_AGE",
    "SUPPORTED_LOCALES",
    "VERIFICATION_TOKEN_TTL",
    "engine",
    "get_session",
    "utcnow",
]
