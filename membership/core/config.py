"""Application settings and environment helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv

load_dotenv(override=False)


def _require_env(name: str) -> str:
    """Return a required environment variable or raise an error."""

    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


# Application security -------------------------------------------------------
SECRET_KEY = _require_env("SECRET_KEY")
APP_ENV = os.getenv("APP_ENV", "development").strip().lower()
IS_PRODUCTION = APP_ENV == "production"

# FRONTEND_ORIGIN can contain a comma-separated list for multi-domain deploys.
_frontend_origins = _split_csv(os.getenv("FRONTEND_ORIGIN"))
_additional_origins = _split_csv(os.getenv("ADDITIONAL_ALLOWED_ORIGINS"))

_local_dev_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

ALLOWED_CORS_ORIGINS = _unique(
    [
        *_frontend_origins,
        *_additional_origins,
        *([] if IS_PRODUCTION else _local_dev_origins),
    ]
)

FRONTEND_ORIGINS = _frontend_origins
FRONTEND_ORIGIN = FRONTEND_ORIGINS[0] if FRONTEND_ORIGINS else ""


# Cookies and session --------------------------------------------------------
COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN") or None
COOKIE_SECURE = _env_bool("COOKIE_SECURE", IS_PRODUCTION)
COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")
SESSION_COOKIE = os.getenv("SESSION_COOKIE", "sid")
SESSION_MAX_AGE = _env_int("SESSION_MAX_AGE", 30 * 24 * 60 * 60)


# Locales --------------------------------------------------------------------
DEFAULT_LOCALE = os.getenv("DEFAULT_LOCALE", "en")
SUPPORTED_LOCALES = _unique(
    [DEFAULT_LOCALE, *_split_csv(os.getenv("SUPPORTED_LOCALES", "en,es"))]
)


# Sign-in intent -------------------------------------------------------------
AUTH_INTENT_TTL = _env_int("AUTH_INTENT_TTL", 300)
OAUTH_STATE_TTL = _env_int("OAUTH_STATE_TTL", 600)
# Resolve a cookieless callback from the newest live record when enabled.
INTENT_RECENCY_FALLBACK = _env_bool("INTENT_RECENCY_FALLBACK", False)
OAUTH_TRUST_EMAIL_VERIFIED = _env_bool("OAUTH_TRUST_EMAIL_VERIFIED", True)
VERIFICATION_TOKEN_TTL = _env_int("VERIFICATION_TOKEN_TTL", 3600)


# OAuth providers ------------------------------------------------------------
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GITHUB_CLIENT_ID = os.getenv("GITHUB_CLIENT_ID")
GITHUB_CLIENT_SECRET = os.getenv("GITHUB_CLIENT_SECRET")
MICROSOFT_ENTRA_ID_CLIENT_ID = os.getenv("MICROSOFT_ENTRA_ID_CLIENT_ID")
MICROSOFT_ENTRA_ID_CLIENT_SECRET = os.getenv("MICROSOFT_ENTRA_ID_CLIENT_SECRET")
MICROSOFT_ENTRA_ID_TENANT_ID = os.getenv("MICROSOFT_ENTRA_ID_TENANT_ID", "common")
OAUTH_REDIRECT_BASE = os.getenv("OAUTH_REDIRECT_BASE", "http://127.0.0.1:8000").rstrip("/")


# Runtime behaviour ----------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DB_RESET = _env_bool("DB_RESET", False)
DATA_DIR = Path(os.getenv("DATA_DIR", "data"))


__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "APP_ENV",
    "AUTH_INTENT_TTL",
    "COOKIE_DOMAIN",
    "COOKIE_SAMESITE",
    "COOKIE_SECURE",
    "DATABASE_URL",
    "DATA_DIR",
    "DB_RESET",
    "DEFAULT_LOCALE",
    "FRONTEND_ORIGIN",
    "FRONTEND_ORIGINS",
    "GITHUB_CLIENT_ID",
    "GITHUB_CLIENT_SECRET",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "INTENT_RECENCY_FALLBACK",
    "IS_PRODUCTION",
    "LOG_LEVEL",
    "MICROSOFT_ENTRA_ID_CLIENT_ID",
    "MICROSOFT_ENTRA_ID_CLIENT_SECRET",
    "MICROSOFT_ENTRA_ID_TENANT_ID",
    "OAUTH_REDIRECT_BASE",
    "OAUTH_STATE_TTL",
    "OAUTH_TRUST_EMAIL_VERIFIED",
    "SECRET_KEY",
    "SESSION_COOKIE",
    "SESSION_MAX_AGE",
    "SUPPORTED_LOCALES",
    "VERIFICATION_TOKEN_TTL",
]
