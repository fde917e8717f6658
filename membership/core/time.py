"""Clock helpers shared by models and services."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def expires_in(seconds: int) -> datetime:
    return utcnow() + timedelta(seconds=seconds)


def epoch_ms() -> int:
    return int(utcnow().timestamp() * 1000)


__all__ = ["epoch_ms", "expires_in", "utcnow"]
