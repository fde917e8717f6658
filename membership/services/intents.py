"""Ephemeral intent store.

Short-lived ``key -> intent`` records used to carry the sign-in intent across
an external provider redirect, where cookies may not survive. Every read
filters on expiry, so stale rows left behind by abandoned attempts never
answer a lookup.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from sqlalchemy import delete
from sqlmodel import Session, col, select

from ..core.time import epoch_ms, expires_in, utcnow
from ..models import OAUTH_INTENT_PURPOSE, IntentRecord

logger = logging.getLogger(__name__)

LOGIN = "login"
REGISTER = "register"
INTENTS = frozenset({LOGIN, REGISTER})

KEY_PREFIX = "oauth_"
DEFAULT_TTL = 10 * 60


def new_correlation_key(prefix: str = KEY_PREFIX) -> str:
    """Return ``oauth_<epoch-ms>_<random>`` with 128 bits of randomness."""

    return f"{prefix}{epoch_ms()}_{secrets.token_urlsafe(16)}"


def normalize_intent(value: str | None) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    return value if value in INTENTS else None


class IntentStore:
    """Keyed, expiring intent records backed by the ``auth_intent_state`` table."""

    def __init__(self, session: Session, *, purpose: str = OAUTH_INTENT_PURPOSE) -> None:
        self.session = session
        self.purpose = purpose

    def create(self, key: str, value: str, ttl: int = DEFAULT_TTL) -> IntentRecord:
        intent = normalize_intent(value)
        if intent is None:
            raise ValueError(f"invalid intent: {value!r}")
        if not key:
            raise ValueError("correlation key is required")
        record = IntentRecord(
            key=key,
            value=intent,
            purpose=self.purpose,
            expires_at=expires_in(ttl),
        )
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def lookup(self, key: str | None) -> Optional[str]:
        if not key:
            return None
        record = self.session.exec(
            select(IntentRecord)
            .where(IntentRecord.key == key)
            .where(IntentRecord.purpose == self.purpose)
            .where(IntentRecord.expires_at > utcnow())
        ).first()
        return normalize_intent(record.value) if record else None

    def consume(self, key: str | None) -> int:
        """Delete every record with ``key``; zero rows is not an error."""

        if not key:
            return 0
        result = self.session.execute(delete(IntentRecord).where(IntentRecord.key == key))
        self.session.commit()
        return result.rowcount or 0

    def find_most_recent_unexpired(self, prefix: str = KEY_PREFIX) -> Optional[IntentRecord]:
        """Newest live record whose key starts with ``prefix``.

        Lower confidence than :meth:`lookup`: with concurrent attempts the
        newest record may belong to someone else.
        """

        return self.session.exec(
            select(IntentRecord)
            .where(col(IntentRecord.key).startswith(prefix, autoescape=True))
            .where(IntentRecord.purpose == self.purpose)
            .where(IntentRecord.expires_at > utcnow())
            .order_by(col(IntentRecord.created_at).desc(), col(IntentRecord.id).desc())
        ).first()

    def purge_expired(self) -> int:
        result = self.session.execute(
            delete(IntentRecord).where(IntentRecord.expires_at <= utcnow())
        )
        self.session.commit()
        removed = result.rowcount or 0
        if removed:
            logger.debug("Purged %d expired intent records", removed)
        return removed


__all__ = [
    "DEFAULT_TTL",
    "INTENTS",
    "IntentStore",
    "KEY_PREFIX",
    "LOGIN",
    "REGISTER",
    "new_correlation_key",
    "normalize_intent",
]
