"""Intent resolution shared by the sign-in callback and the creation gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from .cookies import IntentCookies
from .intents import KEY_PREFIX, LOGIN, IntentStore, normalize_intent

logger = logging.getLogger(__name__)

SOURCE_COOKIE = "cookie"
SOURCE_STORE = "store"
SOURCE_RECENT = "recent"
SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class ResolvedIntent:
    value: str
    source: str
    key: Optional[str] = None

    @property
    def is_default(self) -> bool:
        return self.source == SOURCE_DEFAULT


def resolve_intent(
    cookies: IntentCookies,
    store: IntentStore,
    *,
    recency_fallback: bool = False,
) -> ResolvedIntent:
    """Resolve the intent of the current attempt without consuming anything.

    Precedence: raw intent cookie, then the store record named by the
    correlation-key cookie, then (when enabled) the newest live record, and
    finally ``login``. Storage errors propagate to the caller.
    """

    key = cookies.read_correlation_key()

    intent = cookies.read_intent()
    if intent:
        return ResolvedIntent(intent, SOURCE_COOKIE, key)

    if key:
        intent = store.lookup(key)
        if intent:
            return ResolvedIntent(intent, SOURCE_STORE, key)
        logger.info("No live intent record for correlation key %s…", key[:20])

    if recency_fallback and not key:
        record = store.find_most_recent_unexpired(KEY_PREFIX)
        intent = normalize_intent(record.value) if record else None
        if record is not None and intent:
            logger.warning(
                "Intent resolved from most recent record %s… without a cookie match",
                record.key[:20],
            )
            return ResolvedIntent(intent, SOURCE_RECENT, record.key)

    return ResolvedIntent(LOGIN, SOURCE_DEFAULT, key)


def discard_intent(cookies: IntentCookies, store: IntentStore, key: str | None) -> None:
    """Best-effort cleanup of the cookies and store record for an attempt."""

    cookies.clear_all()
    if not key:
        return
    try:
        store.consume(key)
    except SQLAlchemyError:
        logger.warning("Failed to delete intent record %s…", key[:20], exc_info=True)
        store.session.rollback()


__all__ = [
    "ResolvedIntent",
    "SOURCE_COOKIE",
    "SOURCE_DEFAULT",
    "SOURCE_RECENT",
    "SOURCE_STORE",
    "discard_intent",
    "resolve_intent",
]
