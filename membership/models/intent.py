"""Database model for short-lived sign-in intent records."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from ..core.time import utcnow

OAUTH_INTENT_PURPOSE = "oauth_intent"


class IntentRecord(SQLModel, table=True):
    """Intent value keyed by a correlation key that travels in a cookie."""

    __tablename__ = "auth_intent_state"

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True, unique=True)
    value: str
    purpose: str = Field(default=OAUTH_INTENT_PURPOSE, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)


__all__ = ["IntentRecord", "OAUTH_INTENT_PURPOSE"]
