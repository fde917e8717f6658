"""Database model linking users to external identity providers."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..core.time import utcnow


class Account(SQLModel, table=True):
    """Provider-assigned subject owned by a :class:`User`."""

    __tablename__ = "account"
    __table_args__ = (
        UniqueConstraint("provider", "provider_account_id", name="uq_account_provider_subject"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    provider: str
    provider_account_id: str
    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["Account"]
