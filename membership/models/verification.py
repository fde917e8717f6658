"""Database model for e-mail verification tokens."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from ..core.time import utcnow


class VerificationToken(SQLModel, table=True):
    """Single-use token proving control of ``identifier`` (an e-mail)."""

    __tablename__ = "verification_token"

    id: Optional[int] = Field(default=None, primary_key=True)
    identifier: str = Field(index=True)
    token: str = Field(index=True, unique=True)
    expires_at: datetime
    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["VerificationToken"]
