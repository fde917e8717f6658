"""Database model for member accounts."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from ..core.time import utcnow


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class User(SQLModel, table=True):
    """Member identified by e-mail, reachable by credentials or OAuth."""

    __tablename__ = "user"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    # Stored lower-cased; the unique index closes concurrent-registration races.
    email: str = Field(index=True, unique=True)
    name: Optional[str] = None
    password_hash: Optional[str] = None
    email_verified: Optional[datetime] = None
    role: Role = Field(default=Role.USER)
    image: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["Role", "User"]
