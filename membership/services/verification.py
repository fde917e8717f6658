"""E-mail verification tokens for registrations and address changes."""

from __future__ import annotations

import logging
import secrets
from typing import Callable, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core import VERIFICATION_TOKEN_TTL
from ..core.time import expires_in, utcnow
from ..models import User, VerificationToken
from .users import find_user_by_email, get_user, normalize_email, update_user

logger = logging.getLogger(__name__)

Mailer = Callable[[str, str, str], None]

# Identifier layout for address changes: change-email:<user id>:<new address>
CHANGE_EMAIL_PREFIX = "change-email:"


class VerificationError(Exception):
    """Token missing, unknown or expired; ``code`` names the case."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


def log_mailer(email: str, token: str, locale: str) -> None:
    """Development mailer: records that a verification mail would be sent."""

    logger.info("Verification mail for %s (locale=%s, token=%s…)", email, locale, token[:6])


def _issue(session: Session, identifier: str, ttl: int) -> VerificationToken:
    session.execute(delete(VerificationToken).where(VerificationToken.identifier == identifier))
    record = VerificationToken(
        identifier=identifier,
        token=secrets.token_hex(32),
        expires_at=expires_in(ttl),
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def issue_verification_token(
    session: Session, email: str, ttl: int = VERIFICATION_TOKEN_TTL
) -> VerificationToken:
    """Replace any outstanding token for ``email`` with a fresh one."""

    return _issue(session, normalize_email(email), ttl)


def issue_email_change_token(
    session: Session, user: User, new_email: str, ttl: int = VERIFICATION_TOKEN_TTL
) -> VerificationToken:
    """Token that moves ``user`` to ``new_email`` once the new inbox confirms it."""

    identifier = f"{CHANGE_EMAIL_PREFIX}{user.id}:{normalize_email(new_email)}"
    return _issue(session, identifier, ttl)


def _apply_email_change(session: Session, identifier: str) -> User:
    user_id, _, new_email = identifier[len(CHANGE_EMAIL_PREFIX):].partition(":")
    user = get_user(session, user_id)
    if user is None or not new_email:
        raise VerificationError("TokenExpired")
    holder = find_user_by_email(session, new_email)
    if holder is not None and holder.id != user.id:
        raise VerificationError("EmailInUse")
    old_email = user.email
    try:
        user = update_user(session, user.id, email=new_email, email_verified=utcnow())
    except IntegrityError as exc:
        session.rollback()
        raise VerificationError("EmailInUse") from exc
    logger.info("Email changed: %s -> %s", old_email, new_email)
    return user


def verify_email_token(session: Session, token: Optional[str]) -> User:
    if not token:
        raise VerificationError("InvalidToken")
    record = session.exec(
        select(VerificationToken)
        .where(VerificationToken.token == token)
        .where(VerificationToken.expires_at > utcnow())
    ).first()
    if record is None:
        raise VerificationError("TokenExpired")
    identifier = record.identifier

    if identifier.startswith(CHANGE_EMAIL_PREFIX):
        user = _apply_email_change(session, identifier)
    else:
        user = find_user_by_email(session, identifier)
        if user is None:
            raise VerificationError("TokenExpired")
        user = update_user(session, user.id, email_verified=utcnow())
        logger.info("Email verified: %s", user.email)

    session.execute(delete(VerificationToken).where(VerificationToken.identifier == identifier))
    session.commit()
    return user


__all__ = [
    "CHANGE_EMAIL_PREFIX",
    "Mailer",
    "VerificationError",
    "issue_email_change_token",
    "issue_verification_token",
    "log_mailer",
    "verify_email_token",
]
