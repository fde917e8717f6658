"""User store helpers: lookups, creation and account linking."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from ..core.time import utcnow
from ..models import Account, Role, User
from .errors import AuthFlowError, LastAdminError, UserAlreadyExists

logger = logging.getLogger(__name__)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def find_user_by_email(session: Session, email: str | None) -> Optional[User]:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return session.exec(select(User).where(User.email == normalized)).first()


def get_user(session: Session, user_id: uuid.UUID | str) -> Optional[User]:
    try:
        key = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
    except (ValueError, TypeError):
        return None
    return session.get(User, key)


def create_user(
    session: Session,
    *,
    email: str,
    name: Optional[str] = None,
    password_hash: Optional[str] = None,
    image: Optional[str] = None,
    role: Role = Role.USER,
    email_verified: bool = False,
) -> User:
    """Insert a user row; a duplicate e-mail raises :class:`UserAlreadyExists`."""

    normalized = normalize_email(email)
    if not normalized:
        raise ValueError("email_blank")

    user = User(
        email=normalized,
        name=name,
        password_hash=password_hash,
        image=image,
        role=role,
        email_verified=utcnow() if email_verified else None,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise UserAlreadyExists(normalized) from exc
    session.refresh(user)
    return user


def update_user(session: Session, user_id: uuid.UUID | str, **fields: Any) -> User:
    user = get_user(session, user_id)
    if user is None:
        raise LookupError(f"user not found: {user_id}")
    for name, value in fields.items():
        if not hasattr(user, name):
            raise AttributeError(f"unknown user field: {name}")
        setattr(user, name, value)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def find_account(session: Session, provider: str, provider_account_id: str) -> Optional[Account]:
    return session.exec(
        select(Account)
        .where(Account.provider == provider)
        .where(Account.provider_account_id == provider_account_id)
    ).first()


def link_account(
    session: Session, user: User, *, provider: str, provider_account_id: str
) -> Account:
    """Attach an external identity to ``user``; existing links are returned as-is."""

    existing = find_account(session, provider, provider_account_id)
    if existing is not None:
        return existing
    account = Account(
        user_id=user.id, provider=provider, provider_account_id=provider_account_id
    )
    session.add(account)
    session.commit()
    session.refresh(account)
    logger.info("Linked %s account for user %s", provider, user.id)
    return account


def linked_providers(session: Session, user: User) -> List[str]:
    accounts = session.exec(select(Account).where(Account.user_id == user.id)).all()
    return sorted({account.provider for account in accounts})


def list_users(session: Session) -> List[User]:
    return list(session.exec(select(User).order_by(User.created_at.desc())).all())


def count_admins(session: Session) -> int:
    return int(
        session.exec(select(func.count()).select_from(User).where(User.role == Role.ADMIN)).one()
    )


def user_to_dict(user: User) -> Dict[str, Any]:
    """Serialise a user without secrets."""

    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role.value if isinstance(user.role, Role) else user.role,
        "image": user.image,
        "emailVerified": user.email_verified.isoformat() if user.email_verified else None,
        "hasPassword": bool(user.password_hash),
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }


def change_role(session: Session, *, actor: User, target_id: str, role: Role) -> User:
    if str(actor.id) == str(target_id):
        raise AuthFlowError("CannotModifySelf")
    target = get_user(session, target_id)
    if target is None:
        raise LookupError("UserNotFound")
    if target.role == Role.ADMIN and role == Role.USER and count_admins(session) <= 1:
        raise LastAdminError("CannotRemoveLastAdmin")
    target.role = role
    session.add(target)
    session.commit()
    session.refresh(target)
    logger.info("User role changed: %s -> %s", target.email, role.value)
    return target


def _remove_user(session: Session, target: User) -> None:
    for account in session.exec(select(Account).where(Account.user_id == target.id)).all():
        session.delete(account)
    session.delete(target)
    session.commit()


def delete_user(session: Session, *, actor: User, target_id: str) -> None:
    if str(actor.id) == str(target_id):
        raise AuthFlowError("CannotDeleteSelf")
    target = get_user(session, target_id)
    if target is None:
        raise LookupError("UserNotFound")
    if target.role == Role.ADMIN and count_admins(session) <= 1:
        raise LastAdminError("CannotDeleteLastAdmin")
    email = target.email
    _remove_user(session, target)
    logger.info("User deleted: %s", email)


def delete_own_account(session: Session, user: User) -> None:
    """Self-service removal; the last admin cannot delete themselves."""

    if user.role == Role.ADMIN and count_admins(session) <= 1:
        raise LastAdminError("CannotDeleteLastAdmin")
    email = user.email
    _remove_user(session, user)
    logger.info("Account closed by its owner: %s", email)


__all__ = [
    "change_role",
    "count_admins",
    "create_user",
    "delete_own_account",
    "delete_user",
    "find_account",
    "find_user_by_email",
    "get_user",
    "link_account",
    "linked_providers",
    "list_users",
    "normalize_email",
    "update_user",
    "user_to_dict",
]
