"""Account self-service for the signed-in member."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ...core import get_session
from ...models import User
from ...services.claims import clear_claims
from ...services.cookies import normalize_locale
from ...services.errors import LastAdminError
from ...services.passwords import hash_password, verify_password
from ...services.users import (
    delete_own_account,
    find_user_by_email,
    linked_providers,
    update_user,
    user_to_dict,
)
from ...services.verification import issue_email_change_token
from ..deps import current_user
from .auth import EMAIL_PATTERN

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


class NameBody(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class PasswordBody(BaseModel):
    current_password: str = Field(alias="currentPassword", min_length=1)
    new_password: str = Field(alias="newPassword", min_length=8, max_length=256)
    confirm_password: str = Field(alias="confirmPassword")

    @model_validator(mode="after")
    def _passwords_match(self) -> "PasswordBody":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class EmailBody(BaseModel):
    new_email: str = Field(alias="newEmail", max_length=254, pattern=EMAIL_PATTERN)
    password: str = ""
    locale: Optional[str] = None


class DeleteBody(BaseModel):
    password: str = ""


def _confirm_password(user: User, password: str) -> None:
    # OAuth-only members have nothing to confirm.
    if user.password_hash and not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail="InvalidPassword")


@router.get("")
def read_profile(user: User = Depends(current_user), session: Session = Depends(get_session)):
    return {"user": {**user_to_dict(user), "authProviders": linked_providers(session, user)}}


@router.patch("/name")
def update_name(
    body: NameBody,
    request: Request,
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    user = update_user(session, user.id, name=body.name.strip())
    request.session["name"] = user.name
    logger.info("Name updated for user %s", user.id)
    return {"success": True}


@router.post("/password")
def change_password(
    body: PasswordBody,
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    if not user.password_hash:
        raise HTTPException(status_code=409, detail="NoPassword")
    if not verify_password(body.current_password, user.password_hash):
        raise HTTPException(status_code=401, detail="InvalidCurrentPassword")
    update_user(session, user.id, password_hash=hash_password(body.new_password))
    logger.info("Password changed for user %s", user.id)
    return {"success": True}


@router.post("/email")
def change_email(
    body: EmailBody,
    request: Request,
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    if find_user_by_email(session, body.new_email) is not None:
        raise HTTPException(status_code=409, detail="EmailInUse")
    _confirm_password(user, body.password)

    record = issue_email_change_token(session, user, body.new_email)
    try:
        request.app.state.mailer(body.new_email, record.token, normalize_locale(body.locale))
    except Exception as exc:
        logger.exception("Email change mail for user %s failed", user.id)
        raise HTTPException(status_code=502, detail="EmailSendFailed") from exc
    logger.info("Email change requested for user %s", user.id)
    return {"success": True, "message": "VerificationSent", "newEmail": body.new_email}


@router.delete("")
def delete_account(
    body: DeleteBody,
    request: Request,
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    _confirm_password(user, body.password)
    user_id = user.id
    try:
        delete_own_account(session, user)
    except LastAdminError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Deleting account %s failed", user_id)
        session.rollback()
        raise HTTPException(status_code=503, detail="FailedToDelete") from exc
    clear_claims(request.session)
    return {"success": True}


__all__ = ["router"]
