"""First-run setup and admin user management endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator
from sqlmodel import Session

from ...core import get_session
from ...models import Role, User
from ...services.errors import AuthFlowError, UserAlreadyExists
from ...services.passwords import hash_password
from ...services.users import (
    change_role,
    count_admins,
    create_user,
    delete_user,
    find_user_by_email,
    list_users,
    user_to_dict,
)
from ..deps import require_admin
from .auth import EMAIL_PATTERN

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


class SetupBody(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=254, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=256)
    confirm_password: str = Field(alias="confirmPassword")

    @model_validator(mode="after")
    def _passwords_match(self) -> "SetupBody":
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class RoleBody(BaseModel):
    role: Role


@router.get("/setup")
def setup_status(session: Session = Depends(get_session)):
    return {"needsSetup": count_admins(session) == 0}


@router.post("/setup", status_code=201)
def create_first_admin(body: SetupBody, session: Session = Depends(get_session)):
    """Create the first ADMIN; refused once any admin exists."""

    if count_admins(session) > 0:
        raise HTTPException(status_code=409, detail="AdminAlreadyExists")
    if find_user_by_email(session, body.email) is not None:
        raise HTTPException(status_code=409, detail="EmailInUse")
    try:
        user = create_user(
            session,
            email=body.email,
            name=body.name,
            password_hash=hash_password(body.password),
            role=Role.ADMIN,
            email_verified=True,
        )
    except UserAlreadyExists as exc:
        raise HTTPException(status_code=409, detail="EmailInUse") from exc
    logger.info("First admin created: %s", user.email)
    return {"success": True, "user": user_to_dict(user)}


@router.get("/admin/users")
def admin_list_users(
    _admin: User = Depends(require_admin), session: Session = Depends(get_session)
):
    return {"users": [user_to_dict(user) for user in list_users(session)]}


@router.patch("/admin/users/{user_id}/role")
def admin_change_role(
    user_id: str,
    body: RoleBody,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    # Takes effect for the target on their next sign-in; sessions carry the role.
    try:
        user = change_role(session, actor=admin, target_id=user_id, role=body.role)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail="UserNotFound") from exc
    except AuthFlowError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"success": True, "user": user_to_dict(user)}


@router.delete("/admin/users/{user_id}")
def admin_delete_user(
    user_id: str,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    try:
        delete_user(session, actor=admin, target_id=user_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail="UserNotFound") from exc
    except AuthFlowError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"success": True}


__all__ = ["router"]
