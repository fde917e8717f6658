"""Request dependencies for authenticated routes."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from ..core import get_session
from ..models import Role, User
from ..services.claims import materialize_session
from ..services.users import get_user


def current_session(request: Request) -> Dict[str, Any]:
    """Session view built from the signed claims; no database access."""

    view = materialize_session(request.session)
    if view is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return view


def current_user(
    view: Dict[str, Any] = Depends(current_session),
    session: Session = Depends(get_session),
) -> User:
    user = get_user(session, view["user"]["id"])
    if user is None:
        raise HTTPException(status_code=404, detail="UserNotFound")
    return user


def require_admin(
    view: Dict[str, Any] = Depends(current_session),
    session: Session = Depends(get_session),
) -> User:
    """Admin gate: the session role must say ADMIN and the row must agree."""

    if view["user"]["role"] != Role.ADMIN.value:
        raise HTTPException(status_code=403, detail="AccessDenied")
    user = get_user(session, view["user"]["id"])
    if user is None or user.role != Role.ADMIN:
        raise HTTPException(status_code=403, detail="AccessDenied")
    return user


__all__ = ["current_session", "current_user", "require_admin"]
