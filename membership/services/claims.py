"""Session claims: stamp identity facts onto the signed session token."""

from __future__ import annotations

from typing import Any, Dict, Mapping, MutableMapping, Optional

from ..models import Role
from .signin import SignInUser

CLAIM_KEYS = ("uid", "role", "email", "name", "image")


def _role_value(role: Role | str | None) -> str:
    if isinstance(role, Role):
        return role.value
    return role or Role.USER.value


def issue_token_claims(
    claims: MutableMapping[str, Any], user: SignInUser | None = None
) -> MutableMapping[str, Any]:
    """Copy id and role onto ``claims`` when a fresh sign-in is present.

    ``user`` is only set on the request that completes a sign-in; on every
    other request the claims pass through untouched.
    """

    if user is None or not user.id:
        return claims
    claims["uid"] = str(user.id)
    claims["role"] = _role_value(user.role)
    claims["email"] = user.email
    claims["name"] = user.name or (user.email or "").split("@")[0]
    claims["image"] = user.image
    return claims


def materialize_session(claims: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Build the externally visible session from the claims alone.

    No database read happens here, so a role change shows up only after the
    member signs in again.
    """

    uid = claims.get("uid")
    if not uid:
        return None
    return {
        "user": {
            "id": str(uid),
            "role": _role_value(claims.get("role")),
            "email": claims.get("email"),
            "name": claims.get("name"),
            "image": claims.get("image"),
        }
    }


def clear_claims(claims: MutableMapping[str, Any]) -> None:
    for key in CLAIM_KEYS:
        claims.pop(key, None)


__all__ = ["CLAIM_KEYS", "clear_claims", "issue_token_claims", "materialize_session"]
