"""User-creation gate for first-time OAuth identities.

The lifecycle calls the wrapped ``create_user`` exactly when a provider
identity has no linked account and no matching user, i.e. when a new row is
about to be written. The gate resolves the intent on its own, because the
store is the only channel it shares with the sign-in callback.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

from sqlmodel import Session

from ..models import User
from .cookies import IntentCookies
from .errors import UserCreationBlocked
from .intents import REGISTER, IntentStore
from .resolution import discard_intent, resolve_intent
from .signin import SignInUser
from .users import create_user

logger = logging.getLogger(__name__)

CreateUser = Callable[[SignInUser], User]


def default_create_user(session: Session, *, trust_email_verified: bool = True) -> CreateUser:
    """Persist a password-less user from a provider profile."""

    def create(profile: SignInUser) -> User:
        return create_user(
            session,
            email=profile.email or "",
            name=profile.name,
            image=profile.image,
            email_verified=trust_email_verified,
        )

    return create


def gate_user_creation(
    create: CreateUser,
    *,
    store: IntentStore,
    cookies: IntentCookies,
    recency_fallback: bool = False,
) -> CreateUser:
    """Wrap ``create`` so it only runs under a resolved ``register`` intent."""

    @functools.wraps(create)
    def gated(profile: SignInUser) -> User:
        resolved = resolve_intent(cookies, store, recency_fallback=recency_fallback)
        if resolved.value != REGISTER:
            logger.warning(
                "Blocking user creation via %s: intent=%s (%s)",
                profile.provider,
                resolved.value,
                resolved.source,
            )
            discard_intent(cookies, store, resolved.key)
            raise UserCreationBlocked(email=profile.email, intent=resolved.value)

        user = create(profile)
        logger.info("Created user %s via %s", user.id, profile.provider)
        discard_intent(cookies, store, resolved.key)
        return user

    return gated


__all__ = ["CreateUser", "default_create_user", "gate_user_creation"]
