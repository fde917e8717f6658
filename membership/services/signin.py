"""Sign-in callback: decide whether an authenticated attempt may proceed.

Runs after a provider (local credentials or an external OAuth issuer) has
vouched for an identity and before any session is issued. The outcome is
one of allow, deny, or redirect to a corrective page; intent conflicts are
normal outcomes, not errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import quote, urlencode

from sqlmodel import Session

from ..core import INTENT_RECENCY_FALLBACK
from ..models import Role
from .cookies import INTENT_COOKIE, IntentCookies
from .intents import LOGIN, REGISTER, IntentStore
from .passwords import verify_password
from .resolution import discard_intent, resolve_intent
from .users import find_user_by_email, normalize_email

logger = logging.getLogger(__name__)

CREDENTIALS = "credentials"

ALLOW = "allow"
DENY = "deny"
REDIRECT = "redirect"

ACCOUNT_NOT_FOUND = "AccountNotFound"
ALREADY_REGISTERED = "AlreadyRegistered"
INVALID_REQUEST = "InvalidRequest"


@dataclass
class SignInUser:
    """The in-flight user handed to the callbacks.

    ``id`` and ``role`` start empty and are only ever stamped from a stored
    user row, never from provider or client input.
    """

    provider: str
    email: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    subject: Optional[str] = None
    password: Optional[str] = None
    id: Optional[str] = None
    role: Optional[Role] = None

    def stamp(self, user) -> None:
        self.id = str(user.id)
        self.role = user.role
        self.email = user.email
        self.name = user.name or self.name
        self.image = user.image or self.image


@dataclass(frozen=True)
class SignInDecision:
    outcome: str
    url: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "SignInDecision":
        return cls(ALLOW)

    @classmethod
    def deny(cls, reason: str | None = None) -> "SignInDecision":
        return cls(DENY, reason=reason)

    @classmethod
    def redirect(cls, url: str, reason: str) -> "SignInDecision":
        return cls(REDIRECT, url=url, reason=reason)

    @property
    def allowed(self) -> bool:
        return self.outcome == ALLOW


def auth_page_url(locale: str, page: str, error: str, email: str | None = None) -> str:
    params = {"error": error}
    if email:
        params["email"] = email
    return f"/{locale}/{page}?{urlencode(params, quote_via=quote)}"


class SignInOrchestrator:
    """Resolve intent and decide allow/deny/redirect for one attempt."""

    def __init__(
        self,
        session: Session,
        cookies: IntentCookies,
        *,
        store: IntentStore | None = None,
        recency_fallback: bool = INTENT_RECENCY_FALLBACK,
        password_verifier: Callable[[str, Optional[str]], bool] = verify_password,
    ) -> None:
        self.session = session
        self.cookies = cookies
        self.store = store or IntentStore(session)
        self.recency_fallback = recency_fallback
        self.password_verifier = password_verifier

    @property
    def locale(self) -> str:
        return self.cookies.read_locale()

    def sign_in(self, user: SignInUser) -> SignInDecision:
        try:
            if user.provider == CREDENTIALS:
                return self._credentials(user)
            return self._oauth(user)
        except Exception:
            logger.exception("Sign-in failed for provider %s", user.provider)
            self.session.rollback()
            self.cookies.clear_all()
            return SignInDecision.deny("error")

    # Credentials ---------------------------------------------------------
    def _credentials(self, user: SignInUser) -> SignInDecision:
        self.cookies.clear(INTENT_COOKIE)
        existing = find_user_by_email(self.session, user.email)
        if existing is None or not existing.password_hash:
            logger.info("Credentials sign-in denied: unknown user or no password")
            return SignInDecision.deny("credentials")
        if not self.password_verifier(user.password or "", existing.password_hash):
            logger.info("Credentials sign-in denied: invalid password")
            return SignInDecision.deny("credentials")
        user.password = None
        user.stamp(existing)
        return SignInDecision.allow()

    # OAuth ---------------------------------------------------------------
    def _oauth(self, user: SignInUser) -> SignInDecision:
        locale = self.locale
        email = normalize_email(user.email)
        if not email:
            logger.info("OAuth sign-in via %s carried no e-mail", user.provider)
            discard_intent(self.cookies, self.store, self.cookies.read_correlation_key())
            return SignInDecision.redirect(
                auth_page_url(locale, "login", INVALID_REQUEST), INVALID_REQUEST
            )
        user.email = email

        resolved = resolve_intent(
            self.cookies, self.store, recency_fallback=self.recency_fallback
        )
        existing = find_user_by_email(self.session, email)
        logger.info(
            "OAuth sign-in via %s: intent=%s (%s), existing=%s",
            user.provider,
            resolved.value,
            resolved.source,
            existing is not None,
        )
        if resolved.is_default:
            logger.info("No sign-in intent survived for %s; treating it as login", email)

        if resolved.value == REGISTER:
            if existing is not None:
                discard_intent(self.cookies, self.store, resolved.key)
                return SignInDecision.redirect(
                    auth_page_url(locale, "login", ALREADY_REGISTERED, email),
                    ALREADY_REGISTERED,
                )
            # The creation gate re-resolves the intent and consumes it.
            return SignInDecision.allow()

        if resolved.value == LOGIN:
            if existing is None:
                discard_intent(self.cookies, self.store, resolved.key)
                return self._account_not_found(email)
            user.stamp(existing)
            discard_intent(self.cookies, self.store, resolved.key)
            return SignInDecision.allow()

        discard_intent(self.cookies, self.store, resolved.key)
        return SignInDecision.redirect(
            auth_page_url(locale, "login", INVALID_REQUEST), INVALID_REQUEST
        )

    def _account_not_found(self, email: str | None) -> SignInDecision:
        return SignInDecision.redirect(
            auth_page_url(self.locale, "register", ACCOUNT_NOT_FOUND, email),
            ACCOUNT_NOT_FOUND,
        )

    # Enclosing handlers ---------------------------------------------------
    def handle_creation_blocked(self, user: SignInUser) -> SignInDecision:
        """Map a blocked creation onto the same outcome as a login miss."""

        self.cookies.clear_all()
        return self._account_not_found(normalize_email(user.email) or None)

    def handle_already_registered(self, user: SignInUser) -> SignInDecision:
        discard_intent(self.cookies, self.store, self.cookies.read_correlation_key())
        email = normalize_email(user.email) or None
        return SignInDecision.redirect(
            auth_page_url(self.locale, "login", ALREADY_REGISTERED, email),
            ALREADY_REGISTERED,
        )


__all__ = [
    "ACCOUNT_NOT_FOUND",
    "ALREADY_REGISTERED",
    "CREDENTIALS",
    "INVALID_REQUEST",
    "SignInDecision",
    "SignInOrchestrator",
    "SignInUser",
    "auth_page_url",
]
