"""Sign-in lifecycle.

Drives one authentication attempt through the same steps, in the same
order, for every provider:

1. the sign-in callback decides allow/deny/redirect;
2. an external identity is matched to its linked account, or to the user the
   callback resolved by e-mail, or else created through the creation gate;
3. the identity is linked to the user;
4. the session claims are stamped.

Errors raised by the gate are turned back into redirects here, so a blocked
creation looks exactly like a login miss to the browser.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, MutableMapping, Optional

from sqlmodel import Session

from ..core import INTENT_RECENCY_FALLBACK, OAUTH_TRUST_EMAIL_VERIFIED
from ..models import User
from .adapter import CreateUser, default_create_user, gate_user_creation
from .claims import clear_claims, issue_token_claims
from .cookies import IntentCookies
from .errors import UserAlreadyExists, UserCreationBlocked
from .intents import IntentStore
from .resolution import discard_intent
from .signin import CREDENTIALS, SignInDecision, SignInOrchestrator, SignInUser
from .users import find_account, get_user, link_account

logger = logging.getLogger(__name__)


@dataclass
class FlowResult:
    decision: SignInDecision
    user: Optional[User] = None
    created: bool = False


class SignInFlow:
    """Run credentials or OAuth sign-ins against one request's state."""

    def __init__(
        self,
        session: Session,
        cookies: IntentCookies,
        claims: MutableMapping[str, Any],
        *,
        recency_fallback: bool = INTENT_RECENCY_FALLBACK,
        trust_email_verified: bool = OAUTH_TRUST_EMAIL_VERIFIED,
        create_user: CreateUser | None = None,
    ) -> None:
        self.session = session
        self.cookies = cookies
        self.claims = claims
        self.store = IntentStore(session)
        self.orchestrator = SignInOrchestrator(
            session, cookies, store=self.store, recency_fallback=recency_fallback
        )
        self.create_user = gate_user_creation(
            create_user
            or default_create_user(session, trust_email_verified=trust_email_verified),
            store=self.store,
            cookies=cookies,
            recency_fallback=recency_fallback,
        )

    def _establish(self, attempt: SignInUser) -> None:
        clear_claims(self.claims)
        issue_token_claims(self.claims, attempt)

    def credentials(self, email: str, password: str) -> FlowResult:
        attempt = SignInUser(provider=CREDENTIALS, email=email, password=password)
        decision = self.orchestrator.sign_in(attempt)
        if not decision.allowed:
            return FlowResult(decision)
        self._establish(attempt)
        return FlowResult(decision, user=get_user(self.session, attempt.id or ""))

    def oauth(self, attempt: SignInUser) -> FlowResult:
        if not attempt.subject:
            raise ValueError("external identity requires a provider subject")
        try:
            decision = self.orchestrator.sign_in(attempt)
            if not decision.allowed:
                return FlowResult(decision)
            user, created = self._resolve_user(attempt)
        except UserCreationBlocked:
            return FlowResult(self.orchestrator.handle_creation_blocked(attempt))
        except UserAlreadyExists:
            logger.info("Concurrent registration for %s lost the race", attempt.email)
            return FlowResult(self.orchestrator.handle_already_registered(attempt))
        except Exception:
            logger.exception("OAuth sign-in via %s failed after the callback", attempt.provider)
            self.session.rollback()
            self.cookies.clear_all()
            return FlowResult(SignInDecision.deny("error"))

        attempt.stamp(user)
        self._establish(attempt)
        return FlowResult(decision, user=user, created=created)

    def _resolve_user(self, attempt: SignInUser) -> tuple[User, bool]:
        provider, subject = attempt.provider, attempt.subject or ""
        account = find_account(self.session, provider, subject)
        if account is not None:
            user = get_user(self.session, account.user_id)
            if user is not None:
                discard_intent(self.cookies, self.store, self.cookies.read_correlation_key())
                return user, False

        created = False
        user = get_user(self.session, attempt.id) if attempt.id else None
        if user is None:
            user = self.create_user(attempt)
            created = True
        link_account(self.session, user, provider=provider, provider_account_id=subject)
        return user, created


__all__ = ["FlowResult", "SignInFlow"]
