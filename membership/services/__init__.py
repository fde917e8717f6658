"""Service layer helpers."""

from .claims import issue_token_claims, materialize_session
from .cookies import IntentCookies
from .errors import AuthFlowError, UserAlreadyExists, UserCreationBlocked
from .flow import FlowResult, SignInFlow
from .intents import IntentStore, new_correlation_key
from .signin import SignInDecision, SignInOrchestrator, SignInUser

__all__ = [
    "AuthFlowError",
    "FlowResult",
    "IntentCookies",
    "IntentStore",
    "SignInDecision",
    "SignInFlow",
    "SignInOrchestrator",
    "SignInUser",
    "UserAlreadyExists",
    "UserCreationBlocked",
    "issue_token_claims",
    "materialize_session",
    "new_correlation_key",
]
