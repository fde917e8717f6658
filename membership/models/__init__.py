"""Database model exports."""

from .account import Account
from .intent import OAUTH_INTENT_PURPOSE, IntentRecord
from .user import Role, User
from .verification import VerificationToken

__all__ = [
    "Account",
    "IntentRecord",
    "OAUTH_INTENT_PURPOSE",
    "Role",
    "User",
    "VerificationToken",
]
