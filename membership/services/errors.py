"""Domain errors raised by the authentication services."""

from __future__ import annotations


class AuthFlowError(Exception):
    """Base class for sign-in and account errors with a stable code."""

    code = "AuthError"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)


class UserCreationBlocked(AuthFlowError):
    """The creation gate refused to persist a user without a register intent."""

    code = "USER_CREATION_BLOCKED"

    def __init__(self, email: str | None = None, intent: str | None = None) -> None:
        super().__init__(f"{self.code}: intent={intent!r}")
        self.email = email
        self.intent = intent


class UserAlreadyExists(AuthFlowError):
    """A user with the same e-mail was committed first."""

    code = "AlreadyRegistered"

    def __init__(self, email: str) -> None:
        super().__init__(f"user already exists: {email}")
        self.email = email


class LastAdminError(AuthFlowError):
    code = "CannotRemoveLastAdmin"


__all__ = [
    "AuthFlowError",
    "LastAdminError",
    "UserAlreadyExists",
    "UserCreationBlocked",
]
