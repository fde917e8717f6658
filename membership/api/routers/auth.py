"""Authentication routes: credentials, OAuth round trips and session."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ...core import FRONTEND_ORIGIN, OAUTH_STATE_TTL, get_session
from ...services import providers
from ...services.claims import materialize_session
from ...services.cookies import INTENT_COOKIE, IntentCookies, normalize_locale
from ...services.errors import UserAlreadyExists
from ...services.flow import SignInFlow
from ...services.intents import LOGIN, IntentStore, new_correlation_key, normalize_intent
from ...services.passwords import hash_password
from ...services.resolution import discard_intent
from ...services.signin import auth_page_url
from ...services.users import create_user, find_user_by_email
from ...services.verification import (
    VerificationError,
    issue_verification_token,
    verify_email_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class LoginBody(BaseModel):
    email: str = Field(max_length=254, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=256)
    locale: Optional[str] = None


class RegisterBody(BaseModel):
    email: str = Field(max_length=254, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=256)
    name: Optional[str] = Field(default=None, max_length=100)
    locale: Optional[str] = None


class ResendBody(BaseModel):
    email: str = Field(max_length=254, pattern=EMAIL_PATTERN)
    locale: Optional[str] = None


def _error(status_code: int, code: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": code, **extra}, status_code=status_code)


def _frontend(path: str) -> str:
    if not path.startswith("/") or path.startswith("//"):
        path = "/"
    return f"{FRONTEND_ORIGIN}{path}"


def _redirect(cookies: IntentCookies, path: str) -> RedirectResponse:
    return cookies.apply(RedirectResponse(_frontend(path), status_code=302))


# Credentials ----------------------------------------------------------------
@router.post("/auth/login")
def login(body: LoginBody, request: Request, session: Session = Depends(get_session)):
    locale = normalize_locale(body.locale)
    try:
        user = find_user_by_email(session, body.email)
    except SQLAlchemyError:
        logger.exception("Login lookup failed")
        return _error(503, "DatabaseError")

    if user is None:
        return _error(404, "UserNotFound")
    if not user.password_hash:
        return _error(409, "UseOAuthProvider")
    if not user.email_verified:
        return _error(403, "EmailNotVerified", email=user.email)

    cookies = IntentCookies(request.cookies)
    result = SignInFlow(session, cookies, request.session).credentials(
        body.email, body.password
    )
    if not result.decision.allowed:
        return cookies.apply(_error(401, "InvalidPassword"))

    payload: Dict[str, Any] = {"success": "login", "redirect": f"/{locale}?success=login"}
    payload.update(materialize_session(request.session) or {})
    return cookies.apply(JSONResponse(payload))


@router.post("/auth/register", status_code=201)
def register(body: RegisterBody, request: Request, session: Session = Depends(get_session)):
    locale = normalize_locale(body.locale)
    try:
        if find_user_by_email(session, body.email) is not None:
            return _error(409, "AlreadyRegistered")
        user = create_user(
            session,
            email=body.email,
            name=body.name,
            password_hash=hash_password(body.password),
        )
        record = issue_verification_token(session, user.email)
    except UserAlreadyExists:
        return _error(409, "AlreadyRegistered")
    except SQLAlchemyError:
        logger.exception("Registration failed")
        session.rollback()
        return _error(503, "DatabaseError")

    try:
        request.app.state.mailer(user.email, record.token, locale)
    except Exception:
        logger.exception("Verification mail to %s failed", user.email)
        return _error(502, "EmailSendFailed", email=user.email)

    logger.info("User registered, verification pending: %s", user.email)
    return JSONResponse(
        {"success": "UserCreated", "requiresVerification": True, "email": user.email},
        status_code=201,
    )


@router.post("/auth/resend-verification")
def resend_verification(
    body: ResendBody, request: Request, session: Session = Depends(get_session)
):
    locale = normalize_locale(body.locale)
    user = find_user_by_email(session, body.email)
    if user is None:
        return _error(404, "UserNotFound")
    if user.email_verified:
        return _error(409, "AlreadyVerified")
    try:
        record = issue_verification_token(session, user.email)
        request.app.state.mailer(user.email, record.token, locale)
    except Exception:
        logger.exception("Resending verification to %s failed", user.email)
        return _error(502, "EmailSendFailed")
    return {"success": "EmailSent"}


@router.get("/api/auth/verify-email")
def verify_email(
    token: Optional[str] = None,
    locale: Optional[str] = None,
    session: Session = Depends(get_session),
):
    locale = normalize_locale(locale)
    cookies = IntentCookies()
    try:
        verify_email_token(session, token)
    except VerificationError as exc:
        return _redirect(cookies, auth_page_url(locale, "login", exc.code))
    except SQLAlchemyError:
        logger.exception("Email verification failed")
        session.rollback()
        return _redirect(cookies, auth_page_url(locale, "login", "VerificationFailed"))
    return _redirect(cookies, f"/{locale}/login?verified=true")


# OAuth ----------------------------------------------------------------------
@router.get("/auth/{provider}/start")
async def oauth_start(
    provider: str,
    request: Request,
    intent: str = LOGIN,
    locale: Optional[str] = None,
    session: Session = Depends(get_session),
):
    client = providers.get_client(provider)
    if client is None:
        raise HTTPException(status_code=404, detail="Unknown provider")
    value = normalize_intent(intent)
    if value is None:
        raise HTTPException(status_code=400, detail="InvalidIntent")

    cookies = IntentCookies(request.cookies)
    locale = normalize_locale(locale) if locale else cookies.read_locale()
    store = IntentStore(session)
    try:
        store.purge_expired()
        key = new_correlation_key()
        store.create(key, value, OAUTH_STATE_TTL)
    except SQLAlchemyError:
        logger.exception("Could not persist OAuth intent")
        session.rollback()
        return _redirect(cookies, auth_page_url(locale, "login", "DatabaseError"))

    cookies.clear(INTENT_COOKIE)
    cookies.set_correlation_key(key)
    cookies.set_locale(locale)
    request.session["next"] = f"/{locale}?success={value}"
    logger.info("OAuth %s start via %s", value, provider)

    try:
        response = await client.authorize_redirect(request, providers.callback_url(provider))
    except (OAuthError, httpx.HTTPError) as exc:
        logger.error("OAuth start for %s failed: %s", provider, exc)
        discard_intent(cookies, store, key)
        raise HTTPException(status_code=502, detail="OAuth provider unavailable") from exc
    return cookies.apply(response)


@router.get("/auth/{provider}/callback")
async def oauth_callback(
    provider: str, request: Request, session: Session = Depends(get_session)
):
    client = providers.get_client(provider)
    if client is None:
        raise HTTPException(status_code=404, detail="Unknown provider")

    cookies = IntentCookies(request.cookies)
    locale = cookies.read_locale()
    next_url = request.session.pop("next", None)

    try:
        token = await client.authorize_access_token(request)
        identity = await providers.fetch_identity(client, provider, token)
    except (OAuthError, httpx.HTTPError) as exc:
        logger.warning("OAuth callback for %s failed: %s", provider, exc)
        discard_intent(cookies, IntentStore(session), cookies.read_correlation_key())
        return _redirect(cookies, auth_page_url(locale, "login", "OAuthCallbackError"))

    if not identity.subject:
        logger.warning("OAuth callback for %s returned no subject", provider)
        discard_intent(cookies, IntentStore(session), cookies.read_correlation_key())
        return _redirect(cookies, auth_page_url(locale, "login", "OAuthCallbackError"))

    result = SignInFlow(session, cookies, request.session).oauth(identity)
    decision = result.decision
    if decision.allowed:
        target = next_url or f"/{locale}"
    elif decision.url:
        target = decision.url
    else:
        target = auth_page_url(locale, "login", "AccessDenied")
    return _redirect(cookies, target)


# Session --------------------------------------------------------------------
@router.post("/auth/logout")
def logout(request: Request):
    request.session.clear()
    cookies = IntentCookies(request.cookies)
    cookies.clear_all()
    return cookies.apply(JSONResponse({"ok": True}))


@router.get("/auth/session")
def read_session(request: Request):
    return materialize_session(request.session) or {"user": None}


__all__ = ["router"]
