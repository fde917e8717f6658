"""External identity providers (Authlib Starlette clients)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from authlib.integrations.starlette_client import OAuth, StarletteOAuth2App

from ..core.config import (
    GITHUB_CLIENT_ID,
    GITHUB_CLIENT_SECRET,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    MICROSOFT_ENTRA_ID_CLIENT_ID,
    MICROSOFT_ENTRA_ID_CLIENT_SECRET,
    MICROSOFT_ENTRA_ID_TENANT_ID,
    OAUTH_REDIRECT_BASE,
)
from .signin import SignInUser

logger = logging.getLogger(__name__)

GOOGLE = "google"
GITHUB = "github"
MICROSOFT = "microsoft-entra-id"
SHARED_TENANTS = frozenset({"common", "organizations"})

oauth = OAuth()


def register_providers(registry: OAuth) -> List[str]:
    """Register every provider whose client credentials are configured."""

    enabled: List[str] = []
    if GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET:
        registry.register(
            name=GOOGLE,
            client_id=GOOGLE_CLIENT_ID,
            client_secret=GOOGLE_CLIENT_SECRET,
            server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
            client_kwargs={"scope": "openid email profile"},
            authorize_params={"prompt": "consent", "access_type": "offline"},
        )
        enabled.append(GOOGLE)
    if GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET:
        registry.register(
            name=GITHUB,
            client_id=GITHUB_CLIENT_ID,
            client_secret=GITHUB_CLIENT_SECRET,
            access_token_url="https://github.com/login/oauth/access_token",
            authorize_url="https://github.com/login/oauth/authorize",
            api_base_url="https://api.github.com/",
            client_kwargs={"scope": "read:user user:email"},
        )
        enabled.append(GITHUB)
    if MICROSOFT_ENTRA_ID_CLIENT_ID and MICROSOFT_ENTRA_ID_CLIENT_SECRET:
        tenant = MICROSOFT_ENTRA_ID_TENANT_ID
        # Graph profile instead of the id_token: multi-tenant issuers do not
        # match the discovery document.
        registry.register(
            name=MICROSOFT,
            client_id=MICROSOFT_ENTRA_ID_CLIENT_ID,
            client_secret=MICROSOFT_ENTRA_ID_CLIENT_SECRET,
            authorize_url=f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize",
            access_token_url=f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token",
            api_base_url="https://graph.microsoft.com/v1.0/",
            client_kwargs={"scope": "User.Read"},
        )
        enabled.append(MICROSOFT)
    if not enabled:
        logger.warning("No OAuth providers configured; only credentials sign-in is available")
    return enabled


ENABLED_PROVIDERS = register_providers(oauth)


def get_client(provider: str) -> Optional[StarletteOAuth2App]:
    if provider not in ENABLED_PROVIDERS:
        return None
    return oauth.create_client(provider)


def callback_url(provider: str) -> str:
    return f"{OAUTH_REDIRECT_BASE}/auth/{provider}/callback"


def _github_primary_email(emails: List[Dict[str, Any]]) -> Optional[str]:
    verified = [item for item in emails if item.get("verified")]
    for item in verified:
        if item.get("primary"):
            return item.get("email")
    return verified[0].get("email") if verified else None


def _microsoft_identity(profile: Dict[str, Any]) -> SignInUser:
    """Graph ``/me`` profile to in-flight user.

    ``userPrincipalName`` is a sign-in name, not a mailbox, and is never used.
    ``mail`` is only trusted when the app is bound to a single tenant: on the
    shared authorities any tenant's admin can set it to an arbitrary address.
    """

    email = profile.get("mail")
    if MICROSOFT_ENTRA_ID_TENANT_ID.lower() in SHARED_TENANTS:
        if email:
            logger.warning("Ignoring Entra ID mail %s from a multi-tenant sign-in", email)
        email = None
    return SignInUser(
        provider=MICROSOFT,
        subject=str(profile.get("id") or ""),
        email=email,
        name=profile.get("displayName"),
    )


async def fetch_identity(
    client: StarletteOAuth2App, provider: str, token: Dict[str, Any]
) -> SignInUser:
    """Turn a provider token response into the in-flight user."""

    if provider == GOOGLE:
        info = token.get("userinfo") or await client.userinfo(token=token)
        return SignInUser(
            provider=provider,
            subject=str(info.get("sub") or ""),
            email=info.get("email") if info.get("email_verified", True) else None,
            name=info.get("name"),
            image=info.get("picture"),
        )

    if provider == GITHUB:
        response = await client.get("user", token=token)
        response.raise_for_status()
        profile = response.json()
        email = profile.get("email")
        if not email:
            emails_response = await client.get("user/emails", token=token)
            emails_response.raise_for_status()
            email = _github_primary_email(emails_response.json())
        return SignInUser(
            provider=provider,
            subject=str(profile.get("id") or ""),
            email=email,
            name=profile.get("name") or profile.get("login"),
            image=profile.get("avatar_url"),
        )

    if provider == MICROSOFT:
        response = await client.get("me", token=token)
        response.raise_for_status()
        return _microsoft_identity(response.json())

    raise ValueError(f"unsupported provider: {provider}")


__all__ = [
    "ENABLED_PROVIDERS",
    "GITHUB",
    "GOOGLE",
    "MICROSOFT",
    "SHARED_TENANTS",
    "callback_url",
    "fetch_identity",
    "get_client",
    "oauth",
    "register_providers",
]
