"""System-level API endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from ...core import DEFAULT_LOCALE, SUPPORTED_LOCALES
from ...services.providers import ENABLED_PROVIDERS

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> Dict[str, bool]:
    """Simple readiness probe."""

    return {"ok": True}


@router.get("/config")
def get_config() -> Dict[str, Any]:
    """Expose frontend configuration values."""

    return {
        "providers": list(ENABLED_PROVIDERS),
        "default_locale": DEFAULT_LOCALE,
        "locales": SUPPORTED_LOCALES,
    }


__all__ = ["router"]
