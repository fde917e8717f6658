"""Aggregate API routers."""

from fastapi import APIRouter

from .admin import router as admin_router
from .auth import router as auth_router
from .profile import router as profile_router
from .system import router as system_router

ALL_ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    auth_router,
    profile_router,
    admin_router,
)

__all__ = ["ALL_ROUTERS"]
