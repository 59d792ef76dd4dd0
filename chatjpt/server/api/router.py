"""
Main API router that aggregates all route modules.
"""

from fastapi import APIRouter

from .routes import identity, messages, sessions


def get_api_router() -> APIRouter:
    api_router = APIRouter()

    api_router.include_router(identity.router)
    api_router.include_router(sessions.router)
    api_router.include_router(messages.router)

    return api_router
