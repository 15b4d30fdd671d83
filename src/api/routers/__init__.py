"""
API routers.

Every router is mounted under /api by the application factory.
"""

from fastapi import APIRouter

from src.api.routers import auth, navigation, programs, users

router = APIRouter()
router.include_router(auth.router)
router.include_router(navigation.router)
router.include_router(programs.router)
router.include_router(users.router)

__all__ = ["router"]
