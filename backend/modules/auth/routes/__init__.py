# backend/modules/auth/routes/__init__.py

from fastapi import APIRouter

from .auth_routes import router as auth_router
from .password_routes import router as password_router
from .user_routes import router as user_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(password_router)
router.include_router(user_router)

__all__ = ["router", "auth_router", "password_router", "user_router"]
