# backend/modules/restaurants/routes/__init__.py

from fastapi import APIRouter

from .restaurant_routes import router as restaurant_router
from .menu_item_routes import router as menu_item_router

router = APIRouter()
router.include_router(restaurant_router)
router.include_router(menu_item_router)

__all__ = ["router", "restaurant_router", "menu_item_router"]
