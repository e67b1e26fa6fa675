# backend/modules/restaurants/services/__init__.py

from .restaurant_service import RestaurantService
from .menu_item_service import MenuItemService

__all__ = ["RestaurantService", "MenuItemService"]
