# backend/modules/restaurants/models/__init__.py

from .restaurant_models import (
    Restaurant,
    RestaurantImage,
    MenuItem,
    PriceRange,
    RestaurantStatus,
    MenuItemCategory,
)

__all__ = [
    "Restaurant",
    "RestaurantImage",
    "MenuItem",
    "PriceRange",
    "RestaurantStatus",
    "MenuItemCategory",
]
