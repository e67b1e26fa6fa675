# backend/modules/restaurants/schemas/__init__.py

from .restaurant_schemas import (
    RestaurantCreate,
    RestaurantUpdate,
    RestaurantResponse,
    RestaurantImageIn,
    RestaurantImageResponse,
    RestaurantSearchParams,
    RestaurantFeatures,
    DayHours,
)
from .menu_item_schemas import (
    MenuItemCreate,
    MenuItemUpdate,
    MenuItemResponse,
    MenuItemSearchParams,
    DietaryInfo,
    CustomizationOption,
    CustomizationChoice,
)
