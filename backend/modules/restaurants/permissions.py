# backend/modules/restaurants/permissions.py

"""
Ownership loaders and route guards for restaurant resources.

Menu items are reached through their restaurant's path, so guarding the
restaurant also guards its menu.
"""

from core.permissions import ResourceLoader, check_ownership
from core.user_models import RESTAURANT_MANAGER_ROLES

from .models.restaurant_models import Restaurant


RESTAURANT = "restaurant"


def _load_restaurant(db, restaurant_id: int):
    return db.get(Restaurant, restaurant_id)


RESOURCE_LOADERS = {
    RESTAURANT: ResourceLoader(
        load=_load_restaurant, owner_id=lambda r: r.owner_id, label="Restaurant"
    ),
}

# Route guards
owned_restaurant = check_ownership(RESTAURANT, "restaurant_id", *RESTAURANT_MANAGER_ROLES)
