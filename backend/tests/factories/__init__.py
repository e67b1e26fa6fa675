# backend/tests/factories/__init__.py

"""
Shared test factories for the restaurant marketplace backend.

These factories provide reusable test data generation for all modules.
"""

from .base import BaseFactory
from .auth import DEFAULT_PASSWORD, TEST_HASHER, AdminFactory, OwnerFactory, UserFactory
from .restaurant import (
    MenuItemFactory,
    RestaurantFactory,
    RestaurantImageFactory,
    create_restaurant_with_menu,
)

ALL_FACTORIES = (
    UserFactory,
    OwnerFactory,
    AdminFactory,
    RestaurantFactory,
    RestaurantImageFactory,
    MenuItemFactory,
)


def bind_session(session):
    for factory_cls in ALL_FACTORIES:
        factory_cls.bind_session(session)


def reset_sessions():
    for factory_cls in ALL_FACTORIES:
        factory_cls.reset_session()


__all__ = [
    'BaseFactory',
    'bind_session',
    'reset_sessions',
    'DEFAULT_PASSWORD',
    'TEST_HASHER',

    # Auth
    'UserFactory',
    'OwnerFactory',
    'AdminFactory',

    # Restaurants
    'RestaurantFactory',
    'RestaurantImageFactory',
    'MenuItemFactory',
    'create_restaurant_with_menu',
]
