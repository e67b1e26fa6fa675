# backend/modules/restaurants/models/restaurant_models.py

import enum

from sqlalchemy import (Column, Integer, String, ForeignKey, DateTime, Float,
                        Text, Boolean, JSON, UniqueConstraint, Enum as SQLEnum)
from sqlalchemy.orm import relationship

from core.database import Base
from core.mixins import TimestampMixin, utcnow
from core.user_models import enum_values


class PriceRange(str, enum.Enum):
    BUDGET = "$"
    MODERATE = "$$"
    EXPENSIVE = "$$$"
    LUXURY = "$$$$"


class RestaurantStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    MAINTENANCE = "maintenance"


class VerificationStatus(str, enum.Enum):
    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"


class MenuItemCategory(str, enum.Enum):
    APPETIZER = "appetizer"
    MAIN_COURSE = "main course"
    DESSERT = "dessert"
    BEVERAGE = "beverage"
    SIDE = "side"
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SPECIAL = "special"


def default_rating():
    return {"average": 0.0, "count": 0}


def _enum_column(enum_cls, **kwargs):
    return Column(
        SQLEnum(enum_cls, native_enum=False, values_callable=enum_values, length=32),
        **kwargs,
    )


class Restaurant(Base, TimestampMixin):
    """A restaurant listing owned by one user"""
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False)
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=True, index=True)
    country = Column(String(100), nullable=True)
    location = Column(JSON, nullable=True)  # {"coordinates": [lng, lat], "state": ..., "zipcode": ...}
    cuisine = Column(JSON, nullable=False, default=list)
    price_range = _enum_column(PriceRange, nullable=False)

    # Contact info
    phone = Column(String(30), nullable=False)
    email = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)

    opening_hours = Column(JSON, nullable=True)  # {"monday": {"open": "09:00", "close": "17:00"}, ...}
    features = Column(JSON, nullable=False, default=dict)

    status = _enum_column(RestaurantStatus, nullable=False, default=RestaurantStatus.INACTIVE)
    featured = Column(Boolean, nullable=False, default=False)
    verification_status = _enum_column(
        VerificationStatus, nullable=False, default=VerificationStatus.UNVERIFIED
    )
    rating = Column(JSON, nullable=False, default=default_rating)  # {"average": 0..5, "count": n}

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Relationships
    owner = relationship("User")
    images = relationship(
        "RestaurantImage",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        order_by="RestaurantImage.id",
    )

    @property
    def primary_image(self):
        return next((image for image in self.images if image.is_primary), None)

    def __repr__(self):
        return f"<Restaurant(id={self.id}, name='{self.name}')>"


class RestaurantImage(Base):
    """Image attached to a restaurant; at most one per restaurant is primary"""
    __tablename__ = "restaurant_images"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"),
                           nullable=False, index=True)
    url = Column(String(500), nullable=False)
    storage_key = Column(String(500), nullable=True)  # None for externally hosted URLs
    caption = Column(String(255), nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    restaurant = relationship("Restaurant", back_populates="images")

    def __repr__(self):
        return f"<RestaurantImage(id={self.id}, restaurant_id={self.restaurant_id}, primary={self.is_primary})>"


class MenuItem(Base, TimestampMixin):
    """A dish or drink on one restaurant's menu"""
    __tablename__ = "menu_items"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "name", name="uq_menu_items_restaurant_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    category = _enum_column(MenuItemCategory, nullable=False, index=True)

    dietary_info = Column(JSON, nullable=False, default=dict)
    customization_options = Column(JSON, nullable=False, default=list)

    # Image
    image_url = Column(String(500), nullable=True)
    image_key = Column(String(500), nullable=True)
    image_alt = Column(String(255), nullable=True)

    available = Column(Boolean, nullable=False, default=True)
    featured = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)

    restaurant = relationship("Restaurant")

    def __repr__(self):
        return f"<MenuItem(id={self.id}, restaurant_id={self.restaurant_id}, name='{self.name}')>"
