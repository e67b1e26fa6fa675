# backend/modules/restaurants/schemas/restaurant_schemas.py

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime

from ..models.restaurant_models import PriceRange, RestaurantStatus, VerificationStatus


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


class DayHours(BaseModel):
    open: Optional[str] = Field(None, pattern=TIME_PATTERN)
    close: Optional[str] = Field(None, pattern=TIME_PATTERN)


class RestaurantFeatures(BaseModel):
    delivery: bool = False
    takeout: bool = True
    reservation_required: bool = False
    outdoor_seating: bool = False
    vegetarian_options: bool = False
    vegan_options: bool = False
    gluten_free_options: bool = False


class RestaurantLocation(BaseModel):
    # GeoJSON point order: [longitude, latitude]
    coordinates: Optional[List[float]] = Field(None, min_length=2, max_length=2)
    state: Optional[str] = Field(None, max_length=100)
    zipcode: Optional[str] = Field(None, max_length=20)

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, v):
        if v is None:
            return v
        longitude, latitude = v
        if not -180 <= longitude <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        if not -90 <= latitude <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v


class RestaurantRating(BaseModel):
    average: float = Field(0.0, ge=0, le=5)
    count: int = Field(0, ge=0)


def _check_weekdays(value: Optional[Dict[str, DayHours]]):
    if value is None:
        return value
    unknown = [day for day in value if day not in WEEKDAYS]
    if unknown:
        raise ValueError(f"Unknown days in opening hours: {', '.join(unknown)}")
    return value


def _clean_cuisine(value: Optional[List[str]]):
    if value is None:
        return value
    cleaned = [c.strip() for c in value if c and c.strip()]
    if not cleaned:
        raise ValueError("Please specify at least one cuisine type")
    return cleaned


class RestaurantImageIn(BaseModel):
    url: str = Field(..., min_length=1, max_length=500)
    caption: Optional[str] = Field(None, max_length=255)
    is_primary: bool = False


# Base schemas
class RestaurantBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    address: str = Field(..., min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    location: Optional[RestaurantLocation] = None
    cuisine: List[str] = Field(..., min_length=1)
    price_range: PriceRange
    phone: str = Field(..., min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=500)
    opening_hours: Optional[Dict[str, DayHours]] = None
    features: RestaurantFeatures = Field(default_factory=RestaurantFeatures)
    status: RestaurantStatus = RestaurantStatus.INACTIVE

    @field_validator("cuisine")
    @classmethod
    def validate_cuisine(cls, v):
        return _clean_cuisine(v)

    @field_validator("opening_hours")
    @classmethod
    def validate_opening_hours(cls, v):
        return _check_weekdays(v)


class RestaurantCreate(RestaurantBase):
    # featured, verification_status and rating are admin-only
    featured: bool = False
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    rating: RestaurantRating = Field(default_factory=RestaurantRating)
    images: List[RestaurantImageIn] = []


class RestaurantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    location: Optional[RestaurantLocation] = None
    cuisine: Optional[List[str]] = None
    price_range: Optional[PriceRange] = None
    phone: Optional[str] = Field(None, min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=500)
    opening_hours: Optional[Dict[str, DayHours]] = None
    features: Optional[RestaurantFeatures] = None
    status: Optional[RestaurantStatus] = None
    featured: Optional[bool] = None
    verification_status: Optional[VerificationStatus] = None
    rating: Optional[RestaurantRating] = None
    primary_image_id: Optional[int] = None

    @field_validator("cuisine")
    @classmethod
    def validate_cuisine(cls, v):
        return _clean_cuisine(v)

    @field_validator("opening_hours")
    @classmethod
    def validate_opening_hours(cls, v):
        return _check_weekdays(v)


class RestaurantImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    caption: Optional[str] = None
    is_primary: bool
    created_at: datetime


class RestaurantResponse(RestaurantBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    featured: bool
    verification_status: VerificationStatus
    rating: RestaurantRating
    images: List[RestaurantImageResponse] = []
    created_at: datetime
    updated_at: datetime


class RestaurantSearchParams(BaseModel):
    status: Optional[RestaurantStatus] = None
    cuisine: Optional[str] = None
    city: Optional[str] = None
    owner_id: Optional[int] = None
    featured: Optional[bool] = None
    verification_status: Optional[VerificationStatus] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=25, ge=1, le=100)
    sort_by: str = Field(
        default="created_at", pattern=r"^(name|created_at|updated_at|price_range)$"
    )
    sort_order: str = Field(default="desc", pattern=r"^(asc|desc)$")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
