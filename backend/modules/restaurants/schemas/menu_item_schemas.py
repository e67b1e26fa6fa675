# backend/modules/restaurants/schemas/menu_item_schemas.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from ..models.restaurant_models import MenuItemCategory


class DietaryInfo(BaseModel):
    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = False
    dairy_free: bool = False
    nut_free: bool = False
    spicy: bool = False


class CustomizationChoice(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price_adjustment: float = 0


class CustomizationOption(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    choices: List[CustomizationChoice] = []


# Base schemas
class MenuItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    price: float = Field(..., ge=0)
    category: MenuItemCategory
    dietary_info: DietaryInfo = Field(default_factory=DietaryInfo)
    customization_options: List[CustomizationOption] = []
    image_url: Optional[str] = Field(None, max_length=500)
    image_alt: Optional[str] = Field(None, max_length=255)
    available: bool = True
    featured: bool = False
    display_order: int = Field(default=0, ge=0)


class MenuItemCreate(MenuItemBase):
    pass


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[MenuItemCategory] = None
    dietary_info: Optional[DietaryInfo] = None
    customization_options: Optional[List[CustomizationOption]] = None
    image_url: Optional[str] = Field(None, max_length=500)
    image_alt: Optional[str] = Field(None, max_length=255)
    available: Optional[bool] = None
    featured: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)


class MenuItemResponse(MenuItemBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    restaurant_id: int
    created_at: datetime
    updated_at: datetime


class MenuItemSearchParams(BaseModel):
    category: Optional[MenuItemCategory] = None
    available: Optional[bool] = None
    featured: Optional[bool] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=500)
    sort_by: str = Field(
        default="display_order", pattern=r"^(name|price|created_at|display_order)$"
    )
    sort_order: str = Field(default="asc", pattern=r"^(asc|desc)$")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
