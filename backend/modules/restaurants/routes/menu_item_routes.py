# backend/modules/restaurants/routes/menu_item_routes.py

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import List, Optional

from core.database import get_db
from core.deps import get_blob_store
from core.file_service import BlobStore, read_upload
from core.response_models import StandardResponse

from ..models.restaurant_models import MenuItemCategory, Restaurant
from ..permissions import owned_restaurant
from ..schemas.menu_item_schemas import (
    MenuItemCreate, MenuItemUpdate, MenuItemResponse, MenuItemSearchParams,
)
from ..services.menu_item_service import MenuItemService


router = APIRouter(tags=["Menu Items"])


def get_menu_item_service(request: Request, db: Session = Depends(get_db)) -> MenuItemService:
    """Dependency to get menu item service instance"""
    settings = request.app.state.services.settings
    return MenuItemService(db, max_upload_size=settings.max_upload_size_bytes)


def menu_item_search_params(
    category: Optional[MenuItemCategory] = Query(None, description="Filter by category"),
    available: Optional[bool] = Query(None, description="Filter by availability"),
    featured: Optional[bool] = Query(None, description="Filter by featured flag"),
    min_price: Optional[float] = Query(None, ge=0, description="Minimum price"),
    max_price: Optional[float] = Query(None, ge=0, description="Maximum price"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=500, description="Items per page"),
    sort_by: str = Query("display_order", pattern=r"^(name|price|created_at|display_order)$"),
    sort_order: str = Query("asc", pattern=r"^(asc|desc)$"),
) -> MenuItemSearchParams:
    return MenuItemSearchParams(
        category=category,
        available=available,
        featured=featured,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def _paginated(items, total, params: MenuItemSearchParams):
    return StandardResponse.paginated(
        [MenuItemResponse.model_validate(item) for item in items],
        page=params.page,
        per_page=params.limit,
        total=total,
    )


@router.get("/menu-items", response_model=StandardResponse[List[MenuItemResponse]])
def list_menu_items(
    params: MenuItemSearchParams = Depends(menu_item_search_params),
    service: MenuItemService = Depends(get_menu_item_service),
):
    """List menu items across all restaurants"""
    items, total = service.list_menu_items(params)
    return _paginated(items, total, params)


@router.get(
    "/restaurants/{restaurant_id}/menu-items",
    response_model=StandardResponse[List[MenuItemResponse]],
)
def list_restaurant_menu_items(
    restaurant_id: int,
    params: MenuItemSearchParams = Depends(menu_item_search_params),
    service: MenuItemService = Depends(get_menu_item_service),
):
    """List the menu of one restaurant"""
    items, total = service.list_menu_items_for_restaurant(restaurant_id, params)
    return _paginated(items, total, params)


@router.get(
    "/restaurants/{restaurant_id}/menu-items/{item_id}",
    response_model=StandardResponse[MenuItemResponse],
)
def get_menu_item(
    restaurant_id: int,
    item_id: int,
    service: MenuItemService = Depends(get_menu_item_service),
):
    """Get a single menu item of a restaurant"""
    item = service.ensure_belongs_to(service.get_menu_item(item_id), restaurant_id)
    return StandardResponse.ok(MenuItemResponse.model_validate(item))


@router.post(
    "/restaurants/{restaurant_id}/menu-items",
    response_model=StandardResponse[MenuItemResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_menu_item(
    restaurant_id: int,
    item_data: MenuItemCreate,
    restaurant: Restaurant = Depends(owned_restaurant),
    service: MenuItemService = Depends(get_menu_item_service),
):
    """Add a menu item to a restaurant (owner or admin)"""
    item = service.create_menu_item(restaurant.id, item_data)
    return StandardResponse.ok(MenuItemResponse.model_validate(item))


@router.put(
    "/restaurants/{restaurant_id}/menu-items/{item_id}",
    response_model=StandardResponse[MenuItemResponse],
)
def update_menu_item(
    restaurant_id: int,
    item_id: int,
    item_data: MenuItemUpdate,
    restaurant: Restaurant = Depends(owned_restaurant),
    service: MenuItemService = Depends(get_menu_item_service),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Update a menu item (owner or admin)"""
    item = service.ensure_belongs_to(service.get_menu_item(item_id), restaurant.id)
    item = service.update_menu_item(item, item_data, blob_store)
    return StandardResponse.ok(MenuItemResponse.model_validate(item))


@router.delete(
    "/restaurants/{restaurant_id}/menu-items/{item_id}",
    response_model=StandardResponse[dict],
)
def delete_menu_item(
    restaurant_id: int,
    item_id: int,
    restaurant: Restaurant = Depends(owned_restaurant),
    service: MenuItemService = Depends(get_menu_item_service),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Delete a menu item (owner or admin)"""
    item = service.ensure_belongs_to(service.get_menu_item(item_id), restaurant.id)
    service.delete_menu_item(item, blob_store)
    return StandardResponse.ok({"id": item_id}, message="Menu item deleted")


@router.post(
    "/restaurants/{restaurant_id}/menu-items/{item_id}/upload",
    response_model=StandardResponse[MenuItemResponse],
)
async def upload_menu_item_image(
    restaurant_id: int,
    item_id: int,
    file: Optional[UploadFile] = File(None),
    alt: Optional[str] = Form(None),
    restaurant: Restaurant = Depends(owned_restaurant),
    service: MenuItemService = Depends(get_menu_item_service),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Upload or replace the image of a menu item"""
    upload = await read_upload(file, service.max_upload_size)
    item = await run_in_threadpool(service.get_menu_item, item_id)
    service.ensure_belongs_to(item, restaurant.id)
    item = await run_in_threadpool(service.upload_image, item, upload, alt, blob_store)
    return StandardResponse.ok(MenuItemResponse.model_validate(item))
