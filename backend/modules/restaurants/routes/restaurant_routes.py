# backend/modules/restaurants/routes/restaurant_routes.py

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import List, Optional

from core.auth import Principal, get_current_user
from core.database import get_db
from core.deps import get_blob_store
from core.file_service import BlobStore, read_upload
from core.permissions import require_roles
from core.response_models import StandardResponse
from core.user_models import RESTAURANT_MANAGER_ROLES

from ..models.restaurant_models import Restaurant, RestaurantStatus, VerificationStatus
from ..permissions import owned_restaurant
from ..schemas.restaurant_schemas import (
    RestaurantCreate, RestaurantUpdate, RestaurantResponse,
    RestaurantImageResponse, RestaurantSearchParams,
)
from ..services.restaurant_service import RestaurantService


router = APIRouter(prefix="/restaurants", tags=["Restaurants"])


def get_restaurant_service(request: Request, db: Session = Depends(get_db)) -> RestaurantService:
    """Dependency to get restaurant service instance"""
    settings = request.app.state.services.settings
    return RestaurantService(db, max_upload_size=settings.max_upload_size_bytes)


@router.get("", response_model=StandardResponse[List[RestaurantResponse]])
def list_restaurants(
    status_filter: Optional[RestaurantStatus] = Query(None, alias="status", description="Filter by status"),
    cuisine: Optional[str] = Query(None, description="Filter by cuisine type"),
    city: Optional[str] = Query(None, description="Filter by city"),
    owner_id: Optional[int] = Query(None, description="Filter by owner"),
    featured: Optional[bool] = Query(None, description="Filter by featured flag"),
    verification_status: Optional[VerificationStatus] = Query(None, description="Filter by verification status"),
    search: Optional[str] = Query(None, description="Search restaurant names"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(25, ge=1, le=100, description="Restaurants per page"),
    sort_by: str = Query("created_at", pattern=r"^(name|created_at|updated_at|price_range)$"),
    sort_order: str = Query("desc", pattern=r"^(asc|desc)$"),
    service: RestaurantService = Depends(get_restaurant_service),
):
    """List restaurants with filters, sorting and pagination"""
    params = RestaurantSearchParams(
        status=status_filter,
        cuisine=cuisine,
        city=city,
        owner_id=owner_id,
        featured=featured,
        verification_status=verification_status,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    restaurants, total = service.list_restaurants(params)
    return StandardResponse.paginated(
        [RestaurantResponse.model_validate(r) for r in restaurants],
        page=page,
        per_page=limit,
        total=total,
    )


@router.get("/{restaurant_id}", response_model=StandardResponse[RestaurantResponse])
def get_restaurant(
    restaurant_id: int,
    service: RestaurantService = Depends(get_restaurant_service),
):
    """Get a single restaurant"""
    restaurant = service.get_restaurant(restaurant_id)
    return StandardResponse.ok(RestaurantResponse.model_validate(restaurant))


@router.post(
    "",
    response_model=StandardResponse[RestaurantResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_restaurant(
    restaurant_data: RestaurantCreate,
    service: RestaurantService = Depends(get_restaurant_service),
    current_user: Principal = Depends(require_roles(*RESTAURANT_MANAGER_ROLES)),
):
    """
    Create a restaurant owned by the caller.

    Restricted to restaurant owners and admins.
    """
    restaurant = service.create_restaurant(restaurant_data, current_user)
    return StandardResponse.ok(RestaurantResponse.model_validate(restaurant))


@router.put("/{restaurant_id}", response_model=StandardResponse[RestaurantResponse])
def update_restaurant(
    restaurant_id: int,
    restaurant_data: RestaurantUpdate,
    restaurant: Restaurant = Depends(owned_restaurant),
    current_user: Principal = Depends(get_current_user),
    service: RestaurantService = Depends(get_restaurant_service),
):
    """Update a restaurant (owner or admin)"""
    restaurant = service.update_restaurant(restaurant, restaurant_data, current_user)
    return StandardResponse.ok(RestaurantResponse.model_validate(restaurant))


@router.delete("/{restaurant_id}", response_model=StandardResponse[dict])
def delete_restaurant(
    restaurant_id: int,
    restaurant: Restaurant = Depends(owned_restaurant),
    service: RestaurantService = Depends(get_restaurant_service),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Delete a restaurant together with its menu items and images.

    Sync handler: the transaction runs to completion in the threadpool
    even if the client disconnects.
    """
    deleted_items = service.delete_restaurant(restaurant, blob_store)
    return StandardResponse.ok(
        {"id": restaurant_id, "deleted_menu_items": deleted_items},
        message="Restaurant deleted",
    )


@router.post(
    "/{restaurant_id}/upload",
    response_model=StandardResponse[RestaurantImageResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upload_restaurant_image(
    restaurant_id: int,
    file: Optional[UploadFile] = File(None),
    caption: Optional[str] = Form(None),
    is_primary: bool = Form(False),
    restaurant: Restaurant = Depends(owned_restaurant),
    service: RestaurantService = Depends(get_restaurant_service),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Upload an image for a restaurant.

    Example:
        curl -X POST -H "Authorization: Bearer $TOKEN" \\
             -F "file=@front.jpg" -F "caption=Entrance" \\
             http://localhost:8000/api/v1/restaurants/1/upload
    """
    upload = await read_upload(file, service.max_upload_size)
    image = await run_in_threadpool(
        service.upload_image, restaurant, upload, caption, is_primary, blob_store
    )
    return StandardResponse.ok(RestaurantImageResponse.model_validate(image))


@router.delete(
    "/{restaurant_id}/images/{image_id}",
    response_model=StandardResponse[RestaurantResponse],
)
def delete_restaurant_image(
    restaurant_id: int,
    image_id: int,
    restaurant: Restaurant = Depends(owned_restaurant),
    service: RestaurantService = Depends(get_restaurant_service),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Remove an image; the oldest remaining image becomes primary if needed"""
    service.delete_image(restaurant, image_id, blob_store)
    return StandardResponse.ok(
        RestaurantResponse.model_validate(service.get_restaurant(restaurant_id)),
        message="Image deleted",
    )

