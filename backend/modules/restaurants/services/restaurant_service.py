# backend/modules/restaurants/services/restaurant_service.py

from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import asc, desc, cast, String
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.auth import Principal
from core.database import json_serializer
from core.database_utils import LIKE_ESCAPE, commit_or_conflict, escape_like
from core.exceptions import (
    ConflictError, ForbiddenError, InternalError, NotFoundError, ValidationError,
)
from core.file_service import (
    BlobStore, ImageUpload, build_blob_key, discard_blob, store_blob, validate_image_upload,
)
from core.user_models import UserRole

from ..models.restaurant_models import MenuItem, Restaurant, RestaurantImage, VerificationStatus
from ..schemas.restaurant_schemas import (
    RestaurantCreate, RestaurantUpdate, RestaurantSearchParams,
)

logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = {
    "name", "description", "address", "cuisine", "price_range", "phone",
    "features", "status", "featured", "verification_status", "rating",
}

# Only admins may set these, on create or update
ADMIN_ONLY_FIELDS = {
    "featured": "Only admins can feature a restaurant",
    "verification_status": "Only admins can change the verification status",
    "rating": "Only admins can set the rating",
}


class RestaurantService:
    """Service class for restaurant lifecycle operations"""

    def __init__(self, db: Session, max_upload_size: int = 1_000_000):
        self.db = db
        self.max_upload_size = max_upload_size

    # Queries
    def get_restaurant(self, restaurant_id: int) -> Restaurant:
        restaurant = self.db.get(Restaurant, restaurant_id)
        if restaurant is None:
            raise NotFoundError(f"Restaurant not found with id of {restaurant_id}")
        return restaurant

    def list_restaurants(self, params: RestaurantSearchParams) -> Tuple[List[Restaurant], int]:
        """Get restaurants with filtering, sorting and pagination"""
        query = self.db.query(Restaurant).options(selectinload(Restaurant.images))

        if params.status is not None:
            query = query.filter(Restaurant.status == params.status)

        if params.cuisine:
            # cuisine is a JSON list; match one serialized element in its text form
            element = escape_like(json_serializer(params.cuisine))
            query = query.filter(
                cast(Restaurant.cuisine, String).ilike(f"%{element}%", escape=LIKE_ESCAPE)
            )

        if params.city:
            query = query.filter(Restaurant.city.ilike(escape_like(params.city), escape=LIKE_ESCAPE))

        if params.owner_id is not None:
            query = query.filter(Restaurant.owner_id == params.owner_id)

        if params.featured is not None:
            query = query.filter(Restaurant.featured == params.featured)

        if params.verification_status is not None:
            query = query.filter(Restaurant.verification_status == params.verification_status)

        if params.search:
            query = query.filter(
                Restaurant.name.ilike(f"%{escape_like(params.search)}%", escape=LIKE_ESCAPE)
            )

        total = query.count()

        sort_column = getattr(Restaurant, params.sort_by, Restaurant.created_at)
        order = desc if params.sort_order == "desc" else asc
        query = query.order_by(order(sort_column), order(Restaurant.id))

        items = query.offset(params.offset).limit(params.limit).all()
        return items, total

    def name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Restaurant.id).filter(Restaurant.name == name)
        if exclude_id is not None:
            query = query.filter(Restaurant.id != exclude_id)
        return query.first() is not None

    # Create
    def create_restaurant(self, data: RestaurantCreate, owner: Principal) -> Restaurant:
        self._validate_create(data, owner)
        values, images = self._transform_create(data)

        if self.name_taken(values["name"]):
            raise_duplicate_name(values["name"])

        restaurant = Restaurant(**values, owner_id=owner.id)
        restaurant.images = [RestaurantImage(**image) for image in images]
        self.db.add(restaurant)
        self._persist(f"Restaurant '{values['name']}' already exists")
        self.db.refresh(restaurant)

        logger.info(f"User {owner.id} created restaurant {restaurant.id}")
        return restaurant

    def _validate_create(self, data: RestaurantCreate, owner: Principal) -> None:
        primary_count = sum(1 for image in data.images if image.is_primary)
        if primary_count > 1:
            raise ValidationError("Only one image can be marked as primary")
        if owner.role != UserRole.ADMIN:
            requested = {
                "featured": data.featured,
                "verification_status": data.verification_status != VerificationStatus.UNVERIFIED,
                "rating": "rating" in data.model_fields_set,
            }
            denied = next((field for field, asked in requested.items() if asked), None)
            if denied:
                raise ForbiddenError(ADMIN_ONLY_FIELDS[denied])

    def _transform_create(self, data: RestaurantCreate) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
        values = data.model_dump(exclude={"images"}, mode="json")
        values["name"] = clean_name(values["name"])
        values["price_range"] = data.price_range
        values["status"] = data.status
        values["verification_status"] = data.verification_status

        images = [image.model_dump() for image in data.images]
        if images and not any(image["is_primary"] for image in images):
            images[0]["is_primary"] = True
        return values, images

    # Update
    def update_restaurant(
        self, restaurant: Restaurant, data: RestaurantUpdate, principal: Principal
    ) -> Restaurant:
        changes = data.model_dump(exclude_unset=True)
        primary_image_id = changes.pop("primary_image_id", None)

        self._validate_update(restaurant, changes, principal)
        changes = self._transform_update(data, changes)

        for key, value in changes.items():
            setattr(restaurant, key, value)

        if primary_image_id is not None:
            self._set_primary_image(restaurant, primary_image_id)

        self._persist(f"Restaurant '{restaurant.name}' already exists")
        self.db.refresh(restaurant)
        return restaurant

    def _validate_update(
        self, restaurant: Restaurant, changes: Dict[str, Any], principal: Principal
    ) -> None:
        null_fields = sorted(k for k, v in changes.items() if v is None and k in NON_NULLABLE_FIELDS)
        if null_fields:
            raise ValidationError(f"Fields cannot be null: {', '.join(null_fields)}")

        if principal.role != UserRole.ADMIN:
            denied = next((field for field in ADMIN_ONLY_FIELDS if field in changes), None)
            if denied:
                raise ForbiddenError(ADMIN_ONLY_FIELDS[denied])

        if "name" in changes:
            name = clean_name(changes["name"])
            if name != restaurant.name and self.name_taken(name, exclude_id=restaurant.id):
                raise_duplicate_name(name)

    def _transform_update(self, data: RestaurantUpdate, changes: Dict[str, Any]) -> Dict[str, Any]:
        if "name" in changes:
            changes["name"] = clean_name(changes["name"])
        # JSON columns take plain structures; nested models are stored whole
        for field in ("features", "opening_hours", "email", "location", "rating"):
            if field in changes:
                changes[field] = data.model_dump(include={field}, mode="json")[field]
        return changes

    def _set_primary_image(self, restaurant: Restaurant, image_id: int) -> None:
        target = next((image for image in restaurant.images if image.id == image_id), None)
        if target is None:
            raise ValidationError(f"Image {image_id} does not belong to this restaurant")
        for image in restaurant.images:
            image.is_primary = image is target

    # Delete
    def delete_restaurant(
        self, restaurant: Restaurant, blob_store: Optional[BlobStore] = None
    ) -> int:
        """
        Delete a restaurant and all of its menu items in one transaction.

        Returns:
            Number of menu items deleted
        """
        restaurant_id = restaurant.id
        storage_keys = [image.storage_key for image in restaurant.images if image.storage_key]
        storage_keys += [
            key for (key,) in self.db.query(MenuItem.image_key).filter(
                MenuItem.restaurant_id == restaurant_id, MenuItem.image_key.isnot(None)
            )
        ]

        try:
            deleted_items = (
                self.db.query(MenuItem)
                .filter(MenuItem.restaurant_id == restaurant_id)
                .delete(synchronize_session=False)
            )
            self.db.delete(restaurant)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            remaining = (
                self.db.query(MenuItem).filter(MenuItem.restaurant_id == restaurant_id).count()
            )
            logger.error(
                f"Failed to delete restaurant {restaurant_id}: {e}; "
                f"{remaining} menu items remain"
            )
            raise InternalError("Failed to delete restaurant")

        logger.info(f"Deleted restaurant {restaurant_id} and {deleted_items} menu items")
        if blob_store is not None:
            for key in storage_keys:
                discard_blob(blob_store, key)
        return deleted_items

    # Images
    def upload_image(
        self,
        restaurant: Restaurant,
        upload: ImageUpload,
        caption: Optional[str],
        is_primary: bool,
        blob_store: BlobStore,
    ) -> RestaurantImage:
        validate_image_upload(upload, self.max_upload_size)

        key = build_blob_key(f"restaurants/{restaurant.id}", upload)
        url = store_blob(blob_store, upload, key)

        make_primary = is_primary or restaurant.primary_image is None
        if make_primary:
            for image in restaurant.images:
                image.is_primary = False

        image = RestaurantImage(
            url=url, storage_key=key, caption=caption, is_primary=make_primary
        )
        restaurant.images.append(image)

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save image for restaurant {restaurant.id}: {e}")
            discard_blob(blob_store, key)
            raise InternalError("Failed to save uploaded image")

        self.db.refresh(image)
        logger.info(f"Uploaded image {image.id} for restaurant {restaurant.id}")
        return image

    def delete_image(self, restaurant: Restaurant, image_id: int, blob_store: BlobStore) -> None:
        image = next((img for img in restaurant.images if img.id == image_id), None)
        if image is None:
            raise NotFoundError(f"Image not found with id of {image_id}")

        storage_key = image.storage_key
        restaurant.images.remove(image)
        if image.is_primary and restaurant.images:
            oldest = min(restaurant.images, key=lambda img: (img.created_at, img.id))
            oldest.is_primary = True

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete image {image_id}: {e}")
            raise InternalError("Failed to delete image")

        if storage_key:
            discard_blob(blob_store, storage_key)

    def _persist(self, conflict_message: str) -> None:
        commit_or_conflict(self.db, conflict_message)


def clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Name cannot be blank")
    return name


def raise_duplicate_name(name: str):
    raise ConflictError(f"Restaurant '{name}' already exists")
