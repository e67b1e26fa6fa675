# backend/modules/restaurants/services/menu_item_service.py

from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import asc, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.database_utils import commit_or_conflict
from core.exceptions import (
    ConflictError, InternalError, NotFoundError, ValidationError,
)
from core.file_service import (
    BlobStore, ImageUpload, build_blob_key, discard_blob, store_blob, validate_image_upload,
)

from ..models.restaurant_models import Restaurant, MenuItem
from ..schemas.menu_item_schemas import (
    MenuItemCreate, MenuItemUpdate, MenuItemSearchParams,
)
from .restaurant_service import clean_name

logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = {
    "name", "description", "price", "category", "dietary_info",
    "customization_options", "available", "featured", "display_order",
}


class MenuItemService:
    """Service class for menu item operations"""

    def __init__(self, db: Session, max_upload_size: int = 1_000_000):
        self.db = db
        self.max_upload_size = max_upload_size

    # Queries
    def get_menu_item(self, item_id: int) -> MenuItem:
        item = self.db.get(MenuItem, item_id)
        if item is None:
            raise NotFoundError(f"Menu item not found with id of {item_id}")
        return item

    def list_menu_items(
        self, params: MenuItemSearchParams, restaurant_id: Optional[int] = None
    ) -> Tuple[List[MenuItem], int]:
        """Get menu items across restaurants (or for one) with filters and pagination"""
        query = self.db.query(MenuItem)

        if restaurant_id is not None:
            query = query.filter(MenuItem.restaurant_id == restaurant_id)

        if params.category is not None:
            query = query.filter(MenuItem.category == params.category)

        if params.available is not None:
            query = query.filter(MenuItem.available == params.available)

        if params.featured is not None:
            query = query.filter(MenuItem.featured == params.featured)

        if params.min_price is not None:
            query = query.filter(MenuItem.price >= params.min_price)

        if params.max_price is not None:
            query = query.filter(MenuItem.price <= params.max_price)

        total = query.count()

        sort_column = getattr(MenuItem, params.sort_by, MenuItem.display_order)
        order = desc if params.sort_order == "desc" else asc
        query = query.order_by(order(sort_column), order(MenuItem.id))

        items = query.offset(params.offset).limit(params.limit).all()
        return items, total

    def list_menu_items_for_restaurant(
        self, restaurant_id: int, params: MenuItemSearchParams
    ) -> Tuple[List[MenuItem], int]:
        if self.db.get(Restaurant, restaurant_id) is None:
            raise NotFoundError(f"Restaurant not found with id of {restaurant_id}")
        return self.list_menu_items(params, restaurant_id=restaurant_id)

    def ensure_belongs_to(self, item: MenuItem, restaurant_id: int) -> MenuItem:
        if item.restaurant_id != restaurant_id:
            raise ValidationError("Menu item does not belong to this restaurant")
        return item

    def name_taken(self, restaurant_id: int, name: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(MenuItem.id).filter(
            MenuItem.restaurant_id == restaurant_id, MenuItem.name == name
        )
        if exclude_id is not None:
            query = query.filter(MenuItem.id != exclude_id)
        return query.first() is not None

    # Create
    def create_menu_item(self, restaurant_id: int, data: MenuItemCreate) -> MenuItem:
        if self.db.get(Restaurant, restaurant_id) is None:
            raise ValidationError(f"Restaurant not found with id of {restaurant_id}")

        values = self._transform(data.model_dump(mode="json"))
        values["category"] = data.category

        conflict_message = duplicate_item_message(values["name"])
        if self.name_taken(restaurant_id, values["name"]):
            raise ConflictError(conflict_message)

        item = MenuItem(**values, restaurant_id=restaurant_id)
        self.db.add(item)
        commit_or_conflict(self.db, conflict_message)
        self.db.refresh(item)

        logger.info(f"Created menu item {item.id} for restaurant {restaurant_id}")
        return item

    # Update
    def update_menu_item(
        self, item: MenuItem, data: MenuItemUpdate, blob_store: Optional[BlobStore] = None
    ) -> MenuItem:
        changes = data.model_dump(exclude_unset=True, mode="json")

        null_fields = sorted(k for k, v in changes.items() if v is None and k in NON_NULLABLE_FIELDS)
        if null_fields:
            raise ValidationError(f"Fields cannot be null: {', '.join(null_fields)}")

        changes = self._transform(changes)
        if "category" in changes:
            changes["category"] = data.category

        if "name" in changes and changes["name"] != item.name:
            if self.name_taken(item.restaurant_id, changes["name"], exclude_id=item.id):
                raise ConflictError(duplicate_item_message(changes["name"]))

        # A hand-set URL no longer points at the uploaded blob
        orphaned_key = None
        if "image_url" in changes and changes["image_url"] != item.image_url:
            orphaned_key, changes["image_key"] = item.image_key, None

        for key, value in changes.items():
            setattr(item, key, value)

        commit_or_conflict(self.db, duplicate_item_message(item.name))
        self.db.refresh(item)

        if blob_store is not None and orphaned_key:
            discard_blob(blob_store, orphaned_key)
        return item

    @staticmethod
    def _transform(values: Dict[str, Any]) -> Dict[str, Any]:
        if "name" in values:
            values["name"] = clean_name(values["name"])
        return values

    # Delete
    def delete_menu_item(self, item: MenuItem, blob_store: Optional[BlobStore] = None) -> None:
        item_id, image_key = item.id, item.image_key
        try:
            self.db.delete(item)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete menu item {item_id}: {e}")
            raise InternalError("Failed to delete menu item")

        logger.info(f"Deleted menu item {item_id}")
        if blob_store is not None and image_key:
            discard_blob(blob_store, image_key)

    # Images
    def upload_image(
        self,
        item: MenuItem,
        upload: ImageUpload,
        alt: Optional[str],
        blob_store: BlobStore,
    ) -> MenuItem:
        """Store a new image for the item, replacing (and removing) any previous one"""
        validate_image_upload(upload, self.max_upload_size)

        key = build_blob_key(f"menu-items/{item.id}", upload)
        url = store_blob(blob_store, upload, key)

        previous_key = item.image_key
        item.image_url = url
        item.image_key = key
        item.image_alt = alt if alt is not None else item.name

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save image for menu item {item.id}: {e}")
            discard_blob(blob_store, key)
            raise InternalError("Failed to save uploaded image")

        if previous_key and previous_key != key:
            discard_blob(blob_store, previous_key)

        self.db.refresh(item)
        logger.info(f"Uploaded image for menu item {item.id}")
        return item


def duplicate_item_message(name: str) -> str:
    return f"A menu item named '{name}' already exists for this restaurant"
