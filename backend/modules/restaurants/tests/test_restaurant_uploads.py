"""
Tests for restaurant and menu item image uploads.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from core.file_service import BlobStoreError
from modules.restaurants.models.restaurant_models import RestaurantImage
from tests.factories import MenuItemFactory, RestaurantFactory

BASE = "/api/v1/restaurants"
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
MAX_SIZE = 1_000


@pytest.fixture
def settings(settings):
    return settings.model_copy(update={"max_upload_size_bytes": MAX_SIZE})


@pytest.fixture
def restaurant(db, owner):
    return RestaurantFactory(owner=owner)


def image_file(name="front.png", data=PNG, content_type="image/png"):
    return {"file": (name, data, content_type)}


def stored_path(settings, url):
    return Path(settings.upload_dir) / url[len(settings.upload_base_url):].lstrip("/")


class TestRestaurantImageUpload:
    def test_upload_stores_file(self, client, settings, restaurant, owner, auth_headers):
        response = client.post(
            f"{BASE}/{restaurant.id}/upload",
            files=image_file(),
            data={"caption": "Entrance"},
            headers=auth_headers(owner),
        )
        data = response.json()["data"]

        assert response.status_code == 201
        assert data["caption"] == "Entrance"
        assert data["url"].startswith(f"/uploads/restaurants/{restaurant.id}/")
        assert data["url"].endswith(".png")
        assert stored_path(settings, data["url"]).read_bytes() == PNG

    def test_first_upload_is_primary(self, client, restaurant, owner, auth_headers):
        url = f"{BASE}/{restaurant.id}/upload"

        first = client.post(url, files=image_file(), headers=auth_headers(owner)).json()["data"]
        second = client.post(url, files=image_file(), headers=auth_headers(owner)).json()["data"]

        assert first["is_primary"] is True
        assert second["is_primary"] is False

    def test_primary_flag_demotes_others(self, client, restaurant, owner, auth_headers):
        url = f"{BASE}/{restaurant.id}/upload"
        client.post(url, files=image_file(), headers=auth_headers(owner))
        client.post(url, files=image_file(), headers=auth_headers(owner))

        latest = client.post(
            url, files=image_file(), data={"is_primary": "true"}, headers=auth_headers(owner)
        ).json()["data"]

        images = client.get(f"{BASE}/{restaurant.id}").json()["data"]["images"]
        assert [i["id"] for i in images if i["is_primary"]] == [latest["id"]]
        assert len(images) == 3

    def test_non_image_rejected(self, client, db, restaurant, owner, auth_headers):
        response = client.post(
            f"{BASE}/{restaurant.id}/upload",
            files=image_file(name="menu.pdf", data=b"%PDF-1.4", content_type="application/pdf"),
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json()["error"] == {
            "code": "UPLOAD_ERROR",
            "message": "Please upload an image file",
        }
        assert db.query(RestaurantImage).count() == 0

    def test_oversized_image_rejected(self, client, restaurant, owner, auth_headers):
        response = client.post(
            f"{BASE}/{restaurant.id}/upload",
            files=image_file(data=b"x" * (MAX_SIZE + 1)),
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"].startswith("Please upload an image less than")

    def test_missing_file(self, client, restaurant, owner, auth_headers):
        response = client.post(
            f"{BASE}/{restaurant.id}/upload",
            data={"caption": "Entrance"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Please upload a file"

    def test_blob_store_failure(self, client, db, services, restaurant, owner, auth_headers):
        services.blob_store = MagicMock()
        services.blob_store.put.side_effect = BlobStoreError("bucket unavailable")

        response = client.post(
            f"{BASE}/{restaurant.id}/upload", files=image_file(), headers=auth_headers(owner)
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "UPLOAD_ERROR"
        assert response.json()["error"]["message"] == "Problem with file upload"
        assert db.query(RestaurantImage).count() == 0

    def test_other_owner_forbidden(self, client, restaurant, other_owner, auth_headers):
        response = client.post(
            f"{BASE}/{restaurant.id}/upload", files=image_file(), headers=auth_headers(other_owner)
        )

        assert response.status_code == 403

    def test_missing_restaurant(self, client, owner, auth_headers):
        response = client.post(f"{BASE}/999/upload", files=image_file(), headers=auth_headers(owner))

        assert response.status_code == 404

    def test_deleting_image_removes_file(self, client, settings, restaurant, owner, auth_headers):
        image = client.post(
            f"{BASE}/{restaurant.id}/upload", files=image_file(), headers=auth_headers(owner)
        ).json()["data"]

        client.delete(f"{BASE}/{restaurant.id}/images/{image['id']}", headers=auth_headers(owner))

        assert not stored_path(settings, image["url"]).exists()

    def test_deleting_restaurant_removes_files(
        self, client, settings, restaurant, owner, auth_headers
    ):
        image = client.post(
            f"{BASE}/{restaurant.id}/upload", files=image_file(), headers=auth_headers(owner)
        ).json()["data"]

        client.delete(f"{BASE}/{restaurant.id}", headers=auth_headers(owner))

        assert not stored_path(settings, image["url"]).exists()


class TestMenuItemImageUpload:
    def test_upload_sets_image(self, client, db, restaurant, owner, auth_headers):
        item = MenuItemFactory(restaurant=restaurant)

        response = client.post(
            f"{BASE}/{restaurant.id}/menu-items/{item.id}/upload",
            files=image_file(name="dish.jpg", content_type="image/jpeg"),
            data={"alt": "Plate of pasta"},
            headers=auth_headers(owner),
        )
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["image_url"].startswith(f"/uploads/menu-items/{item.id}/")
        assert data["image_url"].endswith(".jpg")
        assert data["image_alt"] == "Plate of pasta"

    def test_replacing_image_removes_previous_file(
        self, client, db, settings, restaurant, owner, auth_headers
    ):
        item = MenuItemFactory(restaurant=restaurant)
        url = f"{BASE}/{restaurant.id}/menu-items/{item.id}/upload"

        first = client.post(url, files=image_file(), headers=auth_headers(owner)).json()["data"]
        second = client.post(url, files=image_file(), headers=auth_headers(owner)).json()["data"]

        assert first["image_url"] != second["image_url"]
        assert not stored_path(settings, first["image_url"]).exists()
        assert stored_path(settings, second["image_url"]).exists()

    def test_alt_defaults_to_item_name(self, client, db, restaurant, owner, auth_headers):
        item = MenuItemFactory(restaurant=restaurant, name="Bacalhau à Brás")

        response = client.post(
            f"{BASE}/{restaurant.id}/menu-items/{item.id}/upload",
            files=image_file(),
            headers=auth_headers(owner),
        )

        assert response.json()["data"]["image_alt"] == "Bacalhau à Brás"

    def test_hand_set_url_drops_uploaded_file(
        self, client, db, settings, restaurant, owner, auth_headers
    ):
        item = MenuItemFactory(restaurant=restaurant)
        uploaded = client.post(
            f"{BASE}/{restaurant.id}/menu-items/{item.id}/upload",
            files=image_file(),
            headers=auth_headers(owner),
        ).json()["data"]["image_url"]

        response = client.put(
            f"{BASE}/{restaurant.id}/menu-items/{item.id}",
            json={"image_url": "https://cdn.example.com/dish.jpg"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        assert response.json()["data"]["image_url"] == "https://cdn.example.com/dish.jpg"
        db.refresh(item)
        assert item.image_key is None
        assert not stored_path(settings, uploaded).exists()

    def test_other_edits_keep_uploaded_file(
        self, client, db, settings, restaurant, owner, auth_headers
    ):
        item = MenuItemFactory(restaurant=restaurant)
        uploaded = client.post(
            f"{BASE}/{restaurant.id}/menu-items/{item.id}/upload",
            files=image_file(),
            headers=auth_headers(owner),
        ).json()["data"]["image_url"]

        client.put(
            f"{BASE}/{restaurant.id}/menu-items/{item.id}",
            json={"price": 12.5, "image_url": uploaded},
            headers=auth_headers(owner),
        )

        db.refresh(item)
        assert item.image_key is not None
        assert stored_path(settings, uploaded).exists()

    def test_item_of_another_restaurant(self, client, db, restaurant, owner, auth_headers):
        foreign = MenuItemFactory()

        response = client.post(
            f"{BASE}/{restaurant.id}/menu-items/{foreign.id}/upload",
            files=image_file(),
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Menu item does not belong to this restaurant"

    def test_missing_item(self, client, restaurant, owner, auth_headers):
        response = client.post(
            f"{BASE}/{restaurant.id}/menu-items/999/upload",
            files=image_file(),
            headers=auth_headers(owner),
        )

        assert response.status_code == 404

    def test_non_image_rejected(self, client, db, restaurant, owner, auth_headers):
        item = MenuItemFactory(restaurant=restaurant)

        response = client.post(
            f"{BASE}/{restaurant.id}/menu-items/{item.id}/upload",
            files=image_file(name="notes.txt", data=b"hello", content_type="text/plain"),
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
