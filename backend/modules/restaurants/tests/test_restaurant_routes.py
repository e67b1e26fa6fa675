"""
Tests for the restaurant endpoints.
"""

import pytest

from modules.restaurants.models.restaurant_models import MenuItem, Restaurant, RestaurantStatus
from tests.factories import (
    RestaurantFactory,
    RestaurantImageFactory,
    create_restaurant_with_menu,
)

BASE = "/api/v1/restaurants"


def restaurant_payload(**overrides):
    payload = {
        "name": "Cafe X",
        "description": "Small plates and natural wine",
        "address": "Rua Augusta 10",
        "city": "Lisbon",
        "cuisine": ["Portuguese", "Wine bar"],
        "price_range": "$$",
        "phone": "555-123-4567",
    }
    payload.update(overrides)
    return payload


class TestListRestaurants:
    def test_public_listing(self, client, db):
        RestaurantFactory.create_batch(2)

        response = client.get(BASE)
        body = response.json()

        assert response.status_code == 200
        assert body["success"] is True
        assert len(body["data"]) == 2
        assert body["meta"]["pagination"]["total"] == 2

    def test_pagination(self, client, db):
        RestaurantFactory.create_batch(5)

        body = client.get(BASE, params={"page": 2, "limit": 2}).json()
        pagination = body["meta"]["pagination"]

        assert len(body["data"]) == 2
        assert pagination["current_page"] == 2
        assert pagination["total_pages"] == 3
        assert pagination["has_next"] is True
        assert pagination["has_prev"] is True

    def test_filter_by_cuisine(self, client, db):
        RestaurantFactory(cuisine=["Italian"])
        sushi = RestaurantFactory(cuisine=["Japanese", "Seafood"])

        data = client.get(BASE, params={"cuisine": "japanese"}).json()["data"]

        assert [r["id"] for r in data] == [sushi.id]

    def test_filter_by_non_ascii_cuisine(self, client, db):
        crepes = RestaurantFactory(cuisine=["Crêperie", "Café"])
        RestaurantFactory(cuisine=["Creperie"])

        data = client.get(BASE, params={"cuisine": "Crêperie"}).json()["data"]

        assert [r["id"] for r in data] == [crepes.id]

    def test_cuisine_matches_whole_elements_only(self, client, db):
        RestaurantFactory(cuisine=["Japanese"])

        assert client.get(BASE, params={"cuisine": "Japan%"}).json()["data"] == []
        assert client.get(BASE, params={"cuisine": "Japanes_"}).json()["data"] == []

    def test_filter_by_city_and_status(self, client, db):
        RestaurantFactory(city="Lisbon")
        porto = RestaurantFactory(city="Porto")
        RestaurantFactory(city="Porto", status=RestaurantStatus.INACTIVE)

        data = client.get(BASE, params={"city": "porto", "status": "active"}).json()["data"]

        assert [r["id"] for r in data] == [porto.id]

    def test_filter_by_owner(self, client, db, owner):
        mine = RestaurantFactory(owner=owner)
        RestaurantFactory()

        data = client.get(BASE, params={"owner_id": owner.id}).json()["data"]

        assert [r["id"] for r in data] == [mine.id]

    def test_search_and_sort_by_name(self, client, db):
        RestaurantFactory(name="Pasta Bar")
        RestaurantFactory(name="Burger Joint")
        RestaurantFactory(name="Artisan Pasta")

        data = client.get(
            BASE, params={"search": "pasta", "sort_by": "name", "sort_order": "asc"}
        ).json()["data"]

        assert [r["name"] for r in data] == ["Artisan Pasta", "Pasta Bar"]

    def test_search_wildcards_match_literally(self, client, db):
        RestaurantFactory(name="Burger Joint")
        discount = RestaurantFactory(name="100% Vegan")

        data = client.get(BASE, params={"search": "%"}).json()["data"]

        assert [r["id"] for r in data] == [discount.id]
        assert client.get(BASE, params={"search": "Burger_Joint"}).json()["data"] == []

    def test_invalid_sort_field(self, client):
        response = client.get(BASE, params={"sort_by": "owner_id"})

        assert response.status_code == 400


class TestGetRestaurant:
    def test_get(self, client, db):
        restaurant = RestaurantFactory()
        RestaurantImageFactory(restaurant=restaurant, is_primary=True)

        response = client.get(f"{BASE}/{restaurant.id}")
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["name"] == restaurant.name
        assert data["owner_id"] == restaurant.owner_id
        assert data["images"][0]["is_primary"] is True

    def test_missing(self, client):
        response = client.get(f"{BASE}/999")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Restaurant not found with id of 999"


class TestCreateRestaurant:
    def test_owner_creates(self, client, owner, auth_headers):
        response = client.post(BASE, json=restaurant_payload(), headers=auth_headers(owner))
        data = response.json()["data"]

        assert response.status_code == 201
        assert data["owner_id"] == owner.id
        assert data["status"] == "inactive"
        assert data["featured"] is False
        assert data["features"]["takeout"] is True

    def test_admin_creates(self, client, admin, auth_headers):
        response = client.post(BASE, json=restaurant_payload(), headers=auth_headers(admin))

        assert response.status_code == 201
        assert response.json()["data"]["owner_id"] == admin.id

    def test_plain_user_forbidden(self, client, regular_user, auth_headers):
        response = client.post(BASE, json=restaurant_payload(), headers=auth_headers(regular_user))

        assert response.status_code == 403

    def test_requires_authentication(self, client):
        assert client.post(BASE, json=restaurant_payload()).status_code == 401

    def test_duplicate_name(self, client, owner, other_owner, auth_headers):
        client.post(BASE, json=restaurant_payload(), headers=auth_headers(owner))

        response = client.post(
            BASE, json=restaurant_payload(name="  Cafe X "), headers=auth_headers(other_owner)
        )

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Restaurant 'Cafe X' already exists"

    def test_owner_cannot_feature(self, client, owner, auth_headers):
        response = client.post(
            BASE, json=restaurant_payload(featured=True), headers=auth_headers(owner)
        )

        assert response.status_code == 403

    def test_admin_can_feature(self, client, admin, auth_headers):
        response = client.post(
            BASE, json=restaurant_payload(featured=True), headers=auth_headers(admin)
        )

        assert response.json()["data"]["featured"] is True

    def test_new_restaurant_is_unverified_and_unrated(self, client, owner, auth_headers):
        payload = restaurant_payload(
            location={"coordinates": [-9.1393, 38.7223], "state": "Lisboa", "zipcode": "1100-053"}
        )

        data = client.post(BASE, json=payload, headers=auth_headers(owner)).json()["data"]

        assert data["verification_status"] == "unverified"
        assert data["rating"] == {"average": 0.0, "count": 0}
        assert data["location"] == {
            "coordinates": [-9.1393, 38.7223], "state": "Lisboa", "zipcode": "1100-053",
        }

    @pytest.mark.parametrize(
        "overrides",
        [
            {"verification_status": "verified"},
            {"rating": {"average": 4.5, "count": 12}},
        ],
    )
    def test_owner_cannot_set_admin_fields(self, client, owner, auth_headers, overrides):
        response = client.post(
            BASE, json=restaurant_payload(**overrides), headers=auth_headers(owner)
        )

        assert response.status_code == 403

    def test_admin_sets_verification_and_rating(self, client, admin, auth_headers):
        payload = restaurant_payload(
            verification_status="verified", rating={"average": 4.5, "count": 12}
        )

        data = client.post(BASE, json=payload, headers=auth_headers(admin)).json()["data"]

        assert data["verification_status"] == "verified"
        assert data["rating"] == {"average": 4.5, "count": 12}

    @pytest.mark.parametrize(
        "rating",
        [{"average": -0.5, "count": 1}, {"average": 5.1, "count": 1}, {"average": 3, "count": -1}],
    )
    def test_rating_out_of_bounds(self, client, admin, auth_headers, rating):
        response = client.post(
            BASE, json=restaurant_payload(rating=rating), headers=auth_headers(admin)
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_first_image_becomes_primary(self, client, owner, auth_headers):
        images = [
            {"url": "https://cdn.example.com/a.jpg"},
            {"url": "https://cdn.example.com/b.jpg"},
        ]

        response = client.post(
            BASE, json=restaurant_payload(images=images), headers=auth_headers(owner)
        )

        assert [i["is_primary"] for i in response.json()["data"]["images"]] == [True, False]

    def test_two_primary_images_rejected(self, client, owner, auth_headers):
        images = [
            {"url": "https://cdn.example.com/a.jpg", "is_primary": True},
            {"url": "https://cdn.example.com/b.jpg", "is_primary": True},
        ]

        response = client.post(
            BASE, json=restaurant_payload(images=images), headers=auth_headers(owner)
        )

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "overrides",
        [
            {"cuisine": []},
            {"cuisine": ["  "]},
            {"price_range": "$$$$$"},
            {"opening_hours": {"someday": {"open": "09:00", "close": "17:00"}}},
            {"opening_hours": {"monday": {"open": "25:00"}}},
            {"email": "not-an-email"},
            {"location": {"coordinates": [-9.14]}},
            {"location": {"coordinates": [-9.14, 95.0]}},
            {"location": {"coordinates": [190.0, 38.7]}},
        ],
    )
    def test_invalid_payloads(self, client, owner, auth_headers, overrides):
        response = client.post(
            BASE, json=restaurant_payload(**overrides), headers=auth_headers(owner)
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestUpdateRestaurant:
    def test_owner_updates(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)

        response = client.put(
            f"{BASE}/{restaurant.id}",
            json={
                "description": "Now with brunch",
                "opening_hours": {"sunday": {"open": "10:00", "close": "15:00"}},
            },
            headers=auth_headers(owner),
        )
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["description"] == "Now with brunch"
        assert data["opening_hours"]["sunday"]["open"] == "10:00"
        assert data["name"] == restaurant.name

    def test_other_owner_forbidden(self, client, db, owner, other_owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)

        response = client.put(
            f"{BASE}/{restaurant.id}", json={"description": "Mine now"},
            headers=auth_headers(other_owner),
        )

        assert response.status_code == 403

    def test_admin_updates_any(self, client, db, owner, admin, auth_headers):
        restaurant = RestaurantFactory(owner=owner)

        response = client.put(
            f"{BASE}/{restaurant.id}", json={"featured": True}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.json()["data"]["featured"] is True
        assert response.json()["data"]["owner_id"] == owner.id

    def test_owner_cannot_feature(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)

        response = client.put(
            f"{BASE}/{restaurant.id}", json={"featured": True}, headers=auth_headers(owner)
        )

        assert response.status_code == 403

    @pytest.mark.parametrize(
        "changes",
        [{"verification_status": "pending"}, {"rating": {"average": 5, "count": 1}}],
    )
    def test_owner_cannot_change_admin_fields(self, client, db, owner, auth_headers, changes):
        restaurant = RestaurantFactory(owner=owner)

        response = client.put(f"{BASE}/{restaurant.id}", json=changes, headers=auth_headers(owner))

        assert response.status_code == 403

    def test_admin_verifies(self, client, db, owner, admin, auth_headers):
        restaurant = RestaurantFactory(owner=owner)

        response = client.put(
            f"{BASE}/{restaurant.id}",
            json={"verification_status": "verified", "rating": {"average": 3.8, "count": 40}},
            headers=auth_headers(admin),
        )
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["verification_status"] == "verified"
        assert data["rating"]["average"] == 3.8

        listed = client.get(BASE, params={"verification_status": "verified"}).json()["data"]
        assert [r["id"] for r in listed] == [restaurant.id]

    def test_owner_updates_location(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)

        response = client.put(
            f"{BASE}/{restaurant.id}",
            json={"location": {"coordinates": [-8.61, 41.15], "zipcode": "4000-001"}},
            headers=auth_headers(owner),
        )
        location = response.json()["data"]["location"]

        assert response.status_code == 200
        assert location["coordinates"] == [-8.61, 41.15]
        assert location["state"] is None

    def test_rename_to_taken_name(self, client, db, owner, auth_headers):
        RestaurantFactory(name="Taken")
        restaurant = RestaurantFactory(owner=owner)

        response = client.put(
            f"{BASE}/{restaurant.id}", json={"name": "Taken"}, headers=auth_headers(owner)
        )

        assert response.status_code == 409

    def test_keeping_own_name_is_fine(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner, name="Same")

        response = client.put(
            f"{BASE}/{restaurant.id}", json={"name": "Same"}, headers=auth_headers(owner)
        )

        assert response.status_code == 200

    def test_null_required_field(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)

        response = client.put(
            f"{BASE}/{restaurant.id}", json={"name": None}, headers=auth_headers(owner)
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Fields cannot be null: name"

    def test_set_primary_image(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)
        first = RestaurantImageFactory(restaurant=restaurant, is_primary=True)
        second = RestaurantImageFactory(restaurant=restaurant)

        response = client.put(
            f"{BASE}/{restaurant.id}", json={"primary_image_id": second.id},
            headers=auth_headers(owner),
        )
        images = {i["id"]: i["is_primary"] for i in response.json()["data"]["images"]}

        assert images == {first.id: False, second.id: True}

    def test_primary_image_from_another_restaurant(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)
        foreign = RestaurantImageFactory()

        response = client.put(
            f"{BASE}/{restaurant.id}", json={"primary_image_id": foreign.id},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400

    def test_missing_restaurant(self, client, admin, auth_headers):
        response = client.put(f"{BASE}/999", json={"description": "x"}, headers=auth_headers(admin))

        assert response.status_code == 404


class TestDeleteRestaurant:
    def test_delete_cascades_to_menu(self, client, db, owner, auth_headers):
        restaurant, _ = create_restaurant_with_menu(owner=owner, num_menu_items=3)
        restaurant_id = restaurant.id
        assert db.query(MenuItem).count() == 3

        response = client.delete(f"{BASE}/{restaurant_id}", headers=auth_headers(owner))

        assert response.status_code == 200
        assert response.json()["data"] == {"id": restaurant_id, "deleted_menu_items": 3}
        assert db.query(MenuItem).count() == 0
        assert client.get(f"{BASE}/{restaurant_id}").status_code == 404

    def test_other_restaurants_untouched(self, client, db, owner, auth_headers):
        restaurant, _ = create_restaurant_with_menu(owner=owner, num_menu_items=2)
        create_restaurant_with_menu(num_menu_items=2)

        client.delete(f"{BASE}/{restaurant.id}", headers=auth_headers(owner))

        assert db.query(Restaurant).count() == 1
        assert db.query(MenuItem).count() == 2

    def test_other_owner_forbidden(self, client, db, owner, other_owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)

        response = client.delete(f"{BASE}/{restaurant.id}", headers=auth_headers(other_owner))

        assert response.status_code == 403
        assert client.get(f"{BASE}/{restaurant.id}").status_code == 200

    def test_admin_deletes_any(self, client, db, admin, auth_headers):
        restaurant = RestaurantFactory()

        response = client.delete(f"{BASE}/{restaurant.id}", headers=auth_headers(admin))

        assert response.status_code == 200


class TestDeleteImage:
    def test_oldest_remaining_image_promoted(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)
        primary = RestaurantImageFactory(restaurant=restaurant, is_primary=True)
        older = RestaurantImageFactory(restaurant=restaurant)
        newer = RestaurantImageFactory(restaurant=restaurant)

        response = client.delete(
            f"{BASE}/{restaurant.id}/images/{primary.id}", headers=auth_headers(owner)
        )
        images = {i["id"]: i["is_primary"] for i in response.json()["data"]["images"]}

        assert response.status_code == 200
        assert images == {older.id: True, newer.id: False}

    def test_deleting_last_image(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)
        image = RestaurantImageFactory(restaurant=restaurant, is_primary=True)

        response = client.delete(
            f"{BASE}/{restaurant.id}/images/{image.id}", headers=auth_headers(owner)
        )

        assert response.json()["data"]["images"] == []

    def test_image_of_another_restaurant(self, client, db, owner, auth_headers):
        restaurant = RestaurantFactory(owner=owner)
        foreign = RestaurantImageFactory()

        response = client.delete(
            f"{BASE}/{restaurant.id}/images/{foreign.id}", headers=auth_headers(owner)
        )

        assert response.status_code == 404
