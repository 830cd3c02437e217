"""
API tests for the inventory resources
"""
import logging

import pytest
from httpx import AsyncClient

from conftest import TEST_PASSWORD, insert_row
from stockroom.db import tables


async def put(client: AsyncClient, path: str, headers: dict, **body) -> dict:
    response = await client.put(path, json=body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
async def catalog(client: AsyncClient, auth_headers: dict) -> dict:
    """A brand, a model, a category and one item in the caller's organization."""
    brand = await put(client, "/brand", auth_headers, name="Acme")
    model = await put(client, "/model", auth_headers, name="Hammer", brandID=brand["brandID"], price="12.50")
    category = await put(client, "/category", auth_headers, name="Tools")
    item = await put(
        client,
        "/item",
        auth_headers,
        barcode="ITM-001",
        modelID=model["modelID"],
        categoryID=category["categoryID"],
        serial="SN-1",
    )
    return {"brand": brand, "model": model, "category": category, "item": item}


class TestHealth:
    """Test the service root."""

    async def test_health(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.headers.get("X-Request-ID")

    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    async def test_request_log_carries_request_id(self, client: AsyncClient, caplog):
        caplog.set_level(logging.INFO, logger="stockroom.access")

        await client.get("/", headers={"X-Request-ID": "trace-42"})

        [record] = [r for r in caplog.records if r.name == "stockroom.access"]
        assert record.getMessage() == "Request completed"
        assert record.request_id == "trace-42"
        assert record.status_code == 200


class TestCategoryEndpoints:
    """Test the generated CRUD routes on the category resource."""

    async def test_requires_token(self, client: AsyncClient, db_session):
        response = await client.get("/category")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Missing authentication token"

    async def test_rejects_garbage_token(self, client: AsyncClient, db_session):
        response = await client.get("/category", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid or expired token"

    async def test_create_fills_organization(self, client: AsyncClient, auth_headers, member):
        category = await put(client, "/category", auth_headers, name="Drills")

        assert category["name"] == "Drills"
        assert category["organizationID"] == member.organization_id

    async def test_create_for_other_organization_rejected(self, client: AsyncClient, auth_headers, organizations):
        response = await client.put(
            "/category", json={"name": "Drills", "organizationID": organizations.other}, headers=auth_headers
        )
        assert response.status_code == 400

    async def test_duplicate_uses_custom_message(self, client: AsyncClient, auth_headers):
        await put(client, "/category", auth_headers, name="Drills")

        response = await client.put("/category", json={"name": "Drills"}, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Category already exists"

    async def test_unknown_field(self, client: AsyncClient, auth_headers):
        response = await client.put("/category", json={"name": "Drills", "colour": "red"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Wrong fields"

    async def test_invalid_json(self, client: AsyncClient, auth_headers):
        response = await client.put(
            "/category", content=b"{not json", headers={**auth_headers, "Content-Type": "application/json"}
        )
        assert response.status_code == 400

    async def test_list_sorted_with_index(self, client: AsyncClient, auth_headers):
        for name in ("Saws", "Drills", "Ladders"):
            await put(client, "/category", auth_headers, name=name)

        response = await client.get("/category", headers=auth_headers)

        assert response.status_code == 200
        results = response.json()["results"]
        assert [row["name"] for row in results] == ["Drills", "Ladders", "Saws"]
        assert [row["sortIndex"] for row in results] == [0, 1, 2]
        assert "_links" not in response.json()

    async def test_search(self, client: AsyncClient, auth_headers):
        for name in ("Power Drills", "Saws"):
            await put(client, "/category", auth_headers, name=name)

        response = await client.get("/category", params={"search": "drill"}, headers=auth_headers)

        assert [row["name"] for row in response.json()["results"]] == ["Power Drills"]

    async def test_pagination_links(self, client: AsyncClient, auth_headers):
        for name in ("A", "B", "C"):
            await put(client, "/category", auth_headers, name=name)

        first = await client.get("/category", params={"limit": 2}, headers=auth_headers)
        body = first.json()

        assert [row["name"] for row in body["results"]] == ["A", "B"]
        assert set(body["_links"]) == {"self", "next"}
        assert 'rel="next"' in first.headers["Link"]

        second = await client.get(body["_links"]["next"]["href"], headers=auth_headers)
        body = second.json()

        assert [row["name"] for row in body["results"]] == ["C"]
        assert set(body["_links"]) == {"self", "prev"}

    async def test_bad_limit(self, client: AsyncClient, auth_headers):
        response = await client.get("/category", params={"limit": "lots"}, headers=auth_headers)
        assert response.status_code == 400

    async def test_get_update_delete(self, client: AsyncClient, auth_headers):
        category = await put(client, "/category", auth_headers, name="Drills")
        path = f"/category/{category['categoryID']}"

        assert (await client.get(path, headers=auth_headers)).json()["name"] == "Drills"

        updated = await put(client, path, auth_headers, name="Drivers")
        assert updated == {**category, "name": "Drivers"}

        deleted = await client.delete(path, headers=auth_headers)
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Deleted", "id": category["categoryID"]}

        again = await client.delete(path, headers=auth_headers)
        assert again.status_code == 204
        assert again.content == b""

        missing = await client.get(path, headers=auth_headers)
        assert missing.status_code == 404
        assert missing.json()["error"]["message"] == "Category does not exist"

    async def test_malformed_key(self, client: AsyncClient, auth_headers):
        response = await client.get("/category/abc", headers=auth_headers)
        assert response.status_code == 400


class TestTenantIsolation:
    """Test that one organization never sees another's rows."""

    async def test_foreign_rows_are_invisible(self, client: AsyncClient, auth_headers, outsider_headers):
        category = await put(client, "/category", auth_headers, name="Drills")
        path = f"/category/{category['categoryID']}"

        listing = await client.get("/category", headers=outsider_headers)
        assert listing.json()["results"] == []

        assert (await client.get(path, headers=outsider_headers)).status_code == 404
        assert (await client.put(path, json={"name": "Mine"}, headers=outsider_headers)).status_code == 404
        assert (await client.delete(path, headers=outsider_headers)).status_code == 204

        assert (await client.get(path, headers=auth_headers)).json()["name"] == "Drills"

    async def test_cannot_move_row_to_other_organization(self, client: AsyncClient, auth_headers, organizations):
        category = await put(client, "/category", auth_headers, name="Drills")

        response = await client.put(
            f"/category/{category['categoryID']}",
            json={"organizationID": organizations.other},
            headers=auth_headers,
        )

        assert response.status_code == 400

    async def test_own_organization_as_text(self, client: AsyncClient, auth_headers, member):
        response = await client.put(
            "/category",
            json={"name": "Drills", "organizationID": str(member.organization_id)},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["organizationID"] == member.organization_id

    async def test_malformed_organization(self, client: AsyncClient, auth_headers):
        response = await client.put("/category", json={"name": "Drills", "organizationID": "abc"}, headers=auth_headers)
        assert response.status_code == 400

    async def test_model_cannot_use_foreign_brand(self, client: AsyncClient, outsider_headers, catalog):
        response = await client.put(
            "/model", json={"name": "Borrowed", "brandID": catalog["brand"]["brandID"]}, headers=outsider_headers
        )

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Model does not exist"

    async def test_item_cannot_use_foreign_model_or_category(self, client: AsyncClient, outsider_headers, catalog):
        own_category = await put(client, "/category", outsider_headers, name="Mine")

        foreign_both = await client.put(
            "/item",
            json={
                "barcode": "EVIL-1",
                "modelID": catalog["model"]["modelID"],
                "categoryID": catalog["category"]["categoryID"],
            },
            headers=outsider_headers,
        )
        foreign_model = await client.put(
            "/item",
            json={
                "barcode": "EVIL-2",
                "modelID": catalog["model"]["modelID"],
                "categoryID": own_category["categoryID"],
            },
            headers=outsider_headers,
        )

        assert foreign_both.status_code == 404
        assert foreign_model.status_code == 404
        assert (await client.get("/item", headers=outsider_headers)).json()["results"] == []

    async def test_item_update_cannot_point_at_foreign_model(self, client: AsyncClient, outsider_headers, catalog):
        brand = await put(client, "/brand", outsider_headers, name="Own")
        model = await put(client, "/model", outsider_headers, name="Wrench", brandID=brand["brandID"])
        category = await put(client, "/category", outsider_headers, name="Mine")
        await put(
            client,
            "/item",
            outsider_headers,
            barcode="OWN-1",
            modelID=model["modelID"],
            categoryID=category["categoryID"],
        )

        response = await client.put(
            "/item/OWN-1", json={"modelID": catalog["model"]["modelID"]}, headers=outsider_headers
        )

        assert response.status_code == 404
        assert (await client.get("/item/OWN-1", headers=outsider_headers)).json()["model"] == "Wrench"

    async def test_rental_cannot_use_foreign_item_or_user(
        self, client: AsyncClient, auth_headers, outsider_headers, outsider, catalog
    ):
        foreign_item = await client.put(
            "/rental", json={"barcode": "ITM-001", "userID": outsider.user_id}, headers=outsider_headers
        )
        foreign_user = await client.put(
            "/rental", json={"barcode": "ITM-001", "userID": outsider.user_id}, headers=auth_headers
        )

        assert foreign_item.status_code == 404
        assert foreign_user.status_code == 404
        item = (await client.get("/item/ITM-001", headers=auth_headers)).json()
        assert item["rentalID"] is None

    async def test_joins_ignore_cross_organization_links(
        self, client: AsyncClient, db_session, auth_headers, outsider_headers, outsider, catalog
    ):
        # Rows linked across organizations outside the API
        await insert_row(
            db_session,
            tables.item,
            barcode="LEGACY-1",
            organizationID=outsider.organization_id,
            modelID=catalog["model"]["modelID"],
            categoryID=catalog["category"]["categoryID"],
        )
        await insert_row(
            db_session,
            tables.rental,
            organizationID=outsider.organization_id,
            barcode="ITM-001",
            userID=outsider.user_id,
        )

        assert (await client.get("/item", headers=outsider_headers)).json()["results"] == []
        item = (await client.get("/item/ITM-001", headers=auth_headers)).json()
        assert item["rentalID"] is None
        assert item["rentedBy"] is None


class TestModelEndpoints:
    """Test models and their kits."""

    async def test_model_carries_brand_name(self, client: AsyncClient, auth_headers, catalog):
        response = await client.get(f"/model/{catalog['model']['modelID']}", headers=auth_headers)

        assert response.json()["brand"] == "Acme"
        assert catalog["model"]["brand"] == "Acme"

    async def test_missing_brand(self, client: AsyncClient, auth_headers):
        response = await client.put("/model", json={"name": "Hammer", "brandID": 999}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Model does not exist"

    async def test_kits_for_model(self, client: AsyncClient, auth_headers, catalog):
        model_id = catalog["model"]["modelID"]
        kit = await put(client, "/kit", auth_headers, name="Starter")
        await put(client, f"/kit/{kit['kitID']}/model", auth_headers, modelID=model_id, quantity=3)

        response = await client.get(f"/model/{model_id}/kits", headers=auth_headers)

        [row] = response.json()["results"]
        assert row["kitID"] == kit["kitID"]
        assert row["name"] == "Starter"
        assert row["quantity"] == 3


class TestKitEndpoints:
    """Test kit contents."""

    async def test_add_update_remove_model(self, client: AsyncClient, auth_headers, catalog):
        model_id = catalog["model"]["modelID"]
        kit = await put(client, "/kit", auth_headers, name="Starter")
        base = f"/kit/{kit['kitID']}/model"

        added = await put(client, base, auth_headers, modelID=model_id, quantity=2)
        assert added == {
            "kitID": kit["kitID"],
            "modelID": model_id,
            "quantity": 2,
            "model": "Hammer",
            "brand": "Acme",
        }

        duplicate = await client.put(base, json={"modelID": model_id}, headers=auth_headers)
        assert duplicate.status_code == 409
        assert duplicate.json()["error"]["message"] == "Model is already in kit"

        updated = await put(client, f"{base}/{model_id}", auth_headers, quantity=5)
        assert updated["quantity"] == 5

        listing = await client.get(base, headers=auth_headers)
        assert [row["quantity"] for row in listing.json()["results"]] == [5]

        removed = await client.delete(f"{base}/{model_id}", headers=auth_headers)
        assert removed.json()["id"] == model_id
        assert (await client.get(base, headers=auth_headers)).json()["results"] == []

    async def test_missing_model_id(self, client: AsyncClient, auth_headers):
        kit = await put(client, "/kit", auth_headers, name="Starter")

        response = await client.put(f"/kit/{kit['kitID']}/model", json={"quantity": 1}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "missing modelID in body"

    async def test_foreign_kit(self, client: AsyncClient, auth_headers, outsider_headers, catalog):
        model_id = catalog["model"]["modelID"]
        kit = await put(client, "/kit", auth_headers, name="Starter")
        base = f"/kit/{kit['kitID']}/model"
        await put(client, base, auth_headers, modelID=model_id)

        listing = await client.get(base, headers=outsider_headers)
        assert listing.json()["results"] == []

        write = await client.put(base, json={"modelID": model_id}, headers=outsider_headers)
        assert write.status_code == 404
        assert write.json()["error"]["message"] == "Kit or model does not exist"

        assert (await client.delete(f"{base}/{model_id}", headers=outsider_headers)).status_code == 204
        assert len((await client.get(base, headers=auth_headers)).json()["results"]) == 1


class TestItemEndpoints:
    """Test items, their rentals and custom fields."""

    async def test_item_details(self, client: AsyncClient, auth_headers, catalog):
        item = catalog["item"]

        assert item["model"] == "Hammer"
        assert item["brand"] == "Acme"
        assert item["category"] == "Tools"
        assert item["brandID"] == catalog["brand"]["brandID"]
        assert item["archived"] is False
        assert item["rentalID"] is None

    async def test_filters(self, client: AsyncClient, auth_headers, catalog):
        brand_id = catalog["brand"]["brandID"]

        matching = await client.get("/item", params={"brandID": brand_id}, headers=auth_headers)
        other = await client.get("/item", params={"brandID": brand_id + 100}, headers=auth_headers)
        bad = await client.get("/item", params={"modelID": "x"}, headers=auth_headers)

        assert [row["barcode"] for row in matching.json()["results"]] == ["ITM-001"]
        assert other.json()["results"] == []
        assert bad.status_code == 400

    async def test_search_by_model_name(self, client: AsyncClient, auth_headers, catalog):
        response = await client.get("/item", params={"search": "hamm"}, headers=auth_headers)
        assert [row["barcode"] for row in response.json()["results"]] == ["ITM-001"]

    async def test_duplicate_barcode(self, client: AsyncClient, auth_headers, catalog):
        response = await client.put(
            "/item",
            json={
                "barcode": "ITM-001",
                "modelID": catalog["model"]["modelID"],
                "categoryID": catalog["category"]["categoryID"],
            },
            headers=auth_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Item with this barcode already exists"

    async def test_rental_shows_on_item(self, client: AsyncClient, auth_headers, member, catalog):
        rental = await put(
            client,
            "/rental",
            auth_headers,
            barcode="ITM-001",
            userID=member.user_id,
            dueDate="2026-11-01T12:00:00Z",
        )

        item = (await client.get("/item/ITM-001", headers=auth_headers)).json()
        assert item["rentalID"] == rental["rentalID"]
        assert item["rentedBy"] == member.user_id

        history = await client.get("/item/ITM-001/rentals", headers=auth_headers)
        assert [row["rentalID"] for row in history.json()["results"]] == [rental["rentalID"]]

        active = await client.get("/rental", params={"active": "true"}, headers=auth_headers)
        assert len(active.json()["results"]) == 1

        await put(client, f"/rental/{rental['rentalID']}", auth_headers, returnDate="2026-10-20T09:00:00")

        item = (await client.get("/item/ITM-001", headers=auth_headers)).json()
        assert item["rentalID"] is None
        assert (await client.get("/rental", params={"active": "true"}, headers=auth_headers)).json()["results"] == []

    async def test_bad_active_filter(self, client: AsyncClient, auth_headers):
        response = await client.get("/rental", params={"active": "maybe"}, headers=auth_headers)
        assert response.status_code == 400

    async def test_custom_field_values(self, client: AsyncClient, auth_headers, catalog):
        field = await put(client, "/custom-field", auth_headers, name="Colour")
        path = f"/item/ITM-001/field/{field['customFieldID']}"

        fields = (await client.get("/item/ITM-001/field", headers=auth_headers)).json()["results"]
        assert [(row["name"], row["value"]) for row in fields] == [("Colour", None)]

        created = await put(client, path, auth_headers, value="red")
        assert created["value"] == "red"

        updated = await put(client, path, auth_headers, value="blue")
        assert updated["value"] == "blue"

        fields = (await client.get("/item/ITM-001/field", headers=auth_headers)).json()["results"]
        assert [(row["name"], row["value"]) for row in fields] == [("Colour", "blue")]

    async def test_custom_field_wrong_body(self, client: AsyncClient, auth_headers, catalog):
        field = await put(client, "/custom-field", auth_headers, name="Colour")

        response = await client.put(
            f"/item/ITM-001/field/{field['customFieldID']}",
            json={"value": "red", "barcode": "OTHER"},
            headers=auth_headers,
        )

        assert response.status_code == 400

    async def test_custom_field_of_foreign_item(self, client: AsyncClient, outsider_headers, catalog):
        field = await put(client, "/custom-field", outsider_headers, name="Colour")

        response = await client.put(
            f"/item/ITM-001/field/{field['customFieldID']}",
            json={"value": "red"},
            headers=outsider_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Item or custom field does not exist"


class TestUserEndpoints:
    """Test user listing and the role guards."""

    async def test_list_hides_password(self, client: AsyncClient, auth_headers, admin, outsider):
        response = await client.get("/user", headers=auth_headers)

        results = response.json()["results"]
        assert {row["email"] for row in results} == {"member@example.com", "admin@example.com"}
        assert all("password" not in row for row in results)
        assert {row["role"] for row in results} == {"Administrator", "Member"}

    async def test_update_self(self, client: AsyncClient, auth_headers, member):
        response = await client.put(f"/user/{member.user_id}", json={"phone": "555-0100"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["phone"] == "555-0100"
        assert "password" not in response.json()

    async def test_member_cannot_update_others(self, client: AsyncClient, auth_headers, admin):
        response = await client.put(f"/user/{admin.user_id}", json={"phone": "555"}, headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Must be an administrator"

    async def test_member_cannot_promote_self(self, client: AsyncClient, auth_headers, member):
        response = await client.put(f"/user/{member.user_id}", json={"roleID": 1}, headers=auth_headers)
        assert response.status_code == 403

    async def test_admin_can_change_role(self, client: AsyncClient, admin_headers, member):
        response = await client.put(f"/user/{member.user_id}", json={"roleID": 1}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["role"] == "Administrator"

    async def test_password_change_allows_login(self, client: AsyncClient, auth_headers, member):
        await client.put(f"/user/{member.user_id}", json={"password": "a new passphrase"}, headers=auth_headers)

        response = await client.post("/auth", json={"email": "member@example.com", "password": "a new passphrase"})

        assert response.status_code == 200

    async def test_password_must_be_text(self, client: AsyncClient, auth_headers, member):
        response = await client.put(f"/user/{member.user_id}", json={"password": 12345}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Password must be a non-empty string"

    async def test_empty_password_is_rejected(self, client: AsyncClient, auth_headers, member):
        response = await client.put(f"/user/{member.user_id}", json={"password": ""}, headers=auth_headers)

        assert response.status_code == 400
        login = await client.post("/auth", json={"email": "member@example.com", "password": TEST_PASSWORD})
        assert login.status_code == 200

    async def test_delete_requires_admin(self, client: AsyncClient, auth_headers, admin_headers, member, admin):
        forbidden = await client.delete(f"/user/{admin.user_id}", headers=auth_headers)
        assert forbidden.status_code == 403

        deleted = await client.delete(f"/user/{member.user_id}", headers=admin_headers)
        assert deleted.status_code == 200

        # The deleted user's token no longer resolves
        assert (await client.get("/category", headers=auth_headers)).status_code == 401

    async def test_admin_cannot_reach_other_tenant(self, client: AsyncClient, admin_headers, outsider):
        response = await client.get(f"/user/{outsider.user_id}", headers=admin_headers)
        assert response.status_code == 404
