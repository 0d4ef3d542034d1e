"""Properties API tests: CRUD, ownership scoping and body validation."""


def _create(client, headers, **overrides):
    payload = {"name": "Maple House", "address": "12 Maple St", "property_type": "house", "price": 350000}
    payload.update(overrides)
    return client.post("/api/properties", json=payload, headers=headers)


def test_requires_session(client):
    response = client.get("/api/properties")
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_invalid_token_is_unauthorized(client):
    response = client.get("/api/properties", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_create_applies_defaults_and_owner(client, alice, alice_headers):
    response = _create(client, alice_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["user_id"] == alice.id
    assert body["status"] == "active"
    assert body["price"] == 350000
    assert body["created_at"] and body["updated_at"]


def test_list_is_newest_first_and_scoped(client, db, alice, bob, alice_headers):
    db.insert("properties", {"user_id": alice.id, "name": "Older", "created_at": "2024-01-01T00:00:00+00:00"})
    db.insert("properties", {"user_id": alice.id, "name": "Newer", "created_at": "2024-06-01T00:00:00+00:00"})
    db.insert("properties", {"user_id": bob.id, "name": "Not mine"})

    response = client.get("/api/properties", headers=alice_headers)
    assert response.status_code == 200
    names = [p["name"] for p in response.json()["properties"]]
    assert names == ["Newer", "Older"]


def test_other_users_property_is_not_found(client, alice_headers, bob_headers):
    property_id = _create(client, alice_headers).json()["id"]

    assert client.get(f"/api/properties/{property_id}", headers=bob_headers).status_code == 404
    response = client.put(f"/api/properties/{property_id}", json={"name": "Taken"}, headers=bob_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "Property not found"}
    assert client.delete(f"/api/properties/{property_id}", headers=bob_headers).status_code == 404

    # Untouched for the owner
    owned = client.get(f"/api/properties/{property_id}", headers=alice_headers).json()
    assert owned["name"] == "Maple House"


def test_update_keeps_omitted_fields(client, alice_headers):
    property_id = _create(client, alice_headers, description="Corner lot").json()["id"]
    response = client.put(
        f"/api/properties/{property_id}",
        json={"name": "Maple", "price": 100},
        headers=alice_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Maple"
    assert body["price"] == 100
    assert body["address"] == "12 Maple St"
    assert body["property_type"] == "house"
    assert body["description"] == "Corner lot"


def test_update_applies_explicit_nulls_and_status_default(client, alice_headers):
    property_id = _create(client, alice_headers, status="sold").json()["id"]
    response = client.put(
        f"/api/properties/{property_id}",
        json={"name": "Maple House", "price": None},
        headers=alice_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["price"] is None
    assert body["status"] == "active"
    assert body["address"] == "12 Maple St"


def test_delete_then_get_is_not_found(client, alice_headers):
    property_id = _create(client, alice_headers).json()["id"]
    assert client.delete(f"/api/properties/{property_id}", headers=alice_headers).status_code == 204
    assert client.get(f"/api/properties/{property_id}", headers=alice_headers).status_code == 404
    assert client.delete(f"/api/properties/{property_id}", headers=alice_headers).status_code == 404


def test_missing_name_is_rejected(client, alice_headers):
    response = client.post("/api/properties", json={"address": "nowhere"}, headers=alice_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "name: Required"


def test_non_positive_price_is_rejected(client, alice_headers):
    response = _create(client, alice_headers, price=0)
    assert response.status_code == 400
    assert response.json()["detail"].startswith("price:")


def test_string_price_is_rejected(client, alice_headers):
    response = _create(client, alice_headers, price="350000")
    assert response.status_code == 400


def test_unknown_property_type_is_rejected(client, alice_headers):
    response = _create(client, alice_headers, property_type="castle")
    assert response.status_code == 400
    assert "property_type" in response.json()["detail"]


def test_unknown_keys_are_rejected(client, alice_headers):
    response = _create(client, alice_headers, user_id="someone-else")
    assert response.status_code == 400
    assert "user_id" in response.json()["detail"]


def test_every_violation_is_reported(client, alice_headers):
    response = client.post("/api/properties", json={"price": -1, "status": "gone"}, headers=alice_headers)
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert "name: Required" in detail
    assert "price:" in detail
    assert "status:" in detail


def test_malformed_id_is_bad_request(client, alice_headers):
    response = client.get("/api/properties/not-a-uuid", headers=alice_headers)
    assert response.status_code == 400
