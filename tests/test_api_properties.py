import json

from fastapi.testclient import TestClient

from conftest import LANDLORD_ID, TENANT_ID, auth_for

PROPERTY_DATA = {
    "name": "Banana Island Court",
    "description": "Three-storey block with backup power and parking.",
    "address": "4 Ocean Parade",
    "city": "Ikoyi",
    "state": "Lagos",
}

UNIT_DATA = {
    "unit_number": "B2",
    "bedroom_count": 3,
    "bathroom_count": 2,
    "size": 150,
    "price_per_month": 450000,
}


def test_create_property_makes_caller_landlord(client: TestClient, redis_mock):
    response = client.post("/properties/", json=PROPERTY_DATA, headers=auth_for(LANDLORD_ID))

    assert response.status_code == 201
    data = response.json()
    assert data["landlord_id"] == LANDLORD_ID
    assert data["status"] == "active"
    redis_mock.delete.assert_called_with("all_properties")


def test_create_property_requires_auth(client: TestClient):
    response = client.post("/properties/", json=PROPERTY_DATA)
    assert response.status_code == 401


def test_create_property_validates_body(client: TestClient):
    response = client.post("/properties/", json={**PROPERTY_DATA, "name": "A"}, headers=auth_for(LANDLORD_ID))
    assert response.status_code == 400


def test_read_properties_populates_cache(client: TestClient, redis_mock, property_):
    response = client.get("/properties/")

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [property_.id]

    key, payload = redis_mock.set.call_args.args
    assert key == "all_properties"
    assert json.loads(payload)[0]["name"] == property_.name


def test_read_properties_served_from_cache(client: TestClient, redis_mock):
    cached = [{**PROPERTY_DATA, "id": 77, "landlord_id": 5, "status": "active",
               "created_at": "2030-01-01T00:00:00"}]
    redis_mock.get.return_value = json.dumps(cached)

    response = client.get("/properties/")

    assert response.status_code == 200
    assert response.json()[0]["id"] == 77
    redis_mock.set.assert_not_called()


def test_landlord_adds_unit(client: TestClient, redis_mock, property_):
    response = client.post(f"/properties/{property_.id}/units", json=UNIT_DATA, headers=auth_for(LANDLORD_ID))

    assert response.status_code == 201
    data = response.json()
    assert data["property_id"] == property_.id
    assert data["price_per_month"] == 450000
    redis_mock.delete.assert_called_with(f"property_{property_.id}")

    detail = client.get(f"/properties/{property_.id}")
    assert detail.status_code == 200
    assert [u["unit_number"] for u in detail.json()["units"]] == ["B2"]

    unit = client.get(f"/units/{data['id']}")
    assert unit.status_code == 200
    assert unit.json()["unit_number"] == "B2"


def test_only_landlord_adds_units(client: TestClient, property_):
    response = client.post(f"/properties/{property_.id}/units", json=UNIT_DATA, headers=auth_for(TENANT_ID))

    assert response.status_code == 403


def test_add_unit_to_unknown_property(client: TestClient):
    response = client.post("/properties/999/units", json=UNIT_DATA, headers=auth_for(LANDLORD_ID))

    assert response.status_code == 404
    assert response.json() == {"detail": "Property not found"}


def test_read_unknown_unit(client: TestClient):
    response = client.get("/units/999")

    assert response.status_code == 404
    assert response.json() == {"detail": "Unit not found"}


def add_unit(client: TestClient, property_id: int, **overrides) -> dict:
    response = client.post(f"/properties/{property_id}/units", json={**UNIT_DATA, **overrides},
                           headers=auth_for(LANDLORD_ID))
    assert response.status_code == 201
    return response.json()


def test_read_properties_filters(client: TestClient, redis_mock, property_):
    add_unit(client, property_.id, unit_number="A", bedroom_count=1, price_per_month=200000)
    other = client.post("/properties/", json={**PROPERTY_DATA, "state": "Abuja"}, headers=auth_for(LANDLORD_ID)).json()
    add_unit(client, other["id"], unit_number="B", bedroom_count=3, price_per_month=800000)

    def ids(**params):
        response = client.get("/properties/", params=params)
        assert response.status_code == 200
        return [p["id"] for p in response.json()]

    assert ids(state="Abuja") == [other["id"]]
    assert ids(min_price=500000) == [other["id"]]
    assert ids(max_price=500000) == [property_.id]
    assert ids(bedrooms=1) == [property_.id]
    assert ids(min_price=100000, max_price=900000, bedrooms=3) == [other["id"]]
    assert ids(bedrooms=5) == []

    # Filtered results never touch the listing cache
    redis_mock.get.assert_not_called()
    redis_mock.set.assert_not_called()


def test_read_my_properties(client: TestClient, property_):
    add_unit(client, property_.id)
    client.post("/properties/", json={**PROPERTY_DATA, "name": "Somebody Else's"}, headers=auth_for(TENANT_ID))

    response = client.get("/properties/mine", headers=auth_for(LANDLORD_ID))

    assert response.status_code == 200
    data = response.json()
    assert [p["id"] for p in data] == [property_.id]
    assert [u["unit_number"] for u in data[0]["units"]] == ["B2"]


def test_read_my_properties_requires_auth(client: TestClient):
    assert client.get("/properties/mine").status_code == 401
