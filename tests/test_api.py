"""Tests for the inventory HTTP API."""

from fastapi.testclient import TestClient

from retailinv.api import create_app
from retailinv.config import InventoryConfig


def _seed(client: TestClient) -> None:
    for code, name in ((1, "Store A"), (2, "Store B")):
        response = client.post(
            "/stores", json={"code": code, "name": name, "address": f"{code} Main St"}
        )
        assert response.status_code == 201
    client.post(
        "/products", json={"name": "Bread", "store_code": 1, "quantity": 10, "price": "2.00"}
    )
    client.post(
        "/products", json={"name": "Bread", "store_code": 2, "quantity": 5, "price": 1.5}
    )


def test_health_check(api_test_client: TestClient) -> None:
    response = api_test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["backend"] == "memory"


def test_create_and_list_stores(api_test_client: TestClient) -> None:
    _seed(api_test_client)

    response = api_test_client.get("/stores")

    assert response.status_code == 200
    assert [s["code"] for s in response.json()] == [1, 2]
    assert api_test_client.get("/stores/2").json()["name"] == "Store B"
    missing = api_test_client.get("/stores/3")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "UNKNOWN_STORE"


def test_duplicate_store_returns_conflict(api_test_client: TestClient) -> None:
    _seed(api_test_client)

    response = api_test_client.post(
        "/stores", json={"code": 1, "name": "Again", "address": "Elsewhere"}
    )

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "DUPLICATE_KEY"
    assert error["details"] == {"store_code": 1}
    assert error["message"].startswith("Error creating store:")


def test_invalid_store_payload_rejected(api_test_client: TestClient) -> None:
    response = api_test_client.post(
        "/stores", json={"code": 3, "name": "Comma, Inc", "address": "X"}
    )
    assert response.status_code == 422


def test_product_in_unknown_store_returns_not_found(api_test_client: TestClient) -> None:
    response = api_test_client.post(
        "/products", json={"name": "Bread", "store_code": 9, "quantity": 1, "price": "1.00"}
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "UNKNOWN_STORE"


def test_delivery_merges_into_store(api_test_client: TestClient) -> None:
    _seed(api_test_client)

    response = api_test_client.post(
        "/stores/1/deliveries",
        json={
            "products": [
                {"name": "Bread", "quantity": 5, "price": "2.20"},
                {"name": "Milk", "quantity": 3, "price": "1.10"},
            ]
        },
    )

    assert response.status_code == 200
    rows = {p["name"]: p for p in api_test_client.get("/products", params={"store_code": 1}).json()}
    assert rows["Bread"]["quantity"] == 15
    assert rows["Bread"]["price"] == "2.20"
    assert rows["Milk"]["quantity"] == 3


def test_cheapest_store_for_product(api_test_client: TestClient) -> None:
    _seed(api_test_client)

    assert api_test_client.get("/products/Bread/cheapest-store").json()["code"] == 2
    missing = api_test_client.get("/products/Caviar/cheapest-store")
    assert missing.status_code == 404
    assert missing.json()["error"] == {
        "code": "NOT_FOUND",
        "message": "No store found selling Caviar.",
        "details": {"product": "Caviar"},
    }


def test_affordable_products(api_test_client: TestClient) -> None:
    _seed(api_test_client)

    response = api_test_client.get("/stores/2/affordable", params={"budget": "1.50"})

    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["Bread"]
    assert api_test_client.get("/stores/1/affordable", params={"budget": "1.99"}).json() == []
    assert api_test_client.get("/stores/1/affordable", params={"budget": "-1"}).status_code == 422


def test_purchase_success(api_test_client: TestClient) -> None:
    _seed(api_test_client)

    response = api_test_client.post("/stores/1/purchases", json={"items": {"Bread": 4}})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["total_cost"] == "8.00"
    assert api_test_client.get("/products", params={"store_code": 1}).json()[0]["quantity"] == 6


def test_purchase_insufficient_stock_returns_conflict(api_test_client: TestClient) -> None:
    _seed(api_test_client)

    response = api_test_client.post("/stores/1/purchases", json={"items": {"Bread": 11}})

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "INSUFFICIENT_STOCK"
    assert error["details"]["shortages"] == [
        {"name": "Bread", "requested": 11, "available": 10}
    ]
    assert api_test_client.get("/products", params={"store_code": 1}).json()[0]["quantity"] == 10


def test_purchase_invalid_quantity(api_test_client: TestClient) -> None:
    _seed(api_test_client)

    response = api_test_client.post("/stores/1/purchases", json={"items": {"Bread": 0}})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "INVALID_BATCH"


def test_cheapest_store_for_batch(api_test_client: TestClient) -> None:
    _seed(api_test_client)

    assert (
        api_test_client.post("/batches/cheapest-store", json={"items": {"Bread": 5}}).json()["code"]
        == 2
    )
    assert (
        api_test_client.post("/batches/cheapest-store", json={"items": {"Bread": 6}}).json()["code"]
        == 1
    )
    missing = api_test_client.post("/batches/cheapest-store", json={"items": {"Bread": 11}})
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"
    assert missing.json()["error"]["details"] == {"items": {"Bread": 11}}


def test_lifespan_builds_resources_from_config(monkeypatch) -> None:
    monkeypatch.setattr(
        "retailinv.api.get_config",
        lambda: InventoryConfig(_env_file=None, backend="memory"),
    )
    with TestClient(create_app()) as client:
        assert client.get("/stores").json() == []
