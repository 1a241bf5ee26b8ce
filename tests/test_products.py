from datetime import datetime

import pytest

from catalog import normalize_product_invariant


@pytest.mark.parametrize("stock,status,expected", [
    (0, "active", "out_of_stock"),
    (0, "inactive", "out_of_stock"),
    (3, "out_of_stock", "active"),
    (3, "inactive", "inactive"),
    (3, "active", "active"),
])
def test_normalize_product_invariant(stock, status, expected):
    product = {"stock": stock, "status": status}
    assert normalize_product_invariant(product)["status"] == expected
    # input left as is
    assert product["status"] == status


def test_create_product(make_product):
    product = make_product(name="Mug", price=12.5, stock=4, images=["https://img.example.com/mug.png"])
    assert product["name"] == "Mug"
    assert product["status"] == "active"
    assert product["store_id"]


def test_create_with_zero_stock_is_out_of_stock(make_product):
    assert make_product(stock=0)["status"] == "out_of_stock"


def test_create_with_out_of_stock_and_stock_becomes_active(make_product):
    assert make_product(stock=2, status="out_of_stock")["status"] == "active"


@pytest.mark.parametrize("body,field", [
    ({"name": "W", "price": 1, "stock": 1}, "name"),
    ({"name": "Widget", "price": -1, "stock": 1}, "price"),
    ({"name": "Widget", "price": 1, "stock": -1}, "stock"),
    ({"name": "Widget", "price": 1, "stock": 1, "images": ["nope"]}, "images"),
    ({"name": "Widget", "price": 1, "stock": 1, "status": "sold"}, "status"),
])
def test_invalid_product_is_not_persisted(client, auth, store, db, body, field):
    res = client.post("/products", json=body, headers=auth)
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"].startswith(field)
    assert db["product"].count_documents({}) == 0


def test_update_restores_invariant(client, auth, make_product):
    product = make_product(stock=0)
    res = client.put(f"/products/{product['id']}", json={"stock": 7}, headers=auth)
    assert res.status_code == 200
    updated = res.json()["data"]["product"]
    assert updated["stock"] == 7
    assert updated["status"] == "active"

    res = client.put(f"/products/{product['id']}", json={"stock": 0, "status": "active"}, headers=auth)
    assert res.json()["data"]["product"]["status"] == "out_of_stock"


def test_update_keeps_inactive_while_stocked(client, auth, make_product):
    product = make_product(stock=3)
    res = client.put(f"/products/{product['id']}", json={"status": "inactive"}, headers=auth)
    assert res.json()["data"]["product"]["status"] == "inactive"
    res = client.put(f"/products/{product['id']}", json={"price": 99}, headers=auth)
    updated = res.json()["data"]["product"]
    assert updated["status"] == "inactive"
    assert updated["price"] == 99
    assert updated["name"] == "Widget"


def test_failed_update_leaves_product_untouched(client, auth, make_product):
    product = make_product(price=10)
    res = client.put(f"/products/{product['id']}", json={"price": -5}, headers=auth)
    assert res.status_code == 400
    fetched = client.get(f"/products/{product['id']}", headers=auth).json()["data"]["product"]
    assert fetched["price"] == 10


def test_list_products_paginates(client, auth, make_product):
    for i in range(3):
        make_product(name=f"Product {i}", category="mugs" if i % 2 == 0 else "tees")
    res = client.get("/products", params={"page": 1, "limit": 2}, headers=auth)
    data = res.json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert len(data["products"]) == 2

    res = client.get("/products", params={"category": "mugs"}, headers=auth)
    assert {p["name"] for p in res.json()["data"]["products"]} == {"Product 0", "Product 2"}


def test_list_products_sorted_by_creation(client, auth, make_product, db):
    first = make_product(name="First")
    second = make_product(name="Second")
    db["product"].update_one({"name": "First"}, {"$set": {"created_at": datetime(2026, 1, 1)}})
    db["product"].update_one({"name": "Second"}, {"$set": {"created_at": datetime(2026, 2, 1)}})
    ids = [p["id"] for p in client.get("/products", headers=auth).json()["data"]["products"]]
    assert ids == [second["id"], first["id"]]


def test_list_products_status_filter(client, auth, make_product):
    make_product(name="Empty", stock=0)
    make_product(name="Full", stock=3)
    res = client.get("/products", params={"status": "out_of_stock"}, headers=auth)
    assert [p["name"] for p in res.json()["data"]["products"]] == ["Empty"]


def test_pagination_params_validated(client, auth, store):
    assert client.get("/products", params={"page": 0}, headers=auth).status_code == 400


def test_delete_product(client, auth, make_product):
    product = make_product()
    assert client.delete(f"/products/{product['id']}", headers=auth).status_code == 200
    assert client.get(f"/products/{product['id']}", headers=auth).status_code == 404
    assert client.delete(f"/products/{product['id']}", headers=auth).status_code == 404


def test_products_are_isolated_between_vendors(client, make_product, other_auth):
    product = make_product()
    assert client.get(f"/products/{product['id']}", headers=other_auth).status_code == 404
    assert client.put(f"/products/{product['id']}", json={"price": 1}, headers=other_auth).status_code == 404
    assert client.delete(f"/products/{product['id']}", headers=other_auth).status_code == 404
    listing = client.get("/products", headers=other_auth).json()["data"]
    assert listing["products"] == []
    assert listing["pagination"]["total"] == 0
