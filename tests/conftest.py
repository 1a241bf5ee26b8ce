import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from main import create_app

TEST_SECRET = "test-secret"


@pytest.fixture
def client():
    app = create_app(mongomock.MongoClient(), secret=TEST_SECRET, database_name="vendor_backend_test")
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(client):
    return client.app.state.db


def register(client, email, name="Test Vendor", password="secret123"):
    res = client.post("/auth/register", json={"name": name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    token = res.json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}


def open_store(client, headers, name="Corner Shop"):
    res = client.post("/stores", json={"name": name}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]["store"]


@pytest.fixture
def auth(client):
    return register(client, "vendor@example.com")


@pytest.fixture
def store(client, auth):
    return open_store(client, auth)


@pytest.fixture
def store_doc(store):
    return {"_id": ObjectId(store["id"])}


@pytest.fixture
def other_auth(client):
    headers = register(client, "rival@example.com", name="Rival Vendor")
    open_store(client, headers, name="Rival Shop")
    return headers


@pytest.fixture
def make_product(client, auth, store):
    def _make(**fields):
        body = {"name": "Widget", "price": 10, "stock": 5}
        body.update(fields)
        res = client.post("/products", json=body, headers=auth)
        assert res.status_code == 201, res.text
        return res.json()["data"]["product"]
    return _make


@pytest.fixture
def make_order(client, auth, store):
    def _make(items, customer_name="Jane Doe", customer_email="jane@example.com"):
        body = {"customer_name": customer_name, "customer_email": customer_email, "items": items}
        res = client.post("/orders", json=body, headers=auth)
        assert res.status_code == 201, res.text
        return res.json()["data"]["order"]
    return _make
