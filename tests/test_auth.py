from bson import ObjectId

from security import create_access_token
from tests.conftest import TEST_SECRET, register


def test_register_returns_token_and_vendor(client):
    res = client.post("/auth/register", json={"name": "Ada", "email": "Ada@Example.com", "password": "secret123"})
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "Vendor registered successfully"
    assert "timestamp" in body
    vendor = body["data"]["vendor"]
    assert vendor["email"] == "ada@example.com"
    assert vendor["status"] == "active"
    assert "password_hash" not in vendor
    assert body["data"]["token"]


def test_register_duplicate_email_conflicts(client):
    register(client, "dup@example.com")
    res = client.post("/auth/register", json={"name": "Other", "email": "dup@example.com", "password": "secret123"})
    assert res.status_code == 409
    assert res.json()["success"] is False


def test_register_rejects_short_password(client, db):
    res = client.post("/auth/register", json={"name": "Ada", "email": "ada@example.com", "password": "123"})
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["errors"][0]["field"] == "password"
    assert db["vendor"].count_documents({}) == 0


def test_login_and_me(client):
    register(client, "ada@example.com", name="Ada")
    res = client.post("/auth/login", json={"email": "ada@example.com", "password": "secret123"})
    assert res.status_code == 200
    token = res.json()["data"]["token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    vendor = me.json()["data"]["vendor"]
    assert vendor["name"] == "Ada"
    assert vendor["created_at"]


def test_login_wrong_password(client):
    register(client, "ada@example.com")
    res = client.post("/auth/login", json={"email": "ada@example.com", "password": "wrong-password"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid email or password"


def test_me_without_token(client):
    res = client.get("/auth/me")
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_me_with_garbage_token(client):
    res = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


def test_token_signed_with_other_secret_is_rejected(client):
    token = create_access_token(ObjectId(), secret="some-other-secret")
    res = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_token_for_removed_vendor_is_rejected(client, db):
    headers = register(client, "gone@example.com")
    db["vendor"].delete_many({})
    res = client.get("/auth/me", headers=headers)
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid token."


def test_token_with_non_object_id_subject(client):
    token = create_access_token("not-an-id", secret=TEST_SECRET)
    res = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_unknown_route_uses_envelope(client):
    res = client.get("/nope")
    assert res.status_code == 404
    body = res.json()
    assert body["success"] is False
    assert body["message"] == "Route not found"
