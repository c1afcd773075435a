"""Auth API tests."""

from heykin.core.security import create_access_token, token_user_id


def test_register_and_login(client):
    r = client.post(
        "/auth/register",
        json={"email": "ann@test.com", "password": "pass", "full_name": "Ann", "phone_number": "+15551234567"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["email"] == "ann@test.com"
    assert body["is_checker"] is True
    assert "hashed_password" not in body

    r = client.post("/auth/login", json={"email": "ann@test.com", "password": "pass"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["full_name"] == "Ann"


def test_duplicate_email_rejected(client):
    payload = {"email": "dup@test.com", "password": "pass", "full_name": "Dup"}
    assert client.post("/auth/register", json=payload).status_code == 201
    r = client.post("/auth/register", json={**payload, "email": "DUP@test.com"})
    assert r.status_code == 400


def test_login_wrong_password(client):
    client.post("/auth/register", json={"email": "w@test.com", "password": "pass", "full_name": "W"})
    r = client.post("/auth/login", json={"email": "w@test.com", "password": "nope"})
    assert r.status_code == 401


def test_invalid_phone_rejected(client):
    r = client.post(
        "/auth/register",
        json={"email": "p@test.com", "password": "pass", "full_name": "P", "phone_number": "555-1234"},
    )
    assert r.status_code == 422


def test_me_requires_token(client):
    assert client.get("/auth/me").status_code == 401
    r = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


def test_token_round_trip():
    token = create_access_token(42, {"email": "x@test.com"})
    assert token_user_id(token) == 42
    assert token_user_id(token + "x") is None


def test_push_token_registration_is_idempotent(client, auth_headers):
    headers = auth_headers("push@test.com")
    first = client.post("/auth/me/push-tokens", headers=headers, json={"token": "abc123"})
    second = client.post("/auth/me/push-tokens", headers=headers, json={"token": "abc123"})
    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["id"] == second.json()["id"]
