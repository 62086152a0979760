# tests/test_auth.py
"""HTTP tests for the account endpoints."""

from account_service.utils import create_access_token

from conftest import TEST_PASSWORD, auth_headers


def register(client, username="dave", email="dave@example.com", password=TEST_PASSWORD):
    return client.post("/users", json={"user": {"username": username, "email": email, "password": password}})


def test_register(client):
    r = register(client)

    assert r.status_code == 201, f"Expected 201 but got {r.status_code}"
    user = r.json()["user"]
    assert user["username"] == "dave"
    assert user["email"] == "dave@example.com"
    assert user["token"]
    assert "password" not in user


def test_register_duplicate_email(client):
    """Registering the same email twice is rejected with 422."""
    register(client)
    r = register(client, username="dave2")

    assert r.status_code == 422, f"Expected 422 but got {r.status_code}"
    assert r.json() == {"errors": {"email": "is already taken"}}


def test_register_blank_fields(client):
    """Registering with whitespace-only fields is rejected and creates no account."""
    r = register(client, username=" ", email=" ", password=" ")

    assert r.status_code == 422, f"Expected 422 but got {r.status_code}"
    assert r.json() == {"errors": {"username": "can't be blank", "email": "can't be blank", "password": "can't be blank"}}

    r = client.post("/users/login", json={"user": {"email": "", "password": ""}})
    assert r.status_code == 404


def test_register_missing_field(client):
    r = client.post("/users", json={"user": {"username": "dave"}})
    assert r.status_code == 422


def test_login(client):
    register(client)
    r = client.post("/users/login", json={"user": {"email": "dave@example.com", "password": TEST_PASSWORD}})

    assert r.status_code == 200
    assert r.json()["user"]["username"] == "dave"


def test_login_invalid_credentials(client):
    register(client)
    r = client.post("/users/login", json={"user": {"email": "dave@example.com", "password": "wrongpassword"}})

    assert r.status_code == 401, f"Expected 401 but got {r.status_code}"
    assert r.json() == {"errors": {"password": "is invalid"}}


def test_login_unknown_email(client):
    r = client.post("/users/login", json={"user": {"email": "nobody@example.com", "password": "x"}})

    assert r.status_code == 404
    assert r.json() == {"errors": {"email": "not found"}}


def test_current_user(client):
    token = register(client).json()["user"]["token"]
    r = client.get("/user", headers=auth_headers(token))

    assert r.status_code == 200
    assert r.json()["user"]["email"] == "dave@example.com"


def test_current_user_accepts_bearer(client):
    token = register(client).json()["user"]["token"]
    r = client.get("/user", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


def test_current_user_without_token(client):
    r = client.get("/user")

    assert r.status_code == 401
    assert r.json() == {"errors": {"token": "is missing"}}


def test_current_user_bad_token(client):
    r = client.get("/user", headers=auth_headers("not-a-jwt"))

    assert r.status_code == 401
    assert r.json() == {"errors": {"token": "is invalid"}}


def test_current_user_deleted_username(client):
    token = create_access_token({"sub": "99", "username": "ghost"})
    r = client.get("/user", headers=auth_headers(token))

    assert r.status_code == 404
    assert r.json() == {"errors": {"username": "not found"}}


def test_update_user(client):
    token = register(client).json()["user"]["token"]
    r = client.put("/user", json={"user": {"bio": "hello", "image": "https://img/d.png"}}, headers=auth_headers(token))

    assert r.status_code == 200
    user = r.json()["user"]
    assert user["bio"] == "hello"
    assert user["image"] == "https://img/d.png"
    assert user["username"] == "dave"


def test_update_user_email_conflict(client):
    token = register(client).json()["user"]["token"]
    register(client, username="erin", email="erin@example.com")

    r = client.put("/user", json={"user": {"email": "erin@example.com"}}, headers=auth_headers(token))
    assert r.status_code == 422
    assert r.json() == {"errors": {"email": "is already taken"}}

    r = client.get("/user", headers=auth_headers(token))
    assert r.json()["user"]["email"] == "dave@example.com"


def test_profile(client):
    register(client)
    r = client.get("/profiles/dave")

    assert r.status_code == 200
    assert r.json() == {"profile": {"username": "dave", "bio": None, "image": None, "following": False}}


def test_profile_unknown(client):
    r = client.get("/profiles/ghost")
    assert r.status_code == 404
    assert r.json() == {"errors": {"username": "not found"}}


def test_health_and_metrics(client):
    assert client.get("/health").json() == {"status": "ok", "service": "account_service"}

    r = client.get("/metrics")
    assert r.status_code == 200
    assert "account_requests_total" in r.text
