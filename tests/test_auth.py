import asyncio

from conftest import DEFAULT_PASSWORD, register


def test_register_logs_in_and_hides_password(client):
    user = register(client, "Alice")

    assert user["username"] == "alice"
    assert user["role"] == "freelancer"
    assert "password" not in user

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


def test_register_rejects_duplicates(client, make_client):
    register(client, "alice")
    other = make_client()

    response = other.post("/api/auth/register", json={
        "username": "ALICE",
        "email": "new@example.com",
        "password": DEFAULT_PASSWORD,
        "confirm_password": DEFAULT_PASSWORD,
        "full_name": "Alice Again",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Username already exists"

    response = other.post("/api/auth/register", json={
        "username": "alice2",
        "email": "alice@example.com",
        "password": DEFAULT_PASSWORD,
        "confirm_password": DEFAULT_PASSWORD,
        "full_name": "Alice Again",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already exists"


def test_register_password_mismatch(client):
    response = client.post("/api/auth/register", json={
        "username": "carol",
        "email": "carol@example.com",
        "password": "secret123",
        "confirm_password": "secret124",
        "full_name": "Carol",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Passwords do not match"


def test_register_cannot_pick_admin_role(client):
    response = client.post("/api/auth/register", json={
        "username": "mallory",
        "email": "mallory@example.com",
        "password": "secret123",
        "confirm_password": "secret123",
        "full_name": "Mallory",
        "role": "admin",
    })
    assert response.status_code == 422


def test_login_logout_cycle(client, make_client):
    register(make_client(), "alice")

    bad = client.post("/api/auth/login", json={"username": "alice", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid username or password"

    ok = client.post("/api/auth/login", json={"username": " Alice ", "password": DEFAULT_PASSWORD})
    assert ok.status_code == 200
    assert ok.json()["message"] == "Login successful"
    assert client.get("/api/auth/me").status_code == 200

    assert client.post("/api/auth/logout").status_code == 200
    me = client.get("/api/auth/me")
    assert me.status_code == 401
    assert me.json()["detail"] == "Not authenticated"


def test_login_unknown_user(client):
    response = client.post("/api/auth/login", json={"username": "ghost", "password": "whatever"})
    assert response.status_code == 401


def test_legacy_plaintext_password_still_works(client, storage):
    asyncio.run(storage.create_user({
        "username": "legacy",
        "email": "legacy@example.com",
        "password": "plain-old",
        "full_name": "Legacy User",
        "role": "employer",
    }))

    response = client.post("/api/auth/login", json={"username": "legacy", "password": "plain-old"})
    assert response.status_code == 200


def test_blocked_user_cannot_login_and_loses_session(client, make_client, storage):
    user = register(client, "alice")
    asyncio.run(storage.update_user_status(user["id"], "blocked", "spam"))

    # 已登入的 session 會被清掉
    assert client.get("/api/auth/me").status_code == 401

    response = make_client().post("/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD})
    assert response.status_code == 403
    assert response.json()["detail"] == "Your account has been blocked: spam"


def test_register_rejects_password_over_bcrypt_limit(client):
    # 40 個字元但 80 bytes，字元長度檢查擋不住
    password = "é" * 40
    response = client.post("/api/auth/register", json={
        "username": "accent",
        "email": "accent@example.com",
        "password": password,
        "confirm_password": password,
        "full_name": "Accent",
    })
    assert response.status_code == 422
    assert client.get("/api/auth/me").status_code == 401
