from conftest import register


def test_register_returns_token_and_sets_http_only_cookie(client):
    r = client.post("/api/auth/register", json={
        "name": "Ann", "email": "ann@example.com", "password": "password123",
    })
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["email"] == "ann@example.com"
    assert body["role"] == "user"
    assert body["token"]
    assert "password_hash" not in body

    set_cookie = r.headers["set-cookie"]
    assert set_cookie.startswith("token=")
    assert "HttpOnly" in set_cookie

    # cookie alone authenticates follow-up requests
    profile = client.get("/api/auth/profile")
    assert profile.status_code == 200
    assert profile.json()["email"] == "ann@example.com"


def test_register_duplicate_email(client):
    register(client, email="dup@example.com")
    r = client.post("/api/auth/register", json={
        "name": "Other", "email": "dup@example.com", "password": "password123",
    })
    assert r.status_code == 400
    assert r.json()["detail"] == "User already exists"


def test_register_rejects_malformed_body(client):
    r = client.post("/api/auth/register", json={"name": "x", "email": "not-an-email", "password": "password123"})
    assert r.status_code == 422


def test_login_failures_are_indistinguishable(client):
    register(client, email="bob@example.com", password="correct-horse")

    wrong_password = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "nope-nope"})
    no_account = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "nope-nope"})

    assert wrong_password.status_code == no_account.status_code == 401
    assert wrong_password.json() == no_account.json() == {"detail": "Invalid email or password"}


def test_login_success(client):
    register(client, email="carol@example.com", password="secret-pass")
    r = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "secret-pass"})
    assert r.status_code == 200
    token = r.json()["token"]
    client.cookies.clear()

    me = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "carol@example.com"


def test_protected_route_without_token(client):
    r = client.get("/api/auth/profile")
    assert r.status_code == 401
    assert r.json()["detail"] == "Not authorized, no token"


def test_protected_route_with_garbage_token(client):
    r = client.get("/api/auth/profile", headers={"Authorization": "Bearer not.a.jwt"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Not authorized, token invalid"


def test_logout_clears_cookie(client):
    client.post("/api/auth/register", json={"name": "Dan", "email": "dan@example.com", "password": "password123"})
    assert client.get("/api/auth/profile").status_code == 200

    r = client.post("/api/auth/logout")
    assert r.status_code == 200
    assert client.get("/api/auth/profile").status_code == 401


def test_update_profile(client, user_headers):
    r = client.put("/api/auth/profile", headers=user_headers, json={
        "name": "Renamed",
        "phone": "555-1234",
        "address": {"street": "2 Elm", "city": "Austin", "state": "TX", "zip_code": "73301", "country": "US"},
        "password": "new-password",
    })
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["name"] == "Renamed"
    assert body["phone"] == "555-1234"
    assert body["address"]["city"] == "Austin"

    login = client.post("/api/auth/login", json={"email": "user@example.com", "password": "new-password"})
    assert login.status_code == 200


def test_admin_routes_forbidden_for_regular_user(client, user_headers):
    r = client.get("/api/auth/users", headers=user_headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "Not authorized as admin"


def test_admin_lists_and_deletes_users(client, admin_headers):
    register(client, email="victim@example.com")

    page = client.get("/api/auth/users", headers=admin_headers).json()
    assert page["total"] == 2
    assert page["pages"] == 1
    victim = next(u for u in page["users"] if u["email"] == "victim@example.com")

    r = client.delete(f"/api/auth/users/{victim['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert client.delete(f"/api/auth/users/{victim['id']}", headers=admin_headers).status_code == 404
    assert client.get("/api/auth/users", headers=admin_headers).json()["total"] == 1
