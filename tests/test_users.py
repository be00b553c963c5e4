from app.kothler.db import session_scope
from app.kothler.models import Role, User
from conftest import ADMIN_EMAIL, EDITOR_EMAIL, csrf_headers, login


def _editor_role_id(app):
    with session_scope(app) as s:
        return s.query(Role).filter(Role.name == "editor").one().id


def _user_id(app, email):
    with session_scope(app) as s:
        return s.query(User).filter(User.email == email).one().id


def test_create_user_and_login(app, admin_client):
    r = admin_client.post(
        "/api/users",
        json={"email": "Nuevo@Example.com", "password": "s3cret-pass", "name": "Nuevo", "role_id": _editor_role_id(app)},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 201
    user = r.json["user"]
    assert user["email"] == "nuevo@example.com"
    assert user["role"]["name"] == "editor"
    assert "password_hash" not in user

    c = app.test_client()
    login(c, "nuevo@example.com", "s3cret-pass")


def test_create_user_validation(app, admin_client):
    r = admin_client.post(
        "/api/users",
        json={"email": "bad-email", "password": "short", "name": "N"},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    errors = r.json["error"]
    assert "A valid email is required." in errors
    assert "Password must be at least 8 characters." in errors
    assert "Name must be at least 2 characters." in errors
    assert "role_id is required." in errors


def test_duplicate_email_and_unknown_role(app, admin_client):
    base = {"password": "s3cret-pass", "name": "Otro", "role_id": _editor_role_id(app)}
    r = admin_client.post("/api/users", json={**base, "email": EDITOR_EMAIL.upper()}, headers=csrf_headers(admin_client))
    assert r.status_code == 400
    assert r.json["error"] == "Email already exists"

    r = admin_client.post("/api/users", json={**base, "email": "otro@example.com", "role_id": 999}, headers=csrf_headers(admin_client))
    assert r.status_code == 400
    assert r.json["error"] == "Role not found"


def test_list_users_paginates(app, admin_client):
    role_id = _editor_role_id(app)
    for i in range(3):
        r = admin_client.post(
            "/api/users",
            json={"email": f"user{i}@example.com", "password": "s3cret-pass", "name": f"User {i}", "role_id": role_id},
            headers=csrf_headers(admin_client),
        )
        assert r.status_code == 201

    r = admin_client.get("/api/users?page=2&limit=2")
    assert r.status_code == 200
    assert r.json["pagination"] == {"total": 5, "page": 2, "limit": 2, "pages": 3}
    assert len(r.json["users"]) == 2

    r = admin_client.get("/api/users?limit=1000")
    assert r.json["pagination"]["limit"] == 100


def test_email_is_immutable(app, admin_client):
    r = admin_client.put(
        f"/api/users/{_user_id(app, EDITOR_EMAIL)}",
        json={"email": "changed@example.com"},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    assert r.json["error"] == ["Email cannot be changed."]


def test_password_change_takes_effect(app, admin_client):
    user_id = _user_id(app, EDITOR_EMAIL)
    r = admin_client.put(f"/api/users/{user_id}", json={"password": "brand-new-pass"}, headers=csrf_headers(admin_client))
    assert r.status_code == 200

    c = app.test_client()
    login(c, EDITOR_EMAIL, "brand-new-pass")


def test_role_change_through_api(app, admin_client, editor_client):
    with session_scope(app) as s:
        admin_role_id = s.query(Role).filter(Role.name == "admin").one().id
    assert editor_client.get("/api/users").status_code == 403

    r = admin_client.put(
        f"/api/users/{_user_id(app, EDITOR_EMAIL)}",
        json={"role_id": admin_role_id},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 200
    assert r.json["user"]["role"]["name"] == "admin"
    assert editor_client.get("/api/users").status_code == 200


def test_cannot_delete_self(app, admin_client):
    r = admin_client.delete(f"/api/users/{_user_id(app, ADMIN_EMAIL)}", headers=csrf_headers(admin_client))
    assert r.status_code == 400
    assert r.json["error"] == "Cannot delete your own account"


def test_delete_user_ends_their_session(app, admin_client, editor_client):
    r = admin_client.delete(f"/api/users/{_user_id(app, EDITOR_EMAIL)}", headers=csrf_headers(admin_client))
    assert r.status_code == 200
    assert r.json["message"] == "User deleted successfully"

    assert admin_client.get(f"/api/users/{_user_id(app, ADMIN_EMAIL)}").status_code == 200
    assert editor_client.get("/api/auth/session").json["user"] is None
