from app.kothler.db import session_scope
from app.kothler.models import User
from conftest import EDITOR_EMAIL, csrf_headers


def _editor_id(app):
    with session_scope(app) as s:
        return s.query(User).filter(User.email == EDITOR_EMAIL).one().id


def _create(client, user_id, **overrides):
    payload = {
        "user_id": user_id,
        "position": "Desarrolladora",
        "bio": "Construye sistemas para restaurantes.",
        "links": {"github": "https://github.com/example"},
        **overrides,
    }
    r = client.post("/api/profiles", json=payload, headers=csrf_headers(client))
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.json["profile"]


def test_profile_create(app, editor_client):
    profile = _create(editor_client, _editor_id(app))
    assert profile["user"]["email"] == EDITOR_EMAIL
    assert profile["image"] == "/placeholder.svg"
    assert profile["links"] == {"github": "https://github.com/example"}
    assert profile["is_public"] is True


def test_one_profile_per_user(app, admin_client):
    user_id = _editor_id(app)
    _create(admin_client, user_id)
    r = admin_client.post(
        "/api/profiles",
        json={"user_id": user_id, "position": "Otra", "bio": "Otra biografía larga."},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    assert r.json["error"] == "Profile already exists for this user"


def test_profile_for_unknown_user(admin_client):
    r = admin_client.post(
        "/api/profiles",
        json={"user_id": 999, "position": "Nadie", "bio": "No existe este usuario."},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    assert r.json["error"] == "User not found"


def test_unknown_link_keys_rejected(app, admin_client):
    r = admin_client.post(
        "/api/profiles",
        json={"user_id": _editor_id(app), "position": "Dev", "bio": "Biografía suficiente.", "links": {"myspace": "x"}},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    assert "Unknown link keys: myspace" in r.json["error"]


def test_hidden_profile_needs_session(app, admin_client, client):
    profile = _create(admin_client, _editor_id(app), is_public=False)

    r = client.get(f"/api/profiles/{profile['id']}")
    assert r.status_code == 401

    r = admin_client.get(f"/api/profiles/{profile['id']}")
    assert r.status_code == 200

    r = client.get("/api/profiles?public=true")
    assert r.json["profiles"] == []
    r = client.get("/equipo")
    assert b"Desarrolladora" not in r.data


def test_update_merges_links(app, admin_client):
    profile = _create(admin_client, _editor_id(app))
    r = admin_client.put(
        f"/api/profiles/{profile['id']}",
        json={"links": {"linkedin": "https://linkedin.com/in/example", "github": ""}, "user_id": 12345},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 200
    updated = r.json["profile"]
    assert updated["links"] == {"linkedin": "https://linkedin.com/in/example"}
    assert updated["user"]["email"] == EDITOR_EMAIL


def test_user_rename_shows_on_team_page(app, admin_client, client):
    user_id = _editor_id(app)
    _create(admin_client, user_id)
    assert b"Editor" in client.get("/equipo").data

    r = admin_client.put(f"/api/users/{user_id}", json={"name": "Ana Editora"}, headers=csrf_headers(admin_client))
    assert r.status_code == 200
    assert b"Ana Editora" in client.get("/equipo").data


def test_profile_delete(app, editor_client):
    profile = _create(editor_client, _editor_id(app))
    r = editor_client.delete(f"/api/profiles/{profile['id']}", headers=csrf_headers(editor_client))
    assert r.status_code == 200
    assert editor_client.get(f"/api/profiles/{profile['id']}").status_code == 404
