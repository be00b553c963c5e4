from conftest import csrf_headers


def _create(client, **overrides):
    payload = {"name": "viewer", "description": "Solo lectura", "permissions": [], **overrides}
    r = client.post("/api/roles", json=payload, headers=csrf_headers(client))
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.json["role"]


def test_list_roles_and_permissions(admin_client):
    r = admin_client.get("/api/roles")
    assert r.status_code == 200
    assert [role["name"] for role in r.json["roles"]] == ["admin", "editor"]

    r = admin_client.get("/api/roles/permissions")
    keys = [p["key"] for p in r.json["permissions"]]
    assert keys == ["manage_content", "manage_profiles", "manage_roles", "manage_users"]


def test_create_role_normalizes_permissions(admin_client):
    role = _create(admin_client, permissions=["manage_profiles", "manage_content", "manage_profiles"])
    assert role["permissions"] == ["manage_content", "manage_profiles"]
    assert role["is_default"] is False


def test_unknown_permission_rejected(admin_client):
    r = admin_client.post(
        "/api/roles",
        json={"name": "raro", "description": "Permiso raro", "permissions": ["launch_rockets"]},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    assert "Unknown permissions: launch_rockets" in r.json["error"]


def test_duplicate_role_name(admin_client):
    r = admin_client.post(
        "/api/roles",
        json={"name": "editor", "description": "Otra vez", "permissions": []},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    assert r.json["error"] == "Role name already exists"


def test_update_role(admin_client):
    role = _create(admin_client)
    r = admin_client.put(
        f"/api/roles/{role['id']}",
        json={"permissions": ["manage_content"], "is_default": True},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 200
    assert r.json["role"]["permissions"] == ["manage_content"]
    assert r.json["role"]["is_default"] is True


def test_cannot_delete_role_in_use(admin_client):
    r = admin_client.get("/api/roles")
    editor = next(role for role in r.json["roles"] if role["name"] == "editor")

    r = admin_client.delete(f"/api/roles/{editor['id']}", headers=csrf_headers(admin_client))
    assert r.status_code == 400
    assert r.json == {"error": "Cannot delete role with associated users", "count": 1}


def test_delete_unused_role(admin_client):
    role = _create(admin_client)
    r = admin_client.delete(f"/api/roles/{role['id']}", headers=csrf_headers(admin_client))
    assert r.status_code == 200
    assert admin_client.get(f"/api/roles/{role['id']}").status_code == 404
