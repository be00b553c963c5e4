from conftest import csrf_headers

SERVICE = {
    "title": "Desarrollo Web",
    "slug": "desarrollo-web",
    "description": "Sitios rápidos y modernos.",
    "long_description": "Diseñamos y construimos sitios web a la medida de tu negocio.",
    "icon": "Globe",
    "features": ["Diseño responsivo", "SEO básico"],
}


def _create(client, **overrides):
    r = client.post("/api/services", json={**SERVICE, **overrides}, headers=csrf_headers(client))
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.json["service"]


def test_service_create_and_lookup_by_slug(admin_client):
    service = _create(admin_client, slug="  Desarrollo-Web ")
    assert service["slug"] == "desarrollo-web"
    assert service["features"] == ["Diseño responsivo", "SEO básico"]

    r = admin_client.get("/api/services/slug/desarrollo-web")
    assert r.status_code == 200
    assert r.json["service"]["id"] == service["id"]

    r = admin_client.get("/api/services/slug/nope")
    assert r.status_code == 404
    assert r.json["error"] == "Service not found"


def test_duplicate_slug_rejected(admin_client):
    _create(admin_client)
    r = admin_client.post("/api/services", json={**SERVICE, "title": "Otro"}, headers=csrf_headers(admin_client))
    assert r.status_code == 400
    assert r.json["error"] == "A service with this slug already exists"


def test_update_to_taken_slug_rejected(admin_client):
    _create(admin_client)
    other = _create(admin_client, slug="apps-moviles", title="Apps")

    r = admin_client.put(f"/api/services/{other['id']}", json={"slug": "desarrollo-web"}, headers=csrf_headers(admin_client))
    assert r.status_code == 400

    # Keeping its own slug is fine
    r = admin_client.put(f"/api/services/{other['id']}", json={"slug": "apps-moviles", "title": "Apps Móviles"}, headers=csrf_headers(admin_client))
    assert r.status_code == 200
    assert r.json["service"]["title"] == "Apps Móviles"


def test_service_validation(admin_client):
    r = admin_client.post(
        "/api/services",
        json={**SERVICE, "slug": "mal slug!", "features": [], "long_description": "corto"},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    errors = r.json["error"]
    assert "Slug may only contain letters, digits, hyphens and underscores." in errors
    assert "Features must include at least 1 item(s)." in errors
    assert "Long description must be at least 20 characters." in errors


def test_editor_can_manage_services(editor_client):
    service = _create(editor_client)
    r = editor_client.delete(f"/api/services/{service['id']}", headers=csrf_headers(editor_client))
    assert r.status_code == 200
    assert r.json["message"] == "Service deleted successfully"


def test_public_service_pages(admin_client, client):
    _create(admin_client)
    _create(admin_client, slug="borrador", title="Borrador", is_active=False)

    r = client.get("/servicios")
    assert r.status_code == 200
    assert b"Desarrollo Web" in r.data
    assert b"Borrador" not in r.data

    r = client.get("/servicios/desarrollo-web")
    assert r.status_code == 200
    assert b"Dise\xc3\xb1amos y construimos" in r.data

    r = client.get("/servicios/borrador")
    assert r.status_code == 404


def test_slug_accepts_underscores(admin_client, client):
    service = _create(admin_client, slug="Desarrollo_Web")
    assert service["slug"] == "desarrollo_web"
    assert client.get("/servicios/desarrollo_web").status_code == 200

    for bad in ("desarrollo__web", "-web", "web_", "web/app"):
        r = admin_client.post("/api/services", json={**SERVICE, "slug": bad}, headers=csrf_headers(admin_client))
        assert r.status_code == 400, bad
