from conftest import csrf_headers

PROJECT = {
    "title": "Sistema POS",
    "description": "Punto de venta para una cadena de restaurantes.",
    "images": ["/img/pos-1.jpg", "/img/pos-2.jpg"],
    "category": "Restaurantes",
    "client": "La Cocina",
    "completion_date": "2024-03-15",
    "technologies": ["Python", "PostgreSQL"],
}


def _create(client, **overrides):
    r = client.post("/api/projects", json={**PROJECT, **overrides}, headers=csrf_headers(client))
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.json["project"]


def test_project_create(admin_client):
    project = _create(admin_client, link="https://example.com")
    assert project["completion_date"] == "2024-03-15"
    assert project["technologies"] == ["Python", "PostgreSQL"]
    assert project["link"] == "https://example.com"


def test_project_validation(admin_client):
    r = admin_client.post(
        "/api/projects",
        json={**PROJECT, "images": [], "completion_date": "not-a-date", "technologies": "Python"},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    errors = r.json["error"]
    assert "Images must include at least 1 item(s)." in errors
    assert "Completion date must be a valid date (YYYY-MM-DD)." in errors
    assert "Technologies must be a list of strings." in errors


def test_project_category_filter(admin_client, client):
    _create(admin_client)
    _create(admin_client, title="Reservas", category="Hoteles")

    r = client.get("/api/projects?category=hoteles")
    assert [p["title"] for p in r.json["projects"]] == ["Reservas"]

    r = client.get("/portafolio?category=Restaurantes")
    assert r.status_code == 200
    assert b"Sistema POS" in r.data
    assert b"Reservas" not in r.data
    # Category navigation lists every category
    assert b"Hoteles" in r.data


def test_project_update_and_delete(admin_client):
    project = _create(admin_client)
    r = admin_client.put(
        f"/api/projects/{project['id']}",
        json={"completion_date": "2024-05-01", "is_active": False},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 200
    assert r.json["project"]["completion_date"] == "2024-05-01"

    r = admin_client.get("/api/projects?active=true")
    assert r.json["projects"] == []

    r = admin_client.delete(f"/api/projects/{project['id']}", headers=csrf_headers(admin_client))
    assert r.status_code == 200
    assert admin_client.get(f"/api/projects/{project['id']}").status_code == 404
