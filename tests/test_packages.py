from conftest import csrf_headers

PACKAGE = {
    "name": "basic",
    "title": "Básico",
    "description": "Sitio web de una página.",
    "price": 4999.5,
    "features": [{"category": "Sitio", "items": ["1 página", "Formulario de contacto"]}],
}


def _create(client, **overrides):
    r = client.post("/api/packages", json={**PACKAGE, **overrides}, headers=csrf_headers(client))
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.json["package"]


def test_package_defaults(admin_client):
    package = _create(admin_client, currency="MXN")
    assert package["price"] == 4999.5
    assert package["currency"] == "mxn"
    assert package["interval"] == "mes"
    assert package["is_popular"] is False
    assert package["features"] == [{"category": "Sitio", "items": ["1 página", "Formulario de contacto"]}]


def test_display_order_is_appended(admin_client):
    first = _create(admin_client)
    second = _create(admin_client, name="pro", title="Pro", display_order=99)
    assert first["display_order"] == 0
    assert second["display_order"] == 1

    r = admin_client.get("/api/packages")
    assert [p["name"] for p in r.json["packages"]] == ["basic", "pro"]


def test_price_must_be_positive(admin_client):
    for price in (0, -10, "100", None):
        r = admin_client.post("/api/packages", json={**PACKAGE, "price": price}, headers=csrf_headers(admin_client))
        assert r.status_code == 400, price
        assert "Price is required and must be a positive number." in r.json["error"]


def test_feature_groups_validated(admin_client):
    r = admin_client.post("/api/packages", json={**PACKAGE, "features": [{"items": ["x"]}]}, headers=csrf_headers(admin_client))
    assert r.status_code == 400
    assert "Each feature group needs a category." in r.json["error"]


def test_update_ignores_unknown_fields(admin_client):
    package = _create(admin_client)
    r = admin_client.put(
        f"/api/packages/{package['id']}",
        json={"price": 5999, "is_popular": True, "id": 999, "created_at": "2000-01-01"},
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 200
    updated = r.json["package"]
    assert updated["id"] == package["id"]
    assert updated["price"] == 5999.0
    assert updated["is_popular"] is True
    assert updated["created_at"] == package["created_at"]


def test_package_delete(admin_client):
    package = _create(admin_client)
    r = admin_client.delete(f"/api/packages/{package['id']}", headers=csrf_headers(admin_client))
    assert r.status_code == 200
    assert r.json["message"] == "Package deleted successfully"
    assert admin_client.get("/api/packages").json["packages"] == []


def test_price_rejects_non_finite_literals(admin_client):
    for literal in ("NaN", "Infinity", "-Infinity"):
        body = (
            '{"name": "raro", "title": "Raro", "description": "Precio raro.", '
            f'"price": {literal}, "features": []}}'
        )
        r = admin_client.post(
            "/api/packages", data=body, content_type="application/json", headers=csrf_headers(admin_client)
        )
        assert r.status_code == 400, literal
        assert "Price is required and must be a positive number." in r.json["error"]


def test_price_must_fit_column(admin_client):
    r = admin_client.post("/api/packages", json={**PACKAGE, "price": 1e12}, headers=csrf_headers(admin_client))
    assert r.status_code == 400
    assert "Price must not exceed 9,999,999,999.99." in r.json["error"]

    package = _create(admin_client)
    r = admin_client.put(
        f"/api/packages/{package['id']}",
        data='{"price": NaN}',
        content_type="application/json",
        headers=csrf_headers(admin_client),
    )
    assert r.status_code == 400
    assert admin_client.get(f"/api/packages/{package['id']}").json["package"]["price"] == 4999.5
