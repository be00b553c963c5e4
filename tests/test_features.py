import json

from app.kothler.db import session_scope
from app.kothler.models import AuditEvent
from conftest import csrf_headers

FEATURE = {"title": "Rápido", "description": "Entregas en semanas, no meses.", "icon": "Zap"}


def _create(client, **overrides):
    r = client.post("/api/features", json={**FEATURE, **overrides}, headers=csrf_headers(client))
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.json["feature"]


def test_feature_create_and_detail(admin_client):
    feature = _create(admin_client)
    assert feature["title"] == "Rápido"
    assert feature["is_active"] is True
    assert feature["display_order"] == 0

    r = admin_client.get(f"/api/features/{feature['id']}")
    assert r.status_code == 200
    assert r.json["feature"]["icon"] == "Zap"


def test_feature_validation_errors(admin_client):
    r = admin_client.post("/api/features", json={"title": "x", "description": "short"}, headers=csrf_headers(admin_client))
    assert r.status_code == 400
    errors = r.json["error"]
    assert "Title must be at least 2 characters." in errors
    assert "Description must be at least 10 characters." in errors
    assert "Icon is required." in errors


def test_feature_body_must_be_object(admin_client):
    r = admin_client.post("/api/features", json=["not", "an", "object"], headers=csrf_headers(admin_client))
    assert r.status_code == 400


def test_feature_list_orders_and_filters(admin_client):
    _create(admin_client, title="Segundo", display_order=2)
    _create(admin_client, title="Primero", display_order=1)
    _create(admin_client, title="Oculto", display_order=0, is_active=False)

    r = admin_client.get("/api/features")
    assert [f["title"] for f in r.json["features"]] == ["Oculto", "Primero", "Segundo"]

    r = admin_client.get("/api/features?active=true")
    assert [f["title"] for f in r.json["features"]] == ["Primero", "Segundo"]


def test_feature_update_refreshes_cached_detail(admin_client):
    feature = _create(admin_client)
    admin_client.get(f"/api/features/{feature['id']}")  # warm cache

    r = admin_client.put(f"/api/features/{feature['id']}", json={"title": "Muy rápido"}, headers=csrf_headers(admin_client))
    assert r.status_code == 200
    assert r.json["feature"]["title"] == "Muy rápido"

    r = admin_client.get(f"/api/features/{feature['id']}")
    assert r.json["feature"]["title"] == "Muy rápido"


def test_feature_update_rejects_bad_types(admin_client):
    feature = _create(admin_client)
    r = admin_client.put(f"/api/features/{feature['id']}", json={"display_order": "first"}, headers=csrf_headers(admin_client))
    assert r.status_code == 400
    assert r.json["error"] == ["Display order must be an integer."]


def test_feature_delete(app, admin_client):
    feature = _create(admin_client)
    r = admin_client.delete(f"/api/features/{feature['id']}", headers=csrf_headers(admin_client))
    assert r.status_code == 200
    assert r.json["message"] == "Feature deleted successfully"

    r = admin_client.get(f"/api/features/{feature['id']}")
    assert r.status_code == 404
    assert r.json["error"] == "Feature not found"

    with session_scope(app) as s:
        actions = [e.action for e in s.query(AuditEvent).filter(AuditEvent.entity_type == "Feature").order_by(AuditEvent.id)]
        assert actions == ["feature.create", "feature.delete"]
        created = s.query(AuditEvent).filter(AuditEvent.action == "feature.create").one()
        assert json.loads(created.metadata_json)["title"] == "Rápido"
        assert created.actor_user_email == "admin@example.com"


def test_missing_feature_is_404(admin_client):
    r = admin_client.put("/api/features/999", json={"title": "Nada"}, headers=csrf_headers(admin_client))
    assert r.status_code == 404
    r = admin_client.delete("/api/features/999", headers=csrf_headers(admin_client))
    assert r.status_code == 404
