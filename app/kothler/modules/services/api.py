from __future__ import annotations

from flask import Blueprint, jsonify

from app.kothler.api_helpers import bad_request, current_user, flag, json_body, not_found, validation_error
from app.kothler.constants import MANAGE_CONTENT
from app.kothler.db import db_session
from app.kothler.modules.services.service import (
    create_service,
    delete_service,
    get_service,
    get_service_by_slug,
    get_service_data,
    list_services,
    slug_taken,
    update_service,
    validate_service_payload,
)
from app.kothler.rbac import require_permission

bp = Blueprint("services_api", __name__)

_DUPLICATE_SLUG = "A service with this slug already exists"


@bp.get("/services")
def services_list():
    s = db_session()
    return jsonify({"services": list_services(s, active_only=flag("active"))})


@bp.post("/services")
@require_permission(MANAGE_CONTENT)
def services_create():
    s = db_session()
    payload = json_body()
    errors = validate_service_payload(payload)
    if errors:
        return validation_error(errors)
    if slug_taken(s, payload["slug"]):
        return bad_request(_DUPLICATE_SLUG)

    service = create_service(s, payload, current_user())
    s.commit()
    return jsonify({"service": service.to_dict()}), 201


@bp.get("/services/<int:service_id>")
def service_detail(service_id: int):
    data = get_service_data(db_session(), service_id)
    if data is None:
        return not_found("Service")
    return jsonify({"service": data})


@bp.get("/services/slug/<slug>")
def service_by_slug(slug: str):
    service = get_service_by_slug(db_session(), slug)
    if not service:
        return not_found("Service")
    return jsonify({"service": service.to_dict()})


@bp.put("/services/<int:service_id>")
@require_permission(MANAGE_CONTENT)
def service_update(service_id: int):
    s = db_session()
    payload = json_body()
    errors = validate_service_payload(payload, partial=True)
    if errors:
        return validation_error(errors)

    service = get_service(s, service_id)
    if not service:
        return not_found("Service")
    if payload.get("slug") and slug_taken(s, payload["slug"], exclude_id=service.id):
        return bad_request(_DUPLICATE_SLUG)

    update_service(s, service, payload, current_user())
    s.commit()
    return jsonify({"service": service.to_dict()})


@bp.delete("/services/<int:service_id>")
@require_permission(MANAGE_CONTENT)
def service_delete(service_id: int):
    s = db_session()
    service = get_service(s, service_id)
    if not service:
        return not_found("Service")

    delete_service(s, service, current_user())
    s.commit()
    return jsonify({"message": "Service deleted successfully"})
