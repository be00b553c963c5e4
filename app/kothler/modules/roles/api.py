from __future__ import annotations

from flask import Blueprint, jsonify

from app.kothler.api_helpers import bad_request, current_user, json_body, not_found, validation_error
from app.kothler.constants import MANAGE_ROLES, PERMISSIONS
from app.kothler.db import db_session
from app.kothler.modules.roles.service import (
    count_users_with_role,
    create_role,
    delete_role,
    get_role,
    list_roles,
    name_taken,
    update_role,
    validate_role_payload,
)
from app.kothler.rbac import require_permission

bp = Blueprint("roles_api", __name__)

_DUPLICATE_NAME = "Role name already exists"


@bp.get("/roles")
@require_permission(MANAGE_ROLES)
def roles_list():
    return jsonify({"roles": [r.to_dict() for r in list_roles(db_session())]})


@bp.get("/roles/permissions")
@require_permission(MANAGE_ROLES)
def permissions_list():
    return jsonify({"permissions": [{"key": k, "name": v} for k, v in sorted(PERMISSIONS.items())]})


@bp.post("/roles")
@require_permission(MANAGE_ROLES)
def roles_create():
    s = db_session()
    payload = json_body()
    errors = validate_role_payload(payload)
    if errors:
        return validation_error(errors)
    if name_taken(s, payload["name"]):
        return bad_request(_DUPLICATE_NAME)

    role = create_role(s, payload, current_user())
    s.commit()
    return jsonify({"role": role.to_dict()}), 201


@bp.get("/roles/<int:role_id>")
@require_permission(MANAGE_ROLES)
def role_detail(role_id: int):
    role = get_role(db_session(), role_id)
    if not role:
        return not_found("Role")
    return jsonify({"role": role.to_dict()})


@bp.put("/roles/<int:role_id>")
@require_permission(MANAGE_ROLES)
def role_update(role_id: int):
    s = db_session()
    payload = json_body()
    errors = validate_role_payload(payload, partial=True)
    if errors:
        return validation_error(errors)

    role = get_role(s, role_id)
    if not role:
        return not_found("Role")
    if payload.get("name") and name_taken(s, payload["name"], exclude_id=role.id):
        return bad_request(_DUPLICATE_NAME)

    update_role(s, role, payload, current_user())
    s.commit()
    return jsonify({"role": role.to_dict()})


@bp.delete("/roles/<int:role_id>")
@require_permission(MANAGE_ROLES)
def role_delete(role_id: int):
    s = db_session()
    role = get_role(s, role_id)
    if not role:
        return not_found("Role")

    holders = count_users_with_role(s, role)
    if holders > 0:
        return bad_request("Cannot delete role with associated users", count=holders)

    delete_role(s, role, current_user())
    s.commit()
    return jsonify({"message": "Role deleted successfully"})
