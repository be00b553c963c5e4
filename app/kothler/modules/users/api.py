from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.kothler.api_helpers import bad_request, current_user, json_body, not_found, validation_error
from app.kothler.constants import MANAGE_USERS
from app.kothler.db import db_session
from app.kothler.models import Role
from app.kothler.modules.users.service import (
    create_user,
    delete_user,
    email_taken,
    get_user,
    list_users,
    update_user,
    validate_user_payload,
)
from app.kothler.rbac import require_permission

bp = Blueprint("users_api", __name__)


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name) or default)
    except ValueError:
        return default


@bp.get("/users")
@require_permission(MANAGE_USERS)
def users_list():
    s = db_session()
    users, pagination = list_users(s, page=_int_arg("page", 1), limit=_int_arg("limit", 10))
    return jsonify({"users": [u.to_dict() for u in users], "pagination": pagination})


@bp.post("/users")
@require_permission(MANAGE_USERS)
def users_create():
    s = db_session()
    payload = json_body()
    errors = validate_user_payload(payload)
    if errors:
        return validation_error(errors)

    if email_taken(s, payload["email"]):
        return bad_request("Email already exists")
    role = s.get(Role, payload["role_id"])
    if not role:
        return bad_request("Role not found")

    user = create_user(s, payload, role, current_user())
    s.commit()
    return jsonify({"user": user.to_dict()}), 201


@bp.get("/users/<int:user_id>")
@require_permission(MANAGE_USERS)
def user_detail(user_id: int):
    user = get_user(db_session(), user_id)
    if not user:
        return not_found("User")
    return jsonify({"user": user.to_dict()})


@bp.put("/users/<int:user_id>")
@require_permission(MANAGE_USERS)
def user_update(user_id: int):
    s = db_session()
    payload = json_body()
    errors = validate_user_payload(payload, partial=True)
    if errors:
        return validation_error(errors)

    user = get_user(s, user_id)
    if not user:
        return not_found("User")

    role = None
    if "role_id" in payload:
        role = s.get(Role, payload["role_id"])
        if not role:
            return bad_request("Role not found")

    update_user(s, user, payload, current_user(), role=role)
    s.commit()
    return jsonify({"user": user.to_dict()})


@bp.delete("/users/<int:user_id>")
@require_permission(MANAGE_USERS)
def user_delete(user_id: int):
    s = db_session()
    actor = current_user()
    user = get_user(s, user_id)
    if not user:
        return not_found("User")
    if user.id == actor.id:
        return bad_request("Cannot delete your own account")

    delete_user(s, user, actor)
    s.commit()
    return jsonify({"message": "User deleted successfully"})
