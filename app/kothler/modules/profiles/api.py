from __future__ import annotations

from flask import Blueprint, g, jsonify

from app.kothler.api_helpers import bad_request, current_user, flag, json_body, not_found, validation_error
from app.kothler.constants import MANAGE_PROFILES
from app.kothler.db import db_session
from app.kothler.models import User
from app.kothler.modules.profiles.service import (
    create_profile,
    delete_profile,
    get_profile,
    get_profile_data,
    list_profiles,
    profile_exists_for_user,
    update_profile,
    validate_profile_payload,
)
from app.kothler.rbac import require_permission

bp = Blueprint("profiles_api", __name__)


@bp.get("/profiles")
def profiles_list():
    # Used by the public team page, so no session needed.
    s = db_session()
    return jsonify({"profiles": list_profiles(s, public_only=flag("public"))})


@bp.post("/profiles")
@require_permission(MANAGE_PROFILES)
def profiles_create():
    s = db_session()
    payload = json_body()
    errors = validate_profile_payload(payload)
    if errors:
        return validation_error(errors)

    if not s.get(User, payload["user_id"]):
        return bad_request("User not found")
    if profile_exists_for_user(s, payload["user_id"]):
        return bad_request("Profile already exists for this user")

    profile = create_profile(s, payload, current_user())
    s.commit()
    return jsonify({"profile": profile.to_dict()}), 201


@bp.get("/profiles/<int:profile_id>")
def profile_detail(profile_id: int):
    data = get_profile_data(db_session(), profile_id)
    if data is None:
        return not_found("Profile")
    # Hidden profiles are visible to signed-in staff only.
    if not data["is_public"] and not getattr(g, "current_user", None):
        return jsonify({"error": "Unauthorized"}), 401
    return jsonify({"profile": data})


@bp.put("/profiles/<int:profile_id>")
@require_permission(MANAGE_PROFILES)
def profile_update(profile_id: int):
    s = db_session()
    payload = json_body()
    payload.pop("user_id", None)  # ownership is fixed at creation
    errors = validate_profile_payload(payload, partial=True)
    if errors:
        return validation_error(errors)

    profile = get_profile(s, profile_id)
    if not profile:
        return not_found("Profile")

    update_profile(s, profile, payload, current_user())
    s.commit()
    return jsonify({"profile": profile.to_dict()})


@bp.delete("/profiles/<int:profile_id>")
@require_permission(MANAGE_PROFILES)
def profile_delete(profile_id: int):
    s = db_session()
    profile = get_profile(s, profile_id)
    if not profile:
        return not_found("Profile")

    delete_profile(s, profile, current_user())
    s.commit()
    return jsonify({"message": "Profile deleted successfully"})
