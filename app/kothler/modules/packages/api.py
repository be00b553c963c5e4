from __future__ import annotations

from flask import Blueprint, jsonify

from app.kothler.api_helpers import current_user, flag, json_body, not_found, validation_error
from app.kothler.constants import MANAGE_CONTENT
from app.kothler.db import db_session
from app.kothler.modules.packages.service import (
    create_package,
    delete_package,
    get_package,
    get_package_data,
    list_packages,
    update_package,
    validate_package_payload,
)
from app.kothler.rbac import require_permission

bp = Blueprint("packages_api", __name__)


@bp.get("/packages")
def packages_list():
    s = db_session()
    return jsonify({"packages": list_packages(s, active_only=flag("active"))})


@bp.post("/packages")
@require_permission(MANAGE_CONTENT)
def packages_create():
    s = db_session()
    payload = json_body()
    errors = validate_package_payload(payload)
    if errors:
        return validation_error(errors)

    package = create_package(s, payload, current_user())
    s.commit()
    return jsonify({"package": package.to_dict()}), 201


@bp.get("/packages/<int:package_id>")
def package_detail(package_id: int):
    data = get_package_data(db_session(), package_id)
    if data is None:
        return not_found("Package")
    return jsonify({"package": data})


@bp.put("/packages/<int:package_id>")
@require_permission(MANAGE_CONTENT)
def package_update(package_id: int):
    s = db_session()
    payload = json_body()
    errors = validate_package_payload(payload, partial=True)
    if errors:
        return validation_error(errors)

    package = get_package(s, package_id)
    if not package:
        return not_found("Package")

    update_package(s, package, payload, current_user())
    s.commit()
    return jsonify({"package": package.to_dict()})


@bp.delete("/packages/<int:package_id>")
@require_permission(MANAGE_CONTENT)
def package_delete(package_id: int):
    s = db_session()
    package = get_package(s, package_id)
    if not package:
        return not_found("Package")

    delete_package(s, package, current_user())
    s.commit()
    return jsonify({"message": "Package deleted successfully"})
