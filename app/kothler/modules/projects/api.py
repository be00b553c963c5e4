from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.kothler.api_helpers import current_user, flag, json_body, not_found, validation_error
from app.kothler.constants import MANAGE_CONTENT
from app.kothler.db import db_session
from app.kothler.modules.projects.service import (
    create_project,
    delete_project,
    get_project,
    get_project_data,
    list_projects,
    update_project,
    validate_project_payload,
)
from app.kothler.rbac import require_permission

bp = Blueprint("projects_api", __name__)


@bp.get("/projects")
def projects_list():
    s = db_session()
    category = (request.args.get("category") or "").strip() or None
    return jsonify({"projects": list_projects(s, active_only=flag("active"), category=category)})


@bp.post("/projects")
@require_permission(MANAGE_CONTENT)
def projects_create():
    s = db_session()
    payload = json_body()
    errors = validate_project_payload(payload)
    if errors:
        return validation_error(errors)

    project = create_project(s, payload, current_user())
    s.commit()
    return jsonify({"project": project.to_dict()}), 201


@bp.get("/projects/<int:project_id>")
def project_detail(project_id: int):
    data = get_project_data(db_session(), project_id)
    if data is None:
        return not_found("Project")
    return jsonify({"project": data})


@bp.put("/projects/<int:project_id>")
@require_permission(MANAGE_CONTENT)
def project_update(project_id: int):
    s = db_session()
    payload = json_body()
    errors = validate_project_payload(payload, partial=True)
    if errors:
        return validation_error(errors)

    project = get_project(s, project_id)
    if not project:
        return not_found("Project")

    update_project(s, project, payload, current_user())
    s.commit()
    return jsonify({"project": project.to_dict()})


@bp.delete("/projects/<int:project_id>")
@require_permission(MANAGE_CONTENT)
def project_delete(project_id: int):
    s = db_session()
    project = get_project(s, project_id)
    if not project:
        return not_found("Project")

    delete_project(s, project, current_user())
    s.commit()
    return jsonify({"message": "Project deleted successfully"})
