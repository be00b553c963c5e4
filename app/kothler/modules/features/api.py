from __future__ import annotations

from flask import Blueprint, jsonify

from app.kothler.api_helpers import current_user, flag, json_body, not_found, validation_error
from app.kothler.constants import MANAGE_CONTENT
from app.kothler.db import db_session
from app.kothler.modules.features.service import (
    create_feature,
    delete_feature,
    get_feature,
    get_feature_data,
    list_features,
    update_feature,
    validate_feature_payload,
)
from app.kothler.rbac import require_permission

bp = Blueprint("features_api", __name__)


@bp.get("/features")
def features_list():
    s = db_session()
    return jsonify({"features": list_features(s, active_only=flag("active"))})


@bp.post("/features")
@require_permission(MANAGE_CONTENT)
def features_create():
    s = db_session()
    payload = json_body()
    errors = validate_feature_payload(payload)
    if errors:
        return validation_error(errors)

    feature = create_feature(s, payload, current_user())
    s.commit()
    return jsonify({"feature": feature.to_dict()}), 201


@bp.get("/features/<int:feature_id>")
def feature_detail(feature_id: int):
    data = get_feature_data(db_session(), feature_id)
    if data is None:
        return not_found("Feature")
    return jsonify({"feature": data})


@bp.put("/features/<int:feature_id>")
@require_permission(MANAGE_CONTENT)
def feature_update(feature_id: int):
    s = db_session()
    payload = json_body()
    errors = validate_feature_payload(payload, partial=True)
    if errors:
        return validation_error(errors)

    feature = get_feature(s, feature_id)
    if not feature:
        return not_found("Feature")

    update_feature(s, feature, payload, current_user())
    s.commit()
    return jsonify({"feature": feature.to_dict()})


@bp.delete("/features/<int:feature_id>")
@require_permission(MANAGE_CONTENT)
def feature_delete(feature_id: int):
    s = db_session()
    feature = get_feature(s, feature_id)
    if not feature:
        return not_found("Feature")

    delete_feature(s, feature, current_user())
    s.commit()
    return jsonify({"message": "Feature deleted successfully"})
