from __future__ import annotations

from flask import abort, g, jsonify, request

from app.kothler.models import User


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def json_body() -> dict:
    """The request's JSON object, or a 400 when the body is missing or not an object."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        abort(400, description="Request body must be a JSON object.")
    body.pop("csrf_token", None)
    return body


def flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() == "true"


def validation_error(errors: list[str]):
    return jsonify({"error": errors}), 400


def bad_request(message: str, **extra):
    return jsonify({"error": message, **extra}), 400


def not_found(entity: str):
    return jsonify({"error": f"{entity} not found"}), 404
