from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, current_app, g, jsonify, redirect, request, url_for

from app.kothler.models import User


def user_permissions(user: User | None) -> frozenset[str]:
    """Effective permission set: exactly the permissions of the user's role."""
    if not user or not user.is_active or user.role is None:
        return frozenset()
    return frozenset(user.role.permissions or [])


def user_has_permission(user: User | None, permission_key: str) -> bool:
    return permission_key in user_permissions(user)


def user_has_role(user: User | None, *role_names: str) -> bool:
    if not user or not user.is_active or user.role is None:
        return False
    return user.role.name in role_names


def _wants_json() -> bool:
    return request.path.startswith("/api/") or request.is_json


def _deny_unauthenticated():
    if _wants_json():
        return jsonify({"error": "Unauthorized"}), 401
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return redirect(url_for("auth.login_get", next=nxt))


def _forbid(missing: str) -> None:
    g.missing_permission = missing
    current_app.logger.warning(
        "Forbidden: user_id=%s missing=%s path=%s request_id=%s",
        getattr(getattr(g, "current_user", None), "id", None),
        missing,
        request.path,
        getattr(g, "request_id", None),
    )
    abort(403)


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            return _deny_unauthenticated()
        return fn(*args, **kwargs)

    return wrapped


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated: 401 for the API, login redirect for pages.
            if not user or not user.is_active:
                return _deny_unauthenticated()
            # Authenticated but unauthorized: 403
            if not user_has_permission(user, permission_key):
                _forbid(permission_key)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def require_role(*role_names: str, fallback_endpoint: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Gate a view on the user's role name.
    With ``fallback_endpoint`` an authenticated user holding another role is redirected there instead of 403.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            if not user or not user.is_active:
                return _deny_unauthenticated()
            if not user_has_role(user, *role_names):
                if fallback_endpoint:
                    return redirect(url_for(fallback_endpoint))
                _forbid("role:" + "|".join(role_names))
            return fn(*args, **kwargs)

        return wrapped

    return decorator
