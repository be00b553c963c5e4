from __future__ import annotations

import threading
import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import (
    Blueprint,
    current_app,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from werkzeug.security import check_password_hash

from app.kothler.audit import record_event
from app.kothler.db import db_session
from app.kothler.models import User
from app.kothler.rbac import user_permissions
from app.kothler.security import ensure_csrf_token, rotate_csrf_token
from app.kothler.utils import utcnow

bp = Blueprint("auth", __name__)
api_bp = Blueprint("auth_api", __name__)

_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds

_SESSION_KEYS = ("user_id", "role", "permissions")


class LoginRateLimiter:
    """Sliding-window login attempt counter keyed by client IP (per process)."""

    def __init__(self, limit: int = _LOGIN_RATE_LIMIT, window_seconds: int = _LOGIN_RATE_WINDOW):
        self.limit = limit
        self.window = timedelta(seconds=window_seconds)
        self._attempts: dict[str, list[datetime]] = defaultdict(list)
        self._lock = threading.Lock()

    def is_limited(self, ip: str) -> bool:
        cutoff = utcnow() - self.window
        with self._lock:
            self._attempts[ip] = [t for t in self._attempts[ip] if t > cutoff]
            return len(self._attempts[ip]) >= self.limit

    def record(self, ip: str) -> None:
        with self._lock:
            self._attempts[ip].append(utcnow())

    def reset(self, ip: str) -> None:
        with self._lock:
            self._attempts.pop(ip, None)


def _limiter() -> LoginRateLimiter:
    limiter = current_app.extensions.get("login_rate_limiter")
    if limiter is None:
        limiter = current_app.extensions["login_rate_limiter"] = LoginRateLimiter()
    return limiter


def session_user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role.name if user.role else None,
        "permissions": sorted(user_permissions(user)),
    }


def _store_session(user: User) -> None:
    session["user_id"] = user.id
    session["role"] = user.role.name if user.role else None
    session["permissions"] = sorted(user_permissions(user))


def clear_session() -> None:
    for key in _SESSION_KEYS:
        session.pop(key, None)


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    The role/permission copy in the session is refreshed from the user's current role,
    so role edits apply on the next request.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    s = db_session()
    try:
        user = s.get(User, int(user_id))
    except (TypeError, ValueError):
        user = None
    if not user or not user.is_active or user.role is None:
        clear_session()
        g.current_user = None
        return

    perms = sorted(user_permissions(user))
    if session.get("role") != user.role.name or session.get("permissions") != perms:
        session["role"] = user.role.name
        session["permissions"] = perms
    g.current_user = user


def _read_credentials() -> tuple[str, str, str]:
    if request.is_json:
        body = request.get_json(silent=True) or {}
        if not isinstance(body, dict):
            body = {}
        return (
            str(body.get("email") or "").strip().lower(),
            str(body.get("password") or ""),
            str(body.get("next") or "").strip(),
        )
    return (
        (request.form.get("email") or "").strip().lower(),
        request.form.get("password") or "",
        (request.form.get("next") or "").strip(),
    )


def _login_failed(message: str, status: int):
    if request.is_json:
        return jsonify({"error": message}), status
    flash(message, "danger")
    return redirect(url_for("auth.login_get"))


@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or request.args.get("callbackUrl") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    email, password, nxt = _read_credentials()
    ip = request.remote_addr or "unknown"
    limiter = _limiter()

    if not email or not password:
        return _login_failed("Email and password are required.", 400)

    if limiter.is_limited(ip):
        current_app.logger.warning("Login rate limit hit (ip=%s request_id=%s)", ip, getattr(g, "request_id", None))
        return _login_failed("Too many login attempts. Please wait 5 minutes.", 429)

    limiter.record(ip)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not user.is_active or user.role is None or not check_password_hash(user.password_hash, password):
        current_app.logger.info("Login failed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        return _login_failed("Invalid credentials.", 401)

    user.last_login_at = utcnow()
    session.permanent = True
    _store_session(user)
    csrf_token = rotate_csrf_token()
    limiter.reset(ip)
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    g.current_user = user

    if request.is_json:
        return jsonify({"user": session_user_payload(user), "csrf_token": csrf_token})
    # Optional "next" redirect (only allow local paths to avoid open redirects).
    if nxt.startswith("/") and not nxt.startswith("//"):
        return redirect(nxt)
    return redirect(url_for("dashboard.index"))


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    clear_session()
    g.current_user = None
    if request.is_json:
        return jsonify({"message": "Logged out"})
    return redirect(url_for("routes.index"))


@api_bp.get("/session")
def session_get():
    """Current user (or null) plus the CSRF token API clients send back on writes."""
    user = getattr(g, "current_user", None)
    return jsonify({"user": session_user_payload(user) if user else None, "csrf_token": ensure_csrf_token()})


@api_bp.get("/csrf")
def csrf_get():
    return jsonify({"csrf_token": ensure_csrf_token()})
