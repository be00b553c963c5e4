import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, jsonify, render_template, request
from werkzeug.exceptions import HTTPException

from app.kothler.auth import api_bp as auth_api_bp, bp as auth_bp, load_current_user
from app.kothler.cache import init_cache
from app.kothler.config import load_config
from app.kothler.dashboard import bp as dashboard_bp
from app.kothler.db import init_db, teardown_db_session
from app.kothler.modules.features.api import bp as features_api_bp
from app.kothler.modules.packages.api import bp as packages_api_bp
from app.kothler.modules.profiles.api import bp as profiles_api_bp
from app.kothler.modules.projects.api import bp as projects_api_bp
from app.kothler.modules.roles.api import bp as roles_api_bp
from app.kothler.modules.services.api import bp as services_api_bp
from app.kothler.modules.users.api import bp as users_api_bp
from app.kothler.routes import bp as routes_bp

_UNTRACKED_PREFIXES = ("/static/", "/health", "/healthz")


def _is_api_request() -> bool:
    return request.path.startswith("/api/")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=app.config["SESSION_MAX_AGE_DAYS"])
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.logger.setLevel(app.config["LOG_LEVEL"])

    from app.kothler.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_permissions() -> dict:
        from app.kothler.rbac import user_has_permission

        def has_perm(key: str) -> bool:
            return user_has_permission(getattr(g, "current_user", None), key)

        return {"has_perm": has_perm, "current_user": getattr(g, "current_user", None)}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return ""
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not str(app.config.get("DATABASE_URL") or "").strip():
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if str(app.config.get("SECRET_KEY") or "") in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if app.config.get("CACHE_BACKEND") == "redis" and not app.config.get("REDIS_URL"):
            raise RuntimeError("REDIS_URL is required when CACHE_BACKEND=redis.")

    init_db(app)
    init_cache(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(auth_api_bp, url_prefix="/api/auth")
    app.register_blueprint(dashboard_bp, url_prefix="/dashboard")
    for api_bp in (
        features_api_bp,
        services_api_bp,
        projects_api_bp,
        packages_api_bp,
        profiles_api_bp,
        users_api_bp,
        roles_api_bp,
    ):
        app.register_blueprint(api_bp, url_prefix="/api")

    @app.before_request
    def _load_user_wrapper():
        if request.path.startswith(_UNTRACKED_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNTRACKED_PREFIXES):
            return None
        ensure_csrf_token()
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Login/logout are reachable without a token
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                app.logger.warning("CSRF check failed (path=%s request_id=%s)", request.path, getattr(g, "request_id", None))
                if _is_api_request():
                    return jsonify({"error": "CSRF token missing or invalid."}), 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None

    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        if e.code == 403:
            missing = getattr(g, "missing_permission", None)
            if missing:
                app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        if _is_api_request():
            message = e.name if e.code in (403, 405) else (e.description or e.name)
            return jsonify({"error": message}), e.code
        if e.code in (400, 401, 403, 404, 405):
            return (
                render_template(
                    f"errors/{e.code}.html",
                    message=e.description,
                    missing_permission=getattr(g, "missing_permission", None),
                ),
                e.code,
            )
        return e

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        if _is_api_request():
            return jsonify({"error": "Internal server error", "request_id": rid}), 500
        return render_template("errors/500.html", request_id=rid), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
