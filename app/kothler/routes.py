from flask import Blueprint, abort, render_template, request

from app.kothler.db import db_session
from app.kothler.modules.features.service import list_features
from app.kothler.modules.packages.service import list_packages
from app.kothler.modules.profiles.service import list_profiles
from app.kothler.modules.projects.service import list_projects, project_categories
from app.kothler.modules.services.service import get_service_by_slug, list_services
from app.kothler.seo import page_seo

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    s = db_session()
    return render_template(
        "public/index.html",
        seo=page_seo("home", canonical=request.url_root),
        services=list_services(s, active_only=True),
        projects=list_projects(s, active_only=True),
        packages=list_packages(s, active_only=True),
        features=list_features(s, active_only=True),
    )


@bp.get("/servicios")
def services():
    s = db_session()
    return render_template(
        "public/services.html",
        seo=page_seo("services", canonical=request.base_url),
        services=list_services(s, active_only=True),
    )


@bp.get("/servicios/<slug>")
def service_detail(slug: str):
    service = get_service_by_slug(db_session(), slug)
    if not service or not service.is_active:
        abort(404)
    return render_template(
        "public/service_detail.html",
        seo=page_seo("services", canonical=request.base_url, title=f"{service.title} | Kothler", description=service.description),
        service=service.to_dict(),
    )


@bp.get("/equipo")
def team():
    s = db_session()
    return render_template(
        "public/team.html",
        seo=page_seo("team", canonical=request.base_url),
        profiles=list_profiles(s, public_only=True),
    )


@bp.get("/portafolio")
def portfolio():
    s = db_session()
    category = (request.args.get("category") or "").strip() or None
    projects = list_projects(s, active_only=True)
    return render_template(
        "public/portfolio.html",
        seo=page_seo("portfolio", canonical=request.base_url),
        projects=[p for p in projects if not category or p["category"].lower() == category.lower()],
        categories=project_categories(projects),
        category=category,
    )


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for probes. No DB access, minimal overhead.
    """
    return "ok", 200
