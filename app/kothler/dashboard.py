from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for
from sqlalchemy.orm import Session

from app.kothler.constants import (
    DASHBOARD_ROLES,
    MANAGE_CONTENT,
    MANAGE_PROFILES,
    MANAGE_ROLES,
    MANAGE_USERS,
    PROFILE_LINK_KEYS,
    ROLE_ADMIN,
)
from app.kothler.dashboard_forms import FORMS, FormSpec, form_values, parse_form
from app.kothler.db import db_session
from app.kothler.models import AuditEvent, User
from app.kothler.modules.features.service import list_features
from app.kothler.modules.packages.service import list_packages
from app.kothler.modules.profiles.service import list_profiles
from app.kothler.modules.projects.service import list_projects
from app.kothler.modules.roles.service import list_roles
from app.kothler.modules.services.service import list_services
from app.kothler.rbac import require_role, user_has_permission, user_permissions
from app.kothler.utils import parse_date

bp = Blueprint("dashboard", __name__)


@dataclass(frozen=True)
class Section:
    key: str
    title: str
    permission: str
    columns: tuple[str, ...]
    load: Callable[[Session], list[dict]]


def _users(s: Session) -> list[dict]:
    rows = []
    for u in s.query(User).order_by(User.created_at.desc()).all():
        d = u.to_dict()
        d["role"] = d["role"]["name"] if d["role"] else None
        rows.append(d)
    return rows


def _roles(s: Session) -> list[dict]:
    rows = []
    for r in list_roles(s):
        d = r.to_dict()
        d["permissions"] = ", ".join(d["permissions"])
        rows.append(d)
    return rows


def _profiles(s: Session) -> list[dict]:
    rows = []
    for p in list_profiles(s):
        rows.append({**p, "name": (p.get("user") or {}).get("name")})
    return rows


SECTIONS: tuple[Section, ...] = (
    Section("profiles", "Perfiles", MANAGE_PROFILES, ("name", "position", "is_public", "display_order"), _profiles),
    Section("users", "Usuarios", MANAGE_USERS, ("email", "name", "role", "is_active", "last_login_at"), _users),
    Section("roles", "Roles", MANAGE_ROLES, ("name", "description", "permissions", "is_default"), _roles),
    Section("services", "Servicios", MANAGE_CONTENT, ("title", "slug", "is_active", "display_order"), list_services),
    Section("projects", "Proyectos", MANAGE_CONTENT, ("title", "client", "category", "completion_date", "is_active"), list_projects),
    Section("packages", "Paquetes", MANAGE_CONTENT, ("name", "title", "price", "currency", "is_popular", "is_active"), list_packages),
    Section("features", "Características", MANAGE_CONTENT, ("title", "icon", "is_active", "display_order"), list_features),
)
_SECTIONS_BY_KEY = {sec.key: sec for sec in SECTIONS}


def nav_items(user: User | None) -> list[dict]:
    """Sidebar entries the user may open; the dashboard home is always listed."""
    items = [{"title": "Dashboard", "key": None}]
    items.extend({"title": sec.title, "key": sec.key} for sec in SECTIONS if user_has_permission(user, sec.permission))
    if user and user.role and user.role.name == ROLE_ADMIN:
        items.append({"title": "Auditoría", "key": "admin"})
    return items


@bp.get("/")
@require_role(*DASHBOARD_ROLES, fallback_endpoint="auth.login_get")
def index():
    s = db_session()
    user = g.current_user
    counts = {sec.key: len(sec.load(s)) for sec in SECTIONS if user_has_permission(user, sec.permission)}
    return render_template("dashboard/index.html", nav=nav_items(user), counts=counts, sections=_SECTIONS_BY_KEY)


@bp.get("/me")
@require_role(*DASHBOARD_ROLES, fallback_endpoint="auth.login_get")
def me():
    user = g.current_user
    return render_template(
        "dashboard/me.html",
        nav=nav_items(user),
        user=user,
        role_name=user.role.name,
        perm_keys=sorted(user_permissions(user)),
    )


def _section_or_abort(section_key: str) -> Section:
    section = _SECTIONS_BY_KEY.get(section_key)
    if section is None:
        abort(404)
    if not user_has_permission(g.current_user, section.permission):
        g.missing_permission = section.permission
        abort(403)
    return section


@bp.get("/<section_key>")
@require_role(*DASHBOARD_ROLES, fallback_endpoint="auth.login_get")
def section_list(section_key: str):
    section = _section_or_abort(section_key)
    rows = section.load(db_session())
    return render_template("dashboard/list.html", nav=nav_items(g.current_user), section=section, rows=rows)


# ---------- Forms ----------
def _render_form(section: Section, spec: FormSpec, entity=None):
    s = db_session()
    choices = {f.name: f.choices(s) for f in spec.fields if f.choices}
    return render_template(
        "dashboard/form.html",
        nav=nav_items(g.current_user),
        section=section,
        spec=spec,
        entity=entity,
        values=form_values(spec.fields, entity),
        choices=choices,
        link_keys=PROFILE_LINK_KEYS,
    )


def _record_or_404(spec: FormSpec, record_id: int):
    entity = spec.get(db_session(), record_id)
    if entity is None:
        abort(404)
    return entity


def _flash_errors(errors: list[str]) -> None:
    for e in errors:
        flash(e, "danger")


@bp.get("/<section_key>/new")
@require_role(*DASHBOARD_ROLES, fallback_endpoint="auth.login_get")
def section_new_get(section_key: str):
    section = _section_or_abort(section_key)
    return _render_form(section, FORMS[section.key])


@bp.post("/<section_key>/new")
@require_role(*DASHBOARD_ROLES, fallback_endpoint="auth.login_get")
def section_new_post(section_key: str):
    section = _section_or_abort(section_key)
    spec = FORMS[section.key]
    s = db_session()

    payload = parse_form(spec.fields, request.form, creating=True)
    errors = spec.validate(payload)
    if not errors:
        error = spec.create(s, payload, g.current_user)
        errors = [error] if error else []
    if errors:
        s.rollback()
        _flash_errors(errors)
        return redirect(url_for("dashboard.section_new_get", section_key=section.key))

    s.commit()
    flash(f"{section.title}: registro creado.", "success")
    return redirect(url_for("dashboard.section_list", section_key=section.key))


@bp.get("/<section_key>/<int:record_id>/edit")
@require_role(*DASHBOARD_ROLES, fallback_endpoint="auth.login_get")
def section_edit_get(section_key: str, record_id: int):
    section = _section_or_abort(section_key)
    spec = FORMS[section.key]
    return _render_form(section, spec, _record_or_404(spec, record_id))


@bp.post("/<section_key>/<int:record_id>/edit")
@require_role(*DASHBOARD_ROLES, fallback_endpoint="auth.login_get")
def section_edit_post(section_key: str, record_id: int):
    section = _section_or_abort(section_key)
    spec = FORMS[section.key]
    s = db_session()
    entity = _record_or_404(spec, record_id)

    payload = parse_form(spec.fields, request.form, creating=False)
    errors = spec.validate(payload, partial=True)
    if not errors:
        error = spec.update(s, entity, payload, g.current_user)
        errors = [error] if error else []
    if errors:
        s.rollback()
        _flash_errors(errors)
        return redirect(url_for("dashboard.section_edit_get", section_key=section.key, record_id=record_id))

    s.commit()
    flash(f"{section.title}: {spec.label(entity)} actualizado.", "success")
    return redirect(url_for("dashboard.section_list", section_key=section.key))


@bp.post("/<section_key>/<int:record_id>/delete")
@require_role(*DASHBOARD_ROLES, fallback_endpoint="auth.login_get")
def section_delete_post(section_key: str, record_id: int):
    section = _section_or_abort(section_key)
    spec = FORMS[section.key]
    s = db_session()
    entity = _record_or_404(spec, record_id)
    label = spec.label(entity)

    error = spec.delete(s, entity, g.current_user)
    if error:
        s.rollback()
        flash(error, "danger")
    else:
        s.commit()
        flash(f"{section.title}: {label} eliminado.", "success")
    return redirect(url_for("dashboard.section_list", section_key=section.key))


@bp.get("/admin")
@require_role(ROLE_ADMIN, fallback_endpoint="dashboard.index")
def admin_audit():
    """
    Audit trail (last 200 events) with simple filters:
    - action (contains)
    - actor_email (contains)
    - date range (YYYY-MM-DD, inclusive)
    """
    s = db_session()
    action = (request.args.get("action") or "").strip()
    actor_email = (request.args.get("actor_email") or "").strip()
    date_from = parse_date(request.args.get("date_from"))
    date_to = parse_date(request.args.get("date_to"))

    if (request.args.get("date_from") or "").strip() and not date_from:
        flash("date_from must be YYYY-MM-DD", "danger")
    if (request.args.get("date_to") or "").strip() and not date_to:
        flash("date_to must be YYYY-MM-DD", "danger")

    events = query_audit_events(s, action=action, actor_email=actor_email, date_from=date_from, date_to=date_to)
    return render_template(
        "dashboard/audit.html",
        nav=nav_items(g.current_user),
        events=events,
        action=action,
        actor_email=actor_email,
        date_from=(request.args.get("date_from") or "").strip(),
        date_to=(request.args.get("date_to") or "").strip(),
    )


def query_audit_events(
    s: Session,
    *,
    action: str = "",
    actor_email: str = "",
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 200,
) -> list[AuditEvent]:
    q = s.query(AuditEvent)
    if action:
        q = q.filter(AuditEvent.action.like(f"%{action}%"))
    if actor_email:
        q = q.filter(AuditEvent.actor_user_email.like(f"%{actor_email.lower()}%"))
    if date_from:
        q = q.filter(AuditEvent.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        # inclusive end-date (treat as whole day)
        q = q.filter(AuditEvent.created_at < datetime.combine(date_to + timedelta(days=1), time.min))
    return q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(limit).all()
