from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session
from werkzeug.datastructures import MultiDict

from app.kothler.constants import DEFAULT_CURRENCY, DEFAULT_INTERVAL, PERMISSIONS, PROFILE_LINK_KEYS
from app.kothler.models import Role, User
from app.kothler.modules.features.service import create_feature, delete_feature, get_feature, update_feature, validate_feature_payload
from app.kothler.modules.packages.service import create_package, delete_package, get_package, update_package, validate_package_payload
from app.kothler.modules.profiles.service import (
    create_profile,
    delete_profile,
    get_profile,
    profile_exists_for_user,
    update_profile,
    validate_profile_payload,
)
from app.kothler.modules.projects.service import create_project, delete_project, get_project, update_project, validate_project_payload
from app.kothler.modules.roles.service import (
    count_users_with_role,
    create_role,
    delete_role,
    get_role,
    list_roles,
    name_taken,
    update_role,
    validate_role_payload,
)
from app.kothler.modules.services.service import (
    create_service,
    delete_service,
    get_service,
    slug_taken,
    update_service,
    validate_service_payload,
)
from app.kothler.modules.users.service import create_user, delete_user, email_taken, get_user, update_user, validate_user_payload


@dataclass(frozen=True)
class FormField:
    """
    One input on a dashboard form. ``kind`` drives both rendering and parsing:
    text, textarea, password, int, number, bool, lines, groups, links, select, checkboxes.
    """

    name: str
    label: str
    kind: str = "text"
    create_only: bool = False
    default: Any = None
    choices: Callable[[Session], list[tuple[Any, str]]] | None = None


def _int_or_raw(raw: str) -> Any:
    try:
        return int(raw)
    except ValueError:
        return raw


def _number_or_raw(raw: str) -> Any:
    try:
        return float(raw)
    except ValueError:
        return raw


def _lines(raw: str) -> list[str]:
    return [line.strip() for line in raw.splitlines() if line.strip()]


def _groups(raw: str) -> list[dict]:
    # "Category: item, item" per line
    groups = []
    for line in _lines(raw):
        category, _, items = line.partition(":")
        groups.append({"category": category.strip(), "items": [i.strip() for i in items.split(",") if i.strip()]})
    return groups


def parse_form(fields: tuple[FormField, ...], form: MultiDict, *, creating: bool) -> dict:
    """Turn submitted form values into the payload shape the JSON API accepts."""
    payload: dict[str, Any] = {}
    for f in fields:
        if f.create_only and not creating:
            continue
        if f.kind == "bool":
            payload[f.name] = form.get(f.name) == "on"
            continue
        if f.kind == "checkboxes":
            payload[f.name] = form.getlist(f.name)
            continue
        if f.kind == "links":
            payload[f.name] = {key: (form.get(f"{f.name}_{key}") or "").strip() for key in PROFILE_LINK_KEYS}
            continue

        raw = (form.get(f.name) or "").strip()
        if f.kind == "password":
            if raw or creating:
                payload[f.name] = form.get(f.name) or ""
        elif f.kind in ("int", "select"):
            if raw or f.kind == "select":
                payload[f.name] = _int_or_raw(raw)
        elif f.kind == "number":
            payload[f.name] = _number_or_raw(raw)
        elif f.kind == "lines":
            payload[f.name] = _lines(raw)
        elif f.kind == "groups":
            payload[f.name] = _groups(raw)
        else:
            payload[f.name] = raw
    return payload


def form_values(fields: tuple[FormField, ...], entity: Any | None) -> dict:
    """Current values of ``entity`` formatted for the form inputs."""
    if entity is None:
        return {f.name: f.default for f in fields if f.default is not None}
    values: dict[str, Any] = {}
    for f in fields:
        if f.kind == "password" or f.create_only:
            continue
        value = getattr(entity, f.name)
        if f.kind == "lines":
            values[f.name] = "\n".join(value or [])
        elif f.kind == "groups":
            values[f.name] = "\n".join(f"{g['category']}: {', '.join(g.get('items') or [])}" for g in value or [])
        elif f.kind == "links":
            for key, link in (value or {}).items():
                values[f"{f.name}_{key}"] = link
        elif value is None:
            values[f.name] = ""
        else:
            values[f.name] = value
    return values


def _role_choices(s: Session) -> list[tuple[Any, str]]:
    return [(r.id, r.name) for r in list_roles(s)]


def _users_without_profile(s: Session) -> list[tuple[Any, str]]:
    return [(u.id, f"{u.name} <{u.email}>") for u in s.query(User).order_by(User.name.asc()).all() if not profile_exists_for_user(s, u.id)]


def _permission_choices(s: Session) -> list[tuple[Any, str]]:
    return list(PERMISSIONS.items())


# Each handler returns an error message for the user, or None once the change is staged.
def _create_service(s: Session, payload: dict, user: User) -> str | None:
    if slug_taken(s, payload["slug"]):
        return "A service with this slug already exists"
    create_service(s, payload, user)
    return None


def _update_service(s: Session, service: Any, payload: dict, user: User) -> str | None:
    if payload.get("slug") and slug_taken(s, payload["slug"], exclude_id=service.id):
        return "A service with this slug already exists"
    update_service(s, service, payload, user)
    return None


def _create_profile(s: Session, payload: dict, user: User) -> str | None:
    if not s.get(User, payload["user_id"]):
        return "User not found"
    if profile_exists_for_user(s, payload["user_id"]):
        return "Profile already exists for this user"
    create_profile(s, payload, user)
    return None


def _create_user(s: Session, payload: dict, actor: User) -> str | None:
    if email_taken(s, payload["email"]):
        return "Email already exists"
    role = s.get(Role, payload["role_id"])
    if not role:
        return "Role not found"
    create_user(s, payload, role, actor)
    return None


def _update_user(s: Session, user: User, payload: dict, actor: User) -> str | None:
    role = s.get(Role, payload["role_id"])
    if not role:
        return "Role not found"
    update_user(s, user, payload, actor, role=role)
    return None


def _delete_user(s: Session, user: User, actor: User) -> str | None:
    if user.id == actor.id:
        return "Cannot delete your own account"
    delete_user(s, user, actor)
    return None


def _create_role(s: Session, payload: dict, actor: User) -> str | None:
    if name_taken(s, payload["name"]):
        return "Role name already exists"
    create_role(s, payload, actor)
    return None


def _update_role(s: Session, role: Role, payload: dict, actor: User) -> str | None:
    if payload.get("name") and name_taken(s, payload["name"], exclude_id=role.id):
        return "Role name already exists"
    update_role(s, role, payload, actor)
    return None


def _delete_role(s: Session, role: Role, actor: User) -> str | None:
    holders = count_users_with_role(s, role)
    if holders:
        return f"Cannot delete role with associated users ({holders})"
    delete_role(s, role, actor)
    return None


def _plain(fn: Callable[..., Any]) -> Callable[..., str | None]:
    """Adapt a service write that has no user-facing failure mode."""

    def handler(*args: Any) -> str | None:
        fn(*args)
        return None

    return handler


@dataclass(frozen=True)
class FormSpec:
    fields: tuple[FormField, ...]
    validate: Callable[..., list[str]]
    get: Callable[[Session, int], Any]
    create: Callable[[Session, dict, User], str | None]
    update: Callable[[Session, Any, dict, User], str | None]
    delete: Callable[[Session, Any, User], str | None]
    label: Callable[[Any], str] = field(default=lambda e: str(e.id))


_ORDER = FormField("display_order", "Orden", "int")

FORMS: dict[str, FormSpec] = {
    "features": FormSpec(
        fields=(
            FormField("title", "Título"),
            FormField("description", "Descripción", "textarea"),
            FormField("icon", "Icono"),
            _ORDER,
            FormField("is_active", "Activo", "bool", default=True),
        ),
        validate=validate_feature_payload,
        get=get_feature,
        create=_plain(create_feature),
        update=_plain(update_feature),
        delete=_plain(delete_feature),
        label=lambda e: e.title,
    ),
    "services": FormSpec(
        fields=(
            FormField("title", "Título"),
            FormField("slug", "Slug"),
            FormField("description", "Descripción", "textarea"),
            FormField("long_description", "Descripción larga", "textarea"),
            FormField("icon", "Icono"),
            FormField("features", "Características (una por línea)", "lines"),
            _ORDER,
            FormField("is_active", "Activo", "bool", default=True),
        ),
        validate=validate_service_payload,
        get=get_service,
        create=_create_service,
        update=_update_service,
        delete=_plain(delete_service),
        label=lambda e: e.title,
    ),
    "projects": FormSpec(
        fields=(
            FormField("title", "Título"),
            FormField("description", "Descripción", "textarea"),
            FormField("images", "Imágenes (una URL por línea)", "lines"),
            FormField("category", "Categoría"),
            FormField("client", "Cliente"),
            FormField("completion_date", "Fecha de entrega (AAAA-MM-DD)"),
            FormField("technologies", "Tecnologías (una por línea)", "lines"),
            FormField("link", "Enlace"),
            _ORDER,
            FormField("is_active", "Activo", "bool", default=True),
        ),
        validate=validate_project_payload,
        get=get_project,
        create=_plain(create_project),
        update=_plain(update_project),
        delete=_plain(delete_project),
        label=lambda e: e.title,
    ),
    "packages": FormSpec(
        fields=(
            FormField("name", "Clave"),
            FormField("title", "Título"),
            FormField("description", "Descripción", "textarea"),
            FormField("price", "Precio", "number"),
            FormField("currency", "Moneda", default=DEFAULT_CURRENCY),
            FormField("interval", "Periodo", default=DEFAULT_INTERVAL),
            FormField("features", "Características (Categoría: a, b)", "groups"),
            FormField("is_popular", "Popular", "bool"),
            FormField("is_active", "Activo", "bool", default=True),
        ),
        validate=validate_package_payload,
        get=get_package,
        create=_plain(create_package),
        update=_plain(update_package),
        delete=_plain(delete_package),
        label=lambda e: e.title,
    ),
    "profiles": FormSpec(
        fields=(
            FormField("user_id", "Usuario", "select", create_only=True, choices=_users_without_profile),
            FormField("position", "Puesto"),
            FormField("bio", "Biografía", "textarea"),
            FormField("image", "Imagen (URL)"),
            FormField("links", "Enlaces", "links"),
            _ORDER,
            FormField("is_public", "Público", "bool", default=True),
        ),
        validate=validate_profile_payload,
        get=get_profile,
        create=_create_profile,
        update=_plain(update_profile),
        delete=_plain(delete_profile),
        label=lambda e: e.position,
    ),
    "users": FormSpec(
        fields=(
            FormField("email", "Email", create_only=True),
            FormField("name", "Nombre"),
            FormField("password", "Contraseña", "password"),
            FormField("role_id", "Rol", "select", choices=_role_choices),
            FormField("is_active", "Activo", "bool", default=True),
        ),
        validate=validate_user_payload,
        get=get_user,
        create=_create_user,
        update=_update_user,
        delete=_delete_user,
        label=lambda e: e.email,
    ),
    "roles": FormSpec(
        fields=(
            FormField("name", "Nombre"),
            FormField("description", "Descripción"),
            FormField("permissions", "Permisos", "checkboxes", choices=_permission_choices),
            FormField("is_default", "Por defecto", "bool"),
        ),
        validate=validate_role_payload,
        get=get_role,
        create=_create_role,
        update=_update_role,
        delete=_delete_role,
        label=lambda e: e.name,
    ),
}
