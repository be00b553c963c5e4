from __future__ import annotations

from typing import TYPE_CHECKING

from app.kothler.audit import apply_changes, record_event
from app.kothler.constants import PERMISSIONS
from app.kothler.utils import min_length, string_list, utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.kothler.models import Role, User


def validate_role_payload(payload: dict, *, partial: bool = False) -> list[str]:
    """Validate role creation/update payload. Returns list of errors."""
    errors = [
        e
        for e in (
            min_length(payload, "name", 2, "Name", partial=partial),
            min_length(payload, "description", 5, "Description", partial=partial),
            string_list(payload, "permissions", "Permissions", partial=partial),
        )
        if e
    ]
    perms = payload.get("permissions")
    if isinstance(perms, list):
        unknown = sorted({p for p in perms if isinstance(p, str)} - set(PERMISSIONS))
        if unknown:
            errors.append(f"Unknown permissions: {', '.join(unknown)}")
    if "is_default" in payload and not isinstance(payload["is_default"], bool):
        errors.append("is_default must be a boolean.")
    return errors


def normalize_permissions(perms: list[str] | None) -> list[str]:
    return sorted({p.strip() for p in perms or [] if p.strip()})


def name_taken(s: "Session", name: str, *, exclude_id: int | None = None) -> bool:
    from app.kothler.models import Role

    q = s.query(Role.id).filter(Role.name == name.strip())
    if exclude_id is not None:
        q = q.filter(Role.id != exclude_id)
    return q.first() is not None


def list_roles(s: "Session") -> list["Role"]:
    from app.kothler.models import Role

    return s.query(Role).order_by(Role.name.asc()).all()


def get_role(s: "Session", role_id: int) -> "Role | None":
    from app.kothler.models import Role

    return s.get(Role, role_id)


def count_users_with_role(s: "Session", role: "Role") -> int:
    from app.kothler.models import User

    return s.query(User).filter(User.role_id == role.id).count()


def create_role(s: "Session", payload: dict, actor: "User") -> "Role":
    """Create a role. Caller checks name uniqueness first."""
    from app.kothler.models import Role

    now = utcnow()
    role = Role(
        name=payload["name"].strip(),
        description=payload["description"].strip(),
        permissions=normalize_permissions(payload.get("permissions")),
        is_default=bool(payload.get("is_default", False)),
        created_at=now,
        updated_at=now,
    )
    s.add(role)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="role.create",
        entity_type="Role",
        entity_id=str(role.id),
        metadata={"name": role.name, "permissions": role.permissions},
    )
    return role


def update_role(s: "Session", role: "Role", payload: dict, actor: "User") -> "Role":
    """
    Update a role. Permission changes apply to every holder on their next request,
    since sessions re-read the role.
    """
    values = {f: payload[f].strip() for f in ("name", "description") if payload.get(f)}
    if "is_default" in payload:
        values["is_default"] = payload["is_default"]
    changes = apply_changes(role, values)
    if "permissions" in payload:
        new_perms = normalize_permissions(payload["permissions"])
        if new_perms != sorted(role.permissions or []):
            changes["permissions"] = {"old": list(role.permissions or []), "new": new_perms}
            # Reassign rather than mutate so the JSON column is flagged dirty.
            role.permissions = new_perms

    role.updated_at = utcnow()

    record_event(
        s,
        actor=actor,
        action="role.update",
        entity_type="Role",
        entity_id=str(role.id),
        metadata={"name": role.name, "changes": changes},
    )
    return role


def delete_role(s: "Session", role: "Role", actor: "User") -> None:
    """Delete a role. Caller checks no user still holds it."""
    record_event(
        s,
        actor=actor,
        action="role.delete",
        entity_type="Role",
        entity_id=str(role.id),
        metadata={"name": role.name},
    )
    s.delete(role)
