from __future__ import annotations

import math
from typing import TYPE_CHECKING

from werkzeug.security import generate_password_hash

from app.kothler.audit import record_event
from app.kothler.cache import invalidate_on_commit
from app.kothler.utils import is_int, is_valid_email, min_length, utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.kothler.models import Role, User


MIN_PASSWORD_LENGTH = 8
MAX_PAGE_SIZE = 100


def validate_user_payload(payload: dict, *, partial: bool = False) -> list[str]:
    """Validate user creation/update payload. Returns list of errors."""
    errors = []
    if not partial:
        email = payload.get("email")
        if not isinstance(email, str) or not is_valid_email(email.strip()):
            errors.append("A valid email is required.")
    elif "email" in payload:
        errors.append("Email cannot be changed.")

    if not partial or "password" in payload:
        password = payload.get("password")
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")

    err = min_length(payload, "name", 2, "Name", partial=partial)
    if err:
        errors.append(err)
    if (not partial or "role_id" in payload) and not is_int(payload.get("role_id")):
        errors.append("role_id is required.")
    if "is_active" in payload and not isinstance(payload["is_active"], bool):
        errors.append("is_active must be a boolean.")
    return errors


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def email_taken(s: "Session", email: str) -> bool:
    from app.kothler.models import User

    return s.query(User.id).filter(User.email == normalize_email(email)).first() is not None


def list_users(s: "Session", *, page: int = 1, limit: int = 10) -> tuple[list["User"], dict]:
    """Newest first, paginated. Returns (users, pagination)."""
    from app.kothler.models import User

    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    total = s.query(User).count()
    users = (
        s.query(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    pagination = {"total": total, "page": page, "limit": limit, "pages": math.ceil(total / limit)}
    return users, pagination


def get_user(s: "Session", user_id: int) -> "User | None":
    from app.kothler.models import User

    return s.get(User, user_id)


def create_user(s: "Session", payload: dict, role: "Role", actor: "User") -> "User":
    """Create an account. Caller checks email uniqueness and resolves the role."""
    from app.kothler.models import User

    now = utcnow()
    user = User(
        email=normalize_email(payload["email"]),
        name=payload["name"].strip(),
        password_hash=generate_password_hash(payload["password"]),
        role=role,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    s.add(user)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="user.create",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": user.email, "role": role.name},
    )
    return user


def update_user(s: "Session", user: "User", payload: dict, actor: "User", role: "Role | None" = None) -> "User":
    before = {"name": user.name, "is_active": user.is_active, "role": user.role.name if user.role else None}

    if payload.get("name"):
        user.name = payload["name"].strip()
    if "is_active" in payload:
        user.is_active = payload["is_active"]
    if role is not None:
        user.role = role
    password_changed = bool(payload.get("password"))
    if password_changed:
        user.password_hash = generate_password_hash(payload["password"])

    user.updated_at = utcnow()
    after = {"name": user.name, "is_active": user.is_active, "role": user.role.name if user.role else None}

    record_event(
        s,
        actor=actor,
        action="user.update",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"before": before, "after": after, "password_changed": password_changed},
    )
    # Profiles embed the user's name and email.
    if user.profile is not None:
        invalidate_on_commit(s, "profiles", "profile", user.profile.id)
    return user


def delete_user(s: "Session", user: "User", actor: "User") -> None:
    """Delete an account; its team profile goes with it."""
    record_event(
        s,
        actor=actor,
        action="user.delete",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": user.email},
    )
    if user.profile is not None:
        invalidate_on_commit(s, "profiles", "profile", user.profile.id)
    s.delete(user)
