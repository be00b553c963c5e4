import os
import sys
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.kothler.constants import DEFAULT_ROLE_PERMISSIONS, ROLE_ADMIN, ROLE_EDITOR
from app.kothler.models import Role, User

ROLE_DESCRIPTIONS = {
    ROLE_ADMIN: "Full access to content, team profiles, users and roles.",
    ROLE_EDITOR: "Manages site content and team profiles.",
}


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True, pool_pre_ping=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def ensure_role(s: Session, name: str) -> Role:
    """Create the built-in role or add any permissions it is missing."""
    role = s.query(Role).filter(Role.name == name).one_or_none()
    if not role:
        role = Role(
            name=name,
            description=ROLE_DESCRIPTIONS[name],
            permissions=[],
            is_default=name == ROLE_EDITOR,
        )
        s.add(role)
    missing = [p for p in DEFAULT_ROLE_PERMISSIONS[name] if p not in (role.permissions or [])]
    if missing:
        role.permissions = sorted(set(role.permissions or []) | set(missing))
    return role


def seed_roles_and_admin(s: Session, *, admin_email: str, admin_password: str, admin_name: str) -> User:
    roles = {name: ensure_role(s, name) for name in DEFAULT_ROLE_PERMISSIONS}
    s.flush()

    user = s.query(User).filter(User.email == admin_email).one_or_none()
    if not user:
        user = User(
            email=admin_email,
            name=admin_name,
            password_hash=generate_password_hash(admin_password),
            role=roles[ROLE_ADMIN],
            is_active=True,
        )
        s.add(user)
    return user


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin/editor roles and an admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password or role.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@kothler.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrador").strip()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///kothler.db").strip()

    # Direct engine/session so this can run in release without building the Flask app.
    with _session_scope(db_url) as s:
        seed_roles_and_admin(s, admin_email=admin_email, admin_password=admin_password, admin_name=admin_name)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
