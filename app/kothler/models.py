from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from app.kothler.utils import isoformat, utcnow

if TYPE_CHECKING:
    from app.kothler.modules.profiles.models import Profile


class Base(DeclarativeBase):
    pass


class Role(Base):
    """
    Named bundle of permission strings.
    Permissions are stored flat on the role; a user's effective permission set is exactly this list.
    """

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)  # e.g. "admin"
    description: Mapped[str] = mapped_column(String(512), nullable=False)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)

    users: Mapped[list["User"]] = relationship(back_populates="role", lazy="selectin")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": list(self.permissions or []),
            "is_default": self.is_default,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id", ondelete="RESTRICT"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)

    role: Mapped[Role] = relationship(back_populates="users", lazy="selectin")
    profile: Mapped[Optional["Profile"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        uselist=False,
    )

    def to_dict(self) -> dict:
        # password_hash is never serialized
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": {"id": self.role.id, "name": self.role.name} if self.role else None,
            "is_active": self.is_active,
            "last_login_at": isoformat(self.last_login_at),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class AuditEvent(Base):
    """
    Append-only audit trail event.
    Keep this table intentionally generic; every repository write lands here.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("idx_audit_events_created", "created_at"),
        Index("idx_audit_events_action", "action"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "service.create"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "Service"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.kothler.modules.features.models import Feature  # noqa: E402,F401
from app.kothler.modules.packages.models import Package  # noqa: E402,F401
from app.kothler.modules.profiles.models import Profile  # noqa: E402,F401
from app.kothler.modules.projects.models import Project  # noqa: E402,F401
from app.kothler.modules.services.models import Service  # noqa: E402,F401
