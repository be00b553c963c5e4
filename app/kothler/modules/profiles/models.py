from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.kothler.constants import DEFAULT_PROFILE_IMAGE
from app.kothler.models import Base
from app.kothler.utils import isoformat, utcnow

if TYPE_CHECKING:
    from app.kothler.models import User


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (Index("idx_profiles_order", "display_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # One profile per user; removing the user removes the profile.
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    position: Mapped[str] = mapped_column(String(255), nullable=False)
    bio: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[str] = mapped_column(String(1024), nullable=False, default=DEFAULT_PROFILE_IMAGE)
    links: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)  # linkedin/github/portfolio/twitter/instagram

    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)

    user: Mapped["User"] = relationship(back_populates="profile", lazy="selectin")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user": {"id": self.user.id, "name": self.user.name, "email": self.user.email} if self.user else None,
            "position": self.position,
            "bio": self.bio,
            "image": self.image,
            "links": dict(self.links or {}),
            "is_public": self.is_public,
            "display_order": self.display_order,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
