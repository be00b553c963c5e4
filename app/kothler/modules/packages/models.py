from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.kothler.constants import DEFAULT_CURRENCY, DEFAULT_INTERVAL
from app.kothler.models import Base
from app.kothler.utils import isoformat, utcnow


class Package(Base):
    __tablename__ = "packages"
    __table_args__ = (Index("idx_packages_order", "display_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(128), nullable=False)  # internal key, e.g. "basic"
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default=DEFAULT_CURRENCY)
    interval: Mapped[str] = mapped_column(String(32), nullable=False, default=DEFAULT_INTERVAL)  # billing period label
    # [{"category": "Design", "items": ["Logo", "Landing page"]}, ...]
    features: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)

    is_popular: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    created_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "price": float(self.price) if self.price is not None else None,
            "currency": self.currency,
            "interval": self.interval,
            "features": [dict(f) for f in (self.features or [])],
            "is_popular": self.is_popular,
            "is_active": self.is_active,
            "display_order": self.display_order,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
