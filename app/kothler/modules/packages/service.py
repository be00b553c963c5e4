from __future__ import annotations

import math
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func

from app.kothler.audit import record_event
from app.kothler.cache import CACHE_KEYS, cached, invalidate_on_commit
from app.kothler.constants import DEFAULT_CURRENCY, DEFAULT_INTERVAL
from app.kothler.utils import clean_str, clean_str_list, is_int, is_number, min_length, parse_bool, utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.kothler.models import User
    from app.kothler.modules.packages.models import Package


# Largest value a Numeric(12, 2) price column holds.
MAX_PRICE = 9_999_999_999.99

# Fields an update may touch; anything else in the body is ignored.
UPDATABLE_FIELDS = (
    "name",
    "title",
    "description",
    "price",
    "currency",
    "interval",
    "features",
    "is_popular",
    "is_active",
    "display_order",
)


def _validate_features(value) -> str | None:
    if not isinstance(value, list):
        return "Features must be a list of {category, items} groups."
    for group in value:
        if not isinstance(group, dict) or not isinstance(group.get("category"), str) or not group["category"].strip():
            return "Each feature group needs a category."
        items = group.get("items", [])
        if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
            return "Feature group items must be a list of strings."
    return None


def normalize_features(value) -> list[dict]:
    return [{"category": g["category"].strip(), "items": clean_str_list(g.get("items"))} for g in value or []]


def validate_package_payload(payload: dict, *, partial: bool = False) -> list[str]:
    """Validate package creation/update payload. Returns list of errors."""
    errors = [
        e
        for e in (
            min_length(payload, "name", 1, "Name", partial=partial),
            min_length(payload, "title", 1, "Title", partial=partial),
            min_length(payload, "description", 1, "Description", partial=partial),
        )
        if e
    ]
    if not partial or "price" in payload:
        price = payload.get("price")
        if not is_number(price) or (isinstance(price, float) and not math.isfinite(price)) or price <= 0:
            errors.append("Price is required and must be a positive number.")
        elif price > MAX_PRICE:
            errors.append(f"Price must not exceed {MAX_PRICE:,.2f}.")
    for field in ("currency", "interval"):
        if field in payload and not (isinstance(payload[field], str) and payload[field].strip()):
            errors.append(f"{field.capitalize()} must be a non-empty string.")
    if "features" in payload:
        err = _validate_features(payload["features"])
        if err:
            errors.append(err)
    for field in ("is_popular", "is_active"):
        if field in payload and not isinstance(payload[field], bool):
            errors.append(f"{field} must be a boolean.")
    if "display_order" in payload and not is_int(payload["display_order"]):
        errors.append("Display order must be an integer.")
    return errors


def next_display_order(s: "Session") -> int:
    from app.kothler.modules.packages.models import Package

    last = s.query(func.max(Package.display_order)).scalar()
    return 0 if last is None else last + 1


def list_packages(s: "Session", *, active_only: bool = False) -> list[dict]:
    from app.kothler.modules.packages.models import Package

    def _load() -> list[dict]:
        q = s.query(Package)
        if active_only:
            q = q.filter(Package.is_active.is_(True))
        return [p.to_dict() for p in q.order_by(Package.display_order.asc(), Package.created_at.desc()).all()]

    return cached(CACHE_KEYS.collection("packages", "active" if active_only else "all"), _load)


def get_package(s: "Session", package_id: int) -> "Package | None":
    from app.kothler.modules.packages.models import Package

    return s.get(Package, package_id)


def get_package_data(s: "Session", package_id: int) -> dict | None:
    def _load() -> dict | None:
        p = get_package(s, package_id)
        return p.to_dict() if p else None

    return cached(CACHE_KEYS.record("package", package_id), _load)


def create_package(s: "Session", payload: dict, user: "User") -> "Package":
    """Create a package; it is appended after the current last one."""
    from app.kothler.modules.packages.models import Package

    now = utcnow()
    package = Package(
        name=payload["name"].strip(),
        title=payload["title"].strip(),
        description=payload["description"].strip(),
        price=Decimal(str(payload["price"])),
        currency=(clean_str(payload.get("currency")) or DEFAULT_CURRENCY).lower(),
        interval=clean_str(payload.get("interval")) or DEFAULT_INTERVAL,
        features=normalize_features(payload.get("features")),
        is_popular=parse_bool(payload.get("is_popular"), default=False),
        is_active=parse_bool(payload.get("is_active"), default=True),
        display_order=next_display_order(s),
        created_at=now,
        updated_at=now,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    s.add(package)
    s.flush()

    record_event(
        s,
        actor=user,
        action="package.create",
        entity_type="Package",
        entity_id=str(package.id),
        metadata={"name": package.name, "price": str(package.price), "currency": package.currency},
    )
    invalidate_on_commit(s, "packages", "package", package.id)
    return package


def update_package(s: "Session", package: "Package", payload: dict, user: "User") -> "Package":
    changes = {}
    for field in UPDATABLE_FIELDS:
        if field not in payload:
            continue
        new = payload[field]
        if field == "price":
            new = Decimal(str(new))
        elif field == "features":
            new = normalize_features(new)
        elif field == "currency":
            new = new.strip().lower()
        elif isinstance(new, str):
            new = new.strip()
        old = getattr(package, field)
        if field == "price" and old is not None:
            old = Decimal(old)
        if new != old:
            changes[field] = {"old": str(old) if field == "price" else old, "new": str(new) if field == "price" else new}
            setattr(package, field, new)

    package.updated_at = utcnow()
    package.updated_by_user_id = user.id

    record_event(
        s,
        actor=user,
        action="package.edit",
        entity_type="Package",
        entity_id=str(package.id),
        metadata={"name": package.name, "changes": changes},
    )
    invalidate_on_commit(s, "packages", "package", package.id)
    return package


def delete_package(s: "Session", package: "Package", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="package.delete",
        entity_type="Package",
        entity_id=str(package.id),
        metadata={"name": package.name},
    )
    invalidate_on_commit(s, "packages", "package", package.id)
    s.delete(package)
