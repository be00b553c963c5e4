from __future__ import annotations

import re
from typing import TYPE_CHECKING

from app.kothler.audit import record_event
from app.kothler.cache import CACHE_KEYS, cached, invalidate_on_commit
from app.kothler.utils import clean_str_list, is_int, min_length, parse_bool, string_list, utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.kothler.models import User
    from app.kothler.modules.services.models import Service


# Slugs appear in /servicios/<slug> URLs.
_SLUG_RE = re.compile(r"^[a-z0-9]+(?:[-_][a-z0-9]+)*$")


def normalize_slug(raw: str | None) -> str:
    return (raw or "").strip().lower()


def validate_service_payload(payload: dict, *, partial: bool = False) -> list[str]:
    """Validate service creation/update payload. Returns list of errors."""
    errors = [
        e
        for e in (
            min_length(payload, "title", 2, "Title", partial=partial),
            min_length(payload, "description", 10, "Description", partial=partial),
            min_length(payload, "long_description", 20, "Long description", partial=partial),
            min_length(payload, "icon", 1, "Icon", partial=partial),
            string_list(payload, "features", "Features", minimum=1, partial=partial),
            min_length(payload, "slug", 2, "Slug", partial=partial),
        )
        if e
    ]
    slug = payload.get("slug")
    if isinstance(slug, str) and len(slug.strip()) >= 2 and not _SLUG_RE.match(normalize_slug(slug)):
        errors.append("Slug may only contain letters, digits, hyphens and underscores.")
    if "display_order" in payload and not is_int(payload["display_order"]):
        errors.append("Display order must be an integer.")
    if "is_active" in payload and not isinstance(payload["is_active"], bool):
        errors.append("is_active must be a boolean.")
    return errors


def slug_taken(s: "Session", slug: str, *, exclude_id: int | None = None) -> bool:
    from app.kothler.modules.services.models import Service

    q = s.query(Service.id).filter(Service.slug == normalize_slug(slug))
    if exclude_id is not None:
        q = q.filter(Service.id != exclude_id)
    return q.first() is not None


def list_services(s: "Session", *, active_only: bool = False) -> list[dict]:
    from app.kothler.modules.services.models import Service

    def _load() -> list[dict]:
        q = s.query(Service)
        if active_only:
            q = q.filter(Service.is_active.is_(True))
        return [x.to_dict() for x in q.order_by(Service.display_order.asc(), Service.created_at.desc()).all()]

    return cached(CACHE_KEYS.collection("services", "active" if active_only else "all"), _load)


def get_service(s: "Session", service_id: int) -> "Service | None":
    from app.kothler.modules.services.models import Service

    return s.get(Service, service_id)


def get_service_data(s: "Session", service_id: int) -> dict | None:
    def _load() -> dict | None:
        x = get_service(s, service_id)
        return x.to_dict() if x else None

    return cached(CACHE_KEYS.record("service", service_id), _load)


def get_service_by_slug(s: "Session", slug: str) -> "Service | None":
    from app.kothler.modules.services.models import Service

    return s.query(Service).filter(Service.slug == normalize_slug(slug)).one_or_none()


def create_service(s: "Session", payload: dict, user: "User") -> "Service":
    """Create a service. Caller checks slug uniqueness first."""
    from app.kothler.modules.services.models import Service

    now = utcnow()
    service = Service(
        title=payload["title"].strip(),
        slug=normalize_slug(payload["slug"]),
        description=payload["description"].strip(),
        long_description=payload["long_description"].strip(),
        icon=payload["icon"].strip(),
        features=clean_str_list(payload.get("features")),
        display_order=payload.get("display_order") or 0,
        is_active=parse_bool(payload.get("is_active"), default=True),
        created_at=now,
        updated_at=now,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    s.add(service)
    s.flush()

    record_event(
        s,
        actor=user,
        action="service.create",
        entity_type="Service",
        entity_id=str(service.id),
        metadata={"title": service.title, "slug": service.slug},
    )
    invalidate_on_commit(s, "services", "service", service.id)
    return service


def update_service(s: "Session", service: "Service", payload: dict, user: "User") -> "Service":
    changes = {}
    for field in ("title", "description", "long_description", "icon"):
        if payload.get(field):
            new = payload[field].strip()
            if new != getattr(service, field):
                changes[field] = {"old": getattr(service, field), "new": new}
                setattr(service, field, new)

    if payload.get("slug"):
        new_slug = normalize_slug(payload["slug"])
        if new_slug != service.slug:
            changes["slug"] = {"old": service.slug, "new": new_slug}
            service.slug = new_slug

    if "features" in payload:
        new_features = clean_str_list(payload["features"])
        if new_features != list(service.features or []):
            changes["features"] = {"old": list(service.features or []), "new": new_features}
            service.features = new_features

    for field in ("display_order", "is_active"):
        if field in payload and payload[field] != getattr(service, field):
            changes[field] = {"old": getattr(service, field), "new": payload[field]}
            setattr(service, field, payload[field])

    service.updated_at = utcnow()
    service.updated_by_user_id = user.id

    record_event(
        s,
        actor=user,
        action="service.edit",
        entity_type="Service",
        entity_id=str(service.id),
        metadata={"title": service.title, "changes": changes},
    )
    invalidate_on_commit(s, "services", "service", service.id)
    return service


def delete_service(s: "Session", service: "Service", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="service.delete",
        entity_type="Service",
        entity_id=str(service.id),
        metadata={"title": service.title, "slug": service.slug},
    )
    invalidate_on_commit(s, "services", "service", service.id)
    s.delete(service)
