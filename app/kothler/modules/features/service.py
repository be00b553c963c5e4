from __future__ import annotations

from typing import TYPE_CHECKING

from app.kothler.audit import apply_changes, record_entity_event
from app.kothler.cache import CACHE_KEYS, cached, invalidate_on_commit
from app.kothler.utils import is_int, min_length, parse_bool, utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.kothler.models import User
    from app.kothler.modules.features.models import Feature


def validate_feature_payload(payload: dict, *, partial: bool = False) -> list[str]:
    """Validate feature creation/update payload. Returns list of errors."""
    errors = [
        e
        for e in (
            min_length(payload, "title", 2, "Title", partial=partial),
            min_length(payload, "description", 10, "Description", partial=partial),
            min_length(payload, "icon", 1, "Icon", partial=partial),
        )
        if e
    ]
    if "display_order" in payload and not is_int(payload["display_order"]):
        errors.append("Display order must be an integer.")
    if "is_active" in payload and not isinstance(payload["is_active"], bool):
        errors.append("is_active must be a boolean.")
    return errors


def list_features(s: "Session", *, active_only: bool = False) -> list[dict]:
    from app.kothler.modules.features.models import Feature

    def _load() -> list[dict]:
        q = s.query(Feature)
        if active_only:
            q = q.filter(Feature.is_active.is_(True))
        return [f.to_dict() for f in q.order_by(Feature.display_order.asc(), Feature.created_at.desc()).all()]

    return cached(CACHE_KEYS.collection("features", "active" if active_only else "all"), _load)


def get_feature(s: "Session", feature_id: int) -> "Feature | None":
    from app.kothler.modules.features.models import Feature

    return s.get(Feature, feature_id)


def get_feature_data(s: "Session", feature_id: int) -> dict | None:
    def _load() -> dict | None:
        f = get_feature(s, feature_id)
        return f.to_dict() if f else None

    return cached(CACHE_KEYS.record("feature", feature_id), _load)


def create_feature(s: "Session", payload: dict, user: "User") -> "Feature":
    from app.kothler.modules.features.models import Feature

    now = utcnow()
    feature = Feature(
        title=payload["title"].strip(),
        description=payload["description"].strip(),
        icon=payload["icon"].strip(),
        display_order=payload.get("display_order") or 0,
        is_active=parse_bool(payload.get("is_active"), default=True),
        created_at=now,
        updated_at=now,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    s.add(feature)
    s.flush()

    record_entity_event(s, feature, "feature.create", actor=user, title=feature.title)
    invalidate_on_commit(s, "features", "feature", feature.id)
    return feature


def update_feature(s: "Session", feature: "Feature", payload: dict, user: "User") -> "Feature":
    values = {f: payload[f].strip() for f in ("title", "description", "icon") if payload.get(f)}
    values.update({f: payload[f] for f in ("display_order", "is_active") if f in payload})
    changes = apply_changes(feature, values)

    feature.updated_at = utcnow()
    feature.updated_by_user_id = user.id

    record_entity_event(s, feature, "feature.edit", actor=user, title=feature.title, changes=changes)
    invalidate_on_commit(s, "features", "feature", feature.id)
    return feature


def delete_feature(s: "Session", feature: "Feature", user: "User") -> None:
    record_entity_event(s, feature, "feature.delete", actor=user, title=feature.title)
    invalidate_on_commit(s, "features", "feature", feature.id)
    s.delete(feature)
