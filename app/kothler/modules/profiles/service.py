from __future__ import annotations

from typing import TYPE_CHECKING

from app.kothler.audit import record_event
from app.kothler.cache import CACHE_KEYS, cached, invalidate_on_commit
from app.kothler.constants import DEFAULT_PROFILE_IMAGE, PROFILE_LINK_KEYS
from app.kothler.utils import clean_str, is_int, min_length, parse_bool, utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.kothler.models import User
    from app.kothler.modules.profiles.models import Profile


def validate_profile_payload(payload: dict, *, partial: bool = False) -> list[str]:
    """Validate profile creation/update payload. Returns list of errors."""
    errors = [
        e
        for e in (
            min_length(payload, "position", 2, "Position", partial=partial),
            min_length(payload, "bio", 10, "Bio", partial=partial),
        )
        if e
    ]
    if not partial and not is_int(payload.get("user_id")):
        errors.append("user_id is required.")
    if payload.get("image") is not None and not isinstance(payload["image"], str):
        errors.append("Image must be a URL string.")
    links = payload.get("links")
    if links is not None:
        if not isinstance(links, dict):
            errors.append("Links must be an object.")
        else:
            unknown = sorted(set(links) - set(PROFILE_LINK_KEYS))
            if unknown:
                errors.append(f"Unknown link keys: {', '.join(unknown)}")
            if not all(v is None or isinstance(v, str) for v in links.values()):
                errors.append("Link values must be strings.")
    if "is_public" in payload and not isinstance(payload["is_public"], bool):
        errors.append("is_public must be a boolean.")
    if "display_order" in payload and not is_int(payload["display_order"]):
        errors.append("Display order must be an integer.")
    return errors


def _clean_links(links: dict | None) -> dict:
    return {k: v.strip() for k, v in (links or {}).items() if k in PROFILE_LINK_KEYS and isinstance(v, str) and v.strip()}


def list_profiles(s: "Session", *, public_only: bool = False) -> list[dict]:
    from app.kothler.modules.profiles.models import Profile

    def _load() -> list[dict]:
        q = s.query(Profile)
        if public_only:
            q = q.filter(Profile.is_public.is_(True))
        return [p.to_dict() for p in q.order_by(Profile.display_order.asc(), Profile.created_at.desc()).all()]

    return cached(CACHE_KEYS.collection("profiles", "public" if public_only else "all"), _load)


def get_profile(s: "Session", profile_id: int) -> "Profile | None":
    from app.kothler.modules.profiles.models import Profile

    return s.get(Profile, profile_id)


def get_profile_data(s: "Session", profile_id: int) -> dict | None:
    def _load() -> dict | None:
        p = get_profile(s, profile_id)
        return p.to_dict() if p else None

    return cached(CACHE_KEYS.record("profile", profile_id), _load)


def profile_exists_for_user(s: "Session", user_id: int) -> bool:
    from app.kothler.modules.profiles.models import Profile

    return s.query(Profile.id).filter(Profile.user_id == user_id).first() is not None


def create_profile(s: "Session", payload: dict, user: "User") -> "Profile":
    """Create a profile. Caller checks the owning user exists and has no profile yet."""
    from app.kothler.modules.profiles.models import Profile

    now = utcnow()
    profile = Profile(
        user_id=payload["user_id"],
        position=payload["position"].strip(),
        bio=payload["bio"].strip(),
        image=clean_str(payload.get("image")) or DEFAULT_PROFILE_IMAGE,
        links=_clean_links(payload.get("links")),
        is_public=parse_bool(payload.get("is_public"), default=True),
        display_order=payload.get("display_order") or 0,
        created_at=now,
        updated_at=now,
    )
    s.add(profile)
    s.flush()

    record_event(
        s,
        actor=user,
        action="profile.create",
        entity_type="Profile",
        entity_id=str(profile.id),
        metadata={"user_id": profile.user_id, "position": profile.position},
    )
    invalidate_on_commit(s, "profiles", "profile", profile.id)
    return profile


def update_profile(s: "Session", profile: "Profile", payload: dict, user: "User") -> "Profile":
    """Update a profile; links are merged into the existing ones, an empty value removes a link."""
    changes = {}
    for field in ("position", "bio", "image"):
        if payload.get(field):
            new = payload[field].strip()
            if new != getattr(profile, field):
                changes[field] = {"old": getattr(profile, field), "new": new}
                setattr(profile, field, new)

    if payload.get("links"):
        merged = dict(profile.links or {})
        for k, v in payload["links"].items():
            if isinstance(v, str) and v.strip():
                merged[k] = v.strip()
            else:
                merged.pop(k, None)
        if merged != (profile.links or {}):
            changes["links"] = {"old": dict(profile.links or {}), "new": merged}
            profile.links = merged

    for field in ("is_public", "display_order"):
        if field in payload and payload[field] != getattr(profile, field):
            changes[field] = {"old": getattr(profile, field), "new": payload[field]}
            setattr(profile, field, payload[field])

    profile.updated_at = utcnow()

    record_event(
        s,
        actor=user,
        action="profile.edit",
        entity_type="Profile",
        entity_id=str(profile.id),
        metadata={"user_id": profile.user_id, "changes": changes},
    )
    invalidate_on_commit(s, "profiles", "profile", profile.id)
    return profile


def delete_profile(s: "Session", profile: "Profile", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="profile.delete",
        entity_type="Profile",
        entity_id=str(profile.id),
        metadata={"user_id": profile.user_id},
    )
    invalidate_on_commit(s, "profiles", "profile", profile.id)
    s.delete(profile)
