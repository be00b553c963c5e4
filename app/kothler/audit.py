import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.kothler.models import AuditEvent, User


def apply_changes(entity: Any, values: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """
    Assign each value that differs from the entity's current one and return the
    change set as {field: {"old": ..., "new": ...}} for the audit metadata.
    """
    changes: dict[str, dict[str, Any]] = {}
    for field, new in values.items():
        old = getattr(entity, field)
        if new == old:
            continue
        changes[field] = {"old": list(old) if isinstance(old, list) else old, "new": new}
        setattr(entity, field, new)
    return changes


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append-only audit event. Outside a request (seed scripts) the request id and
    client IP are left empty.
    """
    in_request = has_request_context()
    ev = AuditEvent(
        request_id=request_id or (getattr(g, "request_id", None) if in_request else None),
        client_ip=request.remote_addr if in_request else None,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
    )
    s.add(ev)
    return ev


def record_entity_event(s: Session, entity: Any, action: str, *, actor: User | None, **metadata: Any) -> AuditEvent:
    """Audit a write on a mapped entity; the type and id come from the instance."""
    return record_event(
        s,
        actor=actor,
        action=action,
        entity_type=type(entity).__name__,
        entity_id=str(entity.id),
        metadata=metadata or None,
    )
