from __future__ import annotations

from typing import TYPE_CHECKING

from app.kothler.audit import record_event
from app.kothler.cache import CACHE_KEYS, cached, invalidate_on_commit
from app.kothler.utils import (
    clean_str,
    clean_str_list,
    is_int,
    min_length,
    parse_bool,
    parse_date,
    string_list,
    utcnow,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.kothler.models import User
    from app.kothler.modules.projects.models import Project


def validate_project_payload(payload: dict, *, partial: bool = False) -> list[str]:
    """Validate project creation/update payload. Returns list of errors."""
    errors = [
        e
        for e in (
            min_length(payload, "title", 2, "Title", partial=partial),
            min_length(payload, "description", 10, "Description", partial=partial),
            string_list(payload, "images", "Images", minimum=1, partial=partial),
            min_length(payload, "category", 1, "Category", partial=partial),
            min_length(payload, "client", 1, "Client", partial=partial),
            string_list(payload, "technologies", "Technologies", minimum=1, partial=partial),
        )
        if e
    ]
    if not partial or "completion_date" in payload:
        if parse_date(payload.get("completion_date")) is None:
            errors.append("Completion date must be a valid date (YYYY-MM-DD).")
    if payload.get("link") is not None and not isinstance(payload["link"], str):
        errors.append("Link must be a string.")
    if "display_order" in payload and not is_int(payload["display_order"]):
        errors.append("Display order must be an integer.")
    if "is_active" in payload and not isinstance(payload["is_active"], bool):
        errors.append("is_active must be a boolean.")
    return errors


def list_projects(s: "Session", *, active_only: bool = False, category: str | None = None) -> list[dict]:
    from app.kothler.modules.projects.models import Project

    def _load() -> list[dict]:
        q = s.query(Project)
        if active_only:
            q = q.filter(Project.is_active.is_(True))
        return [p.to_dict() for p in q.order_by(Project.display_order.asc(), Project.created_at.desc()).all()]

    projects = cached(CACHE_KEYS.collection("projects", "active" if active_only else "all"), _load)
    if category:
        projects = [p for p in projects if p["category"].lower() == category.strip().lower()]
    return projects


def project_categories(projects: list[dict]) -> list[str]:
    return sorted({p["category"] for p in projects if p.get("category")})


def get_project(s: "Session", project_id: int) -> "Project | None":
    from app.kothler.modules.projects.models import Project

    return s.get(Project, project_id)


def get_project_data(s: "Session", project_id: int) -> dict | None:
    def _load() -> dict | None:
        p = get_project(s, project_id)
        return p.to_dict() if p else None

    return cached(CACHE_KEYS.record("project", project_id), _load)


def create_project(s: "Session", payload: dict, user: "User") -> "Project":
    from app.kothler.modules.projects.models import Project

    now = utcnow()
    project = Project(
        title=payload["title"].strip(),
        description=payload["description"].strip(),
        images=clean_str_list(payload.get("images")),
        category=payload["category"].strip(),
        client=payload["client"].strip(),
        completion_date=parse_date(payload.get("completion_date")),
        technologies=clean_str_list(payload.get("technologies")),
        link=clean_str(payload.get("link")),
        display_order=payload.get("display_order") or 0,
        is_active=parse_bool(payload.get("is_active"), default=True),
        created_at=now,
        updated_at=now,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    s.add(project)
    s.flush()

    record_event(
        s,
        actor=user,
        action="project.create",
        entity_type="Project",
        entity_id=str(project.id),
        metadata={"title": project.title, "client": project.client},
    )
    invalidate_on_commit(s, "projects", "project", project.id)
    return project


def update_project(s: "Session", project: "Project", payload: dict, user: "User") -> "Project":
    changes = {}
    for field in ("title", "description", "category", "client"):
        if payload.get(field):
            new = payload[field].strip()
            if new != getattr(project, field):
                changes[field] = {"old": getattr(project, field), "new": new}
                setattr(project, field, new)

    for field in ("images", "technologies"):
        if field in payload:
            new_list = clean_str_list(payload[field])
            if new_list != list(getattr(project, field) or []):
                changes[field] = {"old": list(getattr(project, field) or []), "new": new_list}
                setattr(project, field, new_list)

    if payload.get("completion_date"):
        new_date = parse_date(payload["completion_date"])
        if new_date != project.completion_date:
            changes["completion_date"] = {"old": str(project.completion_date), "new": str(new_date)}
            project.completion_date = new_date

    if "link" in payload:
        new_link = clean_str(payload["link"])
        if new_link != project.link:
            changes["link"] = {"old": project.link, "new": new_link}
            project.link = new_link

    for field in ("display_order", "is_active"):
        if field in payload and payload[field] != getattr(project, field):
            changes[field] = {"old": getattr(project, field), "new": payload[field]}
            setattr(project, field, payload[field])

    project.updated_at = utcnow()
    project.updated_by_user_id = user.id

    record_event(
        s,
        actor=user,
        action="project.edit",
        entity_type="Project",
        entity_id=str(project.id),
        metadata={"title": project.title, "changes": changes},
    )
    invalidate_on_commit(s, "projects", "project", project.id)
    return project


def delete_project(s: "Session", project: "Project", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="project.delete",
        entity_type="Project",
        entity_id=str(project.id),
        metadata={"title": project.title},
    )
    invalidate_on_commit(s, "projects", "project", project.id)
    s.delete(project)
