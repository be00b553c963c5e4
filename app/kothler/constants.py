"""
Central constants for the Kothler site.
"""
from __future__ import annotations

# Permission tokens gating write operations.
MANAGE_CONTENT = "manage_content"  # services, projects, packages, features
MANAGE_PROFILES = "manage_profiles"
MANAGE_USERS = "manage_users"
MANAGE_ROLES = "manage_roles"

PERMISSIONS = {
    MANAGE_CONTENT: "Content: services, projects, packages, features",
    MANAGE_PROFILES: "Team profiles",
    MANAGE_USERS: "User accounts",
    MANAGE_ROLES: "Roles and permissions",
}

# Roles allowed into the dashboard shell.
ROLE_ADMIN = "admin"
ROLE_EDITOR = "editor"
DASHBOARD_ROLES = (ROLE_ADMIN, ROLE_EDITOR)

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: sorted(PERMISSIONS),
    ROLE_EDITOR: [MANAGE_CONTENT, MANAGE_PROFILES],
}

PROFILE_LINK_KEYS = ("linkedin", "github", "portfolio", "twitter", "instagram")
DEFAULT_PROFILE_IMAGE = "/placeholder.svg"

DEFAULT_CURRENCY = "mxn"
DEFAULT_INTERVAL = "mes"
