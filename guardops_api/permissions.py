# guardops_api/permissions.py
"""
Role -> (module, action) resolution.

Two entry points mirror how the API consumes permissions:

  can_sync(claims, module, action)
      Reads only what the session already carries (JWT claims issued at
      login: ``role`` and the cached ``perms`` list). No database access.

  can(user_id, module, action)
      Re-validates against the stored profile: the user is re-read, an
      inactive or missing user is denied, and explicit grants in
      ``role_permissions`` take precedence over the static table below.

Permission codes are ``"<module>.<action>"``; a granted ``"<module>.*"``
matches every action of that module.
"""
from __future__ import annotations

from typing import Iterable, Mapping

from guardops_api.extensions import db

ROLES = (
    "system_admin",
    "regional_manager",
    "hr_officer",
    "ops_supervisor",
    "finance_officer",
    "inventory_officer",
    "auditor_readonly",
    "client_portal",
)

MODULES = (
    "dashboard",
    "guards",
    "clients",
    "deployments",
    "attendance",
    "payroll",
    "billing",
    "inventory",
    "tickets",
    "reports",
    "settings",
)

ACTIONS = ("view", "create", "edit", "delete", "approve", "export")

SUPERUSER_ROLE = "system_admin"

_ALL_BUT_SETTINGS = tuple(m for m in MODULES if m != "settings")

# role -> (modules, actions); a role is granted the cross product
ROLE_PERMISSIONS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "system_admin": (MODULES, ACTIONS),
    "regional_manager": (_ALL_BUT_SETTINGS, ("view", "create", "edit", "approve", "export")),
    "hr_officer": (
        ("dashboard", "guards", "clients", "deployments", "attendance", "reports"),
        ("view", "create", "edit", "export"),
    ),
    "ops_supervisor": (
        ("dashboard", "guards", "clients", "deployments", "attendance", "tickets", "reports"),
        ("view", "create", "edit", "export"),
    ),
    "finance_officer": (
        ("dashboard", "guards", "clients", "payroll", "billing", "reports"),
        ("view", "create", "edit", "approve", "export"),
    ),
    "inventory_officer": (
        ("dashboard", "guards", "inventory", "reports"),
        ("view", "create", "edit", "delete", "export"),
    ),
    "auditor_readonly": (_ALL_BUT_SETTINGS, ("view", "export")),
    "client_portal": (("dashboard", "clients", "billing", "tickets"), ("view",)),
}

DASHBOARD_ROUTES = {
    "system_admin": "/dashboard",
    "regional_manager": "/dashboard",
    "hr_officer": "/guards",
    "ops_supervisor": "/deployments",
    "finance_officer": "/billing",
    "inventory_officer": "/inventory",
    "auditor_readonly": "/reports",
    "client_portal": "/dashboard",
}


def perm_code(module: str, action: str) -> str:
    return f"{module}.{action}"


def split_code(code: str) -> tuple[str, str]:
    module, _, action = (code or "").partition(".")
    return module, action


def is_valid_pair(module: str, action: str) -> bool:
    return module in MODULES and action in ACTIONS


# ---------- static table ----------

def role_allows(role: str | None, module: str, action: str) -> bool:
    """Static-table lookup. Total: unknown roles/modules/actions resolve to False."""
    if role == SUPERUSER_ROLE:
        return True
    entry = ROLE_PERMISSIONS.get(role or "")
    if not entry:
        return False
    modules, actions = entry
    return module in modules and action in actions


def role_permission_list(role: str | None) -> list[str]:
    """Every ``module.action`` code the static table grants ``role``, in table order."""
    return [perm_code(m, a) for m in MODULES for a in ACTIONS if role_allows(role, m, a)]


def permission_matrix(role: str | None) -> dict[str, dict[str, bool]]:
    return {m: {a: role_allows(role, m, a) for a in ACTIONS} for m in MODULES}


# ---------- explicit grants ----------

def _wildcard_match(granted: str, required: str) -> bool:
    """
    'payroll.*'       matches 'payroll.approve'
    'payroll.approve' matches only itself
    """
    if granted == required:
        return True
    if granted.endswith(".*"):
        return required.startswith(granted[:-1])
    return False


def grants_allow(granted: Iterable[str], module: str, action: str) -> bool:
    required = perm_code(module, action)
    return any(_wildcard_match(g, required) for g in granted or ())


def load_user_permissions(user) -> list[str]:
    """
    Permission codes to cache in the session for ``user``.
    A stored role row wins, even with no grants left; otherwise the static table.
    """
    if user is None:
        return []
    if user.role == SUPERUSER_ROLE:
        return role_permission_list(SUPERUSER_ROLE)
    from guardops_api.models.security import role_permission_codes
    explicit = role_permission_codes(user.role)
    if explicit is not None:
        return sorted(explicit)
    return role_permission_list(user.role)


# ---------- checks ----------

def can_sync(claims: Mapping | None, module: str, action: str) -> bool:
    """Check against the cached session profile (JWT claims) only."""
    if not claims:
        return False
    role = claims.get("role")
    if not role:
        return False
    if role == SUPERUSER_ROLE:
        return True
    perms = claims.get("perms")
    if perms is not None:
        return grants_allow(perms, module, action)
    return role_allows(role, module, action)


def can(user_id, module: str, action: str) -> bool:
    """Re-validate against the stored profile. Missing/inactive profile -> deny."""
    from guardops_api.models.user import User
    try:
        user = db.session.get(User, int(user_id)) if user_id is not None else None
    except (TypeError, ValueError):
        user = None
    if user is None or not user.is_active:
        return False
    if user.role == SUPERUSER_ROLE:
        return True
    return grants_allow(load_user_permissions(user), module, action)


def has_role(claims: Mapping | None, role: str) -> bool:
    return bool(claims) and claims.get("role") == role


def has_any_role(claims: Mapping | None, roles: Iterable[str]) -> bool:
    return bool(claims) and claims.get("role") in set(roles)


def dashboard_route_for(role: str | None) -> str:
    return DASHBOARD_ROUTES.get(role or "", "/dashboard")
