# guardops_api/blueprints/rbac.py
from __future__ import annotations

from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, get_jwt

from guardops_api.extensions import db
from guardops_api.common.auth import requires_perm, current_user
from guardops_api.common.http import ok, fail, json_body, text_field
from guardops_api.models.security import Role, Permission, RolePermission
from guardops_api.permissions import (
    ROLES, MODULES, ACTIONS, SUPERUSER_ROLE,
    perm_code, split_code, is_valid_pair, permission_matrix,
    load_user_permissions, can_sync, dashboard_route_for,
)
from guardops_api.seed_rbac import ensure_permissions, materialize_role

bp = Blueprint("rbac", __name__, url_prefix="/api/v1/rbac")


@bp.get("/me")
@jwt_required()
def me():
    u = current_user()
    if not u:
        return fail("User not found", 404)
    return ok({
        "role": u.role,
        "permissions": load_user_permissions(u),
        "dashboard_route": dashboard_route_for(u.role),
    })


@bp.get("/matrix")
@requires_perm("settings", "view")
def matrix():
    return ok({
        "roles": list(ROLES),
        "modules": list(MODULES),
        "actions": list(ACTIONS),
        "matrix": {r: permission_matrix(r) for r in ROLES},
    })


@bp.get("/check")
@jwt_required()
def check():
    # ?module=payroll&action=view or ?perm=payroll.view
    module, action = split_code((request.args.get("perm") or "").strip().lower())
    module = (request.args.get("module") or module).strip().lower()
    action = (request.args.get("action") or action).strip().lower()
    if not module or not action:
        return fail("module and action are required", 422)
    if not is_valid_pair(module, action):
        return fail(f"unknown permission '{module}.{action}'", 422)
    return ok({"module": module, "action": action,
               "allowed": can_sync(get_jwt(), module, action)})


def _grant_args(role: str):
    """Validate (role, body.module, body.action) and return (module, action) or an error response."""
    if role not in ROLES:
        return None, fail(f"unknown role '{role}'", 422)
    if role == SUPERUSER_ROLE:
        return None, fail("system_admin permissions cannot be changed", 422)
    j = json_body()
    module = text_field(j, "module").lower()
    action = text_field(j, "action").lower()
    if not is_valid_pair(module, action):
        return None, fail(f"unknown permission '{module}.{action}'", 422)
    return (module, action), None


def _role_and_perm(role: str, module: str, action: str):
    r = materialize_role(role)
    db.session.flush()
    return r, ensure_permissions()[perm_code(module, action)]


@bp.post("/roles/<role>/grant")
@requires_perm("settings", "edit")
def grant(role: str):
    pair, err = _grant_args(role)
    if err:
        return err
    r, p = _role_and_perm(role, *pair)
    exists = db.session.get(RolePermission, (r.id, p.id))
    if not exists:
        db.session.add(RolePermission(role_id=r.id, permission_id=p.id))
    db.session.commit()
    current_app.logger.info("RBAC grant %s -> %s", p.code, role)
    return ok({"role": role, "permission": p.code, "granted": True, "changed": not exists})


@bp.post("/roles/<role>/revoke")
@requires_perm("settings", "edit")
def revoke(role: str):
    pair, err = _grant_args(role)
    if err:
        return err
    r, p = _role_and_perm(role, *pair)
    rp = db.session.get(RolePermission, (r.id, p.id))
    if rp:
        db.session.delete(rp)
    db.session.commit()
    current_app.logger.info("RBAC revoke %s from %s", p.code, role)
    return ok({"role": role, "permission": p.code, "granted": False, "changed": rp is not None})


@bp.get("/roles/<role>/permissions")
@requires_perm("settings", "view")
def role_permissions(role: str):
    if role not in ROLES:
        return fail(f"unknown role '{role}'", 422)
    r = Role.query.filter_by(code=role).first()
    stored = []
    if r:
        stored = sorted(p.code for p in Permission.query
                        .join(RolePermission, RolePermission.permission_id == Permission.id)
                        .filter(RolePermission.role_id == r.id).all())
    return ok({"role": role, "customized": r is not None, "stored": stored,
               "matrix": permission_matrix(role)})
