# guardops_api/common/auth.py
from __future__ import annotations

from functools import wraps

from flask import current_app, g
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from guardops_api.common.http import fail
from guardops_api.extensions import db
from guardops_api.models.user import User
from guardops_api.permissions import can, can_sync


# ---------- helpers ----------

def current_user() -> User | None:
    """User behind the request's JWT, cached on ``g`` for the request."""
    ident = get_jwt_identity()
    cached = g.get("_current_user")
    if cached is not None and cached[0] == ident:
        return cached[1]
    user = None
    if ident is not None and str(ident).isdigit():
        user = db.session.get(User, int(ident))
    g._current_user = (ident, user)
    return user


def current_user_id() -> int | None:
    ident = get_jwt_identity()
    return int(ident) if ident is not None and str(ident).isdigit() else None


def current_org_id() -> int | None:
    claims = get_jwt() or {}
    org_id = claims.get("org_id")
    if org_id is not None:
        return int(org_id)
    u = current_user()
    return u.org_id if u else None


# ---------- decorators ----------

def requires_perm(module: str, action: str):
    """
    Require ``module.action`` for the current user.

    The stored user must exist and be active; a token issued before a
    deactivation is refused.

    Fast path: the role/perms cached in the JWT claims at login, used only
               while the stored role still matches the token.
    Fallback:  re-validate against the stored profile (covers stale tokens
               after a grant or a role change).
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            claims = get_jwt() or {}
            uid = get_jwt_identity()
            if uid is None:
                return fail("Unauthorized", status=401)
            user = current_user()
            if user is None:
                return fail("Unauthorized", status=401)
            if not user.is_active:
                current_app.logger.warning("RBAC deny inactive user=%s", uid)
                return fail("Account is inactive", status=403, code="auth.inactive")

            if user.role == claims.get("role") and can_sync(claims, module, action):
                return fn(*args, **kwargs)

            if can(uid, module, action):
                return fn(*args, **kwargs)

            current_app.logger.warning(
                "RBAC deny user=%s role=%s needs=%s.%s",
                uid, claims.get("role"), module, action,
            )
            return fail("Forbidden", status=403, code="auth.forbidden")
        return inner
    return outer

