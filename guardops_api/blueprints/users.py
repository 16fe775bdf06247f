from __future__ import annotations

from flask import Blueprint, request, jsonify
from sqlalchemy import or_

from guardops_api.extensions import db
from guardops_api.common.auth import requires_perm, current_org_id, current_user_id
from guardops_api.common.http import json_body, text_field
from guardops_api.common.paging import page_limit, paginate
from guardops_api.models.user import User
from guardops_api.permissions import ROLES

bp = Blueprint("users", __name__, url_prefix="/api/v1/users")

MIN_PASSWORD = 6

# ---------- envelopes ----------
def _ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta: payload["meta"] = meta
    return jsonify(payload), status

def _fail(msg, status=400, code=None):
    err = {"message": msg}
    if code: err["code"] = code
    return jsonify({"success": False, "error": err}), status

def _get_or_none(user_id: int):
    return User.query.filter_by(id=user_id, org_id=current_org_id()).first()

# ---------- routes ----------
@bp.get("")
@requires_perm("settings", "view")
def list_users():
    q = User.query.filter(User.org_id == current_org_id())
    s = (request.args.get("q") or request.args.get("search") or "").strip()
    if s:
        like = f"%{s}%"
        q = q.filter(or_(User.full_name.ilike(like), User.email.ilike(like)))
    role = (request.args.get("role") or "").strip()
    if role:
        q = q.filter(User.role == role)
    q = q.order_by(User.full_name.asc(), User.id.asc())
    page, size = page_limit()
    rows, meta = paginate(q, page, size)
    return _ok([u.to_profile() for u in rows], **meta)

@bp.get("/<int:user_id>")
@requires_perm("settings", "view")
def get_user(user_id: int):
    u = _get_or_none(user_id)
    if not u: return _fail("User not found", 404)
    return _ok(u.to_profile())

@bp.post("")
@requires_perm("settings", "create")
def create_user():
    j = json_body()
    email = text_field(j, "email").lower()
    password = text_field(j, "password", strip=False)
    role = text_field(j, "role")

    if not email or "@" not in email:
        return _fail("valid email is required", 422)
    if len(password) < MIN_PASSWORD:
        return _fail(f"password must be at least {MIN_PASSWORD} characters", 422)
    if role not in ROLES:
        return _fail(f"role must be one of {', '.join(ROLES)}", 422)
    if User.query.filter_by(email=email).first():
        return _fail("email already registered", 409, code="user.duplicate_email")

    u = User(
        org_id=current_org_id(),
        email=email,
        full_name=text_field(j, "full_name") or None,
        role=role,
        phone=text_field(j, "phone") or None,
        regional_office=text_field(j, "regional_office") or None,
        is_active=True,
    )
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    return _ok(u.to_profile(), 201)

@bp.patch("/<int:user_id>")
@requires_perm("settings", "edit")
def patch_user(user_id: int):
    u = _get_or_none(user_id)
    if not u: return _fail("User not found", 404)
    j = json_body()

    if "role" in j:
        role = text_field(j, "role")
        if role not in ROLES:
            return _fail(f"role must be one of {', '.join(ROLES)}", 422)
        u.role = role
    for f in ("full_name", "phone", "regional_office"):
        if f in j:
            setattr(u, f, text_field(j, f) or None)

    db.session.commit()
    return _ok(u.to_profile())

@bp.post("/<int:user_id>/toggle-active")
@requires_perm("settings", "edit")
def toggle_active(user_id: int):
    u = _get_or_none(user_id)
    if not u: return _fail("User not found", 404)
    if u.id == current_user_id():
        return _fail("cannot deactivate your own account", 422)
    u.is_active = not u.is_active
    db.session.commit()
    return _ok(u.to_profile())

@bp.post("/<int:user_id>/reset-password")
@requires_perm("settings", "edit")
def reset_password(user_id: int):
    u = _get_or_none(user_id)
    if not u: return _fail("User not found", 404)
    j = json_body()
    password = text_field(j, "password", strip=False)
    if len(password) < MIN_PASSWORD:
        return _fail(f"password must be at least {MIN_PASSWORD} characters", 422)
    u.set_password(password)
    db.session.commit()
    return _ok({"id": u.id, "reset": True})
