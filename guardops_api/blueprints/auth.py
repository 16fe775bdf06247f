from flask import Blueprint, current_app
from flask_jwt_extended import (
    create_access_token, create_refresh_token,
    jwt_required, get_jwt_identity,
)

from guardops_api.extensions import db
from guardops_api.common.http import ok, fail, json_body, text_field
from guardops_api.models.user import User
from guardops_api.permissions import load_user_permissions, dashboard_route_for

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

def _claims(u: User) -> dict:
    return {
        "role": u.role,
        "org_id": u.org_id,
        "email": u.email,
        "name": u.full_name,
        "perms": load_user_permissions(u),
    }

def _user_payload(u: User) -> dict:
    data = u.to_profile()
    data["dashboard_route"] = dashboard_route_for(u.role)
    return data

def _load(uid):
    return db.session.get(User, int(uid)) if uid is not None and str(uid).isdigit() else None

@bp.post("/login")
def login():
    data = json_body()
    email = text_field(data, "email").lower()
    password = text_field(data, "password", strip=False)
    if not email or not password:
        return fail("email and password are required", 422)

    u = User.query.filter_by(email=email).first()
    if not u or not u.check_password(password):
        return fail("Invalid credentials", 401, code="auth.invalid_credentials")
    if not u.is_active:
        current_app.logger.info("login refused for inactive user=%s", u.id)
        return fail("Account is disabled", 403, code="auth.inactive")

    access = create_access_token(identity=str(u.id), additional_claims=_claims(u))
    refresh = create_refresh_token(identity=str(u.id), additional_claims={"role": u.role, "org_id": u.org_id})
    return ok({"access": access, "refresh": refresh, "user": _user_payload(u)})

@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    u = _load(get_jwt_identity())
    if not u or not u.is_active:
        return fail("Unauthorized", 401)
    # re-read role/perms so a grant change is picked up on refresh
    access = create_access_token(identity=str(u.id), additional_claims=_claims(u))
    return ok({"access": access})

@bp.get("/me")
@jwt_required()
def me():
    u = _load(get_jwt_identity())
    if not u:
        return fail("User not found", 404)
    data = _user_payload(u)
    data["permissions"] = load_user_permissions(u)
    return ok(data)
