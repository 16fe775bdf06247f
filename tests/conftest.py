import os
from datetime import date
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from guardops_api import create_app
from guardops_api.extensions import db
from guardops_api.models.org import Organization
from guardops_api.models.user import User
from guardops_api.models.guard import Guard
from guardops_api.permissions import load_user_permissions


@pytest.fixture
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def org(app):
    o = Organization(code="ORG1", name="Alpha Security")
    db.session.add(o)
    db.session.commit()
    return o


@pytest.fixture
def other_org(app):
    o = Organization(code="ORG2", name="Bravo Security")
    db.session.add(o)
    db.session.commit()
    return o


@pytest.fixture
def make_user(app, org):
    def _make(role="system_admin", email=None, org_id=None, active=True, password="secret123"):
        u = User(
            org_id=org_id or org.id,
            email=email or f"{role}.{User.query.count() + 1}@example.com",
            full_name=role.replace("_", " ").title(),
            role=role,
            is_active=active,
        )
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        return u
    return _make


@pytest.fixture
def headers_for(app):
    """Bearer headers carrying the same claims /auth/login issues."""
    def _headers(u, perms=None):
        claims = {
            "role": u.role,
            "org_id": u.org_id,
            "email": u.email,
            "name": u.full_name,
            "perms": load_user_permissions(u) if perms is None else perms,
        }
        token = create_access_token(identity=str(u.id), additional_claims=claims)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def admin(make_user):
    return make_user("system_admin", email="admin@example.com")


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin)


@pytest.fixture
def make_guard(app, org):
    counter = {"n": 0}

    def _make(salary="30000", status="active", org_id=None, **kw):
        counter["n"] += 1
        n = counter["n"]
        g = Guard(
            org_id=org_id or org.id,
            guard_code=kw.pop("guard_code", f"GRD-{n:05d}"),
            first_name=kw.pop("first_name", f"Guard{n}"),
            last_name=kw.pop("last_name", "Test"),
            cnic=kw.pop("cnic", f"35202-000000{n:02d}-1"),
            status=status,
            basic_salary=Decimal(salary),
            employment_start_date=date(2025, 1, 1),
            **kw,
        )
        db.session.add(g)
        db.session.commit()
        return g
    return _make
