# guardops_api/models/security.py
from guardops_api.extensions import db


class Role(db.Model):
    __tablename__ = "roles"
    id   = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)  # e.g. "finance_officer"
    name = db.Column(db.String(120), nullable=True)

    permissions = db.relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Role id={self.id} code={self.code!r}>"


class Permission(db.Model):
    """One (module, action) pair; ``code`` is ``module.action``."""
    __tablename__ = "permissions"
    id     = db.Column(db.Integer, primary_key=True)
    module = db.Column(db.String(50), nullable=False)
    action = db.Column(db.String(30), nullable=False)
    code   = db.Column(db.String(120), unique=True, nullable=False)  # e.g. "payroll.approve"
    name   = db.Column(db.String(150), nullable=True)

    roles = db.relationship(
        "RolePermission",
        back_populates="permission",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        db.UniqueConstraint("module", "action", name="uq_permission_module_action"),
    )

    def __repr__(self) -> str:
        return f"<Permission id={self.id} code={self.code!r}>"


class RolePermission(db.Model):
    __tablename__ = "role_permissions"
    # composite PK keeps (role_id, permission_id) unique without extra index
    role_id = db.Column(
        db.Integer,
        db.ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    permission_id = db.Column(
        db.Integer,
        db.ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    )

    role = db.relationship("Role", back_populates="permissions")
    permission = db.relationship("Permission", back_populates="roles")

    def __repr__(self) -> str:
        return f"<RolePermission role_id={self.role_id} permission_id={self.permission_id}>"


def role_permission_codes(role_code: str) -> set[str] | None:
    """
    Explicit ``module.action`` grants stored for a role. None when the role has
    no row yet; an empty set when every grant was revoked.
    """
    if Role.query.filter_by(code=role_code).first() is None:
        return None
    q = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .filter(Role.code == role_code)
        .distinct()
    )
    return {row[0] for row in q.all()}
