from datetime import datetime
from guardops_api.extensions import db
from werkzeug.security import generate_password_hash, check_password_hash

class User(db.Model):
    """Login account + profile. One role per user (see guardops_api.permissions.ROLES)."""
    __tablename__ = "users"

    id            = db.Column(db.Integer, primary_key=True)
    org_id        = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="RESTRICT"), nullable=False, index=True)
    email         = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name     = db.Column(db.String(255), nullable=True)
    role          = db.Column(db.String(50), nullable=False, default="auditor_readonly", index=True)
    phone         = db.Column(db.String(20), nullable=True)
    regional_office = db.Column(db.String(120), nullable=True)
    is_active     = db.Column(db.Boolean, nullable=False, default=True)
    created_at    = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at    = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    org = db.relationship("Organization", lazy="joined")

    # --- helpers ---
    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    def to_profile(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "org_id": self.org_id,
            "phone": self.phone,
            "regional_office": self.regional_office,
            "is_active": self.is_active,
        }
