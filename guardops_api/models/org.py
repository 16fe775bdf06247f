from datetime import datetime

from guardops_api.extensions import db


class Organization(db.Model):
    """Tenant. Every guard, attendance row, cycle and request carries an org_id."""
    __tablename__ = "orgs"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Organization id={self.id} code={self.code!r}>"
