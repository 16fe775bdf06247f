from datetime import datetime
from guardops_api.extensions import db

GUARD_STATUSES = (
    "applicant", "screening", "approved", "onboarding",
    "active", "suspended", "terminated", "archived",
)

class Guard(db.Model):
    __tablename__ = "guards"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="RESTRICT"), nullable=False)

    guard_code  = db.Column(db.String(32), nullable=False)    # unique per org, GRD-00001
    first_name  = db.Column(db.String(80), nullable=False)
    last_name   = db.Column(db.String(80), nullable=True)
    father_name = db.Column(db.String(120), nullable=True)
    cnic        = db.Column(db.String(20), nullable=False)    # national id, unique per org
    date_of_birth = db.Column(db.Date, nullable=True)
    gender      = db.Column(db.String(10), nullable=True)     # male/female/other
    phone       = db.Column(db.String(20), nullable=True)
    email       = db.Column(db.String(255), nullable=True)
    permanent_address = db.Column(db.String(255), nullable=True)
    city        = db.Column(db.String(80), nullable=True)

    status      = db.Column(db.String(16), default="applicant", nullable=False)
    designation = db.Column(db.String(60), default="Security Guard", nullable=False)
    employment_start_date = db.Column(db.Date, nullable=True)
    employment_end_date   = db.Column(db.Date, nullable=True)

    basic_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    bank_name    = db.Column(db.String(120), nullable=True)
    bank_account_number = db.Column(db.String(40), nullable=True)

    notes      = db.Column(db.Text, nullable=True)
    is_active  = db.Column(db.Boolean, nullable=False, default=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("org_id", "guard_code", name="uq_guard_org_code"),
        db.UniqueConstraint("org_id", "cnic", name="uq_guard_org_cnic"),
        db.Index("ix_guard_org_status", "org_id", "status"),
    )

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class GuardStatusHistory(db.Model):
    __tablename__ = "guard_status_history"

    id = db.Column(db.Integer, primary_key=True)
    guard_id = db.Column(db.Integer, db.ForeignKey("guards.id", ondelete="CASCADE"), nullable=False, index=True)
    org_id = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="RESTRICT"), nullable=False)
    from_status = db.Column(db.String(16), nullable=True)
    to_status = db.Column(db.String(16), nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    transitioned_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    transitioned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    guard = db.relationship("Guard", backref=db.backref("status_history", lazy="dynamic"))
