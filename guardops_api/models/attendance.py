from datetime import datetime
from guardops_api.extensions import db

ATTENDANCE_STATUSES = ("present", "absent", "late", "half_day", "leave", "holiday")

class AttendanceRecord(db.Model):
    __tablename__ = "attendance_records"

    id = db.Column(db.Integer, primary_key=True)
    org_id   = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="RESTRICT"), nullable=False, index=True)
    guard_id = db.Column(db.Integer, db.ForeignKey("guards.id", ondelete="CASCADE"), nullable=False, index=True)

    attendance_date = db.Column(db.Date, nullable=False)
    shift_type      = db.Column(db.String(20), nullable=True)   # day/night/...
    check_in_time   = db.Column(db.DateTime, nullable=True)
    check_out_time  = db.Column(db.DateTime, nullable=True)
    work_hours      = db.Column(db.Numeric(6, 2), nullable=True)
    overtime_hours  = db.Column(db.Numeric(6, 2), nullable=False, default=0)

    status = db.Column(db.String(12), nullable=False, default="present")

    verified    = db.Column(db.Boolean, nullable=False, default=False)
    verified_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    verified_at = db.Column(db.DateTime, nullable=True)

    remarks    = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    guard = db.relationship("Guard", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("guard_id", "attendance_date", name="uq_attendance_guard_date"),
        db.Index("ix_attendance_org_date", "org_id", "attendance_date"),
    )
