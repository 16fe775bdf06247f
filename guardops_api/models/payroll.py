from datetime import datetime
from guardops_api.extensions import db

CYCLE_STATUSES = ("draft", "calculated", "reviewed", "approved", "paid", "locked")


class PayrollCycle(db.Model):
    __tablename__ = "payroll_cycles"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="RESTRICT"), nullable=False, index=True)
    cycle_name = db.Column(db.String(120), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    payment_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.Enum(*CYCLE_STATUSES, name="payroll_cycle_status_enum"), nullable=False, default="draft")

    total_employees = db.Column(db.Integer, nullable=False, default=0)
    total_gross = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_net = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    calculated_at = db.Column(db.DateTime, nullable=True)
    calculated_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    locked_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    items = db.relationship(
        "PayrollItem",
        back_populates="cycle",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PayrollItem(db.Model):
    __tablename__ = "payroll_items"

    id = db.Column(db.Integer, primary_key=True)
    cycle_id = db.Column(db.Integer, db.ForeignKey("payroll_cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    guard_id = db.Column(db.Integer, db.ForeignKey("guards.id", ondelete="RESTRICT"), nullable=False, index=True)
    org_id = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="RESTRICT"), nullable=False)

    # earnings
    basic_salary = db.Column(db.Numeric(14, 2), default=0)
    allowances = db.Column(db.JSON, default=dict)
    overtime_amount = db.Column(db.Numeric(14, 2), default=0)
    bonus = db.Column(db.Numeric(14, 2), default=0)
    gross_salary = db.Column(db.Numeric(14, 2), default=0)

    # deductions
    deductions = db.Column(db.JSON, default=dict)
    loan_deduction = db.Column(db.Numeric(14, 2), default=0)
    advance_deduction = db.Column(db.Numeric(14, 2), default=0)
    tax = db.Column(db.Numeric(14, 2), default=0)
    total_deductions = db.Column(db.Numeric(14, 2), default=0)

    net_salary = db.Column(db.Numeric(14, 2), default=0)

    # attendance snapshot
    days_worked = db.Column(db.Integer, default=0)
    days_absent = db.Column(db.Integer, default=0)
    overtime_hours = db.Column(db.Numeric(8, 2), default=0)

    payment_method = db.Column(db.String(30), default="bank_transfer")
    payment_status = db.Column(db.String(12), default="pending")
    paid_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    cycle = db.relationship("PayrollCycle", back_populates="items")
    guard = db.relationship("Guard", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("cycle_id", "guard_id", name="uq_payroll_item_cycle_guard"),
    )
