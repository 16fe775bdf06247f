# guardops_api/services/payroll_engine.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional
import logging

from guardops_api.extensions import db
from guardops_api.common.errors import Conflict
from guardops_api.models.attendance import AttendanceRecord
from guardops_api.models.guard import Guard
from guardops_api.models.payroll import PayrollCycle, PayrollItem

log = logging.getLogger(__name__)

# monthly salary is spread over 240 working hours for the overtime rate
HOURS_PER_MONTH = Decimal("240")
CENTS = Decimal("0.01")

CALCULABLE_STATUSES = ("draft", "calculated")


def _dec(x) -> Decimal:
    if x is None or x == "":
        return Decimal("0")
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def money(x) -> Decimal:
    return _dec(x).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class AttendanceTally:
    days_worked: int = 0
    days_absent: int = 0
    overtime_hours: Decimal = Decimal("0")


@dataclass
class ItemCalc:
    guard_id: int
    basic_salary: Decimal
    overtime_hours: Decimal
    overtime_amount: Decimal
    gross_salary: Decimal
    deductions: Dict[str, Decimal] = field(default_factory=dict)
    total_deductions: Decimal = Decimal("0")
    net_salary: Decimal = Decimal("0")
    days_worked: int = 0
    days_absent: int = 0


def tally_attendance(rows: Iterable) -> AttendanceTally:
    """Count present/absent rows and sum overtime. Other statuses count toward neither."""
    t = AttendanceTally()
    for r in rows:
        status = getattr(r, "status", None)
        if status == "present":
            t.days_worked += 1
        elif status == "absent":
            t.days_absent += 1
        t.overtime_hours += _dec(getattr(r, "overtime_hours", None))
    return t


def overtime_pay(overtime_hours, basic_salary) -> Decimal:
    return _dec(overtime_hours) * _dec(basic_salary) / HOURS_PER_MONTH


def compute_item(guard_id: int, basic_salary, tally: AttendanceTally,
                 deductions: Optional[Mapping[str, object]] = None) -> ItemCalc:
    """
    gross = basic + overtime_hours * basic / 240
    net   = gross - sum(deductions)

    Amounts are exact Decimals; rounding to cents happens when persisted.
    """
    basic = _dec(basic_salary)
    ot_amt = overtime_pay(tally.overtime_hours, basic)
    gross = basic + ot_amt
    ded = {k: _dec(v) for k, v in (deductions or {}).items()}
    total_ded = sum(ded.values(), Decimal("0"))
    return ItemCalc(
        guard_id=guard_id,
        basic_salary=basic,
        overtime_hours=tally.overtime_hours,
        overtime_amount=ot_amt,
        gross_salary=gross,
        deductions=ded,
        total_deductions=total_ded,
        net_salary=gross - total_ded,
        days_worked=tally.days_worked,
        days_absent=tally.days_absent,
    )


def active_guards(org_id: int) -> List[Guard]:
    return (Guard.query
            .filter(Guard.org_id == org_id,
                    Guard.status == "active",
                    Guard.is_active.is_(True),
                    Guard.is_deleted.is_(False))
            .order_by(Guard.id.asc())
            .all())


def attendance_by_guard(org_id: int, guard_ids: List[int],
                        start: date, end: date) -> Dict[int, List[AttendanceRecord]]:
    out: Dict[int, List[AttendanceRecord]] = {gid: [] for gid in guard_ids}
    if not guard_ids:
        return out
    rows = (AttendanceRecord.query
            .filter(AttendanceRecord.org_id == org_id,
                    AttendanceRecord.guard_id.in_(guard_ids),
                    AttendanceRecord.attendance_date >= start,
                    AttendanceRecord.attendance_date <= end)
            .all())
    for r in rows:
        out.setdefault(r.guard_id, []).append(r)
    return out


def _item_from_calc(cycle: PayrollCycle, c: ItemCalc) -> PayrollItem:
    gross = money(c.gross_salary)
    total_ded = money(c.total_deductions)
    return PayrollItem(
        cycle_id=cycle.id,
        guard_id=c.guard_id,
        org_id=cycle.org_id,
        basic_salary=money(c.basic_salary),
        allowances={},
        overtime_amount=money(c.overtime_amount),
        bonus=Decimal("0.00"),
        gross_salary=gross,
        deductions={k: float(money(v)) for k, v in c.deductions.items()},
        loan_deduction=Decimal("0.00"),
        advance_deduction=Decimal("0.00"),
        tax=Decimal("0.00"),
        total_deductions=total_ded,
        net_salary=gross - total_ded,
        days_worked=c.days_worked,
        days_absent=c.days_absent,
        overtime_hours=c.overtime_hours,
        payment_method="bank_transfer",
        payment_status="pending",
    )


def calculate_cycle(cycle: PayrollCycle, user_id: Optional[int] = None) -> dict:
    """
    Rebuild the cycle's items from attendance in [start_date, end_date] and
    roll up totals. Existing items are replaced, and items + totals are
    committed together.
    """
    if cycle.status not in CALCULABLE_STATUSES:
        raise Conflict(
            f"Cycle in status '{cycle.status}' cannot be calculated "
            f"(allowed: {', '.join(CALCULABLE_STATUSES)})",
            code="payroll.bad_status",
        )

    try:
        guards = active_guards(cycle.org_id)
        by_guard = attendance_by_guard(cycle.org_id, [g.id for g in guards],
                                       cycle.start_date, cycle.end_date)

        # wipe & rebuild items
        for old in PayrollItem.query.filter_by(cycle_id=cycle.id).all():
            db.session.delete(old)
        db.session.flush()

        items: List[PayrollItem] = []
        for g in guards:
            calc = compute_item(g.id, g.basic_salary, tally_attendance(by_guard.get(g.id, [])))
            item = _item_from_calc(cycle, calc)
            db.session.add(item)
            items.append(item)

        totals = rollup(items)
        cycle.total_employees = totals["employees"]
        cycle.total_gross = totals["gross"]
        cycle.total_deductions = totals["deductions"]
        cycle.total_net = totals["net"]
        cycle.status = "calculated"
        cycle.calculated_at = datetime.utcnow()
        cycle.calculated_by = user_id

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log.info("payroll cycle=%s calculated: employees=%s gross=%s net=%s",
             cycle.id, totals["employees"], totals["gross"], totals["net"])
    return totals


def rollup(items: Iterable) -> dict:
    """Cycle totals as sums over (already quantized) item amounts."""
    totals = {"employees": 0, "gross": Decimal("0.00"),
              "deductions": Decimal("0.00"), "net": Decimal("0.00")}
    for it in items:
        totals["employees"] += 1
        totals["gross"] += _dec(it.gross_salary)
        totals["deductions"] += _dec(it.total_deductions)
        totals["net"] += _dec(it.net_salary)
    return totals
