from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from guardops_api.extensions import db
from guardops_api.common.errors import Conflict
from guardops_api.models.attendance import AttendanceRecord
from guardops_api.models.payroll import PayrollCycle, PayrollItem
from guardops_api.services import payroll_engine as pe


def _row(status, ot=None):
    return SimpleNamespace(status=status, overtime_hours=ot)


# ---------- pure calculation ----------

def test_overtime_pay_is_exact():
    assert pe.overtime_pay(Decimal("10"), Decimal("24000")) == Decimal("1000")
    assert pe.overtime_pay("7.5", "31000") == Decimal("7.5") * Decimal("31000") / Decimal("240")


def test_tally_counts_present_absent_and_sums_overtime():
    rows = [_row("present", "2"), _row("present", None), _row("absent"),
            _row("late", "1.5"), _row("leave"), _row("half_day", "0.5")]
    t = pe.tally_attendance(rows)
    assert t.days_worked == 2
    assert t.days_absent == 1
    assert t.overtime_hours == Decimal("4.0")


def test_compute_item_without_deductions():
    calc = pe.compute_item(1, "24000", pe.AttendanceTally(20, 2, Decimal("12")))
    assert calc.overtime_amount == Decimal("1200")
    assert calc.gross_salary == Decimal("25200")
    assert calc.total_deductions == 0
    assert calc.net_salary == calc.gross_salary


def test_net_below_gross_when_deducted():
    calc = pe.compute_item(1, "30000", pe.AttendanceTally(26, 0, Decimal("0")),
                           deductions={"loan": "2500", "tax": 750})
    assert calc.total_deductions == Decimal("3250")
    assert calc.net_salary == calc.gross_salary - calc.total_deductions
    assert calc.net_salary < calc.gross_salary


def test_rollup_sums_items():
    items = [SimpleNamespace(gross_salary=Decimal("100.10"), total_deductions=Decimal("5"),
                             net_salary=Decimal("95.10")),
             SimpleNamespace(gross_salary=Decimal("200.25"), total_deductions=Decimal("0"),
                             net_salary=Decimal("200.25"))]
    t = pe.rollup(items)
    assert t == {"employees": 2, "gross": Decimal("300.35"),
                 "deductions": Decimal("5"), "net": Decimal("295.35")}


# ---------- against the database ----------

def _cycle(org, status="draft"):
    c = PayrollCycle(org_id=org.id, cycle_name="Jan 2026", start_date=date(2026, 1, 1),
                     end_date=date(2026, 1, 31), status=status)
    db.session.add(c)
    db.session.commit()
    return c


def _att(org, guard, day, status="present", ot=0):
    db.session.add(AttendanceRecord(org_id=org.id, guard_id=guard.id, attendance_date=day,
                                    status=status, overtime_hours=Decimal(str(ot))))


def test_calculate_cycle_builds_items_and_totals(org, make_guard):
    g1 = make_guard("24000")
    g2 = make_guard("31000")
    make_guard("50000", status="suspended")
    make_guard("50000", is_deleted=True)
    _att(org, g1, date(2026, 1, 5), ot=4)
    _att(org, g1, date(2026, 1, 6), ot=6)
    _att(org, g1, date(2026, 1, 7), status="absent")
    _att(org, g2, date(2026, 1, 5), ot="2.5")
    _att(org, g2, date(2026, 2, 1), ot=10)  # outside the cycle
    db.session.commit()

    c = _cycle(org)
    totals = pe.calculate_cycle(c, user_id=None)

    items = {it.guard_id: it for it in PayrollItem.query.filter_by(cycle_id=c.id).all()}
    assert set(items) == {g1.id, g2.id}
    assert items[g1.id].days_worked == 2
    assert items[g1.id].days_absent == 1
    assert items[g1.id].overtime_amount == Decimal("1000.00")
    assert items[g1.id].gross_salary == Decimal("25000.00")
    assert items[g2.id].overtime_amount == Decimal("322.92")  # 2.5 * 31000 / 240 = 322.916..

    for it in items.values():
        assert it.net_salary == it.gross_salary - it.total_deductions

    db.session.refresh(c)
    assert c.status == "calculated"
    assert c.calculated_at is not None
    assert c.total_employees == 2 == totals["employees"]
    assert c.total_gross == sum(it.gross_salary for it in items.values())
    assert c.total_net == sum(it.net_salary for it in items.values())


def test_recalculation_replaces_items(org, make_guard):
    g = make_guard("24000")
    _att(org, g, date(2026, 1, 10), ot=2)
    db.session.commit()
    c = _cycle(org)

    pe.calculate_cycle(c)
    pe.calculate_cycle(c)
    assert PayrollItem.query.filter_by(cycle_id=c.id).count() == 1

    _att(org, g, date(2026, 1, 11), ot=2)
    db.session.commit()
    pe.calculate_cycle(c)
    items = PayrollItem.query.filter_by(cycle_id=c.id).all()
    assert len(items) == 1
    assert items[0].days_worked == 2
    assert items[0].overtime_amount == Decimal("400.00")


def test_cycle_with_no_active_guards(org):
    c = _cycle(org)
    totals = pe.calculate_cycle(c)
    assert totals["employees"] == 0
    assert c.total_net == 0


@pytest.mark.parametrize("status", ["reviewed", "approved", "paid", "locked"])
def test_calculate_rejects_non_calculable_status(org, status):
    c = _cycle(org, status=status)
    with pytest.raises(Conflict):
        pe.calculate_cycle(c)


def _boom(items):
    raise RuntimeError("rollup failed")


def test_failed_recalculation_keeps_previous_items_and_totals(org, make_guard, monkeypatch):
    g = make_guard("24000")
    _att(org, g, date(2026, 1, 10), ot=2)
    db.session.commit()
    c = _cycle(org)
    pe.calculate_cycle(c)
    before_items = [(it.id, it.guard_id, it.gross_salary)
                    for it in PayrollItem.query.filter_by(cycle_id=c.id).all()]
    before_cycle = (c.status, c.total_employees, c.total_gross, c.total_net, c.calculated_at)

    # new data the failed run would have picked up
    make_guard("31000")
    _att(org, g, date(2026, 1, 11), ot=8)
    db.session.commit()

    monkeypatch.setattr(pe, "rollup", _boom)
    with pytest.raises(RuntimeError):
        pe.calculate_cycle(c)

    after_items = [(it.id, it.guard_id, it.gross_salary)
                   for it in PayrollItem.query.filter_by(cycle_id=c.id).all()]
    assert after_items == before_items
    c = db.session.get(PayrollCycle, c.id)
    assert (c.status, c.total_employees, c.total_gross, c.total_net, c.calculated_at) == before_cycle


def test_failed_first_calculation_leaves_draft_empty(org, make_guard, monkeypatch):
    make_guard("24000")
    c = _cycle(org)
    monkeypatch.setattr(pe, "rollup", _boom)
    with pytest.raises(RuntimeError):
        pe.calculate_cycle(c)
    assert PayrollItem.query.filter_by(cycle_id=c.id).count() == 0
    c = db.session.get(PayrollCycle, c.id)
    assert c.status == "draft"
    assert c.calculated_at is None
