from __future__ import annotations

from datetime import datetime

from flask import Blueprint, request, jsonify, current_app

from guardops_api.extensions import db
from guardops_api.common.auth import requires_perm, current_org_id, current_user_id
from guardops_api.common.http import json_body, text_field
from guardops_api.common.paging import page_limit, paginate, parse_date
from guardops_api.models.payroll import PayrollCycle, PayrollItem
from guardops_api.services import payroll_engine

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")

# -------- helpers ----------
def _ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status

def _fail(message, status=400, code=None, extra=None):
    payload = {"success": False, "error": {"message": message}}
    if code:
        payload["error"]["code"] = code
    if extra:
        payload["error"]["extra"] = extra
    return jsonify(payload), status

def _iso(x):
    return x.isoformat() if x else None

def _money(x):
    return float(x or 0)

def _row(c: PayrollCycle):
    return {
        "id": c.id,
        "cycle_name": c.cycle_name,
        "start_date": _iso(c.start_date),
        "end_date": _iso(c.end_date),
        "payment_date": _iso(c.payment_date),
        "status": c.status,
        "total_employees": c.total_employees or 0,
        "total_gross": _money(c.total_gross),
        "total_deductions": _money(c.total_deductions),
        "total_net": _money(c.total_net),
        "calculated_at": _iso(c.calculated_at),
        "calculated_by": c.calculated_by,
        "approved_at": _iso(c.approved_at),
        "approved_by": c.approved_by,
        "locked_at": _iso(c.locked_at),
        "created_at": _iso(c.created_at),
    }

def _item_row(it: PayrollItem):
    return {
        "id": it.id,
        "cycle_id": it.cycle_id,
        "guard_id": it.guard_id,
        "guard_code": it.guard.guard_code if it.guard else None,
        "guard_name": it.guard.full_name if it.guard else None,
        "basic_salary": _money(it.basic_salary),
        "allowances": it.allowances or {},
        "overtime_hours": _money(it.overtime_hours),
        "overtime_amount": _money(it.overtime_amount),
        "bonus": _money(it.bonus),
        "gross_salary": _money(it.gross_salary),
        "deductions": it.deductions or {},
        "loan_deduction": _money(it.loan_deduction),
        "advance_deduction": _money(it.advance_deduction),
        "tax": _money(it.tax),
        "total_deductions": _money(it.total_deductions),
        "net_salary": _money(it.net_salary),
        "days_worked": it.days_worked or 0,
        "days_absent": it.days_absent or 0,
        "payment_method": it.payment_method,
        "payment_status": it.payment_status,
        "paid_at": _iso(it.paid_at),
    }

def _get(cycle_id: int):
    return PayrollCycle.query.filter_by(id=cycle_id, org_id=current_org_id()).first()

def _ensure_status(c: PayrollCycle, allowed: tuple[str, ...], verb: str):
    if c.status not in allowed:
        return _fail(f"cannot {verb} a cycle in status '{c.status}' (allowed: {', '.join(allowed)})",
                     409, code="payroll.bad_status")
    return None

def _dates(j, c: PayrollCycle | None = None):
    start = parse_date(j.get("start_date")) if "start_date" in j else (c.start_date if c else None)
    end = parse_date(j.get("end_date")) if "end_date" in j else (c.end_date if c else None)
    if not start or not end:
        return None, None, "start_date and end_date are required (YYYY-MM-DD)"
    if end < start:
        return None, None, "end_date must be >= start_date"
    return start, end, None

# -------- cycles ----------
@bp.post("/cycles")
@requires_perm("payroll", "create")
def create_cycle():
    j = json_body()
    name = text_field(j, "cycle_name")
    if not name:
        return _fail("cycle_name is required", 422)
    start, end, err = _dates(j)
    if err:
        return _fail(err, 422)
    pay = parse_date(j.get("payment_date"))
    if j.get("payment_date") and not pay:
        return _fail("payment_date must be YYYY-MM-DD", 422)

    c = PayrollCycle(
        org_id=current_org_id(),
        cycle_name=name,
        start_date=start,
        end_date=end,
        payment_date=pay,
        status="draft",
        created_by=current_user_id(),
    )
    db.session.add(c)
    db.session.commit()
    return _ok(_row(c), 201)

@bp.get("/cycles")
@requires_perm("payroll", "view")
def list_cycles():
    q = PayrollCycle.query.filter(PayrollCycle.org_id == current_org_id())
    status = (request.args.get("status") or "").strip().lower()
    if status:
        q = q.filter(PayrollCycle.status == status)
    q = q.order_by(PayrollCycle.start_date.desc(), PayrollCycle.id.desc())
    page, size = page_limit()
    rows, meta = paginate(q, page, size)
    return _ok([_row(c) for c in rows], **meta)

@bp.get("/cycles/<int:cycle_id>")
@requires_perm("payroll", "view")
def get_cycle(cycle_id: int):
    c = _get(cycle_id)
    if not c:
        return _fail("Payroll cycle not found", 404)
    data = _row(c)
    items = PayrollItem.query.filter_by(cycle_id=c.id).order_by(PayrollItem.guard_id.asc()).all()
    data["items"] = [_item_row(it) for it in items]
    return _ok(data)

@bp.patch("/cycles/<int:cycle_id>")
@requires_perm("payroll", "edit")
def patch_cycle(cycle_id: int):
    c = _get(cycle_id)
    if not c:
        return _fail("Payroll cycle not found", 404)
    bad = _ensure_status(c, ("draft",), "edit")
    if bad:
        return bad
    j = json_body()

    if "cycle_name" in j:
        name = text_field(j, "cycle_name")
        if not name:
            return _fail("cycle_name cannot be empty", 422)
        c.cycle_name = name
    if "start_date" in j or "end_date" in j:
        start, end, err = _dates(j, c)
        if err:
            return _fail(err, 422)
        c.start_date, c.end_date = start, end
    if "payment_date" in j:
        pay = parse_date(j.get("payment_date"))
        if j.get("payment_date") and not pay:
            return _fail("payment_date must be YYYY-MM-DD", 422)
        c.payment_date = pay

    db.session.commit()
    return _ok(_row(c))

@bp.delete("/cycles/<int:cycle_id>")
@requires_perm("payroll", "delete")
def delete_cycle(cycle_id: int):
    c = _get(cycle_id)
    if not c:
        return _fail("Payroll cycle not found", 404)
    bad = _ensure_status(c, ("draft",), "delete")
    if bad:
        return bad
    db.session.delete(c)
    db.session.commit()
    return _ok({"id": cycle_id, "deleted": True})

# -------- workflow ----------
@bp.post("/cycles/<int:cycle_id>/calculate")
@requires_perm("payroll", "edit")
def calculate(cycle_id: int):
    c = _get(cycle_id)
    if not c:
        return _fail("Payroll cycle not found", 404)
    totals = payroll_engine.calculate_cycle(c, user_id=current_user_id())
    return _ok(_row(c), employees=totals["employees"])

@bp.post("/cycles/<int:cycle_id>/approve")
@requires_perm("payroll", "approve")
def approve(cycle_id: int):
    c = _get(cycle_id)
    if not c:
        return _fail("Payroll cycle not found", 404)
    bad = _ensure_status(c, ("calculated", "reviewed"), "approve")
    if bad:
        return bad
    c.status = "approved"
    c.approved_at = datetime.utcnow()
    c.approved_by = current_user_id()
    db.session.commit()
    current_app.logger.info("payroll cycle=%s approved by user=%s", c.id, c.approved_by)
    return _ok(_row(c))

@bp.post("/cycles/<int:cycle_id>/lock")
@requires_perm("payroll", "approve")
def lock(cycle_id: int):
    c = _get(cycle_id)
    if not c:
        return _fail("Payroll cycle not found", 404)
    bad = _ensure_status(c, ("approved", "paid"), "lock")
    if bad:
        return bad
    c.status = "locked"
    c.locked_at = datetime.utcnow()
    db.session.commit()
    current_app.logger.info("payroll cycle=%s locked", c.id)
    return _ok(_row(c))

# -------- items ----------
@bp.get("/cycles/<int:cycle_id>/items")
@requires_perm("payroll", "view")
def list_items(cycle_id: int):
    c = _get(cycle_id)
    if not c:
        return _fail("Payroll cycle not found", 404)
    q = PayrollItem.query.filter(PayrollItem.cycle_id == c.id)
    guard_id = request.args.get("guard_id", type=int)
    if guard_id:
        q = q.filter(PayrollItem.guard_id == guard_id)
    q = q.order_by(PayrollItem.guard_id.asc())
    page, size = page_limit(default_size=50, max_size=500)
    rows, meta = paginate(q, page, size)
    return _ok([_item_row(it) for it in rows], **meta)
