from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation

from flask import Blueprint, request

from guardops_api.extensions import db
from guardops_api.common.auth import requires_perm, current_org_id, current_user_id
from guardops_api.common.errors import NotFound, Conflict, ValidationFailed
from guardops_api.common.http import ok, fail, json_body, text_field
from guardops_api.common.paging import page_limit, paginate, parse_date, bool_arg
from guardops_api.models.attendance import AttendanceRecord, ATTENDANCE_STATUSES
from guardops_api.models.guard import Guard
from guardops_api.services import attendance_service
from guardops_api.services.attendance_service import parse_ts

bp = Blueprint("attendance", __name__, url_prefix="/api/v1/attendance")

# ---------- helpers ----------
def _iso(x):
    return x.isoformat() if x else None

def _row(r: AttendanceRecord):
    return {
        "id": r.id,
        "guard_id": r.guard_id,
        "guard_code": r.guard.guard_code if r.guard else None,
        "guard_name": r.guard.full_name if r.guard else None,
        "attendance_date": _iso(r.attendance_date),
        "shift_type": r.shift_type,
        "check_in_time": _iso(r.check_in_time),
        "check_out_time": _iso(r.check_out_time),
        "work_hours": float(r.work_hours) if r.work_hours is not None else None,
        "overtime_hours": float(r.overtime_hours or 0),
        "status": r.status,
        "verified": r.verified,
        "verified_by": r.verified_by,
        "verified_at": _iso(r.verified_at),
        "remarks": r.remarks,
    }

def _range():
    """?from=YYYY-MM-DD&to=YYYY-MM-DD, both required."""
    raw_from = request.args.get("from") or request.args.get("start_date")
    raw_to = request.args.get("to") or request.args.get("end_date")
    start, end = parse_date(raw_from), parse_date(raw_to)
    if not start or not end:
        raise ValidationFailed("from and to are required (YYYY-MM-DD)")
    if end < start:
        raise ValidationFailed("to must be >= from")
    return start, end

# Numeric(6, 2) columns
MAX_HOURS = Decimal("9999.99")

def _hours(val, name):
    if val is None or val == "":
        return None
    if isinstance(val, bool):
        raise ValidationFailed(f"{name} must be a number")
    try:
        h = Decimal(str(val))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"{name} must be a number")
    if not h.is_finite():
        raise ValidationFailed(f"{name} must be a finite number")
    if h < 0 or h > MAX_HOURS:
        raise ValidationFailed(f"{name} must be between 0 and {MAX_HOURS}")
    return h

def _status(val):
    st = (val or "").strip().lower()
    if st not in ATTENDANCE_STATUSES:
        raise ValidationFailed(f"status must be one of {', '.join(ATTENDANCE_STATUSES)}")
    return st

def _work_hours(r: AttendanceRecord):
    if r.check_in_time and r.check_out_time:
        if r.check_out_time < r.check_in_time:
            raise ValidationFailed("check_out_time must be after check_in_time")
        secs = (r.check_out_time - r.check_in_time).total_seconds()
        hours = (Decimal(secs) / Decimal(3600)).quantize(Decimal("0.01"))
        if hours > MAX_HOURS:
            raise ValidationFailed("check_in_time and check_out_time are too far apart")
        return hours
    return r.work_hours

def _get(record_id: int) -> AttendanceRecord:
    r = AttendanceRecord.query.filter_by(id=record_id, org_id=current_org_id()).first()
    if not r:
        raise NotFound("Attendance record not found")
    return r

# ---------- routes ----------
@bp.get("")
@requires_perm("attendance", "view")
def list_attendance():
    start, end = _range()
    guard_id = request.args.get("guard_id", type=int)
    q = attendance_service.range_query(current_org_id(), start, end, guard_id)

    status = (request.args.get("status") or "").strip().lower()
    if status:
        q = q.filter(AttendanceRecord.status == _status(status))
    try:
        verified = bool_arg("verified")
    except ValueError as e:
        return fail(str(e), 422)
    if verified is not None:
        q = q.filter(AttendanceRecord.verified.is_(verified))

    q = q.order_by(AttendanceRecord.attendance_date.desc(), AttendanceRecord.id.desc())
    page, size = page_limit(default_size=50, max_size=500)
    rows, meta = paginate(q, page, size)
    return ok([_row(r) for r in rows], **meta)

@bp.get("/stats")
@requires_perm("attendance", "view")
def stats():
    start, end = _range()
    data = attendance_service.stats(current_org_id(), start, end)
    data.update({"from": start.isoformat(), "to": end.isoformat()})
    return ok(data)

@bp.get("/guards/<int:guard_id>/summary")
@requires_perm("attendance", "view")
def guard_summary(guard_id: int):
    start, end = _range()
    return ok(attendance_service.guard_summary(current_org_id(), guard_id, start, end))

@bp.get("/<int:record_id>")
@requires_perm("attendance", "view")
def get_record(record_id: int):
    return ok(_row(_get(record_id)))

@bp.post("")
@requires_perm("attendance", "create")
def create_record():
    j = json_body()
    org_id = current_org_id()
    try:
        guard_id = int(j.get("guard_id"))
    except (TypeError, ValueError):
        return fail("guard_id must be integer", 422)
    on = parse_date(j.get("attendance_date"))
    if not on:
        return fail("attendance_date is required (YYYY-MM-DD)", 422)
    if not Guard.query.filter_by(id=guard_id, org_id=org_id, is_deleted=False).first():
        return fail("guard not found", 422)
    if AttendanceRecord.query.filter_by(guard_id=guard_id, attendance_date=on).first():
        raise Conflict("attendance already recorded for this guard and date",
                       code="attendance.duplicate")

    r = AttendanceRecord(
        org_id=org_id,
        guard_id=guard_id,
        attendance_date=on,
        shift_type=text_field(j, "shift_type") or None,
        check_in_time=parse_ts(j.get("check_in_time")),
        check_out_time=parse_ts(j.get("check_out_time")),
        overtime_hours=_hours(j.get("overtime_hours"), "overtime_hours") or Decimal("0"),
        status=_status(j.get("status") or "present"),
        verified=False,
        remarks=text_field(j, "remarks") or None,
        created_by=current_user_id(),
    )
    r.work_hours = _hours(j.get("work_hours"), "work_hours")
    r.work_hours = _work_hours(r)
    db.session.add(r)
    db.session.commit()
    return ok(_row(r), 201)

@bp.patch("/<int:record_id>")
@requires_perm("attendance", "edit")
def patch_record(record_id: int):
    r = _get(record_id)
    j = json_body()
    if "check_in_time" in j:
        r.check_in_time = parse_ts(j.get("check_in_time"))
    if "check_out_time" in j:
        r.check_out_time = parse_ts(j.get("check_out_time"))
    if "work_hours" in j:
        r.work_hours = _hours(j.get("work_hours"), "work_hours")
    if "overtime_hours" in j:
        r.overtime_hours = _hours(j.get("overtime_hours"), "overtime_hours") or Decimal("0")
    if "status" in j:
        r.status = _status(j.get("status"))
    if "shift_type" in j:
        r.shift_type = text_field(j, "shift_type") or None
    if "remarks" in j:
        r.remarks = text_field(j, "remarks") or None
    if "check_in_time" in j or "check_out_time" in j:
        r.work_hours = _work_hours(r)
    db.session.commit()
    return ok(_row(r))

@bp.post("/<int:record_id>/verify")
@requires_perm("attendance", "approve")
def verify_record(record_id: int):
    r = _get(record_id)
    r.verified = True
    r.verified_by = current_user_id()
    r.verified_at = datetime.utcnow()
    db.session.commit()
    return ok(_row(r))

@bp.post("/bulk")
@requires_perm("attendance", "create")
def bulk_mark():
    j = json_body()
    on = parse_date(j.get("date") or j.get("attendance_date"))
    if not on:
        return fail("date is required (YYYY-MM-DD)", 422)
    entries = j.get("attendance")
    if not isinstance(entries, list):
        return fail("attendance must be a list", 422)
    if any(not isinstance(e, dict) for e in entries):
        return fail("attendance entries must be objects", 422)
    rows = attendance_service.mark_bulk(current_org_id(), on, entries, current_user_id())
    return ok([_row(r) for r in rows], count=len(rows))
