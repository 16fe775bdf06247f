# guardops_api/services/attendance_service.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import logging

from guardops_api.extensions import db
from guardops_api.common.errors import NotFound, ValidationFailed
from guardops_api.models.attendance import AttendanceRecord, ATTENDANCE_STATUSES
from guardops_api.models.guard import Guard

log = logging.getLogger(__name__)

BULK_STATUSES = ("present", "absent", "late", "half_day")


def attendance_rate(present: int, late: int, total: int) -> float:
    """(present + late) / total as a percentage, 1 decimal. 0.0 for an empty range."""
    if not total:
        return 0.0
    return round((present + late) * 100.0 / total, 1)


def summarize(rows: Iterable[AttendanceRecord]) -> Dict[str, Any]:
    counts = {s: 0 for s in ATTENDANCE_STATUSES}
    work = Decimal("0")
    ot = Decimal("0")
    total = 0
    for r in rows:
        total += 1
        if r.status in counts:
            counts[r.status] += 1
        work += Decimal(str(r.work_hours or 0))
        ot += Decimal(str(r.overtime_hours or 0))
    return {
        "total_records": total,
        **counts,
        "attendance_rate": attendance_rate(counts["present"], counts["late"], total),
        "total_work_hours": float(work),
        "total_overtime_hours": float(ot),
    }


def range_query(org_id: int, start: date, end: date, guard_id: Optional[int] = None):
    q = (AttendanceRecord.query
         .filter(AttendanceRecord.org_id == org_id,
                 AttendanceRecord.attendance_date >= start,
                 AttendanceRecord.attendance_date <= end))
    if guard_id is not None:
        q = q.filter(AttendanceRecord.guard_id == guard_id)
    return q


def stats(org_id: int, start: date, end: date) -> Dict[str, Any]:
    return summarize(range_query(org_id, start, end).all())


def guard_summary(org_id: int, guard_id: int, start: date, end: date) -> Dict[str, Any]:
    g = Guard.query.filter_by(id=guard_id, org_id=org_id, is_deleted=False).first()
    if not g:
        raise NotFound("guard not found")
    s = summarize(range_query(org_id, start, end, guard_id).all())
    return {
        "guard_id": g.id,
        "guard_code": g.guard_code,
        "guard_name": g.full_name,
        "total_days": s["total_records"],
        "present_days": s["present"],
        "absent_days": s["absent"],
        "late_days": s["late"],
        "leaves": s["leave"],
        "attendance_rate": s["attendance_rate"],
        "total_hours": s["total_work_hours"],
        "overtime_hours": s["total_overtime_hours"],
    }


def mark_bulk(org_id: int, on_date: date, entries: List[Dict[str, Any]],
              user_id: Optional[int] = None) -> List[AttendanceRecord]:
    """
    Upsert one record per (guard_id, on_date). Re-marking a guard overwrites
    status/check-in/remarks of the existing row.
    """
    if not entries:
        raise ValidationFailed("attendance list is empty")

    guard_ids = set()
    for i, e in enumerate(entries):
        try:
            gid = int(e.get("guard_id"))
        except (TypeError, ValueError):
            raise ValidationFailed(f"attendance[{i}].guard_id must be integer")
        st = (e.get("status") or "").strip().lower()
        if st not in BULK_STATUSES:
            raise ValidationFailed(f"attendance[{i}].status must be one of {', '.join(BULK_STATUSES)}")
        guard_ids.add(gid)

    known = {g.id for g in Guard.query.filter(Guard.org_id == org_id,
                                              Guard.id.in_(guard_ids),
                                              Guard.is_deleted.is_(False)).all()}
    missing = sorted(guard_ids - known)
    if missing:
        raise ValidationFailed("unknown guard ids", payload={"guard_ids": missing})

    existing = {r.guard_id: r for r in AttendanceRecord.query.filter(
        AttendanceRecord.guard_id.in_(guard_ids),
        AttendanceRecord.attendance_date == on_date).all()}

    out: List[AttendanceRecord] = []
    try:
        for e in entries:
            gid = int(e["guard_id"])
            st = e["status"].strip().lower()
            check_in = parse_ts(e.get("check_in_time"))
            rec = existing.get(gid)
            if rec is None:
                rec = AttendanceRecord(
                    org_id=org_id,
                    guard_id=gid,
                    attendance_date=on_date,
                    overtime_hours=0,
                    verified=False,
                    created_by=user_id,
                )
                db.session.add(rec)
                existing[gid] = rec
            rec.status = st
            rec.check_in_time = check_in
            rec.shift_type = e.get("shift_type") or rec.shift_type
            rec.remarks = (e.get("remarks") or "").strip() or None
            out.append(rec)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log.info("bulk attendance org=%s date=%s marked=%d", org_id, on_date.isoformat(), len(out))
    return out


_DT_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
)


def parse_ts(s) -> Optional[datetime]:
    if not s:
        return None
    if isinstance(s, datetime):
        return s
    raw = str(s).strip()
    for fmt in _DT_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationFailed(f"invalid timestamp '{raw}'")


