# guardops_api/services/guard_service.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
import logging
import re

from sqlalchemy import func

from guardops_api.extensions import db
from guardops_api.common.errors import Conflict, ValidationFailed
from guardops_api.common.http import text_field
from guardops_api.common.paging import parse_date
from guardops_api.models.guard import Guard, GuardStatusHistory, GUARD_STATUSES

log = logging.getLogger(__name__)

CODE_PREFIX = "GRD-"
_CODE_RE = re.compile(r"^GRD-(\d+)$")

# plain string columns a client may set directly
_TEXT_FIELDS = (
    "first_name", "last_name", "father_name", "cnic", "gender", "phone", "email",
    "permanent_address", "city", "designation", "bank_name", "bank_account_number", "notes",
)
_DATE_FIELDS = ("date_of_birth", "employment_start_date", "employment_end_date")
_GENDERS = ("male", "female", "other")


def next_guard_code(org_id: int) -> str:
    """GRD-00001, GRD-00002, ... per org; continues after the highest existing code."""
    codes = db.session.query(Guard.guard_code).filter(Guard.org_id == org_id).all()
    top = 0
    for (code,) in codes:
        m = _CODE_RE.match(code or "")
        if m:
            top = max(top, int(m.group(1)))
    return f"{CODE_PREFIX}{top + 1:05d}"


# Numeric(14, 2) column
MAX_SALARY = Decimal("999999999999.99")


def _salary(val) -> Decimal:
    if isinstance(val, bool):
        raise ValidationFailed("basic_salary must be a number")
    try:
        d = Decimal(str(val))
    except (InvalidOperation, ValueError):
        raise ValidationFailed("basic_salary must be a number")
    if not d.is_finite():
        raise ValidationFailed("basic_salary must be a finite number")
    if d < 0 or d > MAX_SALARY:
        raise ValidationFailed(f"basic_salary must be between 0 and {MAX_SALARY}")
    return d


def validate_new(org_id: int, data: Dict[str, Any]) -> None:
    errors = []
    if not text_field(data, "first_name"):
        errors.append("first_name is required")
    cnic = text_field(data, "cnic")
    if not cnic:
        errors.append("cnic is required")
    if errors:
        raise ValidationFailed("; ".join(errors), payload={"errors": errors})
    _check_cnic_free(org_id, cnic)


def _check_cnic_free(org_id: int, cnic: str, guard_id: Optional[int] = None) -> None:
    # soft-deleted guards keep their cnic (uq_guard_org_cnic)
    q = Guard.query.filter_by(org_id=org_id, cnic=cnic)
    if guard_id is not None:
        q = q.filter(Guard.id != guard_id)
    with db.session.no_autoflush:
        other = q.first()
    if other is not None:
        msg = f"guard with cnic '{cnic}' already exists"
        if other.is_deleted:
            msg += f" (deleted guard {other.guard_code})"
        raise Conflict(msg, code="guard.duplicate_cnic")


def apply_fields(g: Guard, data: Dict[str, Any]) -> Guard:
    """Copy client-settable fields onto ``g``; status goes through change_status."""
    for f in _TEXT_FIELDS:
        if f in data:
            setattr(g, f, text_field(data, f) or None)
    if "first_name" in data and not g.first_name:
        raise ValidationFailed("first_name cannot be empty")
    if "cnic" in data and not g.cnic:
        raise ValidationFailed("cnic cannot be empty")
    if "cnic" in data and g.id is not None:
        _check_cnic_free(g.org_id, g.cnic, g.id)
    if g.gender:
        g.gender = g.gender.lower()
        if g.gender not in _GENDERS:
            raise ValidationFailed(f"gender must be one of {', '.join(_GENDERS)}")

    for f in _DATE_FIELDS:
        if f in data:
            raw = data.get(f)
            d = parse_date(raw)
            if raw and d is None:
                raise ValidationFailed(f"{f} must be YYYY-MM-DD")
            setattr(g, f, d)
    if g.employment_start_date and g.employment_end_date \
            and g.employment_end_date < g.employment_start_date:
        raise ValidationFailed("employment_end_date must be >= employment_start_date")

    if "basic_salary" in data:
        g.basic_salary = _salary(data.get("basic_salary") or 0)
    if "is_active" in data:
        g.is_active = bool(data.get("is_active"))
    return g


def build_guard(org_id: int, data: Dict[str, Any], created_by: Optional[int] = None) -> Guard:
    validate_new(org_id, data)
    status = (data.get("status") or "applicant").strip().lower()
    if status not in GUARD_STATUSES:
        raise ValidationFailed(f"status must be one of {', '.join(GUARD_STATUSES)}")
    g = Guard(
        org_id=org_id,
        guard_code=next_guard_code(org_id),
        status=status,
        designation="Security Guard",
        basic_salary=Decimal("0"),
        is_active=True,
        is_deleted=False,
        created_by=created_by,
    )
    apply_fields(g, data)
    return g


def change_status(g: Guard, to_status: str, reason: Optional[str] = None,
                  user_id: Optional[int] = None) -> GuardStatusHistory:
    to_status = (to_status or "").strip().lower()
    if to_status not in GUARD_STATUSES:
        raise ValidationFailed(f"status must be one of {', '.join(GUARD_STATUSES)}")
    if to_status == g.status:
        raise Conflict(f"guard is already '{to_status}'", code="guard.same_status")
    h = GuardStatusHistory(
        guard_id=g.id,
        org_id=g.org_id,
        from_status=g.status,
        to_status=to_status,
        reason=(reason or "").strip() or None,
        transitioned_by=user_id,
    )
    g.status = to_status
    if to_status in ("terminated", "archived"):
        g.is_active = False
        if not g.employment_end_date:
            g.employment_end_date = datetime.utcnow().date()
    elif to_status == "active":
        g.is_active = True
        if not g.employment_start_date:
            g.employment_start_date = datetime.utcnow().date()
    db.session.add(h)
    log.info("guard=%s status %s -> %s by user=%s", g.id, h.from_status, to_status, user_id)
    return h


def soft_delete(g: Guard) -> None:
    g.is_deleted = True
    g.is_active = False
    g.deleted_at = datetime.utcnow()


def counts_by_status(org_id: int) -> Dict[str, int]:
    rows = (db.session.query(Guard.status, func.count(Guard.id))
            .filter(Guard.org_id == org_id, Guard.is_deleted.is_(False))
            .group_by(Guard.status)
            .all())
    out = {s: 0 for s in GUARD_STATUSES}
    for status, n in rows:
        out[status] = int(n)
    out["total"] = sum(out[s] for s in GUARD_STATUSES)
    return out
