from __future__ import annotations

from flask import Blueprint, request

from guardops_api.extensions import db
from guardops_api.common.auth import requires_perm, current_org_id, current_user_id
from guardops_api.common.errors import NotFound
from guardops_api.common.http import ok, fail, json_body
from guardops_api.common.paging import page_limit, paginate, apply_q_search, bool_arg
from guardops_api.models.guard import Guard, GuardStatusHistory, GUARD_STATUSES
from guardops_api.services import guard_service

bp = Blueprint("guards", __name__, url_prefix="/api/v1/guards")

# ---------- helpers ----------
def _iso(d):
    return d.isoformat() if d else None

def _row(g: Guard):
    return {
        "id": g.id,
        "guard_code": g.guard_code,
        "first_name": g.first_name,
        "last_name": g.last_name,
        "full_name": g.full_name,
        "father_name": g.father_name,
        "cnic": g.cnic,
        "date_of_birth": _iso(g.date_of_birth),
        "gender": g.gender,
        "phone": g.phone,
        "email": g.email,
        "permanent_address": g.permanent_address,
        "city": g.city,
        "status": g.status,
        "designation": g.designation,
        "employment_start_date": _iso(g.employment_start_date),
        "employment_end_date": _iso(g.employment_end_date),
        "basic_salary": float(g.basic_salary or 0),
        "bank_name": g.bank_name,
        "bank_account_number": g.bank_account_number,
        "notes": g.notes,
        "is_active": g.is_active,
        "created_at": _iso(g.created_at),
        "updated_at": _iso(g.updated_at),
    }

def _history_row(h):
    return {
        "id": h.id,
        "from_status": h.from_status,
        "to_status": h.to_status,
        "reason": h.reason,
        "transitioned_by": h.transitioned_by,
        "transitioned_at": _iso(h.transitioned_at),
    }

def _get(guard_id: int) -> Guard:
    g = Guard.query.filter_by(id=guard_id, org_id=current_org_id(), is_deleted=False).first()
    if not g:
        raise NotFound("Guard not found")
    return g

# ---------- routes ----------
@bp.get("")
@requires_perm("guards", "view")
def list_guards():
    q = Guard.query.filter(Guard.org_id == current_org_id(), Guard.is_deleted.is_(False))

    status = (request.args.get("status") or "").strip().lower()
    if status:
        if status not in GUARD_STATUSES:
            return fail(f"status must be one of {', '.join(GUARD_STATUSES)}", 422)
        q = q.filter(Guard.status == status)
    try:
        active = bool_arg("is_active")
    except ValueError as e:
        return fail(str(e), 422)
    if active is not None:
        q = q.filter(Guard.is_active.is_(active))

    q = apply_q_search(q, Guard.first_name, Guard.last_name, Guard.guard_code, Guard.cnic, Guard.phone)
    q = q.order_by(Guard.guard_code.asc())
    page, size = page_limit()
    rows, meta = paginate(q, page, size)
    return ok([_row(g) for g in rows], **meta)

@bp.get("/counts")
@requires_perm("guards", "view")
def counts():
    return ok(guard_service.counts_by_status(current_org_id()))

@bp.get("/<int:guard_id>")
@requires_perm("guards", "view")
def get_guard(guard_id: int):
    g = _get(guard_id)
    data = _row(g)
    data["status_history"] = [_history_row(h) for h in
                              g.status_history.order_by(GuardStatusHistory.transitioned_at.desc(),
                                                         GuardStatusHistory.id.desc()).all()]
    return ok(data)

@bp.post("")
@requires_perm("guards", "create")
def create_guard():
    g = guard_service.build_guard(current_org_id(), json_body(), created_by=current_user_id())
    db.session.add(g)
    db.session.commit()
    return ok(_row(g), 201)

@bp.patch("/<int:guard_id>")
@requires_perm("guards", "edit")
def patch_guard(guard_id: int):
    g = _get(guard_id)
    j = json_body()
    if "status" in j:
        return fail("use POST /guards/<id>/status to change status", 422)
    guard_service.apply_fields(g, j)
    db.session.commit()
    return ok(_row(g))

@bp.post("/<int:guard_id>/status")
@requires_perm("guards", "edit")
def change_status(guard_id: int):
    g = _get(guard_id)
    j = json_body()
    h = guard_service.change_status(g, j.get("status"), j.get("reason"), current_user_id())
    db.session.commit()
    data = _row(g)
    data["transition"] = _history_row(h)
    return ok(data)

@bp.delete("/<int:guard_id>")
@requires_perm("guards", "delete")
def delete_guard(guard_id: int):
    g = _get(guard_id)
    guard_service.soft_delete(g)
    db.session.commit()
    return ok({"id": g.id, "deleted": True})
