from __future__ import annotations

from flask import Blueprint, request

from guardops_api.common.auth import (
    requires_perm, current_org_id, current_user, current_user_id,
)
from guardops_api.common.errors import NotFound
from guardops_api.common.http import ok, fail, json_body, text_field
from guardops_api.common.paging import page_limit, paginate
from guardops_api.models.approval import ApprovalRequest, APPROVAL_STATUSES
from guardops_api.services import approval_service

bp = Blueprint("approvals", __name__, url_prefix="/api/v1/approvals")

def _iso(x):
    return x.isoformat() if x else None

def _row(r: ApprovalRequest):
    return {
        "id": r.id,
        "request_type": r.request_type,
        "title": r.title,
        "entity_id": r.entity_id,
        "entity_data": r.entity_data,
        "status": r.status,
        "requested_by": r.requested_by,
        "requested_by_name": r.requested_by_name,
        "approved_by": r.approved_by,
        "approved_by_name": r.approved_by_name,
        "approved_at": _iso(r.approved_at),
        "rejection_reason": r.rejection_reason,
        "created_at": _iso(r.created_at),
    }

@bp.post("")
@requires_perm("guards", "create")
def create_request():
    j = json_body()
    entity_id = j.get("entity_id")
    if entity_id is not None:
        try:
            entity_id = int(entity_id)
        except (TypeError, ValueError):
            return fail("entity_id must be integer", 422)
    r = approval_service.create(
        current_org_id(),
        j.get("request_type"),
        j.get("entity_data"),
        current_user(),
        entity_id=entity_id,
        title=text_field(j, "title") or None,
    )
    return ok(_row(r), 201)

@bp.get("")
@requires_perm("dashboard", "view")
def list_requests():
    q = ApprovalRequest.query.filter(ApprovalRequest.org_id == current_org_id())
    status = (request.args.get("status") or "").strip().lower()
    if status:
        if status not in APPROVAL_STATUSES:
            return fail(f"status must be one of {', '.join(APPROVAL_STATUSES)}", 422)
        q = q.filter(ApprovalRequest.status == status)
    rtype = (request.args.get("request_type") or request.args.get("type") or "").strip().lower()
    if rtype:
        q = q.filter(ApprovalRequest.request_type == rtype)
    q = q.order_by(ApprovalRequest.created_at.desc(), ApprovalRequest.id.desc())
    page, size = page_limit()
    rows, meta = paginate(q, page, size)
    return ok([_row(r) for r in rows], **meta)

@bp.get("/pending-count")
@requires_perm("dashboard", "view")
def pending_count():
    n = ApprovalRequest.query.filter_by(org_id=current_org_id(), status="pending").count()
    return ok({"pending": n})

@bp.get("/<int:request_id>")
@requires_perm("dashboard", "view")
def get_request(request_id: int):
    r = ApprovalRequest.query.filter_by(id=request_id, org_id=current_org_id()).first()
    if not r:
        raise NotFound("Approval request not found")
    return ok(_row(r))

# approver checks (system_admin, same org, pending) live in approval_service
@bp.post("/<int:request_id>/approve")
@requires_perm("dashboard", "view")
def approve(request_id: int):
    r = approval_service.approve(request_id, current_user_id())
    return ok(_row(r))

@bp.post("/<int:request_id>/reject")
@requires_perm("dashboard", "view")
def reject(request_id: int):
    j = json_body()
    r = approval_service.reject(request_id, current_user_id(), j.get("rejection_reason") or j.get("reason"))
    return ok(_row(r))
