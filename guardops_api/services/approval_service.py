# guardops_api/services/approval_service.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging

from guardops_api.extensions import db
from guardops_api.common.errors import APIError, Conflict, NotFound, ValidationFailed
from guardops_api.models.approval import ApprovalRequest
from guardops_api.models.guard import Guard
from guardops_api.models.user import User
from guardops_api.permissions import SUPERUSER_ROLE
from guardops_api.services import guard_service

log = logging.getLogger(__name__)


def _load_for_decision(request_id: int, approver_id: int) -> tuple[ApprovalRequest, User]:
    approver = db.session.get(User, approver_id) if approver_id else None
    if approver is None or not approver.is_active:
        raise APIError("approval.invalid_approver", "Unauthorized: Invalid approver", 403)
    if approver.role != SUPERUSER_ROLE:
        log.warning("approval attempt by non-admin user=%s role=%s", approver.id, approver.role)
        raise APIError("approval.admin_required", "Unauthorized: Admin access required", 403)

    req = db.session.get(ApprovalRequest, request_id)
    if req is None:
        raise NotFound("Approval request not found")
    if req.org_id != approver.org_id:
        log.warning("cross-org approval attempt user=%s request_org=%s approver_org=%s",
                    approver.id, req.org_id, approver.org_id)
        raise APIError("approval.cross_org", "Unauthorized: Cross-organization access denied", 403)
    if req.status != "pending":
        raise Conflict("Request is not pending", code="approval.not_pending")
    return req, approver


# ---------- side effects per request type ----------

def _apply_guard_enrollment(req: ApprovalRequest, approver: User) -> None:
    data = dict(req.entity_data or {})
    data["status"] = "approved"
    g = guard_service.build_guard(req.org_id, data, created_by=req.requested_by)
    db.session.add(g)
    db.session.flush()
    req.entity_id = g.id


def _apply_guard_update(req: ApprovalRequest, approver: User) -> None:
    g = Guard.query.filter_by(id=req.entity_id, org_id=req.org_id, is_deleted=False).first()
    if g is None:
        raise ValidationFailed("target guard not found")
    guard_service.apply_fields(g, dict(req.entity_data or {}))


SIDE_EFFECTS: Dict[str, Callable[[ApprovalRequest, User], None]] = {
    "guard_enrollment": _apply_guard_enrollment,
    "guard_update": _apply_guard_update,
}


def approve(request_id: int, approver_id: int, approver_name: Optional[str] = None) -> ApprovalRequest:
    """
    Mark a pending request approved and apply its side effect (if any) in the
    same transaction. A failing side effect leaves the request pending.
    """
    req, approver = _load_for_decision(request_id, approver_id)
    rtype = req.request_type
    try:
        req.status = "approved"
        req.approved_by = approver.id
        req.approved_by_name = approver_name or approver.full_name or approver.email
        req.approved_at = datetime.utcnow()

        effect = SIDE_EFFECTS.get(req.request_type)
        if effect is not None:
            effect(req, approver)
        db.session.commit()
    except ValidationFailed:
        db.session.rollback()
        raise
    except Exception as e:
        db.session.rollback()
        log.exception("approval side effect failed request=%s type=%s", request_id, rtype)
        raise ValidationFailed(
            f"Failed to apply {rtype} after approval",
            code="approval.side_effect_failed",
            payload=str(e),
        )
    return req


def reject(request_id: int, approver_id: int, reason: str,
           approver_name: Optional[str] = None) -> ApprovalRequest:
    req, approver = _load_for_decision(request_id, approver_id)
    reason = reason.strip() if isinstance(reason, str) else ""
    if not reason:
        raise ValidationFailed("rejection_reason is required")
    req.status = "rejected"
    req.approved_by = approver.id
    req.approved_by_name = approver_name or approver.full_name or approver.email
    req.approved_at = datetime.utcnow()
    req.rejection_reason = reason
    db.session.commit()
    return req


def create(org_id: int, request_type: str, entity_data: Optional[Dict[str, Any]],
           requested_by: Optional[User], entity_id: Optional[int] = None,
           title: Optional[str] = None) -> ApprovalRequest:
    request_type = request_type.strip().lower() if isinstance(request_type, str) else ""
    if not request_type:
        raise ValidationFailed("request_type is required")
    if entity_data is not None and not isinstance(entity_data, dict):
        raise ValidationFailed("entity_data must be an object")
    if request_type == "guard_enrollment":
        guard_service.validate_new(org_id, entity_data or {})
    if request_type.endswith("_update") and not entity_id:
        raise ValidationFailed("entity_id is required for update requests")

    req = ApprovalRequest(
        org_id=org_id,
        request_type=request_type,
        title=title,
        entity_id=entity_id,
        entity_data=entity_data,
        status="pending",
        requested_by=requested_by.id if requested_by else None,
        requested_by_name=(requested_by.full_name or requested_by.email) if requested_by else None,
    )
    db.session.add(req)
    db.session.commit()
    return req
