from datetime import datetime
from guardops_api.extensions import db

APPROVAL_STATUSES = ("pending", "approved", "rejected")

class ApprovalRequest(db.Model):
    __tablename__ = "approval_requests"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="RESTRICT"), nullable=False, index=True)
    request_type = db.Column(db.String(40), nullable=False)      # guard_enrollment / guard_update / client_creation ...
    title = db.Column(db.String(255), nullable=True)
    entity_id = db.Column(db.Integer, nullable=True)              # target row for *_update requests
    entity_data = db.Column(db.JSON, nullable=True)
    status = db.Column(db.String(12), nullable=False, default="pending")

    requested_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    requested_by_name = db.Column(db.String(255), nullable=True)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_by_name = db.Column(db.String(255), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    rejection_reason = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_approval_org_status", "org_id", "status"),
    )
