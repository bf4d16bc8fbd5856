from enum import Enum
from sqlalchemy import Column, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from studio.database import Base
from studio.shared.models import AuditMixin, enum_type, utcnow


class ApprovalDecision(str, Enum):
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    REJECTED = "rejected"


class Approval(Base, AuditMixin):
    """Append-only decision on a single version."""
    __tablename__ = "approvals"

    deliverable_id = Column(ForeignKey("deliverables.id"), nullable=False, index=True)
    version_id = Column(ForeignKey("deliverable_versions.id"), nullable=False, index=True)
    decision = Column(enum_type(ApprovalDecision, "approval_decision"), nullable=False)
    note = Column(Text, nullable=True)
    approver_user_id = Column(ForeignKey("users.id"), nullable=False)
    approved_at = Column(DateTime, default=utcnow, nullable=False)

    deliverable = relationship("studio.deliverables.models.Deliverable")
    version = relationship("studio.deliverables.models.DeliverableVersion")
