from enum import Enum
from sqlalchemy import Column, String, ForeignKey, Uuid
from studio.database import Base
from studio.shared.models import AuditMixin, JSONType


class AuditAction(str, Enum):
    DELIVERABLE_CREATED = "review.deliverable.create"
    VERSION_CREATED = "review.version.create"
    THREAD_CREATED = "review.thread.create"
    COMMENT_CREATED = "review.comment.create"
    THREAD_RESOLVED = "review.thread.resolve"
    THREAD_REOPENED = "review.thread.reopen"
    APPROVAL_CREATED = "review.approval.create"
    LINK_CREATED = "review.link.create"
    LINK_REDEEMED = "review.link.redeem"
    LINK_COMMENTED = "review.link.comment"


class AuditEvent(Base, AuditMixin):
    __tablename__ = "audit_events"

    project_id = Column(ForeignKey("projects.id"), nullable=True, index=True)
    action = Column(String, nullable=False)  # AuditAction value
    actor_id = Column(ForeignKey("users.id"), nullable=True)  # null for guests
    entity_type = Column(String, nullable=False)  # table name, e.g. "review_threads"
    entity_id = Column(Uuid(as_uuid=True), nullable=True)
    detail = Column(JSONType, nullable=True)
