from enum import Enum
from sqlalchemy import Column, String, Text, Integer, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from studio.database import Base
from studio.shared.models import AuditMixin, enum_type, utcnow


class DeliverableStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class Deliverable(Base, AuditMixin):
    """One unit of creative output tracked through review."""
    __tablename__ = "deliverables"

    project_id = Column(ForeignKey("projects.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(enum_type(DeliverableStatus, "deliverable_status"), default=DeliverableStatus.PENDING, nullable=False)
    # Highest version_number handed out; only ever bumped in SQL
    latest_version_number = Column(Integer, default=0, nullable=False)

    project = relationship("studio.projects.models.Project", back_populates="deliverables")
    versions = relationship(
        "DeliverableVersion",
        back_populates="deliverable",
        order_by="DeliverableVersion.version_number.desc()",
    )


class DeliverableVersion(Base, AuditMixin):
    """Immutable, numbered snapshot of a deliverable's file output."""
    __tablename__ = "deliverable_versions"
    __table_args__ = (
        UniqueConstraint("deliverable_id", "version_number", name="uq_deliverable_versions_number"),
    )

    deliverable_id = Column(ForeignKey("deliverables.id"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    file_url = Column(String, nullable=True)
    file_type = Column(String, nullable=True)
    duration = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(ForeignKey("users.id"), nullable=True)
    published_at = Column(DateTime, default=utcnow, nullable=False)

    deliverable = relationship("Deliverable", back_populates="versions")
    threads = relationship("studio.threads.models.ReviewThread", back_populates="version")
