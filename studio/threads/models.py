from enum import Enum
from sqlalchemy import Column, String, Text, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from studio.database import Base
from studio.shared.models import AuditMixin, enum_type


class ThreadStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class ReviewThread(Base, AuditMixin):
    """Discussion pinned to a version by timecode and/or a normalized (x, y) point."""
    __tablename__ = "review_threads"

    version_id = Column(ForeignKey("deliverable_versions.id"), nullable=False, index=True)
    timecode_seconds = Column(Float, nullable=True)
    x = Column(Float, nullable=True)
    y = Column(Float, nullable=True)
    status = Column(enum_type(ThreadStatus, "thread_status"), default=ThreadStatus.OPEN, nullable=False)
    created_by = Column(ForeignKey("users.id"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(ForeignKey("users.id"), nullable=True)

    version = relationship("studio.deliverables.models.DeliverableVersion", back_populates="threads")
    comments = relationship(
        "ReviewComment",
        back_populates="thread",
        order_by="ReviewComment.created_at",
    )


class ReviewComment(Base, AuditMixin):
    """A message in a thread. created_by is null for guests commenting through a review link."""
    __tablename__ = "review_comments"

    thread_id = Column(ForeignKey("review_threads.id"), nullable=False, index=True)
    body = Column(Text, nullable=False)
    created_by = Column(ForeignKey("users.id"), nullable=True)
    guest_name = Column(String, nullable=True)
    guest_email = Column(String, nullable=True)

    thread = relationship("ReviewThread", back_populates="comments")
