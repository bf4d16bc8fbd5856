from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from studio.database import Base
from studio.shared.models import AuditMixin


class ReviewLink(Base, AuditMixin):
    """Share token for one deliverable. Only the SHA-256 of the token is stored."""
    __tablename__ = "review_links"

    deliverable_id = Column(ForeignKey("deliverables.id"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=True)
    expires_at = Column(DateTime, nullable=False)
    require_auth = Column(Boolean, default=False, nullable=False)
    single_use = Column(Boolean, default=False, nullable=False)
    allow_guest_comments = Column(Boolean, default=True, nullable=False)
    use_count = Column(Integer, default=0, nullable=False)
    used_at = Column(DateTime, nullable=True)
    used_by_user_id = Column(ForeignKey("users.id"), nullable=True)
    created_by = Column(ForeignKey("users.id"), nullable=False)

    deliverable = relationship("studio.deliverables.models.Deliverable")

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None
