from sqlalchemy import Column, String, DateTime, ForeignKey
from studio.database import Base
from studio.shared.models import AuditMixin, JSONType


class Notification(Base, AuditMixin):
    __tablename__ = "notifications"

    user_id = Column(ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False)  # ReviewEventType value
    payload = Column(JSONType, nullable=False, default=dict)
    read_at = Column(DateTime, nullable=True)


class UserPreference(Base, AuditMixin):
    """Per-user notification switches.

    ``notification_prefs`` keys: ``in_app`` (global switch), ``new_comments``,
    ``new_versions``, ``approvals``. A missing key or row means enabled.
    """
    __tablename__ = "user_preferences"

    user_id = Column(ForeignKey("users.id"), unique=True, nullable=False)
    notification_prefs = Column(JSONType, nullable=False, default=dict)
