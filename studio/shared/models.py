import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, JSON, Uuid, Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from studio.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def enum_type(enum_cls, name: str) -> SAEnum:
    """Store a str Enum by its lowercase value rather than its member name."""
    return SAEnum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


class UUIDMixin:
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

class AuditMixin(UUIDMixin, TimestampMixin):
    """Combines UUID and Timestamps for standard entities."""
    pass
