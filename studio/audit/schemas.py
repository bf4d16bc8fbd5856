from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuditEventResponse(BaseModel):
    id: UUID
    project_id: Optional[UUID] = None
    action: str
    actor_id: Optional[UUID] = None
    entity_type: str
    entity_id: Optional[UUID] = None
    detail: Optional[Dict[str, Any]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
