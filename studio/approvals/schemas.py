from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from studio.approvals.models import ApprovalDecision


class ApprovalCreate(BaseModel):
    version_id: UUID
    decision: ApprovalDecision
    note: Optional[str] = None


class ApprovalResponse(BaseModel):
    id: UUID
    deliverable_id: UUID
    version_id: UUID
    decision: ApprovalDecision
    note: Optional[str] = None
    approver_user_id: UUID
    approved_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
