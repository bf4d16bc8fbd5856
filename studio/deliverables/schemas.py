from datetime import datetime
from uuid import UUID
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from studio.access.schemas import AccessResponse
from studio.approvals.schemas import ApprovalResponse
from studio.deliverables.models import DeliverableStatus


class FileReference(BaseModel):
    url: str
    type: Optional[str] = None
    duration: Optional[float] = None


class DeliverableCreate(BaseModel):
    title: str
    description: Optional[str] = None
    # Supplying a file publishes version 1 straight away
    file: Optional[FileReference] = None
    notes: Optional[str] = None


class VersionCreate(BaseModel):
    file: FileReference
    notes: Optional[str] = None


class DeliverableResponse(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    description: Optional[str] = None
    status: DeliverableStatus
    latest_version_number: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VersionResponse(BaseModel):
    id: UUID
    deliverable_id: UUID
    version_number: int
    file_url: Optional[str] = None
    file_type: Optional[str] = None
    duration: Optional[float] = None
    notes: Optional[str] = None
    created_by: Optional[UUID] = None
    published_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DeliverableCreated(BaseModel):
    deliverable: DeliverableResponse
    version: Optional[VersionResponse] = None


class DeliverableDetail(BaseModel):
    deliverable: DeliverableResponse
    versions: List[VersionResponse]
    selected_version_id: Optional[UUID] = None
    approvals: List[ApprovalResponse]
    access: AccessResponse
