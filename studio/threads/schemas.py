from datetime import datetime
from uuid import UUID
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from studio.threads.models import ThreadStatus


class ThreadCreate(BaseModel):
    body: str
    timecode_seconds: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None


class CommentCreate(BaseModel):
    body: str


class ThreadStatusUpdate(BaseModel):
    status: ThreadStatus


class CommentResponse(BaseModel):
    id: UUID
    thread_id: UUID
    body: str
    created_by: Optional[UUID] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ThreadResponse(BaseModel):
    id: UUID
    version_id: UUID
    timecode_seconds: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None
    status: ThreadStatus
    created_by: Optional[UUID] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class ThreadWithComments(ThreadResponse):
    comments: List[CommentResponse]


class ThreadCreated(BaseModel):
    thread: ThreadResponse
    comment: CommentResponse
