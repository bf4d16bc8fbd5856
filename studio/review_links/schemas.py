from datetime import datetime
from uuid import UUID
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr

from studio.access.schemas import AccessResponse
from studio.approvals.schemas import ApprovalResponse
from studio.deliverables.schemas import DeliverableResponse, VersionResponse
from studio.threads.schemas import CommentResponse, ThreadWithComments


class ReviewLinkCreate(BaseModel):
    expires_in_days: Optional[int] = None
    password: Optional[str] = None
    single_use: bool = False
    require_auth: bool = False
    allow_guest_comments: bool = True


class ReviewLinkResponse(BaseModel):
    """Link metadata. Never carries the token or any hash."""
    id: UUID
    deliverable_id: UUID
    expires_at: datetime
    require_auth: bool
    single_use: bool
    allow_guest_comments: bool
    has_password: bool
    use_count: int
    used_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewLinkIssued(BaseModel):
    link: ReviewLinkResponse
    # Shown once; only its SHA-256 is kept
    token: str
    share_url: str


class RedeemRequest(BaseModel):
    password: Optional[str] = None
    version_id: Optional[UUID] = None


class LinkInfo(BaseModel):
    id: UUID
    expires_at: datetime
    require_auth: bool
    allow_guest_comments: bool
    has_password: bool
    single_use: bool

    model_config = ConfigDict(from_attributes=True)


class RedeemResponse(BaseModel):
    deliverable: DeliverableResponse
    link: LinkInfo
    versions: List[VersionResponse]
    selected_version_id: Optional[UUID] = None
    threads: List[ThreadWithComments]
    approvals: List[ApprovalResponse]
    allow_guest_comments: bool
    access: Optional[AccessResponse] = None


class LinkCommentCreate(BaseModel):
    body: str
    password: Optional[str] = None
    # reply to a thread, or start one on a version
    thread_id: Optional[UUID] = None
    version_id: Optional[UUID] = None
    timecode_seconds: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None
    name: Optional[str] = None
    email: Optional[EmailStr] = None


class LinkCommentCreated(BaseModel):
    thread_id: UUID
    comment: CommentResponse
