from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from studio.approvals.models import ApprovalDecision


class ReviewEventType(str, Enum):
    NEW_MESSAGE = "new_message"
    NEW_FILE = "new_file"
    APPROVAL_REQUESTED = "approval_requested"
    APPROVAL_DONE = "approval_done"


class NotificationCategory(str, Enum):
    NEW_COMMENTS = "new_comments"
    NEW_VERSIONS = "new_versions"
    APPROVALS = "approvals"


# Preference key for each event type; every ReviewEventType must appear here.
EVENT_CATEGORIES: Dict[ReviewEventType, NotificationCategory] = {
    ReviewEventType.NEW_MESSAGE: NotificationCategory.NEW_COMMENTS,
    ReviewEventType.NEW_FILE: NotificationCategory.NEW_VERSIONS,
    ReviewEventType.APPROVAL_REQUESTED: NotificationCategory.APPROVALS,
    ReviewEventType.APPROVAL_DONE: NotificationCategory.APPROVALS,
}

# Global switch inside user_preferences.notification_prefs
GLOBAL_PREFERENCE_KEY = "in_app"


class _EventBase(BaseModel):
    project_id: UUID
    deliverable_id: UUID


class NewMessageEvent(_EventBase):
    type: Literal[ReviewEventType.NEW_MESSAGE] = ReviewEventType.NEW_MESSAGE
    kind: Literal["review_comment", "review_reply", "deliverable_created"]
    version_id: Optional[UUID] = None
    thread_id: Optional[UUID] = None
    comment_id: Optional[UUID] = None
    guest: bool = False


class NewFileEvent(_EventBase):
    type: Literal[ReviewEventType.NEW_FILE] = ReviewEventType.NEW_FILE
    version_id: UUID
    version_number: int


class _ApprovalEventBase(_EventBase):
    version_id: UUID
    decision: ApprovalDecision
    note: Optional[str] = None


class ApprovalDoneEvent(_ApprovalEventBase):
    type: Literal[ReviewEventType.APPROVAL_DONE] = ReviewEventType.APPROVAL_DONE


class ApprovalRequestedEvent(_ApprovalEventBase):
    type: Literal[ReviewEventType.APPROVAL_REQUESTED] = ReviewEventType.APPROVAL_REQUESTED


ReviewEvent = Annotated[
    Union[NewMessageEvent, NewFileEvent, ApprovalDoneEvent, ApprovalRequestedEvent],
    Field(discriminator="type"),
]


def category_for(event_type: ReviewEventType) -> NotificationCategory:
    try:
        return EVENT_CATEGORIES[event_type]
    except KeyError:
        raise ValueError(f"Unhandled review event type: {event_type!r}") from None


def preferences_allow(prefs: Optional[Dict[str, Any]], category: NotificationCategory) -> bool:
    """No row or no key means allowed; only an explicit False opts out."""
    if prefs is None:
        return True
    if prefs.get(GLOBAL_PREFERENCE_KEY) is False:
        return False
    return prefs.get(category.value) is not False


class NotificationResponse(BaseModel):
    id: UUID
    type: ReviewEventType
    payload: Dict[str, Any]
    created_at: datetime
    read_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationInbox(BaseModel):
    notifications: List[NotificationResponse]
    unread: int


class MarkReadRequest(BaseModel):
    ids: Union[List[UUID], Literal["all"]] = "all"


class MarkReadResponse(BaseModel):
    updated: int
