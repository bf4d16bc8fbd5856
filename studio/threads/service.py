import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studio.access.service import AccessContext, AccessResolver
from studio.audit.models import AuditAction
from studio.audit.sink import AuditEntry
from studio.auth.models import User
from studio.core.exceptions import Forbidden
from studio.core.validation import require_text, validate_anchor
from studio.deliverables.models import Deliverable, DeliverableVersion
from studio.notifications.schemas import NewMessageEvent
from studio.notifications.service import NotificationService
from studio.shared.models import utcnow
from studio.threads.models import ReviewComment, ReviewThread, ThreadStatus
from studio.threads.schemas import CommentCreate, ThreadCreate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Author:
    """Who wrote a comment: a user, or a guest on a review link (user_id None)."""
    user_id: Optional[UUID]
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None

    @classmethod
    def for_user(cls, user: User) -> "Author":
        return cls(user_id=user.id)


async def threads_with_comments(
    db: AsyncSession, version_id: UUID, newest_first: bool = False
) -> List[ReviewThread]:
    order = ReviewThread.created_at.desc() if newest_first else ReviewThread.created_at.asc()
    result = await db.execute(
        select(ReviewThread)
        .where(ReviewThread.version_id == version_id)
        .options(selectinload(ReviewThread.comments))
        .order_by(order)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


class ThreadService:
    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.access = AccessResolver(db)
        self.notifications = notifications or NotificationService(db)

    async def create_thread_with_comment(
        self,
        version: DeliverableVersion,
        body: str,
        anchor: Tuple[Optional[float], Optional[float], Optional[float]],
        author: Author,
    ) -> Tuple[ReviewThread, ReviewComment]:
        """Insert a thread and its first comment in one transaction."""
        timecode_seconds, x, y = anchor
        now = utcnow()
        thread = ReviewThread(
            version_id=version.id,
            timecode_seconds=timecode_seconds,
            x=x,
            y=y,
            status=ThreadStatus.OPEN,
            created_by=author.user_id,
            created_at=now,
        )
        try:
            self.db.add(thread)
            await self.db.flush()
            comment = ReviewComment(
                thread_id=thread.id,
                body=body,
                created_by=author.user_id,
                guest_name=author.guest_name,
                guest_email=author.guest_email,
                created_at=now,
            )
            self.db.add(comment)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(thread)
        await self.db.refresh(comment)
        return thread, comment

    async def append_comment(self, thread: ReviewThread, body: str, author: Author) -> ReviewComment:
        """Add a reply. A resolved thread goes back to open, whoever replies."""
        comment = ReviewComment(
            thread_id=thread.id,
            body=body,
            created_by=author.user_id,
            guest_name=author.guest_name,
            guest_email=author.guest_email,
            created_at=utcnow(),
        )
        try:
            self.db.add(comment)
            await self.db.execute(
                update(ReviewThread)
                .where(ReviewThread.id == thread.id, ReviewThread.status == ThreadStatus.RESOLVED)
                .values(status=ThreadStatus.OPEN, resolved_at=None, resolved_by=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(thread)
        await self.db.refresh(comment)
        return comment

    async def announce_comment(
        self,
        actor: AccessContext,
        deliverable: Deliverable,
        thread: ReviewThread,
        comment: ReviewComment,
        kind: str,
        action: AuditAction,
    ) -> None:
        await self.notifications.notify(
            actor,
            NewMessageEvent(
                project_id=deliverable.project_id,
                deliverable_id=deliverable.id,
                version_id=thread.version_id,
                thread_id=thread.id,
                comment_id=comment.id,
                kind=kind,
                guest=actor.is_guest,
            ),
            AuditEntry(
                action=action,
                entity_type="review_threads" if action == AuditAction.THREAD_CREATED else "review_comments",
                entity_id=thread.id if action == AuditAction.THREAD_CREATED else comment.id,
                project_id=deliverable.project_id,
                actor_id=actor.user_id,
                payload={
                    "deliverable_id": deliverable.id,
                    "version_id": thread.version_id,
                    "thread_id": thread.id,
                    "comment_id": comment.id,
                    "timecode_seconds": thread.timecode_seconds,
                    "x": thread.x,
                    "y": thread.y,
                    "guest": actor.is_guest,
                },
            ),
        )

    async def open_thread(
        self, version_id: UUID, thread_in: ThreadCreate, user: User
    ) -> Tuple[ReviewThread, ReviewComment]:
        version, deliverable, project = await self.access.locate_version(version_id)
        access = await self.access.resolve(user, project)
        # commenting only needs read access
        access.require_read()

        body = require_text(thread_in.body, "body")
        anchor = validate_anchor(thread_in.timecode_seconds, thread_in.x, thread_in.y)

        thread, comment = await self.create_thread_with_comment(version, body, anchor, Author.for_user(user))
        logger.info("Thread %s opened on version %s", thread.id, version.id)
        await self.announce_comment(access, deliverable, thread, comment, "review_comment", AuditAction.THREAD_CREATED)
        return thread, comment

    async def add_comment(self, thread_id: UUID, comment_in: CommentCreate, user: User) -> ReviewComment:
        thread, version, deliverable, project = await self.access.locate_thread(thread_id)
        access = await self.access.resolve(user, project)
        access.require_read()

        body = require_text(comment_in.body, "body")
        comment = await self.append_comment(thread, body, Author.for_user(user))
        await self.announce_comment(access, deliverable, thread, comment, "review_reply", AuditAction.COMMENT_CREATED)
        return comment

    async def set_thread_status(self, thread_id: UUID, status: ThreadStatus, user: User) -> ReviewThread:
        thread, version, deliverable, project = await self.access.locate_thread(thread_id)
        access = await self.access.resolve(user, project)
        access.require_read()
        if not access.can_write and thread.created_by != user.id:
            raise Forbidden("Only project writers or the thread author can change its status")
        if thread.status == status:
            return thread

        resolving = status == ThreadStatus.RESOLVED
        try:
            thread.status = status
            thread.resolved_at = utcnow() if resolving else None
            thread.resolved_by = user.id if resolving else None
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(thread)

        await self.notifications.audit.record(AuditEntry(
            action=AuditAction.THREAD_RESOLVED if resolving else AuditAction.THREAD_REOPENED,
            entity_type="review_threads",
            entity_id=thread.id,
            project_id=project.id,
            actor_id=user.id,
            payload={
                "deliverable_id": deliverable.id,
                "version_id": version.id,
                "status": status.value,
            },
        ))
        return thread

    async def list_threads(self, version_id: UUID, user: User, newest_first: bool = False) -> List[ReviewThread]:
        version, deliverable, project = await self.access.locate_version(version_id)
        access = await self.access.resolve(user, project)
        access.require_read()
        return await threads_with_comments(self.db, version.id, newest_first)
