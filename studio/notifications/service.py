import logging
from typing import List, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from studio.access.service import AccessContext
from studio.audit.sink import AuditEntry, AuditSink, DatabaseAuditSink
from studio.database import side_session
from studio.notifications.models import Notification, UserPreference
from studio.notifications.schemas import ReviewEvent, category_for, preferences_allow
from studio.projects.models import ProjectMember
from studio.shared.models import utcnow

logger = logging.getLogger(__name__)

MAX_INBOX_LIMIT = 50


class NotificationService:
    """Role-filtered fan-out of review events plus the per-user inbox.

    ``notify`` runs after the business mutation has committed. Failures are
    logged and swallowed, and the audit entry is written whether or not any
    notification was.
    """

    def __init__(self, db: AsyncSession, audit: Optional[AuditSink] = None):
        self.db = db
        self.audit = audit or DatabaseAuditSink(db)

    async def recipients_for(self, actor: AccessContext, event: ReviewEvent) -> List[UUID]:
        result = await self.db.execute(
            select(ProjectMember.user_id).where(
                ProjectMember.project_id == actor.project_id,
                ProjectMember.role.in_(list(actor.opposite_roles)),
            )
        )
        candidates = [user_id for user_id in result.scalars().all() if user_id != actor.user_id]
        if not candidates:
            return []

        prefs_result = await self.db.execute(
            select(UserPreference.user_id, UserPreference.notification_prefs)
            .where(UserPreference.user_id.in_(candidates))
        )
        prefs_by_user = {row.user_id: row.notification_prefs or {} for row in prefs_result}

        category = category_for(event.type)
        # dict.fromkeys keeps order while dropping duplicates
        return [
            user_id for user_id in dict.fromkeys(candidates)
            if preferences_allow(prefs_by_user.get(user_id), category)
        ]

    async def notify(
        self,
        actor: AccessContext,
        event: ReviewEvent,
        audit: Optional[AuditEntry] = None,
    ) -> List[UUID]:
        recipients: List[UUID] = []
        try:
            recipients = await self.recipients_for(actor, event)
            if recipients:
                payload = event.model_dump(mode="json", exclude={"type"})
                async with side_session(self.db) as session:
                    session.add_all([
                        Notification(user_id=user_id, type=event.type.value, payload=payload)
                        for user_id in recipients
                    ])
                    await session.commit()
        except Exception:
            logger.exception(
                "Notification fan-out failed for %s on project %s", event.type.value, actor.project_id
            )
            recipients = []

        if audit is not None:
            await self.audit.record(audit)
        return recipients

    async def list_notifications(self, user_id: UUID, limit: int = 20) -> tuple[Sequence[Notification], int]:
        limit = max(1, min(limit, MAX_INBOX_LIMIT))
        result = await self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        notifications = result.scalars().all()

        unread_result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.read_at.is_(None),
            )
        )
        return notifications, unread_result.scalar_one()

    async def mark_read(self, user_id: UUID, ids: Union[List[UUID], str] = "all") -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
            .values(read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if ids != "all":
            if not ids:
                return 0
            stmt = stmt.where(Notification.id.in_(ids))
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount
