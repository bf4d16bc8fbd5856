import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio.access.service import AccessResolver
from studio.approvals.models import Approval, ApprovalDecision
from studio.approvals.schemas import ApprovalCreate
from studio.audit.models import AuditAction
from studio.audit.sink import AuditEntry
from studio.auth.models import User
from studio.core.exceptions import NotFound
from studio.core.validation import optional_text
from studio.deliverables.models import Deliverable, DeliverableStatus, DeliverableVersion
from studio.notifications.schemas import ApprovalDoneEvent, ApprovalRequestedEvent
from studio.notifications.service import NotificationService
from studio.shared.models import utcnow

logger = logging.getLogger(__name__)

# changes_requested keeps the deliverable in review
DECISION_STATUS = {
    ApprovalDecision.APPROVED: DeliverableStatus.APPROVED,
    ApprovalDecision.REJECTED: DeliverableStatus.REJECTED,
    ApprovalDecision.CHANGES_REQUESTED: DeliverableStatus.IN_REVIEW,
}


async def approvals_for(
    db: AsyncSession,
    deliverable_id: UUID,
    version_id: Optional[UUID] = None,
    limit: Optional[int] = None,
) -> List[Approval]:
    """Decision history, most recent first."""
    query = select(Approval).where(Approval.deliverable_id == deliverable_id)
    if version_id is not None:
        query = query.where(Approval.version_id == version_id)
    query = query.order_by(Approval.approved_at.desc(), Approval.created_at.desc())
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


class ApprovalService:
    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.access = AccessResolver(db)
        self.notifications = notifications or NotificationService(db)

    async def record_approval(self, deliverable_id: UUID, approval_in: ApprovalCreate, user: User) -> Approval:
        deliverable, project = await self.access.locate_deliverable(deliverable_id)
        access = await self.access.resolve(user, project)
        access.require_approve()

        result = await self.db.execute(
            select(DeliverableVersion).where(
                DeliverableVersion.id == approval_in.version_id,
                DeliverableVersion.deliverable_id == deliverable.id,
            )
        )
        version = result.scalars().first()
        if not version:
            raise NotFound("Version not found for this deliverable")

        note = optional_text(approval_in.note)
        now = utcnow()
        approval = Approval(
            deliverable_id=deliverable.id,
            version_id=version.id,
            decision=approval_in.decision,
            note=note,
            approver_user_id=user.id,
            approved_at=now,
            created_at=now,
        )
        try:
            self.db.add(approval)
            await self.db.execute(
                update(Deliverable)
                .where(Deliverable.id == deliverable.id)
                .values(status=DECISION_STATUS[approval_in.decision], updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(approval)
        await self.db.refresh(deliverable)
        logger.info(
            "Approval %s recorded on deliverable %s v%s: %s",
            approval.id, deliverable.id, version.version_number, approval_in.decision.value,
        )

        event_cls = ApprovalDoneEvent if approval_in.decision == ApprovalDecision.APPROVED else ApprovalRequestedEvent
        await self.notifications.notify(
            access,
            event_cls(
                project_id=project.id,
                deliverable_id=deliverable.id,
                version_id=version.id,
                decision=approval_in.decision,
                note=note,
            ),
            AuditEntry(
                action=AuditAction.APPROVAL_CREATED,
                entity_type="approvals",
                entity_id=approval.id,
                project_id=project.id,
                actor_id=user.id,
                payload={
                    "deliverable_id": deliverable.id,
                    "version_id": version.id,
                    "decision": approval_in.decision.value,
                    "note": note,
                },
            ),
        )
        return approval

    async def list_approvals(self, deliverable_id: UUID, user: User) -> List[Approval]:
        deliverable, project = await self.access.locate_deliverable(deliverable_id)
        access = await self.access.resolve(user, project)
        access.require_read()
        return await approvals_for(self.db, deliverable.id)
