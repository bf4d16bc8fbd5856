import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.access.service import AccessContext, AccessResolver
from studio.approvals.service import approvals_for
from studio.audit.models import AuditAction
from studio.audit.sink import AuditEntry
from studio.auth.models import User
from studio.core.exceptions import Conflict, NotFound
from studio.core.validation import optional_text, require_text, validate_duration
from studio.deliverables.models import Deliverable, DeliverableStatus, DeliverableVersion
from studio.deliverables.schemas import DeliverableCreate, FileReference, VersionCreate
from studio.notifications.schemas import NewFileEvent, NewMessageEvent
from studio.notifications.service import NotificationService
from studio.shared.models import utcnow

logger = logging.getLogger(__name__)

# One transparent retry on a version-number collision, then Conflict
VERSION_PUBLISH_ATTEMPTS = 2


class DeliverableService:
    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.access = AccessResolver(db)
        self.notifications = notifications or NotificationService(db)

    def _version_from_file(
        self,
        deliverable_id: UUID,
        version_number: int,
        file: FileReference,
        notes: Optional[str],
        user_id: UUID,
    ) -> DeliverableVersion:
        now = utcnow()
        return DeliverableVersion(
            deliverable_id=deliverable_id,
            version_number=version_number,
            file_url=require_text(file.url, "file.url"),
            file_type=optional_text(file.type),
            duration=validate_duration(file.duration),
            notes=optional_text(notes),
            created_by=user_id,
            published_at=now,
            created_at=now,
        )

    async def create_deliverable(
        self, project_id: UUID, deliverable_in: DeliverableCreate, user: User
    ) -> Tuple[Deliverable, Optional[DeliverableVersion]]:
        project, access = await self.access.for_project(user, project_id)
        access.require_write("create deliverables")

        title = require_text(deliverable_in.title, "title")
        has_file = deliverable_in.file is not None and bool((deliverable_in.file.url or "").strip())

        deliverable = Deliverable(
            project_id=project.id,
            title=title,
            description=optional_text(deliverable_in.description),
            status=DeliverableStatus.IN_REVIEW if has_file else DeliverableStatus.PENDING,
            latest_version_number=1 if has_file else 0,
        )
        version = None
        try:
            self.db.add(deliverable)
            await self.db.flush()  # Get the ID before creating version 1
            if has_file:
                version = self._version_from_file(deliverable.id, 1, deliverable_in.file, deliverable_in.notes, user.id)
                self.db.add(version)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(deliverable)
        logger.info("Deliverable %s created in project %s (status=%s)", deliverable.id, project.id, deliverable.status.value)

        if version is not None:
            event = NewFileEvent(
                project_id=project.id,
                deliverable_id=deliverable.id,
                version_id=version.id,
                version_number=version.version_number,
            )
        else:
            event = NewMessageEvent(
                project_id=project.id,
                deliverable_id=deliverable.id,
                kind="deliverable_created",
            )
        await self.notifications.notify(
            access,
            event,
            AuditEntry(
                action=AuditAction.DELIVERABLE_CREATED,
                entity_type="deliverables",
                entity_id=deliverable.id,
                project_id=project.id,
                actor_id=user.id,
                payload={
                    "deliverable_id": deliverable.id,
                    "version_id": version.id if version else None,
                    "title": title,
                },
            ),
        )
        return deliverable, version

    async def list_deliverables(self, project_id: UUID, user: User) -> List[Deliverable]:
        project, access = await self.access.for_project(user, project_id)
        access.require_read()
        result = await self.db.execute(
            select(Deliverable)
            .where(Deliverable.project_id == project.id)
            .order_by(Deliverable.created_at.desc())
        )
        return list(result.scalars().all())

    async def versions_for(self, deliverable_id: UUID) -> List[DeliverableVersion]:
        """Newest first."""
        result = await self.db.execute(
            select(DeliverableVersion)
            .where(DeliverableVersion.deliverable_id == deliverable_id)
            .order_by(DeliverableVersion.version_number.desc())
        )
        return list(result.scalars().all())

    async def list_versions(self, deliverable_id: UUID, user: User) -> List[DeliverableVersion]:
        deliverable, project = await self.access.locate_deliverable(deliverable_id)
        access = await self.access.resolve(user, project)
        access.require_read()
        return await self.versions_for(deliverable.id)

    async def get_deliverable(
        self, deliverable_id: UUID, user: User, version_id: Optional[UUID] = None
    ) -> dict:
        deliverable, project = await self.access.locate_deliverable(deliverable_id)
        access = await self.access.resolve(user, project)
        access.require_read()

        versions = await self.versions_for(deliverable.id)
        if version_id is not None and version_id not in {v.id for v in versions}:
            raise NotFound("Version not found for this deliverable")
        selected_version_id = version_id or (versions[0].id if versions else None)

        return {
            "deliverable": deliverable,
            "versions": versions,
            "selected_version_id": selected_version_id,
            "approvals": await approvals_for(self.db, deliverable.id),
            "access": access,
        }

    async def _claim_version_number(self, deliverable_id: UUID, resync: bool) -> int:
        """Atomically bump the deliverable's counter and return the new number.

        The UPDATE takes the row lock, so concurrent publishers queue behind
        each other. On the retry path the counter is first rebased onto the
        highest stored version, in case it drifted from the table.
        """
        if resync:
            current_max = (
                select(func.coalesce(func.max(DeliverableVersion.version_number), 0))
                .where(DeliverableVersion.deliverable_id == deliverable_id)
                .scalar_subquery()
            )
            next_value = current_max + 1
        else:
            next_value = Deliverable.latest_version_number + 1

        result = await self.db.execute(
            update(Deliverable)
            .where(Deliverable.id == deliverable_id)
            .values(
                latest_version_number=next_value,
                # a new version always reopens review
                status=DeliverableStatus.IN_REVIEW,
                updated_at=utcnow(),
            )
            .returning(Deliverable.latest_version_number)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one()

    async def publish_version(self, deliverable_id: UUID, version_in: VersionCreate, user: User) -> DeliverableVersion:
        deliverable, project = await self.access.locate_deliverable(deliverable_id)
        access = await self.access.resolve(user, project)
        access.require_write("publish versions")
        require_text(version_in.file.url, "file.url")
        validate_duration(version_in.file.duration)

        # rollback expires every loaded instance, so the loop only touches plain ids
        target_id = deliverable.id
        user_id = user.id
        version = None
        for attempt in range(1, VERSION_PUBLISH_ATTEMPTS + 1):
            try:
                number = await self._claim_version_number(target_id, resync=attempt > 1)
                version = self._version_from_file(target_id, number, version_in.file, version_in.notes, user_id)
                self.db.add(version)
                await self.db.commit()
                break
            except IntegrityError:
                await self.db.rollback()
                logger.warning(
                    "Version number collision on deliverable %s (attempt %d/%d)",
                    target_id, attempt, VERSION_PUBLISH_ATTEMPTS,
                )
                if attempt == VERSION_PUBLISH_ATTEMPTS:
                    raise Conflict("Another version was published at the same time, please retry")
            except Exception:
                await self.db.rollback()
                raise

        await self.db.refresh(deliverable)
        logger.info("Published v%d of deliverable %s", version.version_number, deliverable.id)

        await self._announce_version(access, deliverable, version)
        return version

    async def _announce_version(
        self, access: AccessContext, deliverable: Deliverable, version: DeliverableVersion
    ) -> None:
        await self.notifications.notify(
            access,
            NewFileEvent(
                project_id=deliverable.project_id,
                deliverable_id=deliverable.id,
                version_id=version.id,
                version_number=version.version_number,
            ),
            AuditEntry(
                action=AuditAction.VERSION_CREATED,
                entity_type="deliverable_versions",
                entity_id=version.id,
                project_id=deliverable.project_id,
                actor_id=access.user_id,
                payload={
                    "deliverable_id": deliverable.id,
                    "version": version.version_number,
                },
            ),
        )
