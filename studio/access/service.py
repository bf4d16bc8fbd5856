"""Access resolution for review resources.

Every review operation computes one :class:`AccessContext` for the caller and
the owning project, then checks capabilities on that value. Locating the
project from a deliverable, version or thread id lives here too, so that a
missing entity is always reported as ``NotFound`` before any access decision
is made.
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.models import TeamMember, TeamRole, User
from studio.clients.models import ClientUser
from studio.core.exceptions import Forbidden, NotFound
from studio.deliverables.models import Deliverable, DeliverableVersion
from studio.projects.models import (
    APPROVER_ROLES,
    CLIENT_ROLES,
    INTERNAL_WRITER_ROLES,
    Project,
    ProjectMember,
    ProjectRole,
)
from studio.threads.models import ReviewThread


class Audience(str, Enum):
    TEAM = "team"
    COLLABORATOR = "collaborator"
    CLIENT = "client"
    GUEST = "guest"


@dataclass(frozen=True)
class AccessContext:
    project_id: UUID
    user_id: Optional[UUID]
    can_read: bool
    can_write: bool
    can_approve: bool
    is_client_user: bool
    project_member_role: Optional[ProjectRole] = None
    team_role: Optional[TeamRole] = None

    @classmethod
    def for_guest(cls, project_id: UUID) -> "AccessContext":
        """Anonymous visitor holding a valid review link for this project."""
        return cls(
            project_id=project_id,
            user_id=None,
            can_read=True,
            can_write=False,
            can_approve=False,
            is_client_user=False,
        )

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def audience(self) -> Audience:
        if self.is_guest:
            return Audience.GUEST
        if self.is_client_user:
            return Audience.CLIENT
        if self.team_role is not None:
            return Audience.TEAM
        return Audience.COLLABORATOR

    @property
    def opposite_roles(self) -> FrozenSet[ProjectRole]:
        """Project roles to notify about something this caller did."""
        if self.is_guest or self.is_client_user:
            return INTERNAL_WRITER_ROLES
        return CLIENT_ROLES

    def require_read(self) -> None:
        if not self.can_read:
            raise Forbidden("No access to this project")

    def require_write(self, action: str = "change this project") -> None:
        if not self.can_write:
            raise Forbidden(f"Not allowed to {action}")

    def require_approve(self) -> None:
        if not self.can_approve:
            raise Forbidden("Not allowed to approve deliverables in this project")


def compute_access(
    project: Project,
    user_id: UUID,
    team_role: Optional[TeamRole],
    project_role: Optional[ProjectRole],
    is_client_user: bool,
) -> AccessContext:
    """Pure capability derivation from the three membership lookups."""
    is_team_admin = team_role in (TeamRole.OWNER, TeamRole.ADMIN)
    is_project_owner = user_id is not None and user_id in (project.user_id, project.owner_user_id)

    can_write = is_team_admin or project_role in INTERNAL_WRITER_ROLES or is_project_owner
    can_read = can_write or is_client_user or project_role is not None or team_role is not None
    can_approve = is_team_admin or project_role in APPROVER_ROLES or is_project_owner

    return AccessContext(
        project_id=project.id,
        user_id=user_id,
        can_read=can_read,
        can_write=can_write,
        can_approve=can_approve,
        is_client_user=is_client_user,
        project_member_role=project_role,
        team_role=team_role,
    )


class AccessResolver:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _team_role(self, tenant_id: UUID, user_id: UUID) -> Optional[TeamRole]:
        result = await self.db.execute(
            select(TeamMember.role).where(
                TeamMember.tenant_id == tenant_id,
                TeamMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _project_role(self, project_id: UUID, user_id: UUID) -> Optional[ProjectRole]:
        result = await self.db.execute(
            select(ProjectMember.role).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _is_client_user(self, client_id: Optional[UUID], user_id: UUID) -> bool:
        if client_id is None:
            return False
        result = await self.db.execute(
            select(ClientUser.id).where(
                ClientUser.client_id == client_id,
                ClientUser.user_id == user_id,
            ).limit(1)
        )
        return result.first() is not None

    async def resolve(self, user: User, project: Project) -> AccessContext:
        team_role = await self._team_role(project.tenant_id, user.id)
        project_role = await self._project_role(project.id, user.id)
        is_client_user = await self._is_client_user(project.client_id, user.id)
        return compute_access(project, user.id, team_role, project_role, is_client_user)

    async def get_project(self, project_id: UUID) -> Project:
        result = await self.db.execute(select(Project).where(Project.id == project_id))
        project = result.scalars().first()
        if not project:
            raise NotFound("Project not found")
        return project

    async def locate_deliverable(self, deliverable_id: UUID) -> Tuple[Deliverable, Project]:
        result = await self.db.execute(
            select(Deliverable, Project)
            .join(Project, Deliverable.project_id == Project.id)
            .where(Deliverable.id == deliverable_id)
        )
        row = result.first()
        if not row:
            raise NotFound("Deliverable not found")
        return row[0], row[1]

    async def locate_version(self, version_id: UUID) -> Tuple[DeliverableVersion, Deliverable, Project]:
        result = await self.db.execute(
            select(DeliverableVersion, Deliverable, Project)
            .join(Deliverable, DeliverableVersion.deliverable_id == Deliverable.id)
            .join(Project, Deliverable.project_id == Project.id)
            .where(DeliverableVersion.id == version_id)
        )
        row = result.first()
        if not row:
            raise NotFound("Version not found")
        return row[0], row[1], row[2]

    async def locate_thread(
        self, thread_id: UUID
    ) -> Tuple[ReviewThread, DeliverableVersion, Deliverable, Project]:
        result = await self.db.execute(
            select(ReviewThread, DeliverableVersion, Deliverable, Project)
            .join(DeliverableVersion, ReviewThread.version_id == DeliverableVersion.id)
            .join(Deliverable, DeliverableVersion.deliverable_id == Deliverable.id)
            .join(Project, Deliverable.project_id == Project.id)
            .where(ReviewThread.id == thread_id)
        )
        row = result.first()
        if not row:
            raise NotFound("Thread not found")
        return row[0], row[1], row[2], row[3]

    async def for_project(self, user: User, project_id: UUID) -> Tuple[Project, AccessContext]:
        project = await self.get_project(project_id)
        return project, await self.resolve(user, project)
