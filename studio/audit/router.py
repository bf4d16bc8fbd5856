from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from studio.access.service import AccessResolver
from studio.auth.dependencies import get_current_active_user
from studio.auth.models import User
from studio.database import get_db
from studio.audit.models import AuditEvent
from studio.audit.schemas import AuditEventResponse

router = APIRouter(prefix="/projects", tags=["audit"])


@router.get("/{project_id}/audit", response_model=List[AuditEventResponse])
async def list_audit_events(
    project_id: UUID,
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    project, access = await AccessResolver(db).for_project(current_user, project_id)
    access.require_write("view the audit trail")
    stmt = (
        select(AuditEvent)
        .where(AuditEvent.project_id == project.id)
        .order_by(desc(AuditEvent.created_at))
        .limit(limit)
    )
    result = await db.execute(stmt)
    return result.scalars().all()
