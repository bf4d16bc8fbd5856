from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from studio.database import get_db
from studio.auth.models import User
from studio.auth.dependencies import get_current_active_user
from studio.approvals.schemas import ApprovalCreate, ApprovalResponse
from studio.approvals.service import ApprovalService

router = APIRouter(prefix="/deliverables", tags=["approvals"])


@router.post(
    "/{deliverable_id}/approvals",
    response_model=ApprovalResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_approval(
    deliverable_id: UUID,
    approval: ApprovalCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = ApprovalService(db)
    return await service.record_approval(deliverable_id, approval, current_user)


@router.get("/{deliverable_id}/approvals", response_model=List[ApprovalResponse])
async def list_approvals(
    deliverable_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = ApprovalService(db)
    return await service.list_approvals(deliverable_id, current_user)
