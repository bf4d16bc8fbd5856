from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from studio.database import get_db
from studio.auth.models import User
from studio.auth.dependencies import get_current_active_user
from studio.access.schemas import AccessResponse
from studio.deliverables.schemas import (
    DeliverableCreate,
    DeliverableCreated,
    DeliverableDetail,
    DeliverableResponse,
    VersionCreate,
    VersionResponse,
)
from studio.deliverables.service import DeliverableService

router = APIRouter(tags=["deliverables"])


@router.post(
    "/projects/{project_id}/deliverables",
    response_model=DeliverableCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_deliverable(
    project_id: UUID,
    deliverable: DeliverableCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = DeliverableService(db)
    created, version = await service.create_deliverable(project_id, deliverable, current_user)
    return {"deliverable": created, "version": version}


@router.get("/projects/{project_id}/deliverables", response_model=List[DeliverableResponse])
async def list_deliverables(
    project_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = DeliverableService(db)
    return await service.list_deliverables(project_id, current_user)


@router.get("/deliverables/{deliverable_id}", response_model=DeliverableDetail)
async def get_deliverable(
    deliverable_id: UUID,
    version_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = DeliverableService(db)
    detail = await service.get_deliverable(deliverable_id, current_user, version_id)
    return {**detail, "access": AccessResponse.from_context(detail["access"])}


@router.get("/deliverables/{deliverable_id}/versions", response_model=List[VersionResponse])
async def list_versions(
    deliverable_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = DeliverableService(db)
    return await service.list_versions(deliverable_id, current_user)


@router.post(
    "/deliverables/{deliverable_id}/versions",
    response_model=VersionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def publish_version(
    deliverable_id: UUID,
    version: VersionCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = DeliverableService(db)
    return await service.publish_version(deliverable_id, version, current_user)
