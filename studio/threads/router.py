from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from studio.database import get_db
from studio.auth.models import User
from studio.auth.dependencies import get_current_active_user
from studio.threads.schemas import (
    CommentCreate,
    CommentResponse,
    ThreadCreate,
    ThreadCreated,
    ThreadResponse,
    ThreadStatusUpdate,
    ThreadWithComments,
)
from studio.threads.service import ThreadService

router = APIRouter(tags=["threads"])


@router.post(
    "/versions/{version_id}/threads",
    response_model=ThreadCreated,
    status_code=status.HTTP_201_CREATED,
)
async def open_thread(
    version_id: UUID,
    thread: ThreadCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = ThreadService(db)
    created, comment = await service.open_thread(version_id, thread, current_user)
    return {"thread": created, "comment": comment}


@router.get("/versions/{version_id}/threads", response_model=List[ThreadWithComments])
async def list_threads(
    version_id: UUID,
    newest_first: bool = False,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = ThreadService(db)
    return await service.list_threads(version_id, current_user, newest_first)


@router.post(
    "/threads/{thread_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    thread_id: UUID,
    comment: CommentCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = ThreadService(db)
    return await service.add_comment(thread_id, comment, current_user)


@router.patch("/threads/{thread_id}", response_model=ThreadResponse)
async def set_thread_status(
    thread_id: UUID,
    update: ThreadStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = ThreadService(db)
    return await service.set_thread_status(thread_id, update.status, current_user)
