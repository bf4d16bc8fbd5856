from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from studio.database import get_db
from studio.auth.models import User
from studio.auth.dependencies import get_current_active_user, get_optional_user
from studio.access.schemas import AccessResponse
from studio.review_links.schemas import (
    LinkCommentCreate,
    LinkCommentCreated,
    RedeemRequest,
    RedeemResponse,
    ReviewLinkCreate,
    ReviewLinkIssued,
    ReviewLinkResponse,
)
from studio.review_links.service import ReviewLinkService, share_url_for

router = APIRouter(tags=["review-links"])


@router.post(
    "/deliverables/{deliverable_id}/review-links",
    response_model=ReviewLinkIssued,
    status_code=status.HTTP_201_CREATED,
)
async def issue_review_link(
    deliverable_id: UUID,
    link_in: ReviewLinkCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = ReviewLinkService(db)
    link, token = await service.issue_link(deliverable_id, link_in, current_user)
    return {"link": link, "token": token, "share_url": share_url_for(token)}


@router.get("/deliverables/{deliverable_id}/review-links", response_model=List[ReviewLinkResponse])
async def list_review_links(
    deliverable_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = ReviewLinkService(db)
    return await service.list_links(deliverable_id, current_user)


@router.post("/review-links/{token}/redeem", response_model=RedeemResponse)
async def redeem_review_link(
    token: str,
    redeem: Optional[RedeemRequest] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Open a shared deliverable. Works anonymously unless the link requires auth."""
    redeem = redeem or RedeemRequest()
    service = ReviewLinkService(db)
    view = await service.redeem_link(token, redeem.password, current_user, redeem.version_id)
    return {**view, "access": AccessResponse.from_context(view["access"])}


@router.post(
    "/review-links/{token}/comments",
    response_model=LinkCommentCreated,
    status_code=status.HTTP_201_CREATED,
)
async def post_link_comment(
    token: str,
    comment: LinkCommentCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    service = ReviewLinkService(db)
    thread, created = await service.post_link_comment(token, comment, current_user)
    return {"thread_id": thread.id, "comment": created}
