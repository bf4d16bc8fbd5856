from fastapi import APIRouter

from studio.deliverables.router import router as deliverables_router
from studio.threads.router import router as threads_router
from studio.approvals.router import router as approvals_router
from studio.review_links.router import router as review_links_router
from studio.notifications.router import router as notifications_router
from studio.audit.router import router as audit_router

api_router = APIRouter()

api_router.include_router(deliverables_router)
api_router.include_router(threads_router)
api_router.include_router(approvals_router)
api_router.include_router(review_links_router)
api_router.include_router(notifications_router)
api_router.include_router(audit_router)
