import asyncio
from studio.database import engine, Base

# Import all models to ensure they are registered in Base.metadata
from studio.auth.models import Tenant, User, TeamMember
from studio.clients.models import Client, ClientUser
from studio.projects.models import Project, ProjectMember
from studio.deliverables.models import Deliverable, DeliverableVersion
from studio.threads.models import ReviewThread, ReviewComment
from studio.approvals.models import Approval
from studio.review_links.models import ReviewLink
from studio.notifications.models import Notification, UserPreference
from studio.audit.models import AuditEvent

async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Database tables created.")

if __name__ == "__main__":
    asyncio.run(init_models())
