import os

# Must be set before studio.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./studio-test.db")

import pytest
import pytest_asyncio
from dataclasses import dataclass
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator, Optional
from uuid import uuid4

from studio.main import app
from studio.database import get_db, Base, build_engine, build_session_factory
from studio.auth.models import Tenant, User, TeamMember, TeamRole
from studio.auth.security import token_for_user
from studio.clients.models import Client, ClientUser
from studio.projects.models import Project, ProjectMember, ProjectRole


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """A throwaway SQLite file per test. A file rather than :memory: so that
    separate sessions really are separate connections."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'studio.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Client for testing API endpoints."""
    # One session per request, like the real get_db
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {token_for_user(user.id)}"}
    return _headers


class Factory:
    """Builds tenants, users and memberships straight into the test database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def tenant(self, name: str = "Northlight Studio") -> Tenant:
        return await self._save(Tenant(name=name, domain=f"{uuid4().hex[:8]}.studio.test"))

    async def user(self, name: str = "user", is_active: bool = True) -> User:
        return await self._save(User(
            email=f"{name}-{uuid4().hex[:8]}@example.com",
            full_name=name.title(),
            is_active=is_active,
        ))

    async def team_member(self, tenant: Tenant, user: User, role: TeamRole) -> TeamMember:
        return await self._save(TeamMember(tenant_id=tenant.id, user_id=user.id, role=role))

    async def client(self, tenant: Tenant, name: str = "Acme Foods") -> Client:
        return await self._save(Client(name=name, company=name, tenant_id=tenant.id))

    async def client_user(self, client: Client, user: User) -> ClientUser:
        return await self._save(ClientUser(client_id=client.id, user_id=user.id))

    async def project(
        self,
        tenant: Tenant,
        client: Optional[Client] = None,
        owner: Optional[User] = None,
        name: str = "Spring Campaign",
    ) -> Project:
        return await self._save(Project(
            name=name,
            tenant_id=tenant.id,
            client_id=client.id if client else None,
            user_id=owner.id if owner else None,
            owner_user_id=owner.id if owner else None,
        ))

    async def member(self, project: Project, user: User, role: ProjectRole) -> ProjectMember:
        return await self._save(ProjectMember(project_id=project.id, user_id=user.id, role=role))


@pytest.fixture
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


@dataclass
class World:
    tenant: Tenant
    client: Client
    project: Project
    owner: User
    editor: User
    approver: User
    viewer: User
    outsider: User


@pytest_asyncio.fixture(scope="function")
async def world(factory: Factory) -> World:
    """A project with one member per audience.

    owner: tenant owner and project owner. editor: internal writer.
    approver and viewer: client portal users. outsider: no relation at all.
    """
    tenant = await factory.tenant()
    client = await factory.client(tenant)

    owner = await factory.user("owner")
    editor = await factory.user("editor")
    approver = await factory.user("approver")
    viewer = await factory.user("viewer")
    outsider = await factory.user("outsider")

    await factory.team_member(tenant, owner, TeamRole.OWNER)
    project = await factory.project(tenant, client, owner)

    await factory.member(project, owner, ProjectRole.OWNER)
    await factory.member(project, editor, ProjectRole.EDITOR)
    await factory.member(project, approver, ProjectRole.CLIENT_APPROVER)
    await factory.member(project, viewer, ProjectRole.CLIENT_VIEWER)
    await factory.client_user(client, approver)
    await factory.client_user(client, viewer)

    return World(
        tenant=tenant,
        client=client,
        project=project,
        owner=owner,
        editor=editor,
        approver=approver,
        viewer=viewer,
        outsider=outsider,
    )
