from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from studio.config import settings


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for `url`.

    SQLite writers wait on each other instead of failing fast, so the
    per-connection busy timeout is raised for local and test databases.
    """
    connect_args = {}
    if make_url(url).get_backend_name() == "sqlite":
        connect_args["timeout"] = 30
    return create_async_engine(url, echo=echo, connect_args=connect_args, pool_pre_ping=True)


def build_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(settings.SQLALCHEMY_DATABASE_URI)
AsyncSessionLocal = build_session_factory(engine)

Base = declarative_base()

# Dependency
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def side_session(db: AsyncSession) -> AsyncSession:
    """A separate session on the same engine as `db`.

    Used for best-effort writes (notifications, audit) that must neither join
    nor roll back the caller's transaction.
    """
    return AsyncSession(bind=db.bind, expire_on_commit=False, autoflush=False)
