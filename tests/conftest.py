"""Shared fixtures: a throwaway SQLite database and an API client bound to it."""

from collections.abc import Awaitable, Callable
from uuid import UUID

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crmhub.api.deps import get_db, get_session_factory
from crmhub.main import app
from crmhub.models import Base, DuplicateStrategy, EntityType, ImportJob, PlanType, User, Workspace
from crmhub.models.database import build_engine, build_session_maker
from crmhub.repositories.import_repo import ImportJobRepository
from crmhub.repositories.user_repo import UserRepository

PRO_API_KEY = "ch_live_pro_3f9a1c2d7e"
OTHER_API_KEY = "ch_live_oth_8b4e6f0a15"
FREE_API_KEY = "ch_live_free_5d2c9e7b43"

CreateJob = Callable[..., Awaitable[ImportJob]]


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    """Session factory over a fresh file-backed SQLite database."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'crmhub.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_maker(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


async def _create_user(session_factory, email: str, plan: PlanType, api_key: str) -> User:
    async with session_factory() as session:
        repo = UserRepository(session)
        user = await repo.create(email=email, full_name=email.split("@")[0], plan_type=plan)
        await repo.create_api_key(user.id, api_key, name="default")
        await session.commit()
        return user


@pytest_asyncio.fixture
async def user(session_factory) -> User:
    """A crm_pro user; the default client authenticates as this user."""
    return await _create_user(session_factory, "maria@regenworks.io", PlanType.CRM_PRO, PRO_API_KEY)


@pytest_asyncio.fixture
async def other_user(session_factory) -> User:
    return await _create_user(session_factory, "tom@earthimpactfund.com", PlanType.BUILD_PRO_BUNDLE, OTHER_API_KEY)


@pytest_asyncio.fixture
async def free_user(session_factory) -> User:
    return await _create_user(session_factory, "lee@smallholding.net", PlanType.FREE, FREE_API_KEY)


@pytest_asyncio.fixture
async def workspace(session_factory, user) -> Workspace:
    async with session_factory() as session:
        workspace = await UserRepository(session).create_workspace(user.id, "Main pipeline")
        await session.commit()
        return workspace


@pytest_asyncio.fixture
async def create_job(session_factory, user) -> CreateJob:
    """Factory for jobs stored directly, bypassing the upload endpoint.

    With a ``mapping`` the job is configured and left in ``mapping`` status.
    """

    async def _create(
        csv_text: str | bytes,
        entity_type: EntityType = EntityType.ENTERPRISE,
        mapping: dict[str, str] | None = None,
        strategy: DuplicateStrategy = DuplicateStrategy.SKIP,
        workspace_id: UUID | None = None,
        owner: User | None = None,
        total_rows: int = 0,
    ) -> ImportJob:
        data = csv_text.encode() if isinstance(csv_text, str) else csv_text
        async with session_factory() as session:
            repo = ImportJobRepository(session)
            job = await repo.create(
                user_id=(owner or user).id,
                entity_type=entity_type,
                file_name=f"{entity_type.value}s.csv",
                file_size=len(data),
                file_data=data,
                total_rows=total_rows,
                workspace_id=workspace_id,
            )
            if mapping is not None:
                await repo.configure(job.id, mapping, strategy)
            await session.commit()
            return job

    return _create


@pytest_asyncio.fixture
async def client(session_factory, user) -> AsyncClient:
    """API client authenticated as ``user``, backed by the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-API-Key": PRO_API_KEY},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
