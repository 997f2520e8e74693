"""Pytest configuration for all tests."""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from datagate.core.config import Settings
from datagate.domain.entities import UserRole
from datagate.domain.services import DataPermissionService
from datagate.infrastructure.persistence import models  # noqa: F401
from datagate.infrastructure.persistence.database import Base
from datagate.infrastructure.persistence.models import (
    CategoryModel,
    CommentModel,
    PostModel,
    UserModel,
)


class FakeClock:
    """Controllable clock for expiry tests."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings for tests; never read from the environment file."""
    return Settings(
        _env_file=None,
        environment="testing",
        database_url="sqlite+aiosqlite:///:memory:",
        log_format="console",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite engine with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def service(session_factory, settings, clock) -> DataPermissionService:
    return DataPermissionService(session_factory, settings=settings, clock=clock)


@pytest.fixture
def make_user(session_factory):
    """Factory inserting a user and returning its ID."""
    counter = {"n": 0}

    async def _make_user(
        role: UserRole = UserRole.USER,
        is_active: bool = True,
        email: str | None = None,
    ) -> str:
        counter["n"] += 1
        username = f"{role.value}{counter['n']}"
        async with session_factory() as session:
            user = UserModel(
                username=username,
                email=email or f"{username}@example.com",
                role=role.value,
                is_active=is_active,
            )
            session.add(user)
            await session.commit()
            return user.id

    return _make_user


@pytest.fixture
def make_post(session_factory):
    """Factory inserting a post and returning its ID."""

    async def _make_post(created_by: str, is_published: bool = False, title: str = "") -> str:
        async with session_factory() as session:
            post = PostModel(created_by=created_by, is_published=is_published, title=title)
            session.add(post)
            await session.commit()
            return post.id

    return _make_post


@pytest.fixture
def make_comment(session_factory):
    """Factory inserting a comment and returning its ID."""

    async def _make_comment(post_id: str, created_by: str, is_approved: bool = False) -> str:
        async with session_factory() as session:
            comment = CommentModel(
                post_id=post_id,
                created_by=created_by,
                content="comment",
                is_approved=is_approved,
            )
            session.add(comment)
            await session.commit()
            return comment.id

    return _make_comment


@pytest.fixture
def make_category(session_factory):
    """Factory inserting a category and returning its ID."""

    async def _make_category(name: str, is_active: bool = True) -> str:
        async with session_factory() as session:
            category = CategoryModel(name=name, is_active=is_active)
            session.add(category)
            await session.commit()
            return category.id

    return _make_category
