"""Shared pytest fixtures for database isolation and in-memory collaborators."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from snapkeeper.db.base import Base
from snapkeeper.tests.utils import FakeBlobStore


def _sqlite_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'snapkeeper-test.db'}"


@pytest_asyncio.fixture()
async def session(tmp_path: Path) -> AsyncSession:
    engine = create_async_engine(_sqlite_url(tmp_path), future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    TestingSession = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    try:
        async with TestingSession() as session:
            yield session
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture()
def job_engine(tmp_path: Path) -> AsyncEngine:
    """Engine for sync job tests, which drive their own event loops through asyncio.run."""
    engine = create_async_engine(_sqlite_url(tmp_path), future=True, poolclass=NullPool)

    async def _create() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture()
def fake_blob_store() -> FakeBlobStore:
    return FakeBlobStore()
