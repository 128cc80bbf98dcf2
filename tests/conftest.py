# tests/conftest.py

"""Shared fixtures: a throwaway SQLite database per test, the real app over httpx."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from pathlib import Path

# Settings are read once at import; point them at SQLite before workhub loads.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./workhub-test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from workhub import models  # noqa: F401
from workhub.db.base import Base
from workhub.db.session import get_db_session
from workhub.main import app
from workhub.models.client import Client
from workhub.models.project import Application, Project
from workhub.models.user import User
from workhub.services.auth import create_access_token, hash_password
from workhub.utils.clock import FixedClock, get_clock

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
PASSWORD = "correct-horse-battery"


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture()
async def session_factory(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'workhub.db'}")
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture()
async def db(session_factory) -> AsyncIterator[AsyncSession]:
    """A session for arranging data and calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
async def client(session_factory, clock) -> AsyncIterator[AsyncClient]:
    async def override_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_clock] = lambda: clock
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


async def make_user(
    db: AsyncSession,
    username: str,
    role: str = "member",
    display_name: str | None = None,
    is_active: bool = True,
) -> User:
    user = User(
        kind="account",
        username=username,
        hashed_password=hash_password(PASSWORD),
        email=f"{username}@example.com",
        display_name=display_name or username.title(),
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
async def admin(db) -> User:
    return await make_user(db, "admin", role="admin", display_name="Ada Admin")


@pytest.fixture()
async def member(db) -> User:
    return await make_user(db, "mia", display_name="Mia Member")


@pytest.fixture()
def admin_headers(admin) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture()
def member_headers(member) -> dict[str, str]:
    return auth_headers(member)


@pytest.fixture()
async def acme(db) -> Client:
    client = Client(name="Acme Corp")
    db.add(client)
    await db.commit()
    return client


@pytest.fixture()
async def project(db, acme) -> Project:
    project = Project(name="Website relaunch", client_id=acme.id)
    db.add(project)
    await db.commit()
    return project


@pytest.fixture()
async def web_app(db) -> Application:
    application = Application(name="Web portal", type="Web")
    db.add(application)
    await db.commit()
    return application
