# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from tasktracker.catalogs import ROLE_SEED, STATUS_SEED, RoleCatalog, StatusCatalog, seed_catalogs
from tasktracker.config import Settings
from tasktracker.crud import users as user_crud
from tasktracker.db import close_db, create_engine, create_session_factory, init_db
from tasktracker.main import create_app

from .helpers import ADMIN, TEST_ROUNDS


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite database"""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tasks.sqlite3'}",
        bcrypt_rounds=TEST_ROUNDS,
        admin_username=ADMIN[0],
        admin_email=ADMIN[1],
        admin_password=ADMIN[2],
    )


@pytest.fixture()
def statuses() -> StatusCatalog:
    return StatusCatalog.from_seed(STATUS_SEED)


@pytest.fixture()
def roles() -> RoleCatalog:
    return RoleCatalog.from_seed(ROLE_SEED)


@pytest_asyncio.fixture()
async def session_factory(settings: Settings):
    """Session factory bound to a freshly created and seeded database"""
    engine = create_engine(settings.database_url)
    await init_db(engine, max_retries=1)
    factory = create_session_factory(engine)
    async with factory() as session:
        await seed_catalogs(session)
    yield factory
    await close_db(engine)


@pytest_asyncio.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def make_user(db, roles):
    async def _make_user(username: str, password: str = "secret1", email: str | None = None):
        return await user_crud.register_user(
            db,
            roles,
            username,
            email or f"{username}@x.com",
            password,
            rounds=TEST_ROUNDS,
        )

    return _make_user


@pytest.fixture()
def client(settings: Settings):
    """TestClient running the full app lifespan (tables, catalogs, admin seed)"""
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture()
def admin_auth() -> tuple[str, str]:
    return ADMIN[0], ADMIN[2]
