"""
Shared fixtures: an in-memory SQLite database and a seeded BookingService.
"""

from __future__ import annotations

import os

# Settings are read at import time, so configure them before any app import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("ADMIN_EMAILS", "boss@example.com")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from appointment_calendar.core.db import init_db, make_session_maker
from appointment_calendar.services.booking_service import BookingService

ACCESS_CODE = "Letmein"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest.fixture
def access_code():
    return ACCESS_CODE


@pytest.fixture
async def service(session_maker, access_code):
    service = BookingService(session_maker)
    await service.ensure_defaults()
    await service.set_access_code(access_code)
    return service


@pytest.fixture
async def alice(service, access_code):
    await service.register("Alice", "Smith", "alice@example.com", "secret-pw", access_code)
    return await service.lookup_user("alice@example.com")


@pytest.fixture
async def bob(service, access_code):
    await service.register("Bob", "Jones", "bob@example.com", "other-pw", access_code)
    return await service.lookup_user("bob@example.com")
