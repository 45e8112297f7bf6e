"""Shared test fixtures."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from incident_pilot.models.base import Base
from incident_pilot.store.sql_store import SQLIncidentStore


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory):
    return SQLIncidentStore(db_session_factory=session_factory)


@pytest_asyncio.fixture
async def users(store):
    """A specialist with an email address and an employee without one."""
    specialist = await store.create_user({
        "id": "specialist-1",
        "username": "spec",
        "role": "specialist",
        "display_name": "Sam Specialist",
        "email": "spec@example.com",
    })
    employee = await store.create_user({
        "id": "employee-1",
        "username": "emp",
        "role": "employee",
        "display_name": "Erin Employee",
    })
    return {"specialist": specialist, "employee": employee}


@pytest.fixture
def incident_fields():
    """Valid keyword arguments for StatusWorkflow.create."""
    return {
        "title": "Email server outage",
        "description": "The email server stopped accepting connections this morning.",
        "category": "it",
        "severity": "high",
        "reported_by": "employee-1",
    }
