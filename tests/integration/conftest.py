"""Integration test fixtures: in-memory app, async client, seeded users."""

import os
import tempfile

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Force test config BEFORE any app imports
os.environ["DEBUG"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="incident_pilot_logs_")
os.environ["OPENAI_API_KEY"] = ""
os.environ["SMTP_HOST"] = ""
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""
os.environ["SEED_DEMO_DATA"] = "false"

import incident_pilot.database as db_mod
import incident_pilot.dependencies as dep_mod


def _reset_singletons():
    """Reset all module-level singletons so each test session starts clean."""
    db_mod._engine = None
    db_mod._session_factory = None
    dep_mod._config_instance = None
    dep_mod._incident_store = None
    dep_mod._notification_dispatcher = None
    dep_mod._incident_analyzer = None
    dep_mod._similarity_matcher = None
    dep_mod._status_workflow = None
    dep_mod._incident_manager = None


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_app():
    """Create test app with in-memory database (shared via StaticPool)."""
    _reset_singletons()

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Inject into database module BEFORE app import
    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    dep_mod.get_app_config()

    from incident_pilot.main import app
    from incident_pilot.models.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    store = dep_mod.get_incident_store()
    await store.create_user({
        "id": "specialist-1",
        "username": "spec",
        "role": "specialist",
        "display_name": "Sam Specialist",
        "email": "spec@example.com",
    })
    await store.create_user({
        "id": "employee-1",
        "username": "emp",
        "role": "employee",
        "display_name": "Erin Employee",
    })

    yield app

    await engine.dispose()
    _reset_singletons()


@pytest_asyncio.fixture(loop_scope="session")
async def client(test_app):
    """Async HTTP client for testing."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def new_incident(client):
    """Create a fresh incident through the API and return its JSON."""
    resp = await client.post("/api/v1/incidents/", json={
        "title": "Email server outage",
        "description": "The email server stopped accepting connections this morning.",
        "category": "it",
        "severity": "high",
        "reported_by": "employee-1",
        "affected_systems": ["email"],
    })
    assert resp.status_code == 201, resp.text
    return resp.json()
