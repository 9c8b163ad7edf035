"""
Shared fixtures.

SQLite (via aiosqlite, foreign keys on) stands in for PostgreSQL and a
recording transport stands in for Redis.
"""

import asyncio
import uuid
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from statusboard.db.postgres import Base, get_db, get_session_factory
from statusboard.errors import NotifyError
from statusboard.models import Organization, Service
from statusboard.security import CallerIdentity, create_access_token
from statusboard.services.lifecycle import IncidentLifecycleController
from statusboard.services.notifier import IncidentNotifier, get_notifier


class RecordingTransport:
    """In-memory transport that records every publish."""

    def __init__(self):
        self.events: list[tuple[str, str, dict]] = []
        self.fail = False
        self.delay = 0.0
        self.on_publish = None
        self.started = asyncio.Event()

    async def publish(self, channel: str, event: str, payload) -> None:
        self.started.set()
        if self.on_publish is not None:
            await self.on_publish(channel, event, payload)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise NotifyError("transport unavailable")
        self.events.append((channel, event, payload))


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'statusboard.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def tenants(session_factory):
    """Two organizations: O1 owns S1 and S2, O2 owns S3."""
    o1 = Organization(id=uuid.uuid4(), name="Acme", auth_provider_key="org_acme")
    o2 = Organization(id=uuid.uuid4(), name="Globex", auth_provider_key="org_globex")
    s1 = Service(id=uuid.uuid4(), name="API", description="Public REST API", org_id=o1.id)
    s2 = Service(id=uuid.uuid4(), name="Dashboard", org_id=o1.id)
    s4 = Service(id=uuid.uuid4(), name="Billing", org_id=o1.id)
    s3 = Service(id=uuid.uuid4(), name="Checkout", org_id=o2.id)

    async with session_factory() as db:
        db.add_all([o1, o2])
        await db.flush()
        db.add_all([s1, s2, s3, s4])
        await db.commit()

    return SimpleNamespace(o1=o1, o2=o2, s1=s1, s2=s2, s3=s3, s4=s4)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def notifier(transport):
    return IncidentNotifier(transport, timeout=0.5)


@pytest.fixture
def controller(session_factory, notifier):
    return IncidentLifecycleController(session_factory, notifier)


@pytest.fixture
def caller(tenants):
    return CallerIdentity(caller_id="user_1", org_key=tenants.o1.auth_provider_key)


def incident_payload(org_id, service_ids, **overrides) -> dict:
    payload = {
        "title": "API latency issues",
        "description": "Requests to the public API are taking over 5 seconds.",
        "status": "investigating",
        "impact": "major",
        "serviceIds": [str(service_id) for service_id in service_ids],
        "organizationId": str(org_id),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def auth_headers(tenants):
    token = create_access_token({"sub": "user_1", "org": tenants.o1.auth_provider_key})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory, notifier):
    from statusboard.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
