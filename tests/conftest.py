import os

# Settings are read at import time; point them at test values first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TELEMETRY_ENABLED", "false")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("LIST_GUILD_ID", "100000000000000001")
os.environ.setdefault("LIST_LOG_CHANNEL_ID", "100000000000000002")
os.environ.setdefault("WEBSITE_ADMIN_ROLE_ID", "100000000000000003")

import random

import pytest
import httpx

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

# Import Base + all models so metadata is complete
from botlist.models.base import Base
from botlist.models.listing import Listing  # noqa: F401
from botlist.models.outbox import OutboxEvent  # noqa: F401

from botlist.main import app
from botlist.core.db import get_db
from botlist.api.deps import get_identity_resolver, get_membership_authority, get_outbound_queue
from botlist.services.outbox import OutboxQueue
from botlist.services.workflow import ListingWorkflow

from fakes import (
    ADMIN_ID,
    ADMIN_ROLE_ID,
    LOG_CHANNEL_ID,
    OWNER_ID,
    FakeIdentityResolver,
    FakeMembership,
    MemoryListingStore,
    RecordingQueue,
    bot_account,
    user_account,
)


@pytest.fixture
async def async_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def identity():
    return FakeIdentityResolver([
        bot_account(),
        user_account(OWNER_ID, "owner"),
        user_account(ADMIN_ID, "admin"),
    ])


@pytest.fixture
def membership():
    return FakeMembership({OWNER_ID: set(), ADMIN_ID: {ADMIN_ROLE_ID}})


@pytest.fixture
def outbound():
    return RecordingQueue()


@pytest.fixture
def store():
    return MemoryListingStore()


@pytest.fixture
def workflow(store, identity, membership, outbound):
    return ListingWorkflow(
        store=store,
        identity=identity,
        membership=membership,
        outbound=outbound,
        log_channel_id=LOG_CHANNEL_ID,
        admin_role_id=ADMIN_ROLE_ID,
        page_size=15,
        rng=random.Random(20261019),
    )


@pytest.fixture
async def client(db_session: AsyncSession, session_factory, identity, membership):
    """
    HTTP client wired to the in-memory test database, fake Discord
    collaborators and the real outbox writer.
    """
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_identity_resolver] = lambda: identity
    app.dependency_overrides[get_membership_authority] = lambda: membership
    app.dependency_overrides[get_outbound_queue] = lambda: OutboxQueue(session_factory)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
