import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database import Base, build_engine, get_session
from relay.router import handle_message, router as relay_router
from relay.state import RelayState
from tournament.functions import create_tournament

PLAYER_NAMES = ['Alice', 'Bob', 'Charlie', 'David', 'Eve', 'Frank', 'Grace', 'Henry']


@pytest.fixture
def names():
    return list(PLAYER_NAMES)


@pytest.fixture
def tournament():
    return create_tournament('123', PLAYER_NAMES, date='2026-10-19')


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def api(session_factory):
    from main import app

    async def _session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def relay_app():
    app = FastAPI()
    app.include_router(relay_router)
    app.state.relay = RelayState()
    return app


class _ServerEnd:
    """What the relay sees: sending to it lands in the client's inbox."""

    def __init__(self, client_end):
        self.client_end = client_end

    async def send_json(self, message):
        await self.client_end.inbox.put(message)


class LoopbackConnection:
    """In-process connection wiring a client straight into a RelayState."""

    def __init__(self, relay: RelayState):
        self.relay = relay
        self.inbox = asyncio.Queue()
        self.server_end = _ServerEnd(self)

    async def send_json(self, message):
        await handle_message(self.relay, self.server_end, message)

    async def receive_json(self):
        return await self.inbox.get()


@pytest.fixture
def relay_state():
    return RelayState()


@pytest.fixture
def connect(relay_state):
    def _connect():
        return LoopbackConnection(relay_state)
    return _connect
