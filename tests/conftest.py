from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.models.base import Base
from shared.utils.cache import TTLCache
from shared.utils.rate_limit import RateLimiter
from agents.sentinel.services.registry import TokenRegistry
import agents.sentinel.models.db  # noqa: F401

TOKEN = "0x1234567890abcdef1234567890abcdef12345678"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class SleepRecorder:
    """Stands in for asyncio.sleep; records requested delays without waiting."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def registry(session_factory):
    return TokenRegistry(session_factory)


@pytest.fixture
def make_collector(sleeps):
    """Build a collector wired to an httpx.MockTransport handler."""
    clients = []

    def _make(cls, handler, **kwargs):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return cls(
            client=client,
            limiter=RateLimiter(0),
            cache=TTLCache(),
            sleep=sleeps,
            **kwargs,
        )

    return _make


@pytest.fixture
async def tracked_token(registry):
    """An active token analyzed a day ago, never re-checked."""
    await registry.track_analyzed_token(
        TOKEN,
        "base",
        score=80,
        symbol="TEST",
        name="Test Token",
        price=0.001,
        liquidity=50_000,
        analyzed_at=NOW - timedelta(days=1),
    )
    return await registry.get(TOKEN, "base")
