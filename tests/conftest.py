import os
import tempfile

# Must be set before any meowth imports that read settings
os.environ["DATA_DIR"] = tempfile.mkdtemp()
os.environ.setdefault("AUTOSTART", "false")

import asyncio
import json
import random
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from meowth.config import Settings
from meowth.core.context import AgentContext
from meowth.credits.models import CreditState
from meowth.database import Base
from meowth.engine.base import DecisionEngine, EngineRequest, EngineResponse
from meowth.events.models import LogEntry, TradeEntry
from meowth.market.base import MarketDataProvider, MarketQuote
from meowth.persistence.base import PersistentStore
import meowth.models  # noqa: F401

HAIKU = "claude-3-5-haiku-20241022"


@pytest_asyncio.fixture
async def session_factory():
    """Return a session factory over a fresh in-memory SQLite database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield factory
    await engine.dispose()


@pytest.fixture
def config():
    """Settings with timers short enough to exercise the real scheduler."""
    return Settings(
        agent_budget=20.0,
        default_model=HAIKU,
        first_tick_delay_seconds=0.01,
        tick_delay_min_seconds=0.01,
        tick_delay_max_seconds=0.02,
        cycle_timeout_seconds=2.0,
        autostart=False,
    )


class FakeMarket(MarketDataProvider):
    name = "fake"

    def __init__(self, quotes: Optional[list[MarketQuote]] = None):
        self.quotes = quotes if quotes is not None else [
            MarketQuote(pair="SOL/USDC", price=142.5, change_5m=0.4, change_1h=-1.2,
                        volume_24h=2_500_000, source="fake"),
            MarketQuote.failed("BONK/SOL"),
        ]
        self.calls = 0

    async def fetch_quotes(self) -> list[MarketQuote]:
        self.calls += 1
        return list(self.quotes)


class FakeEngine(DecisionEngine):
    name = "fake"

    def __init__(self, text: str = "", input_tokens: int = 500, output_tokens: int = 150, model: str = HAIKU):
        self.text = text
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.model = model
        self.requests: list[EngineRequest] = []
        self.error: Optional[Exception] = None
        self.delay = 0.0

    def is_available(self) -> bool:
        return True

    async def decide(self, request: EngineRequest) -> EngineResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return EngineResponse(
            text=self.text,
            model=self.model,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )


class MemoryStore(PersistentStore):
    """In-process PersistentStore for tests. Rows are kept oldest first."""

    def __init__(self):
        self.logs: list[LogEntry] = []
        self.trades: list[tuple[TradeEntry, str]] = []
        self.snapshots: list[CreditState] = []
        self.fail_writes = False
        self.fail_reads = False

    async def write_log(self, entry: LogEntry) -> bool:
        if self.fail_writes:
            raise RuntimeError("disk on fire")
        self.logs.append(entry)
        return True

    async def write_trade(self, entry: TradeEntry, reason: str = "") -> bool:
        if self.fail_writes:
            raise RuntimeError("disk on fire")
        self.trades.append((entry, reason))
        return True

    async def write_credit_snapshot(self, state: CreditState) -> bool:
        if self.fail_writes:
            raise RuntimeError("disk on fire")
        self.snapshots.append(state)
        return True

    async def read_logs(self, limit: int) -> list[LogEntry]:
        if self.fail_reads:
            raise RuntimeError("db unreachable")
        return self.logs[-limit:]

    async def read_trades(self, limit: int) -> list[TradeEntry]:
        if self.fail_reads:
            raise RuntimeError("db unreachable")
        return [t for t, _ in self.trades][-limit:]

    async def read_latest_credit_snapshot(self) -> Optional[CreditState]:
        if self.fail_reads:
            raise RuntimeError("db unreachable")
        return self.snapshots[-1] if self.snapshots else None


class FixedRandom(random.Random):
    """random.Random whose random() replays a fixed sequence (cycling)."""

    def __init__(self, values):
        super().__init__(0)
        self.values = list(values)
        self._i = 0

    def random(self):
        value = self.values[self._i % len(self.values)]
        self._i += 1
        return value


@pytest.fixture
def market():
    return FakeMarket()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def agent(config, store, market, engine):
    return AgentContext.build(config, store, market, engine, rng=FixedRandom([0.5]))


def decision_json(action: str = "buy", confidence: int = 80, pair: str = "SOL/USDC", **extra) -> str:
    payload = {
        "thought": "Meowth smells profit.",
        "quip": "Pay day!",
        "action": action,
        "pair": pair,
        "confidence": confidence,
        "reason": "momentum up",
        "mood": "cocky",
    }
    payload.update(extra)
    return json.dumps(payload)
