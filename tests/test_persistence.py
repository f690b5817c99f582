import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from meowth.credits.models import CreditState
from meowth.events.models import LogEntry, TradeEntry
from meowth.models import TradeRow
from meowth.persistence.sql import SqlPersistentStore, pnl_from_row
from meowth.persistence.writer import BackgroundWriter


def log_entry(n: int, type: str = "info") -> LogEntry:
    return LogEntry(time=f"10:00:{n % 60:02d}", prefix="API", message=f"row {n}", type=type)


def trade_entry(n: int, pnl_value: float = 0.05) -> TradeEntry:
    sign = "+" if pnl_value >= 0 else "-"
    return TradeEntry(time="10:00", pair="SOL/USDC", side="SELL", pnl=f"{sign}${abs(pnl_value):.4f}",
                      pnl_value=pnl_value, api_cost="$0.000313", confidence=n)


@pytest.mark.asyncio
class TestSqlPersistentStore:
    @pytest_asyncio.fixture
    async def store(self, session_factory):
        return SqlPersistentStore(session_factory)

    async def test_empty_reads(self, store):
        assert await store.read_logs(200) == []
        assert await store.read_trades(50) == []
        assert await store.read_latest_credit_snapshot() is None

    async def test_read_logs_returns_most_recent_ascending(self, store):
        for i in range(12):
            assert await store.write_log(log_entry(i)) is True

        rows = await store.read_logs(5)
        assert [r.message for r in rows] == [f"row {i}" for i in range(7, 12)]

    async def test_log_cost_round_trip(self, store):
        await store.write_log(LogEntry(time="10:00:00", prefix="API", message="m", cost="-$0.000313", type="info"))
        await store.write_log(LogEntry(time="10:00:01", prefix="SYS", message="n", type="system"))
        rows = await store.read_logs(10)
        assert rows[0].cost == "-$0.000313"
        assert rows[1].cost is None

    async def test_trades_round_trip(self, store):
        await store.write_trade(trade_entry(60, 0.0432), "breakout")
        await store.write_trade(trade_entry(70, -0.0123), "faded")
        trades = await store.read_trades(50)
        assert [t.confidence for t in trades] == [60, 70]
        assert trades[0].pnl_value == pytest.approx(0.0432)
        assert trades[1].pnl_value == pytest.approx(-0.0123)
        assert trades[1].pnl == "-$0.0123"

    async def test_latest_credit_snapshot(self, store):
        await store.write_credit_snapshot(CreditState(starting_budget=20.0, total_spent=0.1, remaining=19.9, call_count=1))
        await store.write_credit_snapshot(CreditState(starting_budget=20.0, total_spent=0.2, remaining=19.8, call_count=2))
        latest = await store.read_latest_credit_snapshot()
        assert latest.call_count == 2
        assert latest.total_spent == pytest.approx(0.2)

    async def test_write_failure_returns_false(self):
        def broken_factory():
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        store = SqlPersistentStore(broken_factory)
        assert await store.write_log(log_entry(1)) is False


class TestPnlFromRow:
    def test_numeric_column_wins(self):
        assert pnl_from_row(TradeRow(pnl="+$9.0000", pnl_value=0.02, positive=True)) == 0.02

    def test_parse_display_string(self):
        assert pnl_from_row(TradeRow(pnl="+$0.0432", pnl_value=None)) == pytest.approx(0.0432)
        assert pnl_from_row(TradeRow(pnl="-$0.0123", pnl_value=None)) == pytest.approx(-0.0123)

    def test_positive_flag_forces_sign(self):
        assert pnl_from_row(TradeRow(pnl="$0.0300", pnl_value=None, positive=False)) == pytest.approx(-0.03)

    def test_unparseable(self):
        assert pnl_from_row(TradeRow(pnl="n/a", pnl_value=None)) == 0.0


@pytest.mark.asyncio
class TestBackgroundWriter:
    async def test_submit_does_not_block(self):
        writer = BackgroundWriter()
        release = asyncio.Event()
        done = []

        async def slow_write():
            await release.wait()
            done.append(True)
            return True

        writer.submit(slow_write(), "log")
        assert writer.pending == 1
        assert done == []

        release.set()
        await writer.drain()
        assert done == [True]
        assert writer.pending == 0

    async def test_failures_are_counted_not_raised(self):
        writer = BackgroundWriter()

        async def boom():
            raise RuntimeError("connection reset")

        async def refused():
            return False

        writer.submit(boom(), "trade")
        writer.submit(refused(), "credit_snapshot")
        await writer.drain()
        assert writer.failures == 2
