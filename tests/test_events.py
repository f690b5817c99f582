import pytest

from meowth.events.models import LogEntry, TradeEntry, format_pnl
from meowth.events.store import EventStore, RingBuffer, TradeStore


def log_entry(n: int) -> LogEntry:
    return LogEntry(time="12:00:00", prefix="SYS", message=f"entry {n}", type="system")


def trade_entry(n: int) -> TradeEntry:
    return TradeEntry(time="12:00", pair="SOL/USDC", side="BUY", pnl="+$0.0100",
                      pnl_value=0.01, api_cost="$0.000313", confidence=n)


class TestRingBuffer:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            RingBuffer("bad", 0)

    def test_append_under_capacity(self):
        store = EventStore(capacity=5)
        for i in range(3):
            store.append(log_entry(i))
        assert [e.message for e in store.read()] == ["entry 0", "entry 1", "entry 2"]

    def test_250_appends_keep_last_200(self):
        store = EventStore(capacity=200)
        for i in range(1, 251):
            store.append(log_entry(i))

        entries = store.read()
        assert len(entries) == 200
        assert entries[0].message == "entry 51"
        assert entries[-1].message == "entry 250"

    @pytest.mark.parametrize("count", [0, 1, 49, 50, 51, 137])
    def test_length_bounded_and_most_recent_in_order(self, count):
        store = TradeStore(capacity=50)
        for i in range(count):
            store.append(trade_entry(i))
        kept = [t.confidence for t in store.read()]
        assert len(kept) == min(count, 50)
        assert kept == list(range(count))[-50:]

    def test_read_returns_copy(self):
        store = EventStore(capacity=5)
        store.append(log_entry(1))
        snapshot = store.read()
        snapshot.clear()
        assert len(store) == 1

    def test_entries_are_immutable(self):
        entry = log_entry(1)
        with pytest.raises(Exception):
            entry.message = "changed"

    def test_clear(self):
        store = EventStore(capacity=5)
        store.append(log_entry(1))
        store.clear()
        assert store.read() == []


class TestRestore:
    def test_restore_on_empty_store(self):
        store = EventStore(capacity=200)
        assert store.restore([log_entry(i) for i in range(10)]) is True
        assert [e.message for e in store.read()] == [f"entry {i}" for i in range(10)]

    def test_second_restore_is_ignored(self):
        store = EventStore(capacity=200)
        original = [log_entry(i) for i in range(10)]
        store.restore(original)

        assert store.restore([log_entry(100 + i) for i in range(5)]) is False
        assert store.read() == original

    def test_restore_ignored_once_live_entries_exist(self):
        store = EventStore(capacity=200)
        store.append(log_entry(0))
        assert store.restore([log_entry(i) for i in range(1, 4)]) is False
        assert len(store) == 1

    def test_restore_trims_to_capacity(self):
        store = TradeStore(capacity=50)
        store.restore([trade_entry(i) for i in range(60)])
        kept = store.read()
        assert len(kept) == 50
        assert kept[0].confidence == 10


class TestEventStoreAdd:
    def test_add_stamps_time(self):
        store = EventStore(capacity=5)
        entry = store.add("SCAN", "looking", "scan", cost="~$0.001")
        assert entry.prefix == "SCAN"
        assert entry.cost == "~$0.001"
        assert len(entry.time) == 8 and entry.time.count(":") == 2
        assert store.read() == [entry]


class TestFormatPnl:
    def test_positive(self):
        assert format_pnl(0.04321) == "+$0.0432"

    def test_negative(self):
        assert format_pnl(-0.0123) == "-$0.0123"

    def test_zero_is_positive(self):
        assert format_pnl(0.0) == "+$0.0000"
