from datetime import datetime
from typing import Optional

from meowth.events.models import LogEntry, LogType
from meowth.observability.logger import get_logger

log = get_logger("events")


class RingBuffer:
    """Fixed-capacity, append-only sequence with oldest-first eviction."""

    def __init__(self, name: str, capacity: int):
        if capacity < 1:
            raise ValueError(f"{name} capacity must be positive, got {capacity}")
        self.name = name
        self.capacity = capacity
        self._entries: list = []

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry):
        self._entries.append(entry)
        if len(self._entries) > self.capacity:
            del self._entries[: len(self._entries) - self.capacity]
        return entry

    def restore(self, entries: list) -> bool:
        """Seed an empty buffer with entries ordered oldest first.

        A populated buffer is left untouched so a late or repeated restore can
        never duplicate or interleave history.
        """
        if self._entries:
            log.info("restore_skipped", store=self.name, current=len(self._entries))
            return False
        self._entries = list(entries)[-self.capacity:]
        log.info("store_restored", store=self.name, count=len(self._entries))
        return True

    def read(self) -> list:
        return list(self._entries)

    def clear(self):
        self._entries.clear()


class EventStore(RingBuffer):
    def __init__(self, capacity: int = 200):
        super().__init__("agent_logs", capacity)

    def add(self, prefix: str, message: str, type: LogType, cost: Optional[str] = None) -> LogEntry:
        entry = LogEntry(
            time=datetime.now().strftime("%H:%M:%S"),
            prefix=prefix,
            message=message,
            cost=cost,
            type=type,
        )
        return self.append(entry)


class TradeStore(RingBuffer):
    def __init__(self, capacity: int = 50):
        super().__init__("trades", capacity)
