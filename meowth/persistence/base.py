from abc import ABC, abstractmethod
from typing import Optional

from meowth.credits.models import CreditState
from meowth.events.models import LogEntry, TradeEntry


class PersistentStore(ABC):
    """Durable, append-only home for log rows, trade rows and credit snapshots.

    Writes never raise; they report success as a bool. Reads return the most
    recent ``limit`` rows in ascending creation order.
    """

    @abstractmethod
    async def write_log(self, entry: LogEntry) -> bool:
        pass

    @abstractmethod
    async def write_trade(self, entry: TradeEntry, reason: str = "") -> bool:
        pass

    @abstractmethod
    async def write_credit_snapshot(self, state: CreditState) -> bool:
        pass

    @abstractmethod
    async def read_logs(self, limit: int) -> list[LogEntry]:
        pass

    @abstractmethod
    async def read_trades(self, limit: int) -> list[TradeEntry]:
        pass

    @abstractmethod
    async def read_latest_credit_snapshot(self) -> Optional[CreditState]:
        pass
