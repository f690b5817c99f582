import random
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from meowth.config import Settings
from meowth.core.cycle import DecisionCycle
from meowth.core.gate import RestorationGate
from meowth.core.scheduler import CycleScheduler
from meowth.core.simulator import OutcomeSimulator
from meowth.credits.ledger import CreditLedger
from meowth.credits.models import CreditState
from meowth.engine.base import DecisionEngine
from meowth.events.models import LogEntry, TradeEntry
from meowth.events.store import EventStore, TradeStore
from meowth.market.base import MarketDataProvider
from meowth.persistence.base import PersistentStore
from meowth.persistence.writer import BackgroundWriter


class AgentStatus(BaseModel):
    is_running: bool
    is_alive: bool
    cycle_count: int
    credit_state: CreditState
    recent_logs: list[LogEntry]
    recent_trades: list[TradeEntry]


@dataclass
class AgentContext:
    """Everything one agent needs, owned by the process entry point."""

    config: Settings
    ledger: CreditLedger
    events: EventStore
    trades: TradeStore
    gate: RestorationGate
    writer: BackgroundWriter
    store: PersistentStore
    cycle: DecisionCycle
    scheduler: CycleScheduler

    @classmethod
    def build(
        cls,
        config: Settings,
        store: PersistentStore,
        market: MarketDataProvider,
        engine: DecisionEngine,
        rng: Optional[random.Random] = None,
    ) -> "AgentContext":
        rng = rng or random.Random()
        ledger = CreditLedger(config, store)
        events = EventStore(config.log_buffer_size)
        trades = TradeStore(config.trade_buffer_size)
        gate = RestorationGate()
        writer = BackgroundWriter()
        cycle = DecisionCycle(
            config, ledger, events, trades, market, engine, store, writer,
            simulator=OutcomeSimulator(rng),
        )
        scheduler = CycleScheduler(config, ledger, events, trades, store, gate, cycle, rng=rng)
        return cls(
            config=config,
            ledger=ledger,
            events=events,
            trades=trades,
            gate=gate,
            writer=writer,
            store=store,
            cycle=cycle,
            scheduler=scheduler,
        )

    async def status(self, include_trades: bool = True) -> AgentStatus:
        # A freshly started process must not report an empty history mid-restore
        await self.gate.wait_for_ready()
        return AgentStatus(
            is_running=self.scheduler.is_running,
            is_alive=self.ledger.is_alive(),
            cycle_count=self.scheduler.cycle_count,
            credit_state=self.ledger.get_state(),
            recent_logs=self.events.read(),
            recent_trades=self.trades.read() if include_trades else [],
        )

    async def shutdown(self):
        self.scheduler.stop()
        await self.scheduler.wait_idle()
        await self.writer.drain()
