import asyncio
import random
import traceback
from typing import Optional

from meowth.config import Settings
from meowth.core.cycle import DecisionCycle
from meowth.core.gate import GateState, RestorationGate
from meowth.credits.ledger import CreditLedger
from meowth.events.store import EventStore, TradeStore
from meowth.persistence.base import PersistentStore
from meowth.observability.logger import get_logger

log = get_logger("scheduler")


class CycleScheduler:
    """Self-rescheduling control loop around DecisionCycle.

    Ticks never overlap: a tick that arrives while another is executing is
    dropped. The loop halts for good when the ledger runs dry; only an
    explicit ``start()`` brings it back.
    """

    def __init__(
        self,
        config: Settings,
        ledger: CreditLedger,
        events: EventStore,
        trades: TradeStore,
        store: PersistentStore,
        gate: RestorationGate,
        cycle: DecisionCycle,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.ledger = ledger
        self.events = events
        self.trades = trades
        self.store = store
        self.gate = gate
        self.cycle = cycle
        self.rng = rng or random.Random()
        self._running = False
        self._in_cycle = False
        self._dead_announced = False
        self._cycle_count = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tick_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def in_cycle(self) -> bool:
        return self._in_cycle

    async def start(self):
        if self._running:
            return
        self._running = True
        self._dead_announced = False

        await self.restore()

        log.info("scheduler_started", cycle_count=self._cycle_count,
                 remaining=round(self.ledger.get_state().remaining, 6))
        self._schedule(self.config.first_tick_delay_seconds)

    async def restore(self):
        """Load durable state once, then open the gate whatever happened."""
        if self.gate.state is not GateState.PENDING:
            await self.gate.wait_for_ready()
            return
        with self.gate.restoring():
            try:
                await self._restore()
            except Exception as e:
                log.error("restore_error", error=str(e), traceback=traceback.format_exc())

    async def _restore(self):
        await self.ledger.initialize()

        logs = await self.store.read_logs(self.events.capacity)
        if logs:
            self.events.restore(logs)

        trades = await self.store.read_trades(self.trades.capacity)
        if trades:
            self.trades.restore(trades)

        call_count = self.ledger.get_state().call_count
        if call_count > self._cycle_count:
            self._cycle_count = call_count
            log.info("cycle_count_restored", cycle_count=call_count)

    def stop(self):
        """Cancel the pending timer. An in-flight tick still runs to completion."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._running:
            self._running = False
            log.info("scheduler_stopped")

    def next_delay(self) -> float:
        low = self.config.tick_delay_min_seconds
        high = self.config.tick_delay_max_seconds
        return low + self.rng.random() * (high - low)

    def _schedule(self, delay: float):
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._fire)

    def _fire(self):
        self._timer = None
        self._tick_task = asyncio.ensure_future(self.tick())

    def _halt(self):
        if not self._dead_announced:
            self.cycle.emit("DEAD", "Credits depleted. Agent terminated.", "fail")
            self._dead_announced = True
            log.warning("agent_dead", cycle_count=self._cycle_count,
                        spent=round(self.ledger.get_state().total_spent, 6))
        self.stop()

    async def tick(self, reschedule: bool = True):
        if not self.ledger.is_alive():
            self._halt()
            return

        if self._in_cycle:
            log.info("tick_skipped_busy", cycle=self._cycle_count)
            # The busy cycle may be a run_once, which never reschedules
            if reschedule and self._running:
                self._schedule(self.next_delay())
            return

        await self._run_cycle()

        if not self.ledger.is_alive():
            self._halt()
        elif reschedule and self._running:
            self._schedule(self.next_delay())

    async def run_once(self):
        """Operator hook: tick now, outside the timer. Obeys the same guards."""
        await self.tick(reschedule=False)

    async def _run_cycle(self):
        self._in_cycle = True
        self._cycle_count += 1
        cycle = self._cycle_count
        try:
            await asyncio.wait_for(self.cycle.run(cycle), timeout=self.config.cycle_timeout_seconds)
        except asyncio.TimeoutError:
            self.cycle.emit("ERR", f"Cycle #{cycle} timed out after {self.config.cycle_timeout_seconds:.0f}s", "fail")
            log.error("cycle_timeout", cycle=cycle, timeout=self.config.cycle_timeout_seconds)
        except Exception as e:
            self.cycle.emit("ERR", f"Agent error: {e}", "fail")
            log.error("cycle_error", cycle=cycle, error=str(e), traceback=traceback.format_exc())
        finally:
            self._in_cycle = False

    async def wait_idle(self):
        """Wait for a timer-fired tick that is still executing."""
        task = self._tick_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)
