import asyncio
import enum
from contextlib import contextmanager

from meowth.observability.logger import get_logger

log = get_logger("gate")


class GateState(str, enum.Enum):
    PENDING = "pending"
    RESTORING = "restoring"
    READY = "ready"


class RestorationGate:
    """One-shot barrier: readers wait here until durable state has been loaded.

    Transitions only move forward (PENDING -> RESTORING -> READY). Once READY,
    every current and future waiter passes straight through.
    """

    def __init__(self):
        self._state = GateState.PENDING
        self._ready = asyncio.Event()

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is GateState.READY

    def begin(self):
        if self._state is GateState.PENDING:
            self._state = GateState.RESTORING
            log.info("gate_restoring")

    def mark_ready(self):
        if self._state is GateState.READY:
            return
        self._state = GateState.READY
        self._ready.set()
        log.info("gate_ready")

    @contextmanager
    def restoring(self):
        """Run a restoration block; the gate opens however the block exits."""
        self.begin()
        try:
            yield self
        finally:
            self.mark_ready()

    async def wait_for_ready(self):
        if self._state is GateState.READY:
            return
        await self._ready.wait()
