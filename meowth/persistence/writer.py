import asyncio
from typing import Awaitable

from meowth.observability.logger import get_logger

log = get_logger("persistence.writer")


class BackgroundWriter:
    """Runs persistence writes as detached tasks.

    ``submit`` returns immediately; the caller never waits on, or sees errors
    from, the write. Pending tasks are referenced here until they finish.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()
        self.failures = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, write: Awaitable, kind: str) -> asyncio.Task:
        task = asyncio.create_task(self._run(write, kind))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, write: Awaitable, kind: str):
        try:
            ok = await write
        except Exception as e:
            self.failures += 1
            log.warning("persist_failed", kind=kind, error=str(e))
            return
        if ok is False:
            self.failures += 1

    async def drain(self):
        """Wait for every write submitted so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
