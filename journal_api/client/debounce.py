import asyncio
from typing import Awaitable, Callable, Optional, Set

from ..logging_config import get_logger

logger = get_logger(__name__)


class Debouncer:
    """
    Runs an async callback once `delay` seconds have passed without another
    trigger(). Only the waiting period is cancellable; once the callback has
    started it runs to completion.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self):
        self.cancel()
        task = asyncio.get_running_loop().create_task(self._run())
        self._timer = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def cancel(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _run(self):
        await asyncio.sleep(self.delay)
        # Detach before firing so a trigger() from inside the callback
        # cannot cancel the run that is already in progress
        self._timer = None
        try:
            await self.callback()
        except Exception:
            logger.exception("Debounced callback failed")

    async def wait(self):
        """Wait for the pending timer and any running callbacks"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
