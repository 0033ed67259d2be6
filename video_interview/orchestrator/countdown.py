import asyncio
from typing import Awaitable, Callable, Optional

from loguru import logger

TickCallback = Callable[[int], None]
Sleep = Callable[[float], Awaitable[None]]


class Countdown:
    """
    Whole-unit countdown.

    `on_tick(remaining)` is called with the full duration right away and then
    once per elapsed unit, ending with 0. `run()` returns True when the
    countdown expired and False when it was cancelled first.
    """

    def __init__(
        self,
        duration: int,
        on_tick: Optional[TickCallback] = None,
        sleep: Sleep = asyncio.sleep,
        unit: float = 1.0,
    ):
        if duration <= 0:
            raise ValueError("Countdown duration must be positive")
        self.duration = duration
        self.remaining = duration
        self.on_tick = on_tick
        self.unit = unit
        self._sleep = sleep
        self._cancelled = asyncio.Event()

    @property
    def elapsed(self) -> int:
        return self.duration - self.remaining

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        self._cancelled.set()

    async def run(self) -> bool:
        self._tick()
        while self.remaining > 0:
            if not self.cancelled:
                await self._wait_unit()
            if self.cancelled:
                logger.debug(f"Countdown cancelled with {self.remaining} units left")
                return False
            self.remaining -= 1
            self._tick()
        return True

    async def _wait_unit(self):
        # cancel() must interrupt a unit that is already being waited on
        sleeper = asyncio.ensure_future(self._sleep(self.unit))
        canceller = asyncio.ensure_future(self._cancelled.wait())
        try:
            await asyncio.wait({sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, canceller):
                if not task.done():
                    task.cancel()

    def _tick(self):
        if self.on_tick:
            self.on_tick(self.remaining)
