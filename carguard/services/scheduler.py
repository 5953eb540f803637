"""
Scheduling driver - runs a coroutine on a fixed cadence.
Time comes from an injected clock so tests can drive ticks without waiting.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Source of the current time and of waiting"""

    def now(self) -> datetime: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall clock backed by datetime.now() and asyncio.sleep()"""

    def now(self) -> datetime:
        return datetime.now()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class RepeatingTimer:
    """
    Call `func` once after `startup_delay_seconds`, then every
    `interval_seconds`.

    The cadence is measured from the start of each tick. A tick that runs
    longer than the interval is followed immediately by the next one;
    missed ticks are not replayed. Exceptions raised by `func` are logged
    and never stop the timer.
    """

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[object]],
        interval_seconds: float,
        startup_delay_seconds: float = 0,
        clock: Optional[Clock] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.func = func
        self.interval_seconds = interval_seconds
        self.startup_delay_seconds = startup_delay_seconds
        self.clock = clock or SystemClock()
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _tick(self) -> None:
        try:
            await self.func()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Timer '{self.name}' tick failed: {e}")
        finally:
            self.ticks += 1

    async def run(self, max_ticks: Optional[int] = None) -> None:
        """Run the loop in the current task; stops after max_ticks if given"""
        if self.startup_delay_seconds > 0:
            await self.clock.sleep(self.startup_delay_seconds)

        executed = 0
        while max_ticks is None or executed < max_ticks:
            started = self.clock.now()
            await self._tick()
            executed += 1
            if max_ticks is not None and executed >= max_ticks:
                break

            elapsed = (self.clock.now() - started).total_seconds()
            await self.clock.sleep(max(0.0, self.interval_seconds - elapsed))

    def start(self) -> asyncio.Task:
        """Schedule the loop as a background task on the running event loop"""
        if self.running:
            return self._task
        self._task = asyncio.create_task(self.run(), name=self.name)
        logger.info(
            f"Timer '{self.name}' started: first run in {self.startup_delay_seconds}s, "
            f"then every {self.interval_seconds}s"
        )
        return self._task

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
            logger.info(f"Timer '{self.name}' stopped")


def build_reminder_timer(service, config, clock: Optional[Clock] = None) -> RepeatingTimer:
    """Put a ReminderService sweep on the configured cadence"""
    return RepeatingTimer(
        name="reminder-sweep",
        func=service.run_sweep,
        interval_seconds=config.reminder_interval_seconds,
        startup_delay_seconds=config.reminder_startup_delay_seconds,
        clock=clock or service.clock,
    )
