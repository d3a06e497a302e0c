"""
Historical Sync Scheduler

Background asyncio task that keeps the local corpus fresh:
1. One full sync right after start
2. Then wait for the interval and sync again, until stopped

stop() interrupts the wait but never an in-flight sync; the loop exits at
the next cycle boundary.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional

from ticket_dedup.utils.logger import get_logger

logger = get_logger(__name__)

SyncCallable = Callable[[], Awaitable[Any]]
SleepCallable = Callable[[float], Awaitable[Any]]


class HistoricalSyncScheduler:
    """
    Single long-lived sync loop.

    Args:
        sync: Coroutine function performing one full sync
        interval_seconds: Delay between the end of one sync and the next
        enabled: When False, start() does nothing
        sleep: Awaitable delay used between cycles (injectable for tests)
    """

    def __init__(
        self,
        sync: SyncCallable,
        interval_seconds: float,
        enabled: bool = True,
        sleep: SleepCallable = asyncio.sleep
    ):
        self._sync = sync
        self.interval_seconds = interval_seconds
        self.enabled = enabled
        self._sleep = sleep
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.cycles_completed = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> Optional[asyncio.Task]:
        """
        Start the loop as a background task

        Returns:
            The running task, or None when sync is disabled
        """
        if not self.enabled:
            logger.info("Historical data sync is disabled")
            return None
        if self.is_running:
            return self._task

        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="historical-sync")
        return self._task

    def request_stop(self) -> None:
        """Ask the loop to exit at the next cycle boundary without waiting"""
        self._stop_event.set()

    async def stop(self) -> None:
        """Request shutdown and wait for the loop to exit"""
        self.request_stop()
        if self._task is not None:
            logger.info("Historical data sync service is stopping")
            await self._task
            self._task = None

    async def run(self) -> None:
        """Sync immediately, then once per interval until stopped"""
        logger.info("Historical data sync service started")
        await self._perform_sync()

        while not self._stop_event.is_set():
            stopped = await self._wait_interval()
            if stopped:
                break
            await self._perform_sync()

        logger.info("Historical data sync service stopped")

    async def _perform_sync(self) -> None:
        try:
            logger.info("Starting scheduled historical data sync")
            await self._sync()
            logger.info("Completed scheduled historical data sync")
        except Exception as e:
            logger.error(f"Error during scheduled historical data sync: {e}", exc_info=True)
        finally:
            self.cycles_completed += 1

    async def _wait_interval(self) -> bool:
        """
        Wait for the interval or a stop request, whichever comes first

        Returns:
            True if stop was requested
        """
        sleeper = asyncio.ensure_future(self._sleep(self.interval_seconds))
        stopper = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait({sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for pending in (sleeper, stopper):
                if not pending.done():
                    pending.cancel()
        return self._stop_event.is_set()
