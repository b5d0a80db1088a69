"""Background scheduler for catalog synchronization passes."""

import asyncio
import enum
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from backend.app.core.config import settings
from backend.app.core.database import utcnow
from backend.app.services.swatch_sync import PassResult, SwatchSyncService

logger = logging.getLogger(__name__)


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class SyncScheduler:
    """Runs one sync pass at start, then one per interval until stopped.

    Passes never overlap. The interval is measured from the end of the
    previous pass, and a stop request is honored only while waiting or right
    before the next pass starts, never in the middle of one.
    """

    def __init__(self, service: SwatchSyncService | None = None, interval: float | None = None):
        self._service = service
        self._interval = settings.sync_interval_hours * 3600 if interval is None else interval  # seconds
        self._state = SchedulerState.IDLE
        self._stop_event = asyncio.Event()
        self._wake_event = asyncio.Event()
        self._abort_event = asyncio.Event()  # Set once the shutdown grace period has run out
        self._task: asyncio.Task | None = None
        self.last_result: PassResult | None = None
        self.next_run_at: datetime | None = None
        self.passes_run = 0
        self._on_pass_complete: Callable[[PassResult], None] | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def service(self) -> SwatchSyncService:
        if self._service is None:
            self._service = SwatchSyncService()
        return self._service

    def set_pass_complete_callback(self, callback: Callable[[PassResult], None] | None):
        """Register a callback invoked after every successful pass."""
        self._on_pass_complete = callback

    async def run(self):
        """Main loop - run a pass, then wait for the interval."""
        self._state = SchedulerState.IDLE
        logger.info("Sync scheduler started (interval %.0fs)", self._interval)

        while not self._stop_event.is_set():
            await self.run_once()

            self.next_run_at = utcnow() + timedelta(seconds=self._interval)
            if await self._wait_for_next_run():
                break

        self._state = SchedulerState.STOPPED
        self.next_run_at = None
        logger.info("Sync scheduler stopped after %d passes", self.passes_run)

    async def run_once(self) -> PassResult:
        """Execute one pass. Failures are logged, never raised."""
        self._state = SchedulerState.RUNNING
        try:
            result = await self.service.sync_all(stop_requested=self._abort_event.is_set)
        except Exception as e:
            logger.exception("Sync pass crashed: %s", e)
            result = PassResult(success=False, error=f"{type(e).__name__}: {e}")
        finally:
            self._state = SchedulerState.IDLE

        self.passes_run += 1
        self.last_result = result
        if result.success:
            logger.info(
                "Sync pass %d succeeded: %d swatches, %d skipped, %d pages",
                self.passes_run,
                result.records_processed,
                result.records_skipped,
                result.pages_fetched,
            )
        else:
            logger.error("Sync pass %d failed: %s", self.passes_run, result.error)

        if result.success and self._on_pass_complete:
            try:
                self._on_pass_complete(result)
            except Exception as e:
                logger.warning("Pass completion callback failed: %s", e)
        return result

    async def _wait_for_next_run(self) -> bool:
        """Sleep until the interval elapses or a run is requested.

        Returns True if a stop was requested.
        """
        stop = asyncio.ensure_future(self._stop_event.wait())
        wake = asyncio.ensure_future(self._wake_event.wait())
        try:
            await asyncio.wait({stop, wake}, timeout=self._interval, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            wake.cancel()

        if self._wake_event.is_set():
            self._wake_event.clear()
            logger.info("Sync pass requested before the scheduled time")

        # Checked again so a stop that races the interval still wins
        return self._stop_event.is_set()

    def request_run(self) -> bool:
        """Wake the scheduler for an immediate pass.

        Returns False when the scheduler is not running.
        """
        if not self.is_running or self._stop_event.is_set():
            return False
        self._wake_event.set()
        return True

    def start(self):
        """Start the scheduler loop as a background task."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._abort_event.clear()
        self._task = asyncio.create_task(self.run())

    def stop(self):
        """Ask the scheduler to stop. An in-flight pass is allowed to finish."""
        self._stop_event.set()
        logger.info("Sync scheduler stop requested")

    async def shutdown(self, timeout: float | None = None):
        """Stop and wait for the loop to exit.

        If the in-flight pass outlives ``timeout`` it is asked to abort, which
        a catalog walk honors once the current page request has completed.
        A pass still running after a second ``timeout`` (e.g. mid-commit) is
        cancelled outright and its transaction rolls back.
        """
        self.stop()
        if self._task is None:
            self._state = SchedulerState.STOPPED
            return

        timeout = settings.sync_shutdown_timeout if timeout is None else timeout
        try:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
                return
            except asyncio.TimeoutError:
                logger.warning("Sync pass still running after %.0fs, aborting at the next page boundary", timeout)
                self._abort_event.set()

            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Sync pass ignored the abort request, cancelling it")
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
                self._state = SchedulerState.STOPPED
        finally:
            self._task = None
            if self._service is not None:
                await self._service.close()


scheduler = SyncScheduler()
