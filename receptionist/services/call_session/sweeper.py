"""Background reclaim of sessions whose calls went quiet."""
import asyncio
import logging
from datetime import timedelta
from typing import Optional

from receptionist.services.call_session.controller import CallLifecycleController

logger = logging.getLogger(__name__)


class SessionSweeper:
    """Periodically expires idle sessions through the controller."""

    def __init__(
        self,
        controller: CallLifecycleController,
        idle_timeout_seconds: int,
        interval_seconds: int,
    ):
        self.controller = controller
        self.max_idle = timedelta(seconds=idle_timeout_seconds)
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        """Run one sweep; returns the number of sessions expired."""
        try:
            return await self.controller.expire_idle_sessions(self.max_idle)
        except Exception as e:
            logger.error(
                f"[SESSION SWEEP] Sweep failed - Error: {type(e).__name__}: {e}",
                exc_info=True,
            )
            return 0

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.sweep_once()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(
            f"[SESSION SWEEP] Started - idle timeout {self.max_idle.total_seconds():.0f}s, "
            f"interval {self.interval_seconds}s"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[SESSION SWEEP] Stopped")
