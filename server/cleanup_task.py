"""Background task that expires idle upload sessions."""

import asyncio
import logging
from typing import List, Optional

from server.config import SWEEP_INTERVAL
from server.services.upload_service import UploadSessionManager

logger = logging.getLogger(__name__)


class SessionExpirySweeper:
    """
    Background task that periodically purges sessions past their TTL.
    """

    def __init__(self, manager: UploadSessionManager, interval_seconds: Optional[int] = None):
        """
        Initialize sweeper task.

        Args:
            manager: Session manager whose stale sessions are expired
            interval_seconds: Time between sweeps (default from UPLOAD_SWEEP_INTERVAL_SECONDS)
        """
        self.manager = manager
        self.interval_seconds = interval_seconds if interval_seconds is not None else SWEEP_INTERVAL
        self._running = False
        self._task = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._running:
            logger.warning("Expiry sweeper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started session expiry sweeper (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background sweep task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped session expiry sweeper")

    async def _run(self) -> None:
        """Main loop for sweep task."""
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await self.sweep_once()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in expiry sweeper: {e}", exc_info=True)

    async def sweep_once(self) -> List[str]:
        """Execute one sweep cycle."""
        expired = await self.manager.expire_stale()
        if expired:
            logger.info(f"Sweep complete: {len(expired)} sessions expired")
        else:
            logger.debug("Sweep complete: no stale sessions")
        return expired
