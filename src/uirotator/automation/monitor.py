import asyncio
import logging
from typing import Optional

from .engine import EngineFactory, browser_session

logger = logging.getLogger("uirotator.monitor")


class ReadinessFlag:
    """Process-wide readiness state.

    Written only by the availability monitor; everything else reads it.
    """

    def __init__(self, ready: bool = False):
        self.ready = ready

    def __bool__(self) -> bool:
        return self.ready


class AvailabilityMonitor:
    """Periodically launches and closes a browser to drive the readiness flag."""

    def __init__(self, engine_factory: EngineFactory, interval_s: float = 60, flag: Optional[ReadinessFlag] = None):
        self.engine_factory = engine_factory
        self.interval_s = interval_s
        self.flag = flag if flag is not None else ReadinessFlag()
        self._task: Optional[asyncio.Task] = None

    @property
    def ready(self) -> bool:
        return self.flag.ready

    async def check_once(self) -> bool:
        logger.debug("Checking Chromium availability")
        try:
            async with browser_session(self.engine_factory):
                pass
        except Exception as e:
            logger.error("Chromium check failed: %s", e)
            self.flag.ready = False
        else:
            if not self.flag.ready:
                logger.info("Chromium is ready")
            self.flag.ready = True
        return self.flag.ready

    async def _loop(self) -> None:
        while True:
            await self.check_once()
            await asyncio.sleep(self.interval_s)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._loop(), name="availability-monitor")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
