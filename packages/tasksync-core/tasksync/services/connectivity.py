"""
Connectivity monitor.

Polls the service's health endpoint and fires a callback when the service
becomes reachable again after being unreachable.
"""

import asyncio
import logging
from typing import Callable, Optional

from tasksync.api.client import TaskApi

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """
    Background health probe.

    Args:
        api: Client whose health() is polled
        on_online: Called on every offline -> online transition
        interval: Seconds between probes
    """

    def __init__(self, api: TaskApi, on_online: Callable[[], object], interval: float = 30.0):
        self.api = api
        self.on_online = on_online
        self.interval = interval
        self.online: Optional[bool] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def probe(self) -> bool:
        """Run one probe and fire the callback on a transition to online."""
        online = await self.api.health()

        if online and self.online is False:
            logger.info("Task service reachable again")
            self.on_online()
        elif not online and self.online is not False:
            logger.warning("Task service unreachable; working offline")

        self.online = online
        return online

    async def _run(self) -> None:
        while True:
            await self.probe()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.ensure_future(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
