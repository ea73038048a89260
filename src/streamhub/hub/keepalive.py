"""KeepAlive ticker — periodic heartbeats on every open stream.

Learn: proxies and load balancers cut idle HTTP responses. A `ping`
event every interval keeps bytes flowing. Heartbeats use the same drop
policy as broadcast; a heartbeat dropped on a full queue says nothing
about liveness. Dead clients are detected when a write fails in the
consumption loop, not here.

Runs as a background task in the FastAPI lifespan.

Usage:
    ticker = KeepAliveTicker(registry, interval=30.0)
    ticker.start()
    ...
    await ticker.stop()
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog

from streamhub.hub.events import heartbeat
from streamhub.hub.registry import ConnectionRegistry

logger = structlog.get_logger()


class KeepAliveTicker:
    """Enqueues a heartbeat on every connection once per interval."""

    def __init__(self, registry: ConnectionRegistry, interval: float = 30.0):
        if interval <= 0:
            raise ValueError(f"Heartbeat interval must be positive, got {interval}")
        self.registry = registry
        self.interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    def tick(self) -> int:
        """Send one round of heartbeats. Returns how many were enqueued."""
        event = heartbeat()
        now = datetime.now(timezone.utc)
        sent = 0
        for conn in self.registry.connections():
            if conn.try_put(event):
                conn.last_heartbeat_at = now
                sent += 1
        return sent

    async def run_loop(self) -> None:
        """Main loop — sleep, tick, repeat until stopped."""
        self._running = True
        logger.info("keepalive.started", interval=self.interval)

        while self._running:
            await asyncio.sleep(self.interval)
            if self.registry.closed:
                break
            try:
                sent = self.tick()
                logger.debug("keepalive.tick", sent=sent)
            except Exception:
                logger.exception("keepalive.error")

        self._running = False

    def start(self) -> asyncio.Task:
        """Schedule run_loop() on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_loop())
        return self._task

    async def stop(self) -> None:
        """Stop the loop and wait for the task to finish."""
        self._running = False
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("keepalive.stopped")
