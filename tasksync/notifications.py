"""Best-effort push notifications.

Deliveries run as background asyncio tasks and are never awaited by the
operation that triggered them. Failures are logged and dropped; there is
no retry and no delivery guarantee.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from tasksync.config import settings

logger = logging.getLogger("tasksync.notifications")

BROADCAST = "all"


class PushNotifier:
    def __init__(
        self,
        gateway_url: str | None = None,
        server_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.gateway_url = gateway_url
        self.server_key = server_key
        self.timeout = timeout
        self.transport = transport
        self._pending: set[asyncio.Task] = set()

    def send(self, payload: dict, destination: str | None) -> None:
        """Schedule delivery of ``payload`` to a device token or to ``all``."""
        if not self.gateway_url:
            logger.debug("No push gateway configured, dropping %s", payload)
            return
        if not destination:
            logger.debug("No notification address, dropping %s", payload)
            return

        task = asyncio.create_task(self._deliver(payload, destination))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, payload: dict, destination: str) -> None:
        to = f"/topics/{BROADCAST}" if destination == BROADCAST else destination
        headers = {}
        if self.server_key:
            headers["Authorization"] = f"key={self.server_key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    self.gateway_url, json={"to": to, "data": payload}, headers=headers
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Push delivery to %s failed: %s", to, e)
            return
        logger.debug("Pushed %s to %s", payload, to)

    async def drain(self) -> None:
        """Wait for deliveries still in flight."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


notifier = PushNotifier(
    gateway_url=settings.push_gateway_url,
    server_key=settings.push_server_key,
    timeout=settings.push_timeout_seconds,
)
