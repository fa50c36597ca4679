"""
WebSocket-backed dashboard observer.
"""

from __future__ import annotations

import asyncio

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from phonetree_scout.shared.logging import get_logger

logger = get_logger(__name__)


class WebSocketObserver:
    """Queues dashboard events and writes them to one WebSocket.

    The registry only ever calls `try_send`, which enqueues without waiting.
    `pump()` runs as a separate task and does the actual socket I/O.
    """

    def __init__(self, websocket: WebSocket, call_sid: str, max_queue: int = 256) -> None:
        self.websocket = websocket
        self.call_sid = call_sid
        self._outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue)
        self._closed = False

    def is_open(self) -> bool:
        if self._closed:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def try_send(self, message: str) -> bool:
        if self._closed:
            return False
        try:
            self._outbox.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                "Dashboard outbox full; dropping message",
                extra={"call_sid": self.call_sid, "queue_size": self._outbox.maxsize},
            )
            return False
        return True

    async def pump(self) -> None:
        """Drain the outbox onto the socket until closed."""
        while not self._closed:
            message = await self._outbox.get()
            try:
                await self.websocket.send_text(message)
            except (WebSocketDisconnect, RuntimeError):
                logger.info("Dashboard socket gone", extra={"call_sid": self.call_sid})
                self.close()

    def close(self) -> None:
        self._closed = True

    @property
    def pending(self) -> int:
        return self._outbox.qsize()
