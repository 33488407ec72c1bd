"""Run event fan-out to WebSocket clients.

Each connected client gets its own queue and sender task, so ``publish`` can
be called synchronously from the engine and every client still receives the
events in emission order.
"""
import asyncio
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class RunEventHub:
    """Broadcasts engine events to every open run-status socket.

    There is one editor session per process, so every client sees every run.
    """

    def __init__(self):
        self._queues: dict[WebSocket, asyncio.Queue] = {}

    def publish(self, event: dict[str, Any]) -> None:
        for queue in self._queues.values():
            queue.put_nowait(event)

    async def serve(self, websocket: WebSocket) -> None:
        """Hold ``websocket`` open until the client goes away."""
        queue: asyncio.Queue = asyncio.Queue()
        # Register before accepting so no event after the handshake is missed
        self._queues[websocket] = queue
        await websocket.accept()
        sender = asyncio.create_task(self._pump(websocket, queue))
        logger.debug("Client joined run events (%d open)", len(self._queues))
        try:
            while True:
                # Clients only listen; reading detects the disconnect
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            self._queues.pop(websocket, None)
            sender.cancel()
            logger.debug("Client left run events (%d open)", len(self._queues))

    async def _pump(self, websocket: WebSocket, queue: asyncio.Queue) -> None:
        while True:
            event = await queue.get()
            try:
                await websocket.send_json(event)
            except Exception as e:
                logger.debug("Stopped sending run events: %s", e)
                self._queues.pop(websocket, None)
                return


hub = RunEventHub()
