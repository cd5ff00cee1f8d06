"""AisFence — WebSocket fan-out for live deltas."""

import json
import logging

from fastapi import WebSocket

logger = logging.getLogger("aisfence.ws")


class ConnectionManager:
    """Tracks dashboard clients and pushes every delta to all of them."""

    def __init__(self):
        self._clients: set[WebSocket] = set()
        self.sent = 0

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self._clients.add(websocket)
        logger.info("WebSocket client connected (%d total)", len(self._clients))

    def disconnect(self, websocket: WebSocket):
        if websocket in self._clients:
            self._clients.discard(websocket)
            logger.info("WebSocket client disconnected (%d remaining)", len(self._clients))

    async def broadcast_delta(self, delta: dict):
        await self.broadcast({"action": "delta", "data": delta})

    async def broadcast(self, message: dict):
        if not self._clients:
            return

        text = json.dumps(message, default=str)
        gone = []
        for ws in list(self._clients):
            try:
                await ws.send_text(text)
                self.sent += 1
            except Exception as e:
                logger.debug("Send failed (%s), dropping client", e)
                gone.append(ws)

        for ws in gone:
            self.disconnect(ws)

    async def send_to(self, websocket: WebSocket, message: dict):
        try:
            await websocket.send_text(json.dumps(message, default=str))
        except Exception as e:
            logger.debug("Send failed (%s), dropping client", e)
            self.disconnect(websocket)

    @property
    def connection_count(self) -> int:
        return len(self._clients)
