"""WebSocket live-update channel: welcome, channel subscriptions and broadcasts."""

import json
from typing import Dict, Set

from fastapi import WebSocket, WebSocketDisconnect

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="live_updates")

WELCOME_MESSAGE = {"type": "connection", "message": "Connected to Ecosense WebSocket Server"}
POLLS_CHANNEL = "polls"


class ConnectionManager:
    """Tracks open sockets and the channels each one subscribed to."""

    def __init__(self) -> None:
        self._channels: Dict[WebSocket, Set[str]] = {}

    @property
    def connection_count(self) -> int:
        return len(self._channels)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._channels[websocket] = set()
        logger.info("WebSocket client connected", extra={"clients": self.connection_count})
        await websocket.send_json(WELCOME_MESSAGE)

    def disconnect(self, websocket: WebSocket) -> None:
        self._channels.pop(websocket, None)
        logger.info("WebSocket client disconnected", extra={"clients": self.connection_count})

    async def handle_message(self, websocket: WebSocket, raw: str) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring non-JSON WebSocket message")
            return
        if not isinstance(message, dict):
            logger.warning("Ignoring WebSocket message that is not an object")
            return

        if message.get("type") == "subscribe":
            channel = message.get("channel")
            self._channels.setdefault(websocket, set()).add(channel)
            logger.debug("Client subscribed", extra={"channel": channel})
            await websocket.send_json({"type": "subscribed", "channel": channel})
        else:
            logger.debug("Unknown WebSocket message type", extra={"message_type": message.get("type")})

    async def broadcast(self, message: dict, *, channel: str) -> int:
        """Send `message` to every client subscribed to `channel`; returns the number reached."""
        sent = 0
        for websocket, channels in list(self._channels.items()):
            if channel not in channels:
                continue
            try:
                await websocket.send_json(message)
                sent += 1
            except (WebSocketDisconnect, RuntimeError) as exc:
                logger.warning("Dropping WebSocket client after failed send", extra={"error": str(exc)})
                self.disconnect(websocket)
        return sent


manager = ConnectionManager()


async def websocket_endpoint(websocket: WebSocket) -> None:
    await manager.connect(websocket)
    try:
        while True:
            await manager.handle_message(websocket, await websocket.receive_text())
    except WebSocketDisconnect:
        manager.disconnect(websocket)
