# services/notifier.py
import asyncio
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket

from models.attendance_model import AttendanceChanged

logger = logging.getLogger(__name__)

ATTENDANCE_UPDATE_EVENT = "attendanceUpdate"
DEFAULT_SEND_TIMEOUT = 5.0


class BroadcastNotifier:
    """
    Fans attendance changes out to every connected WebSocket client.

    Delivery is best effort: a client that fails to receive a message, or
    does not take it within `send_timeout` seconds, is dropped and the
    failure is logged, never raised to the caller.
    """

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT):
        self._connections: Set[WebSocket] = set()
        self._send_timeout = send_timeout

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.register(websocket)

    def register(self, websocket) -> None:
        self._connections.add(websocket)
        logger.info("Real-time client connected (%d open)", len(self._connections))

    def disconnect(self, websocket) -> None:
        if websocket in self._connections:
            self._connections.discard(websocket)
            logger.info("Real-time client disconnected (%d open)", len(self._connections))

    async def send_to(self, websocket, event: str, data: Any) -> bool:
        try:
            await asyncio.wait_for(websocket.send_json({"event": event, "data": data}), self._send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning("Dropping real-time client that did not take %s within %.1fs", event, self._send_timeout)
            return False
        except Exception as exc:
            logger.warning("Dropping real-time client after failed send of %s: %s", event, exc)
            return False

    async def broadcast(self, event: AttendanceChanged) -> int:
        """Send `event` to all clients connected right now. Returns how many received it."""
        targets = tuple(self._connections)
        if not targets:
            logger.debug("No real-time clients for %s/%s", event.employee_id, event.status.value)
            return 0

        payload: Dict[str, Any] = event.model_dump(by_alias=True, mode="json")
        results = await asyncio.gather(*(self.send_to(ws, ATTENDANCE_UPDATE_EVENT, payload) for ws in targets))

        for websocket, delivered in zip(targets, results):
            if not delivered:
                self.disconnect(websocket)

        delivered_count = sum(1 for delivered in results if delivered)
        logger.debug("Broadcast %s for %s to %d/%d clients",
                     event.status.value, event.employee_id, delivered_count, len(targets))
        return delivered_count
