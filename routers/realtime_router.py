# routers/realtime_router.py
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from exceptions import AttendanceError
from models.attendance_model import PunchRequest
from routers.dependencies import get_ws_attendance_service, get_ws_notifier
from services.attendance_service import AttendanceService
from services.notifier import BroadcastNotifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

GET_TODAY_EVENT = "attendance:get-today"
GET_ACTIVE_EVENT = "attendance:get-active"
PUNCH_IN_EVENT = "attendance:punch-in"
PUNCH_OUT_EVENT = "attendance:punch-out"
GET_STATS_EVENT = "dashboard:get-stats"


def _dump_all(models):
    return [m.model_dump(by_alias=True, mode="json") for m in models]


async def _handle_punch(websocket: WebSocket, event: str, data, notifier: BroadcastNotifier, service: AttendanceService):
    try:
        request = PunchRequest.model_validate(data if isinstance(data, dict) else {})
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        await notifier.send_to(websocket, "error", {
            "message": f"Invalid {event} request: {', '.join(fields)}",
            "error": "ValidationError",
        })
        return

    if event == PUNCH_IN_EVENT:
        record = await service.punch_in(request.employee_id, notes=request.notes, location=request.location)
        reply, message = "attendance:punch-in-success", "Punched in successfully"
    else:
        record = await service.punch_out(request.employee_id, notes=request.notes, location=request.location)
        reply, message = "attendance:punch-out-success", "Punched out successfully"

    await notifier.send_to(websocket, reply, {
        "message": message,
        "attendance": record.model_dump(by_alias=True, mode="json"),
    })


async def handle_client_message(websocket: WebSocket, raw: str, notifier: BroadcastNotifier, service: AttendanceService):
    """Answer a request sent by a connected client on the real-time channel."""
    try:
        message = json.loads(raw)
    except ValueError:
        await notifier.send_to(websocket, "error", {"message": "Messages must be JSON objects"})
        return

    event = message.get("event") if isinstance(message, dict) else None

    try:
        if event in (PUNCH_IN_EVENT, PUNCH_OUT_EVENT):
            await _handle_punch(websocket, event, message.get("data"), notifier, service)
        elif event == GET_TODAY_EVENT:
            await notifier.send_to(websocket, "attendance:today-data", _dump_all(await service.list_today()))
        elif event == GET_ACTIVE_EVENT:
            await notifier.send_to(websocket, "attendance:active-data", _dump_all(await service.list_active()))
        elif event == GET_STATS_EVENT:
            stats = await service.dashboard_stats()
            await notifier.send_to(websocket, "dashboard:stats", stats.model_dump(by_alias=True, mode="json"))
        else:
            await notifier.send_to(websocket, "error", {"message": f"Unknown event: {event}"})
    except AttendanceError as exc:
        logger.info("Real-time %s rejected: %s", event, exc.message)
        await notifier.send_to(websocket, "error", {"message": exc.message, "error": exc.name})


@router.websocket("/ws")
async def attendance_socket(
    websocket: WebSocket,
    notifier: BroadcastNotifier = Depends(get_ws_notifier),
    service: AttendanceService = Depends(get_ws_attendance_service),
):
    # No authentication on the channel: any client that can connect receives updates.
    await notifier.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            await handle_client_message(websocket, raw, notifier, service)
    except WebSocketDisconnect:
        logger.debug("Real-time client closed the connection")
    finally:
        notifier.disconnect(websocket)
