# routers/dependencies.py
from fastapi import Request, WebSocket

from services.attendance_service import AttendanceService
from services.notifier import BroadcastNotifier


def get_attendance_service(request: Request) -> AttendanceService:
    return request.app.state.attendance_service


def get_ws_attendance_service(websocket: WebSocket) -> AttendanceService:
    return websocket.app.state.attendance_service


def get_ws_notifier(websocket: WebSocket) -> BroadcastNotifier:
    return websocket.app.state.notifier
