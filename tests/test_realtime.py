import asyncio
from datetime import datetime, timezone

from conftest import RecordingSocket
from models.attendance_model import AttendanceChanged, AttendanceStatus
from services.notifier import BroadcastNotifier


def make_event(employee_id="EMP001", status=AttendanceStatus.PUNCHED_IN):
    return AttendanceChanged(
        employee_id=employee_id,
        employee_name="John Doe",
        status=status,
        timestamp=datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc),
    )


def test_broadcast_with_no_clients_is_a_no_op():
    notifier = BroadcastNotifier()
    assert asyncio.run(notifier.broadcast(make_event())) == 0


def test_broadcast_reaches_every_client():
    notifier = BroadcastNotifier()
    sockets = [RecordingSocket() for _ in range(3)]
    for socket in sockets:
        notifier.register(socket)

    delivered = asyncio.run(notifier.broadcast(make_event()))

    assert delivered == 3
    for socket in sockets:
        assert socket.messages == [{
            "event": "attendanceUpdate",
            "data": {
                "employeeId": "EMP001",
                "employeeName": "John Doe",
                "status": "PUNCHED_IN",
                "timestamp": "2024-05-06T09:00:00Z",
            },
        }]


def test_failed_client_is_dropped_and_others_still_served():
    notifier = BroadcastNotifier()
    healthy, broken = RecordingSocket(), RecordingSocket(fail=True)
    notifier.register(healthy)
    notifier.register(broken)

    assert asyncio.run(notifier.broadcast(make_event())) == 1
    assert notifier.connection_count == 1

    asyncio.run(notifier.broadcast(make_event(status=AttendanceStatus.PUNCHED_OUT)))
    assert [m["data"]["status"] for m in healthy.messages] == ["PUNCHED_IN", "PUNCHED_OUT"]


def test_disconnect_is_idempotent():
    notifier = BroadcastNotifier()
    socket = RecordingSocket()
    notifier.register(socket)

    notifier.disconnect(socket)
    notifier.disconnect(socket)

    assert notifier.connection_count == 0


def test_websocket_receives_update_after_http_punch(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"event": "attendance:get-today"})
        assert websocket.receive_json() == {"event": "attendance:today-data", "data": []}

        response = client.post("/attendance/punch-in", json={"employeeId": "EMP001"})
        assert response.status_code == 201

        message = websocket.receive_json()
        assert message["event"] == "attendanceUpdate"
        assert message["data"]["employeeId"] == "EMP001"
        assert message["data"]["employeeName"] == "John Doe"
        assert message["data"]["status"] == "PUNCHED_IN"


def test_websocket_get_active(client):
    client.post("/attendance/punch-in", json={"employeeId": "EMP002"})

    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"event": "attendance:get-active"})
        message = websocket.receive_json()

    assert message["event"] == "attendance:active-data"
    assert [r["employeeId"] for r in message["data"]] == ["EMP002"]
    assert message["data"][0]["employeeName"] == "Jane Smith"


def test_websocket_unknown_event_and_bad_json(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"event": "dashboard:explode"})
        assert websocket.receive_json()["event"] == "error"

        websocket.send_text("not json")
        assert websocket.receive_json()["event"] == "error"


def test_health_counts_connected_clients(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"event": "attendance:get-today"})
        websocket.receive_json()
        assert client.get("/health").json()["connectedClients"] == 1


def test_send_to_gives_up_on_a_stalled_client():
    class StalledSocket:
        async def send_json(self, message):
            await asyncio.sleep(3600)

    notifier = BroadcastNotifier(send_timeout=0.05)
    stalled = StalledSocket()
    notifier.register(stalled)

    assert asyncio.run(notifier.send_to(stalled, "attendanceUpdate", {})) is False
    assert asyncio.run(notifier.broadcast(make_event())) == 0
    assert notifier.connection_count == 0


def test_websocket_punch_in_and_out(client, clock):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"event": "attendance:punch-in", "data": {"employeeId": "EMP001", "notes": "early"}})

        update = websocket.receive_json()
        reply = websocket.receive_json()
        assert update["event"] == "attendanceUpdate"
        assert update["data"]["status"] == "PUNCHED_IN"
        assert reply["event"] == "attendance:punch-in-success"
        assert reply["data"]["message"] == "Punched in successfully"
        assert reply["data"]["attendance"]["employeeId"] == "EMP001"
        assert reply["data"]["attendance"]["notes"] == "early"

        clock.advance(hours=4)
        websocket.send_json({"event": "attendance:punch-out", "data": {"employeeId": "EMP001"}})

        assert websocket.receive_json()["data"]["status"] == "PUNCHED_OUT"
        reply = websocket.receive_json()
        assert reply["event"] == "attendance:punch-out-success"
        assert reply["data"]["attendance"]["totalHours"] == 4.0

    assert client.get("/attendance/EMP001").json()["status"] == "PUNCHED_OUT"


def test_websocket_punch_rejections_come_back_as_errors(client):
    client.post("/attendance/punch-in", json={"employeeId": "EMP001"})

    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"event": "attendance:punch-in", "data": {"employeeId": "EMP001"}})
        duplicate = websocket.receive_json()

        websocket.send_json({"event": "attendance:punch-out", "data": {"employeeId": "EMP002"}})
        nothing_open = websocket.receive_json()

        websocket.send_json({"event": "attendance:punch-in", "data": {}})
        malformed = websocket.receive_json()

    assert duplicate["event"] == "error"
    assert duplicate["data"]["error"] == "AlreadyPunchedIn"
    assert nothing_open["data"]["error"] == "NoActivePunchIn"
    assert malformed["event"] == "error"
    assert malformed["data"]["error"] == "ValidationError"
    assert "employeeId" in malformed["data"]["message"]


def test_websocket_dashboard_stats(client, clock):
    client.post("/attendance/punch-in", json={"employeeId": "EMP001"})
    clock.advance(minutes=1)
    client.post("/attendance/punch-in", json={"employeeId": "EMP002"})
    clock.advance(hours=1)
    client.post("/attendance/punch-out", json={"employeeId": "EMP002"})

    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"event": "dashboard:get-stats"})
        message = websocket.receive_json()

    assert message["event"] == "dashboard:stats"
    stats = message["data"]
    assert stats["totalEmployees"] == 3
    assert stats["activeEmployees"] == 2
    assert stats["punchedIn"] == 1
    assert stats["punchedOut"] == 1
    assert [r["employeeId"] for r in stats["recentAttendance"]] == ["EMP002", "EMP001"]
    assert stats["recentAttendance"][0]["employeeName"] == "Jane Smith"
    assert stats["timestamp"].startswith("2024-05-06T10:01:00")
