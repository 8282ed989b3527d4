from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from config import STORE_MEMORY, Settings
from main import create_app
from models.employee import Employee
from repositories.attendance_repository import InMemoryAttendanceRepository
from repositories.employee_repository import InMemoryEmployeeRepository
from services.attendance_service import AttendanceService
from services.notifier import BroadcastNotifier


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingSocket:
    """Stands in for a WebSocket: remembers what it was sent."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages = []

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.messages.append(message)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def employees():
    return InMemoryEmployeeRepository([
        Employee(employee_id="EMP001", first_name="John", last_name="Doe"),
        Employee(employee_id="EMP002", first_name="Jane", last_name="Smith"),
        Employee(employee_id="EMP003", first_name="Mike", last_name="Wilson", is_active=False),
    ])


@pytest.fixture
def attendance_repo():
    return InMemoryAttendanceRepository()


@pytest.fixture
def notifier():
    return BroadcastNotifier()


@pytest.fixture
def service(attendance_repo, employees, notifier, clock):
    return AttendanceService(attendance_repo, employees, notifier, tz=timezone.utc, clock=clock)


@pytest.fixture
def client(attendance_repo, employees, clock):
    app = create_app(Settings(attendance_store=STORE_MEMORY), attendance=attendance_repo, employees=employees, clock=clock)
    with TestClient(app) as test_client:
        yield test_client
