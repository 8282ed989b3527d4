# services/attendance_service.py
import logging
from datetime import date, datetime, timezone, tzinfo
from io import BytesIO
from typing import Callable, List, Optional

from exceptions import (
    AlreadyPunchedIn,
    DuplicateAttendanceRecord,
    EmployeeInactive,
    EmployeeNotFound,
    InvalidPunchTime,
    NoActivePunchIn,
)
from models.attendance_model import (
    AttendanceChanged,
    AttendanceRecord,
    AttendanceStatus,
    AttendanceSummary,
    AttendanceView,
    DashboardStats,
    EmployeeStatus,
    Location,
)
from models.employee import Employee
from repositories.attendance_repository import AttendanceRepository
from repositories.employee_repository import EmployeeRepository
from services.notifier import BroadcastNotifier
from utils.date_utils import attendance_day, hours_between, to_utc, utc_now
from utils.excel_utils import create_attendance_report

logger = logging.getLogger(__name__)

RECENT_ATTENDANCE_LIMIT = 10


class AttendanceService:
    """
    Punch-in/punch-out state machine.

    Per employee and calendar day the record moves
    NOT_PUNCHED_IN -> PUNCHED_IN -> PUNCHED_OUT and stops there; a new day
    starts a new record. Only one punch cycle per day is allowed.

    Same-employee races are settled by the repository (unique
    (employeeId, date) key and a conditional punch-out update), so there is
    no lock here. Broadcasts go out only after the write has returned.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        notifier: BroadcastNotifier,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._attendance = attendance
        self._employees = employees
        self._notifier = notifier
        self._tz = tz
        self._clock = clock

    def today(self) -> date:
        return attendance_day(self._clock(), self._tz)

    async def _require_employee(self, employee_id: str) -> Employee:
        employee = await self._employees.get(employee_id)
        if employee is None:
            raise EmployeeNotFound(employee_id)
        return employee

    def _punch_time(self, timestamp: Optional[datetime]) -> datetime:
        return to_utc(timestamp or self._clock(), self._tz)

    async def punch_in(
        self,
        employee_id: str,
        timestamp: Optional[datetime] = None,
        notes: Optional[str] = None,
        location: Optional[Location] = None,
    ) -> AttendanceRecord:
        employee = await self._require_employee(employee_id)
        if not employee.is_active:
            raise EmployeeInactive(employee_id)

        punched_at = self._punch_time(timestamp)
        day = attendance_day(punched_at, self._tz)
        record = AttendanceRecord(
            employee_id=employee_id,
            date=day,
            punch_in_time=punched_at,
            notes=notes,
            location=location,
        )

        try:
            saved = await self._attendance.create(record)
        except DuplicateAttendanceRecord:
            existing = await self._attendance.find_for_day(employee_id, day)
            logger.info("Rejected duplicate punch-in for %s on %s", employee_id, day)
            if existing is not None and existing.status == AttendanceStatus.PUNCHED_OUT:
                raise AlreadyPunchedIn(f"Employee {employee_id} has already completed attendance for {day}")
            raise AlreadyPunchedIn(f"Employee {employee_id} is already punched in for {day}")

        logger.info("Employee %s punched in at %s", employee_id, punched_at.isoformat())
        await self._notify(employee, saved, punched_at)
        return saved

    async def punch_out(
        self,
        employee_id: str,
        timestamp: Optional[datetime] = None,
        notes: Optional[str] = None,
        location: Optional[Location] = None,
    ) -> AttendanceRecord:
        employee = await self._require_employee(employee_id)

        punched_at = self._punch_time(timestamp)
        day = attendance_day(punched_at, self._tz)

        record = await self._attendance.find_active_for_day(employee_id, day)
        if record is None:
            if await self._attendance.find_for_day(employee_id, day) is not None:
                raise NoActivePunchIn(f"Employee {employee_id} has already punched out for {day}")
            raise NoActivePunchIn(f"No punch-in found for employee {employee_id} on {day}")
        if punched_at <= record.punch_in_time:
            raise InvalidPunchTime(
                f"Punch-out at {punched_at.isoformat()} is not after punch-in at {record.punch_in_time.isoformat()}"
            )

        total_hours = hours_between(record.punch_in_time, punched_at)
        updated = await self._attendance.update_set_punch_out(record.id, punched_at, total_hours, notes, location)
        if updated is None:
            # A concurrent punch-out closed the record first.
            raise NoActivePunchIn(f"Employee {employee_id} has already punched out for {day}")

        logger.info("Employee %s punched out at %s (%.2fh)", employee_id, punched_at.isoformat(), total_hours)
        await self._notify(employee, updated, punched_at)
        return updated

    async def get_status(self, employee_id: str) -> EmployeeStatus:
        await self._require_employee(employee_id)
        day = self.today()
        record = await self._attendance.find_for_day(employee_id, day)
        if record is None:
            return EmployeeStatus(employee_id=employee_id, date=day, status=AttendanceStatus.NOT_PUNCHED_IN)
        return EmployeeStatus(
            employee_id=employee_id,
            date=day,
            status=record.status,
            punch_in_time=record.punch_in_time,
            punch_out_time=record.punch_out_time,
            total_hours=record.total_hours,
        )

    async def list_records(
        self,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[AttendanceView]:
        records = await self._attendance.find_all(employee_id, start_date, end_date, status, skip, limit)
        return await self._join_employees(records)

    async def list_today(self) -> List[AttendanceView]:
        records = await self._attendance.find_by_day(self.today())
        return await self._join_employees(records)

    async def list_active(self) -> List[AttendanceView]:
        records = await self._attendance.find_active_by_day(self.today())
        return await self._join_employees(records)

    async def employee_history(self, employee_id: str, limit: int = 30) -> List[AttendanceView]:
        await self._require_employee(employee_id)
        records = await self._attendance.find_all(employee_id=employee_id, limit=limit)
        return await self._join_employees(records)

    async def today_summary(self) -> AttendanceSummary:
        day = self.today()
        records = await self._attendance.find_by_day(day)
        total = await self._employees.count()
        active = await self._employees.count(active_only=True)
        punched_in = sum(1 for r in records if r.status == AttendanceStatus.PUNCHED_IN)
        punched_out = sum(1 for r in records if r.status == AttendanceStatus.PUNCHED_OUT)
        return AttendanceSummary(
            date=day,
            total_employees=total,
            active_employees=active,
            punched_in=punched_in,
            punched_out=punched_out,
            not_punched_in=max(active - punched_in - punched_out, 0),
        )

    async def dashboard_stats(self, recent: int = RECENT_ATTENDANCE_LIMIT) -> DashboardStats:
        summary = await self.today_summary()
        recent_records = await self.list_records(limit=recent)
        return DashboardStats(
            **summary.model_dump(),
            recent_attendance=recent_records,
            timestamp=self._clock(),
        )

    async def export_records(
        self,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> BytesIO:
        """Excel workbook of the matching records, newest first."""
        views = await self.list_records(employee_id, start_date, end_date, status, limit=None)
        return create_attendance_report(views, self._tz)

    async def _join_employees(self, records: List[AttendanceRecord]) -> List[AttendanceView]:
        employees = await self._employees.get_many(r.employee_id for r in records)
        views = []
        for record in records:
            employee = employees.get(record.employee_id)
            views.append(AttendanceView(
                **record.model_dump(exclude={"status"}),
                employee_name=employee.full_name if employee else None,
                employee_active=employee.is_active if employee else None,
            ))
        return views

    async def _notify(self, employee: Employee, record: AttendanceRecord, timestamp: datetime) -> None:
        event = AttendanceChanged(
            employee_id=employee.employee_id,
            employee_name=employee.full_name,
            status=record.status,
            timestamp=timestamp,
        )
        await self._notifier.broadcast(event)
