# models/attendance_model.py
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel


class AttendanceStatus(str, Enum):
    NOT_PUNCHED_IN = "NOT_PUNCHED_IN"
    PUNCHED_IN = "PUNCHED_IN"
    PUNCHED_OUT = "PUNCHED_OUT"


def derive_status(punch_in_time: Optional[datetime], punch_out_time: Optional[datetime]) -> AttendanceStatus:
    if punch_in_time is None:
        return AttendanceStatus.NOT_PUNCHED_IN
    if punch_out_time is None:
        return AttendanceStatus.PUNCHED_IN
    return AttendanceStatus.PUNCHED_OUT


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Location(CamelModel):
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    address: Optional[str] = Field(default=None, max_length=200)


class PunchRequest(CamelModel):
    employee_id: str = Field(min_length=1)
    notes: Optional[str] = Field(default=None, max_length=500)
    location: Optional[Location] = None


class AttendanceRecord(CamelModel):
    id: Optional[str] = None
    employee_id: str
    date: date
    punch_in_time: Optional[datetime] = None
    punch_out_time: Optional[datetime] = None
    total_hours: Optional[float] = None
    notes: Optional[str] = None
    location: Optional[Location] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_punch_order(self):
        if self.punch_out_time is not None:
            if self.punch_in_time is None:
                raise ValueError("punchOutTime cannot be set without punchInTime")
            if self.punch_out_time <= self.punch_in_time:
                raise ValueError("punchOutTime must be after punchInTime")
        return self

    @computed_field
    @property
    def status(self) -> AttendanceStatus:
        return derive_status(self.punch_in_time, self.punch_out_time)

    def to_document(self) -> Dict[str, Any]:
        """Shape stored in the attendance collection. `status` is never persisted."""
        doc = self.model_dump(by_alias=True, exclude={"id", "status"})
        doc["date"] = self.date.isoformat()
        if self.location is not None:
            doc["location"] = self.location.model_dump(by_alias=True)
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "AttendanceRecord":
        data = {k: v for k, v in doc.items() if k not in ("_id", "status")}
        if "_id" in doc:
            data["id"] = str(doc["_id"])
        return cls.model_validate(data)


class AttendanceView(AttendanceRecord):
    """Attendance record joined with the employee's display fields."""

    employee_name: Optional[str] = None
    employee_active: Optional[bool] = None


class EmployeeStatus(CamelModel):
    employee_id: str
    date: date
    status: AttendanceStatus
    punch_in_time: Optional[datetime] = None
    punch_out_time: Optional[datetime] = None
    total_hours: Optional[float] = None


class AttendanceChanged(CamelModel):
    employee_id: str
    employee_name: str
    status: AttendanceStatus
    timestamp: datetime


class AttendanceSummary(CamelModel):
    date: date
    total_employees: int
    active_employees: int
    punched_in: int
    punched_out: int
    not_punched_in: int


class DashboardStats(AttendanceSummary):
    """Today's counts plus the latest records, as pushed to dashboard clients."""

    recent_attendance: List[AttendanceView]
    timestamp: datetime
