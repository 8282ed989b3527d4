# utils/query_utils.py

from datetime import date
from typing import Any, Dict, Optional

from models.attendance_model import AttendanceStatus


def build_status_filter(status: AttendanceStatus) -> Dict[str, Any]:
    """
    Status is never stored, so it is expressed as conditions on the two
    punch timestamps.
    """
    if status == AttendanceStatus.NOT_PUNCHED_IN:
        return {"punchInTime": None}
    if status == AttendanceStatus.PUNCHED_IN:
        return {"punchInTime": {"$ne": None}, "punchOutTime": None}
    return {"punchOutTime": {"$ne": None}}


def build_attendance_query_filters(
    employee_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[AttendanceStatus] = None,
) -> Dict[str, Any]:
    """
    Builds MongoDB query filters for attendance records.
    Dates are stored as YYYY-MM-DD strings, so range checks compare strings.
    """
    mongo_filters: Dict[str, Any] = {}

    if employee_id:
        mongo_filters["employeeId"] = employee_id

    if start_date:
        mongo_filters.setdefault("date", {})["$gte"] = start_date.isoformat()

    if end_date:
        mongo_filters.setdefault("date", {})["$lte"] = end_date.isoformat()

    if status:
        mongo_filters.update(build_status_filter(status))

    return mongo_filters
