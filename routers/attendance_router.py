# routers/attendance_router.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from models.attendance_model import (
    AttendanceRecord,
    AttendanceStatus,
    AttendanceSummary,
    AttendanceView,
    EmployeeStatus,
    PunchRequest,
)
from routers.dependencies import get_attendance_service
from services.attendance_service import AttendanceService

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("/punch-in", status_code=201, response_model=AttendanceRecord)
async def api_punch_in(payload: PunchRequest, service: AttendanceService = Depends(get_attendance_service)):
    return await service.punch_in(payload.employee_id, notes=payload.notes, location=payload.location)


@router.post("/punch-out", response_model=AttendanceRecord)
async def api_punch_out(payload: PunchRequest, service: AttendanceService = Depends(get_attendance_service)):
    return await service.punch_out(payload.employee_id, notes=payload.notes, location=payload.location)


@router.get("", response_model=List[AttendanceView])
async def api_get_attendance_records(
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    status: Optional[AttendanceStatus] = None,
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
    service: AttendanceService = Depends(get_attendance_service),
):
    return await service.list_records(employee_id, start_date, end_date, status, skip, limit)


@router.get("/today", response_model=List[AttendanceView])
async def api_get_today_attendance(service: AttendanceService = Depends(get_attendance_service)):
    return await service.list_today()


@router.get("/active", response_model=List[AttendanceView])
async def api_get_active_attendance(service: AttendanceService = Depends(get_attendance_service)):
    return await service.list_active()


@router.get("/summary", response_model=AttendanceSummary)
async def api_get_attendance_summary(service: AttendanceService = Depends(get_attendance_service)):
    return await service.today_summary()


@router.get("/export")
async def api_export_attendance(
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    status: Optional[AttendanceStatus] = None,
    service: AttendanceService = Depends(get_attendance_service),
):
    file_stream = await service.export_records(employee_id, start_date, end_date, status)
    filename = f"attendance_{service.today().isoformat()}.xlsx"
    return StreamingResponse(
        file_stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.get("/{employee_id}", response_model=EmployeeStatus)
async def api_get_employee_status(employee_id: str, service: AttendanceService = Depends(get_attendance_service)):
    return await service.get_status(employee_id)


@router.get("/{employee_id}/history", response_model=List[AttendanceView])
async def api_get_employee_history(
    employee_id: str,
    limit: int = Query(30, ge=1, le=366),
    service: AttendanceService = Depends(get_attendance_service),
):
    return await service.employee_history(employee_id, limit)
