"""API endpoints for attendance entry and summaries."""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from erp.api.deps import DB, OrgId
from erp.api.response import ok, http_error
from erp.models.hr import Attendance, Employee
from erp.schemas.hr import (
    AttendanceBatchCreate,
    AttendanceBatchResult,
    AttendanceUpdate,
    AttendanceResponse,
    EmployeeSummaryResponse,
    MonthlySummaryResponse,
)
from erp.services.attendance_service import AttendanceService, AttendanceError


router = APIRouter(tags=["Attendance"])


def _attendance_response(attendance: Attendance, employee: Employee) -> AttendanceResponse:
    response = AttendanceResponse.model_validate(attendance)
    response.employee_code = employee.employee_code
    response.employee_name = employee.full_name
    return response


@router.post("", status_code=status.HTTP_201_CREATED)
async def save_attendance(
    data: AttendanceBatchCreate,
    db: DB,
    org_id: OrgId,
):
    """
    Save a batch of attendance records.
    Each record is upserted by (employee, date); invalid records are
    returned in `errors` and do not block the rest.
    """
    service = AttendanceService(db, org_id)
    try:
        result = await service.save_batch(data.records)
    except AttendanceError as e:
        raise http_error(e)

    await db.commit()

    body = AttendanceBatchResult(
        records=[_attendance_response(a, e) for a, e in result["records"]],
        errors=result["errors"],
    )
    message = "Attendance saved"
    if result["errors"]:
        message = f"Attendance saved with {len(result['errors'])} error(s)"
    return ok(body, message=message, status_code=201)


@router.get("")
async def list_attendance(
    db: DB,
    org_id: OrgId,
    attendance_date: Optional[date] = Query(None, alias="date"),
    employee_id: Optional[UUID] = Query(None, alias="employeeId"),
):
    """Attendance records, optionally for one date and/or one employee."""
    rows = await AttendanceService(db, org_id).list_attendance(
        attendance_date=attendance_date,
        employee_id=employee_id,
    )
    return ok([_attendance_response(a, e) for a, e in rows], message="Attendance fetched")


@router.get("/summary/employees")
async def employee_summary(
    db: DB,
    org_id: OrgId,
    month: Optional[str] = Query(None, description="YYYY-MM"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
):
    """Present / absent / leave counts per employee for a month or date range."""
    try:
        summary = await AttendanceService(db, org_id).employee_summary(
            month=month,
            start_date=start_date,
            end_date=end_date,
        )
    except AttendanceError as e:
        raise http_error(e)

    return ok(EmployeeSummaryResponse.model_validate(summary), message="Attendance summary fetched")


@router.get("/summary/monthly")
async def monthly_summary(
    db: DB,
    org_id: OrgId,
    year: Optional[int] = Query(None),
    employee_id: Optional[UUID] = Query(None, alias="employeeId"),
):
    """Month-by-month counts for a year (default: current year)."""
    try:
        summary = await AttendanceService(db, org_id).monthly_summary(
            year=year,
            employee_id=employee_id,
        )
    except AttendanceError as e:
        raise http_error(e)

    return ok(MonthlySummaryResponse.model_validate(summary), message="Monthly attendance summary fetched")


@router.patch("/{attendance_id}")
async def update_attendance(
    attendance_id: UUID,
    data: AttendanceUpdate,
    db: DB,
    org_id: OrgId,
):
    """Update one attendance record."""
    try:
        attendance, employee = await AttendanceService(db, org_id).update(
            attendance_id,
            data.model_dump(exclude_unset=True),
        )
    except AttendanceError as e:
        raise http_error(e)

    await db.commit()
    return ok(_attendance_response(attendance, employee), message="Attendance updated")
