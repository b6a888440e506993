"""Pydantic schemas for employees and attendance."""
from datetime import datetime, date
from typing import Optional, List
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, EmailStr, field_validator

from erp.core.enum_utils import create_case_validator
from erp.models.hr import EmployeeStatus, AttendanceStatus
from erp.schemas.base import (
    BaseResponseSchema,
    BaseCreateSchema,
    BaseUpdateSchema,
    CamelSchema,
    CamelResponseSchema,
    Money,
)


# ==================== Employee Schemas ====================

class EmployeeBase(BaseCreateSchema):
    """Base schema for Employee."""
    full_name: str = Field(..., min_length=1, max_length=200)
    role_title: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    salary: Optional[Decimal] = Field(None, ge=0)
    joining_date: date
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    notes: Optional[str] = None

    _normalize_status = create_case_validator('status', EmployeeStatus)


class EmployeeCreate(EmployeeBase):
    """Schema for creating Employee. The employee code is generated."""
    pass


class EmployeeUpdate(BaseUpdateSchema):
    """Schema for updating Employee."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    role_title: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    salary: Optional[Decimal] = Field(None, ge=0)
    joining_date: Optional[date] = None
    status: Optional[EmployeeStatus] = None
    notes: Optional[str] = None

    _normalize_status = create_case_validator('status', EmployeeStatus)


class EmployeeResponse(BaseResponseSchema):
    """Response schema for Employee."""
    id: UUID
    employee_code: str
    full_name: str
    role_title: str
    email: Optional[str] = None
    phone: Optional[str] = None
    salary: Optional[Money] = None
    joining_date: date
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class EmployeeListResponse(BaseModel):
    """Response for listing Employees."""
    items: List[EmployeeResponse]
    total: int
    page: int = 1
    limit: int = 10
    pages: int = 1


# ==================== Attendance Schemas ====================

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AttendanceRecordIn(CamelSchema):
    """One record of an attendance batch: {employeeId, date, status, checkIn?, checkOut?, notes?}."""
    employee_id: UUID
    date: date
    status: AttendanceStatus
    check_in: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    check_out: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    notes: Optional[str] = None

    _normalize_status = create_case_validator('status', AttendanceStatus)

    @field_validator('check_in', 'check_out', 'notes', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AttendanceBatchCreate(CamelSchema):
    """
    Batch attendance entry.

    Records stay raw here so that each one is validated on its own and a bad
    record does not reject the whole batch.
    """
    records: List[dict]


class AttendanceUpdate(CamelSchema):
    """Schema for updating Attendance."""
    status: Optional[AttendanceStatus] = None
    check_in: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    check_out: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    notes: Optional[str] = None

    _normalize_status = create_case_validator('status', AttendanceStatus)


class AttendanceResponse(CamelResponseSchema):
    """Response schema for Attendance."""
    id: UUID
    employee_id: UUID
    attendance_date: date = Field(..., serialization_alias="date")
    status: str
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    notes: Optional[str] = None

    # Employee info
    employee_code: Optional[str] = None
    employee_name: Optional[str] = None

    created_at: datetime
    updated_at: datetime


class AttendanceBatchError(CamelSchema):
    """A batch record that was not saved."""
    index: int
    employee_id: Optional[str] = None
    date: Optional[str] = None
    message: str


class AttendanceBatchResult(CamelSchema):
    """Outcome of a batch save."""
    records: List[AttendanceResponse]
    errors: List[AttendanceBatchError]


# ==================== Attendance Summaries ====================

class AttendanceCounts(CamelSchema):
    """Present / absent / leave counters; total is their sum."""
    present: int = 0
    absent: int = 0
    leave: int = 0
    total: int = 0


class EmployeeAttendanceTotals(AttendanceCounts):
    """Per-employee counters for a date range.

    employeeMongoId is the employee record id; employeeId is the human employee code.
    """
    employee_id: UUID = Field(..., serialization_alias="employeeMongoId")
    employee_code: Optional[str] = Field(None, serialization_alias="employeeId")
    full_name: Optional[str] = None
    role_title: Optional[str] = None
    status: Optional[str] = None


class DateRange(CamelSchema):
    start: date
    end: date


class EmployeeSummaryResponse(CamelSchema):
    range: DateRange
    totals: List[EmployeeAttendanceTotals]


class MonthAttendanceTotals(AttendanceCounts):
    month: int


class MonthlySummaryResponse(CamelSchema):
    year: int
    employee_id: Optional[UUID] = None
    months: List[MonthAttendanceTotals]
