"""
Attendance Service

Handles:
- Batch save: independent upserts keyed by (employee, date)
- Per-employee counters for a month or explicit date range
- Month-by-month counters for a year
"""
import calendar
import logging
import re
from datetime import date
from typing import Optional, List, Dict, Any, Tuple
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select, func, and_, extract
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.enum_utils import enum_values, get_enum_value
from erp.models.hr import Employee, Attendance, AttendanceStatus
from erp.schemas.hr import AttendanceRecordIn


logger = logging.getLogger(__name__)

MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")

COUNTED_STATUSES = enum_values(AttendanceStatus)


class AttendanceError(Exception):
    """Custom exception for attendance errors."""
    def __init__(self, message: str, error_code: str = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


# =============================================================================
# PURE HELPERS
# =============================================================================

def month_range(month: str) -> Tuple[date, date]:
    """First and last day of a YYYY-MM month."""
    match = MONTH_RE.match((month or "").strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise AttendanceError("Month must be in YYYY-MM format", "INVALID_MONTH")
    year, mon = int(match.group(1)), int(match.group(2))
    return date(year, mon, 1), date(year, mon, calendar.monthrange(year, mon)[1])


def resolve_range(
    month: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """
    Date range for the employee summary.

    month wins over explicit dates; with neither, the current month is used.
    Explicit dates must come as a pair.
    """
    if month:
        return month_range(month)

    if start_date or end_date:
        if not (start_date and end_date):
            raise AttendanceError("startDate and endDate must be provided together", "INVALID_RANGE")
        try:
            start = date.fromisoformat(start_date)
            end = date.fromisoformat(end_date)
        except ValueError:
            raise AttendanceError("Dates must be in YYYY-MM-DD format", "INVALID_DATE")
        if start > end:
            raise AttendanceError("startDate cannot be after endDate", "INVALID_RANGE")
        return start, end

    today = today or date.today()
    return month_range(f"{today.year:04d}-{today.month:02d}")


def empty_counts() -> Dict[str, int]:
    return {status: 0 for status in COUNTED_STATUSES} | {"total": 0}


def add_count(counts: Dict[str, int], status: str, n: int) -> None:
    """Add n records of status; total is always the sum of the counted statuses."""
    if status not in COUNTED_STATUSES:
        return
    counts[status] += n
    counts["total"] += n


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ())) or "record"
    return f"Invalid {field}: {first.get('msg', 'invalid value')}"


# =============================================================================
# SERVICE
# =============================================================================

class AttendanceService:
    """Attendance for one organization."""

    def __init__(self, db: AsyncSession, organization_id: UUID):
        self.db = db
        self.organization_id = organization_id

    async def _employees_by_id(self, employee_ids) -> Dict[UUID, Employee]:
        if not employee_ids:
            return {}
        result = await self.db.execute(
            select(Employee).where(
                and_(
                    Employee.organization_id == self.organization_id,
                    Employee.id.in_(employee_ids),
                )
            )
        )
        return {e.id: e for e in result.scalars().all()}

    async def _find_record(self, employee_id: UUID, day: date) -> Optional[Attendance]:
        result = await self.db.execute(
            select(Attendance).where(
                and_(
                    Attendance.employee_id == employee_id,
                    Attendance.attendance_date == day,
                )
            )
        )
        return result.scalar_one_or_none()

    async def _upsert_record(self, employee: Employee, rec: AttendanceRecordIn) -> Attendance:
        """Insert or overwrite the (employee, date) row inside its own savepoint."""
        async with self.db.begin_nested():
            attendance = await self._find_record(employee.id, rec.date)
            if attendance is None:
                attendance = Attendance(
                    organization_id=self.organization_id,
                    employee_id=employee.id,
                    attendance_date=rec.date,
                )
                self.db.add(attendance)

            attendance.status = get_enum_value(rec.status)
            attendance.check_in = rec.check_in
            attendance.check_out = rec.check_out
            attendance.notes = rec.notes

            # Flush per record so a repeated (employee, date) later in the batch updates this row
            await self.db.flush()
        return attendance

    async def save_batch(self, records: List[Any]) -> Dict[str, Any]:
        """
        Upsert each record by (employee, date).

        Returns {"records": [(attendance, employee)], "errors": [...]}.
        A record that fails validation is reported and skipped; the others
        are still saved.
        """
        if not records:
            raise AttendanceError("At least one attendance record is required", "EMPTY_BATCH")

        valid: List[Tuple[int, AttendanceRecordIn]] = []
        errors: List[Dict[str, Any]] = []

        for index, raw in enumerate(records):
            raw_employee = raw.get("employeeId", raw.get("employee_id")) if isinstance(raw, dict) else None
            raw_date = raw.get("date") if isinstance(raw, dict) else None
            try:
                valid.append((index, AttendanceRecordIn.model_validate(raw)))
            except ValidationError as e:
                errors.append({
                    "index": index,
                    "employee_id": str(raw_employee) if raw_employee is not None else None,
                    "date": str(raw_date) if raw_date is not None else None,
                    "message": _validation_message(e),
                })

        employees = await self._employees_by_id({rec.employee_id for _, rec in valid})

        saved: List[Tuple[Attendance, Employee]] = []
        for index, rec in valid:
            employee = employees.get(rec.employee_id)
            if employee is None:
                errors.append({
                    "index": index,
                    "employee_id": str(rec.employee_id),
                    "date": rec.date.isoformat(),
                    "message": "Employee not found",
                })
                continue

            try:
                attendance = await self._upsert_record(employee, rec)
            except IntegrityError:
                # Row inserted by a concurrent save; the second pass updates it
                logger.warning(
                    f"Attendance conflict for employee={employee.id} date={rec.date}, retrying as update"
                )
                try:
                    attendance = await self._upsert_record(employee, rec)
                except IntegrityError:
                    logger.exception(f"Attendance save failed for employee={employee.id} date={rec.date}")
                    errors.append({
                        "index": index,
                        "employee_id": str(rec.employee_id),
                        "date": rec.date.isoformat(),
                        "message": "Could not save record",
                    })
                    continue

            saved.append((attendance, employee))

        errors.sort(key=lambda e: e["index"])
        if errors:
            logger.warning(f"Attendance batch: {len(errors)} of {len(records)} records rejected")
        logger.info(f"Attendance batch saved: {len(saved)} records for org={self.organization_id}")

        return {"records": saved, "errors": errors}

    async def list_attendance(
        self,
        attendance_date: Optional[date] = None,
        employee_id: Optional[UUID] = None,
    ) -> List[Tuple[Attendance, Employee]]:
        """Attendance rows with their employee, newest date first."""
        query = (
            select(Attendance, Employee)
            .join(Employee, Attendance.employee_id == Employee.id)
            .where(Attendance.organization_id == self.organization_id)
        )
        if attendance_date:
            query = query.where(Attendance.attendance_date == attendance_date)
        if employee_id:
            query = query.where(Attendance.employee_id == employee_id)

        result = await self.db.execute(
            query.order_by(Attendance.attendance_date.desc(), Employee.employee_code)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def update(
        self,
        attendance_id: UUID,
        data: Dict[str, Any],
    ) -> Tuple[Attendance, Employee]:
        result = await self.db.execute(
            select(Attendance, Employee)
            .join(Employee, Attendance.employee_id == Employee.id)
            .where(
                and_(
                    Attendance.id == attendance_id,
                    Attendance.organization_id == self.organization_id,
                )
            )
        )
        row = result.first()
        if not row:
            raise AttendanceError("Attendance record not found", "NOT_FOUND")

        attendance, employee = row
        for field, value in data.items():
            if field == "status":
                if value is None:
                    continue
                value = get_enum_value(value)
            setattr(attendance, field, value)

        await self.db.flush()
        logger.info(f"Attendance {attendance_id} updated: {sorted(data)}")
        return attendance, employee

    async def employee_summary(
        self,
        month: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Per-employee present/absent/leave/total counts within a range.

        Only employees with at least one record in the range appear.
        """
        start, end = resolve_range(month, start_date, end_date)

        result = await self.db.execute(
            select(
                Attendance.employee_id,
                Attendance.status,
                func.count(Attendance.id),
            )
            .where(
                and_(
                    Attendance.organization_id == self.organization_id,
                    Attendance.attendance_date >= start,
                    Attendance.attendance_date <= end,
                )
            )
            .group_by(Attendance.employee_id, Attendance.status)
        )

        counts: Dict[UUID, Dict[str, int]] = {}
        for employee_id, status, n in result.all():
            add_count(counts.setdefault(employee_id, empty_counts()), status, n)

        employees = await self._employees_by_id(set(counts))

        totals = []
        for employee_id, row in counts.items():
            employee = employees.get(employee_id)
            totals.append({
                "employee_id": employee_id,
                "employee_code": employee.employee_code if employee else None,
                "full_name": employee.full_name if employee else None,
                "role_title": employee.role_title if employee else None,
                "status": employee.status if employee else None,
                **row,
            })
        totals.sort(key=lambda r: (r["full_name"] or "", r["employee_code"] or ""))

        return {"range": {"start": start, "end": end}, "totals": totals}

    async def monthly_summary(
        self,
        year: Optional[int] = None,
        employee_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """Twelve zero-filled month rows of counts for a year."""
        year = year or date.today().year
        if not 1 <= year <= 9999:
            raise AttendanceError("Year is out of range", "INVALID_YEAR")

        month_col = extract("month", Attendance.attendance_date)
        conditions = [
            Attendance.organization_id == self.organization_id,
            Attendance.attendance_date >= date(year, 1, 1),
            Attendance.attendance_date <= date(year, 12, 31),
        ]
        if employee_id:
            conditions.append(Attendance.employee_id == employee_id)

        result = await self.db.execute(
            select(month_col, Attendance.status, func.count(Attendance.id))
            .where(and_(*conditions))
            .group_by(month_col, Attendance.status)
        )

        months = {m: empty_counts() for m in range(1, 13)}
        for month, status, n in result.all():
            add_count(months[int(month)], status, n)

        return {
            "year": year,
            "employee_id": employee_id,
            "months": [{"month": m, **months[m]} for m in range(1, 13)],
        }
