"""API endpoints for the employee master."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select, delete, func, and_, or_

from erp.api.deps import DB, OrgId
from erp.api.response import ok
from erp.config import settings
from erp.core.enum_utils import get_enum_value
from erp.models.hr import Employee, EmployeeStatus, Attendance
from erp.schemas.base import page_count
from erp.schemas.hr import (
    EmployeeCreate,
    EmployeeUpdate,
    EmployeeResponse,
    EmployeeListResponse,
)
from erp.services.numbering import next_document_number


router = APIRouter(tags=["Employees"])


async def generate_employee_code(db: DB, org_id: UUID) -> str:
    """Generate next employee code."""
    return await next_document_number(db, Employee, "employee_code", org_id, "EMP", 4)


async def _get_employee(db: DB, org_id: UUID, employee_id: UUID) -> Employee:
    result = await db.execute(
        select(Employee).where(
            and_(Employee.id == employee_id, Employee.organization_id == org_id)
        )
    )
    employee = result.scalar_one_or_none()
    if not employee:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Employee not found"
        )
    return employee


@router.get("")
async def list_employees(
    db: DB,
    org_id: OrgId,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: Optional[EmployeeStatus] = Query(None, alias="status"),
    role: Optional[str] = Query(None, description="Role title contains"),
    q: Optional[str] = Query(None, description="Search by name, code, email, phone"),
):
    """Get paginated list of employees."""
    query = select(Employee).where(Employee.organization_id == org_id)

    if status_filter:
        query = query.where(Employee.status == status_filter.value)
    if role and role.strip():
        query = query.where(func.lower(Employee.role_title).like(f"%{role.strip().lower()}%"))
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.where(or_(
            func.lower(Employee.full_name).like(pattern),
            func.lower(Employee.employee_code).like(pattern),
            func.lower(func.coalesce(Employee.email, "")).like(pattern),
            func.coalesce(Employee.phone, "").like(pattern),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(
        query.order_by(Employee.employee_code).offset((page - 1) * limit).limit(limit)
    )

    return ok(
        EmployeeListResponse(
            items=[EmployeeResponse.model_validate(e) for e in result.scalars().all()],
            total=total,
            page=page,
            limit=limit,
            pages=page_count(total, limit),
        ),
        message="Employees fetched",
    )


@router.get("/{employee_id}")
async def get_employee(
    employee_id: UUID,
    db: DB,
    org_id: OrgId,
):
    """Get an employee by ID."""
    employee = await _get_employee(db, org_id, employee_id)
    return ok(EmployeeResponse.model_validate(employee), message="Employee fetched")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_employee(
    data: EmployeeCreate,
    db: DB,
    org_id: OrgId,
):
    """Create a new employee with a generated employee code."""
    employee_data = data.model_dump()
    employee_data["status"] = get_enum_value(data.status)

    employee = Employee(
        organization_id=org_id,
        employee_code=await generate_employee_code(db, org_id),
        **employee_data,
    )
    db.add(employee)
    await db.commit()
    await db.refresh(employee)

    return ok(EmployeeResponse.model_validate(employee), message="Employee created", status_code=201)


@router.put("/{employee_id}")
async def update_employee(
    employee_id: UUID,
    data: EmployeeUpdate,
    db: DB,
    org_id: OrgId,
):
    """Update an employee."""
    employee = await _get_employee(db, org_id, employee_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("full_name", "role_title", "joining_date", "status"):
            continue
        setattr(employee, field, get_enum_value(value) if field == "status" else value)

    await db.commit()
    await db.refresh(employee)

    return ok(EmployeeResponse.model_validate(employee), message="Employee updated")


@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: UUID,
    db: DB,
    org_id: OrgId,
):
    """Delete an employee together with their attendance records."""
    employee = await _get_employee(db, org_id, employee_id)
    await db.execute(delete(Attendance).where(Attendance.employee_id == employee.id))
    await db.delete(employee)
    await db.commit()

    return ok({"id": employee_id}, message="Employee deleted")
