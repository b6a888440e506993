from typing import Optional
import uuid

from fastapi import APIRouter, HTTPException, status, Query
from sqlalchemy import select, func, and_, or_

from erp.api.deps import DB, OrgId
from erp.api.response import ok
from erp.config import settings
from erp.models.customer import Customer
from erp.schemas.base import page_count
from erp.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerResponse,
    CustomerListResponse,
)


router = APIRouter(tags=["Customers"])


async def _get_customer(db: DB, org_id: uuid.UUID, customer_id: uuid.UUID) -> Customer:
    result = await db.execute(
        select(Customer).where(
            and_(Customer.id == customer_id, Customer.organization_id == org_id)
        )
    )
    customer = result.scalar_one_or_none()
    if not customer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Customer not found"
        )
    return customer


async def _ensure_unique_email(db: DB, org_id: uuid.UUID, email: Optional[str], exclude_id: uuid.UUID = None):
    if not email:
        return
    query = select(Customer.id).where(
        and_(Customer.organization_id == org_id, Customer.email == email)
    )
    if exclude_id:
        query = query.where(Customer.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Customer with this email already exists"
        )


@router.get("")
async def list_customers(
    db: DB,
    org_id: OrgId,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    q: Optional[str] = Query(None, description="Search by name, email, phone"),
    is_active: bool = Query(True),
):
    """Get paginated list of customers."""
    query = select(Customer).where(
        and_(Customer.organization_id == org_id, Customer.is_active == is_active)
    )
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.where(or_(
            func.lower(Customer.name).like(pattern),
            func.lower(func.coalesce(Customer.email, "")).like(pattern),
            func.coalesce(Customer.phone, "").like(pattern),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(
        query.order_by(Customer.name).offset((page - 1) * limit).limit(limit)
    )

    return ok(
        CustomerListResponse(
            items=[CustomerResponse.model_validate(c) for c in result.scalars().all()],
            total=total,
            page=page,
            limit=limit,
            pages=page_count(total, limit),
        ),
        message="Customers fetched",
    )


@router.get("/{customer_id}")
async def get_customer(
    customer_id: uuid.UUID,
    db: DB,
    org_id: OrgId,
):
    """Get a customer by ID."""
    customer = await _get_customer(db, org_id, customer_id)
    return ok(CustomerResponse.model_validate(customer), message="Customer fetched")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    db: DB,
    org_id: OrgId,
):
    """Create a new customer."""
    await _ensure_unique_email(db, org_id, data.email)

    customer = Customer(organization_id=org_id, **data.model_dump())
    db.add(customer)
    await db.commit()
    await db.refresh(customer)

    return ok(CustomerResponse.model_validate(customer), message="Customer created", status_code=201)


@router.put("/{customer_id}")
async def update_customer(
    customer_id: uuid.UUID,
    data: CustomerUpdate,
    db: DB,
    org_id: OrgId,
):
    """Update a customer."""
    customer = await _get_customer(db, org_id, customer_id)

    update_data = data.model_dump(exclude_unset=True)
    if "email" in update_data:
        await _ensure_unique_email(db, org_id, update_data["email"], exclude_id=customer.id)
    if update_data.get("name") is None:
        update_data.pop("name", None)

    for field, value in update_data.items():
        setattr(customer, field, value)

    await db.commit()
    await db.refresh(customer)

    return ok(CustomerResponse.model_validate(customer), message="Customer updated")


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: uuid.UUID,
    db: DB,
    org_id: OrgId,
):
    """
    Deactivate a customer.
    Invoices keep their customer snapshot, so the row is kept.
    """
    customer = await _get_customer(db, org_id, customer_id)
    customer.is_active = False
    await db.commit()

    return ok({"id": customer.id}, message="Customer deleted")
