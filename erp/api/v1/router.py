from fastapi import APIRouter

from erp.api.v1.endpoints import (
    # Masters
    customers,
    items,
    employees,
    # Inventory & Billing
    inventory,
    invoices,
    payments,
    # HR
    attendance,
    # GST
    gst,
    # Reports
    dashboard,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Masters ====================
api_router.include_router(
    customers.router,
    prefix="/customers",
    tags=["Customers"]
)
api_router.include_router(
    items.router,
    prefix="/items",
    tags=["Items"]
)
api_router.include_router(
    employees.router,
    prefix="/employees",
    tags=["Employees"]
)

# ==================== Inventory & Billing ====================
api_router.include_router(
    inventory.router,
    prefix="/inventory",
    tags=["Inventory"]
)
api_router.include_router(
    invoices.router,
    prefix="/invoices",
    tags=["Invoices"]
)
api_router.include_router(
    payments.router,
    prefix="/payments",
    tags=["Payments"]
)

# ==================== HR ====================
api_router.include_router(
    attendance.router,
    prefix="/attendance",
    tags=["Attendance"]
)

# ==================== GST ====================
api_router.include_router(
    gst.router,
    prefix="/gst",
    tags=["GST"]
)

# ==================== Dashboard ====================
api_router.include_router(
    dashboard.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)
