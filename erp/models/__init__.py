# Models module
from erp.models.customer import Customer
from erp.models.item import Item, ItemType, StockMovement, StockReason
from erp.models.billing import (
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    GstTreatment,
    Payment,
    PaymentMode,
)
from erp.models.hr import Employee, EmployeeStatus, Attendance, AttendanceStatus
from erp.models.gst import GstReturn, GstReturnType, GstReturnStatus

__all__ = [
    "Customer",
    "Item",
    "ItemType",
    "StockMovement",
    "StockReason",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "GstTreatment",
    "Payment",
    "PaymentMode",
    "Employee",
    "EmployeeStatus",
    "Attendance",
    "AttendanceStatus",
    "GstReturn",
    "GstReturnType",
    "GstReturnStatus",
]
