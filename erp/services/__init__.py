# Services module
from erp.services.attendance_service import AttendanceService, AttendanceError
from erp.services.billing_service import BillingService, BillingError
from erp.services.dashboard_service import DashboardService, DashboardError
from erp.services.gst_service import GSTReturnService, GSTReturnError
from erp.services.inventory_service import InventoryService, InventoryError
