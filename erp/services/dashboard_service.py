"""
Dashboard Service

Read-only counts and sums over an optional inclusive date range.
Invoices are ranged by issue_date, payments by payment_date, attendance by
attendance_date and everything else by created_at.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Dict, Any, List, Tuple
from uuid import UUID

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from erp.config import settings
from erp.models.billing import Invoice, InvoiceStatus, Payment
from erp.models.customer import Customer
from erp.models.gst import GstReturn
from erp.models.hr import Employee, Attendance
from erp.models.item import Item, ItemType


logger = logging.getLogger(__name__)


class DashboardError(Exception):
    """Custom exception for dashboard query errors."""
    def __init__(self, message: str, error_code: str = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


# Entity name -> (model, range column name, numeric columns summed in "sums")
ENTITIES: Dict[str, Tuple[Any, str, List[str]]] = {
    "Customer": (Customer, "created_at", []),
    "Item": (Item, "created_at", ["unit_price", "stock_quantity"]),
    "Invoice": (Invoice, "issue_date", [
        "sub_total", "tax_amount", "cess_amount", "grand_total", "amount_paid", "balance_due",
    ]),
    "Payment": (Payment, "payment_date", ["amount_received"]),
    "Employee": (Employee, "created_at", ["salary"]),
    "Attendance": (Attendance, "attendance_date", []),
    "GstReturn": (GstReturn, "created_at", [
        "total_taxable_value", "total_tax", "total_cess", "gross_turnover",
        "payments_received", "outstanding_tax_liability",
    ]),
}

DATETIME_COLUMNS = {"created_at"}


def _number(value) -> float:
    return float(value or 0)


def _parse_date(value: Optional[str], name: str) -> Optional[date]:
    if value is None or not value.strip():
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise DashboardError(f"'{name}' must be a date in YYYY-MM-DD format", "INVALID_DATE")


def parse_range(date_from: Optional[str], date_to: Optional[str]) -> Tuple[Optional[date], Optional[date]]:
    """Parse optional from/to query strings into an inclusive date range."""
    return _parse_date(date_from, "from"), _parse_date(date_to, "to")


def validate_range(date_from: Optional[date], date_to: Optional[date]) -> None:
    if date_from and date_to and date_from > date_to:
        logger.warning(f"Dashboard range rejected: {date_from} > {date_to}")
        raise DashboardError("'from' cannot be after 'to'", "INVALID_RANGE")


def validate_span(date_from: Optional[date], date_to: Optional[date]) -> None:
    """A zero-filled series covers at most DASHBOARD_MAX_RANGE_DAYS days."""
    if date_from and date_to and (date_to - date_from).days + 1 > settings.DASHBOARD_MAX_RANGE_DAYS:
        logger.warning(f"Dashboard series range rejected: {date_from} to {date_to}")
        raise DashboardError(
            f"Date range cannot exceed {settings.DASHBOARD_MAX_RANGE_DAYS} days", "RANGE_TOO_LARGE"
        )


def fill_days(date_from: date, date_to: date, rows: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Every day of the inclusive range, zero where nothing was sold."""
    series = []
    for i in range((date_to - date_from).days + 1):
        d_str = str(date_from + timedelta(days=i))
        row = rows.get(d_str)
        series.append({
            "date": d_str,
            "revenue": row["revenue"] if row else 0.0,
            "invoices": row["invoices"] if row else 0,
        })
    return series


class DashboardService:
    """Dashboard aggregates for one organization."""

    def __init__(self, db: AsyncSession, organization_id: UUID):
        self.db = db
        self.organization_id = organization_id

    def _range_conditions(self, model, column_name: str, date_from: Optional[date], date_to: Optional[date]) -> list:
        column = getattr(model, column_name)
        conditions = [model.organization_id == self.organization_id]
        if column_name in DATETIME_COLUMNS:
            if date_from:
                conditions.append(column >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
            if date_to:
                conditions.append(column < datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc))
        else:
            if date_from:
                conditions.append(column >= date_from)
            if date_to:
                conditions.append(column <= date_to)
        return conditions

    async def _entity_stats(self, model, column_name: str, sum_columns: List[str],
                            date_from: Optional[date], date_to: Optional[date]) -> Dict[str, Any]:
        selects = [func.count(model.id)] + [
            func.coalesce(func.sum(getattr(model, name)), 0) for name in sum_columns
        ]
        result = await self.db.execute(
            select(*selects).where(and_(*self._range_conditions(model, column_name, date_from, date_to)))
        )
        row = result.one()
        return {
            "count": int(row[0] or 0),
            "sums": {name: _number(row[i + 1]) for i, name in enumerate(sum_columns)},
        }

    async def get_overview(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> Dict[str, Any]:
        validate_range(date_from, date_to)

        data: Dict[str, Any] = {}
        for name, (model, column_name, sum_columns) in ENTITIES.items():
            data[name] = await self._entity_stats(model, column_name, sum_columns, date_from, date_to)

        # Sales exclude cancelled invoices
        sales = (await self.db.execute(
            select(
                func.count(Invoice.id),
                func.coalesce(func.sum(Invoice.grand_total), 0),
                func.coalesce(func.sum(Invoice.tax_amount), 0),
                func.coalesce(func.sum(Invoice.balance_due), 0),
            ).where(and_(
                *self._range_conditions(Invoice, "issue_date", date_from, date_to),
                Invoice.status != InvoiceStatus.CANCELLED.value,
            ))
        )).one()
        data["sales"] = {
            "total": int(sales[0] or 0),
            "revenue": _number(sales[1]),
            "tax": _number(sales[2]),
            "outstanding": _number(sales[3]),
        }

        data["payments"] = {
            "count": data["Payment"]["count"],
            "collected": data["Payment"]["sums"]["amount_received"],
        }

        # Stock is a current-state figure; the range does not apply
        inventory = (await self.db.execute(
            select(
                func.count(Item.id),
                func.coalesce(func.sum(Item.stock_quantity), 0),
            ).where(and_(
                Item.organization_id == self.organization_id,
                Item.item_type == ItemType.PRODUCT.value,
            ))
        )).one()
        low_stock = (await self.db.execute(
            select(func.count(Item.id)).where(and_(
                Item.organization_id == self.organization_id,
                Item.item_type == ItemType.PRODUCT.value,
                func.coalesce(Item.stock_quantity, 0) <= settings.LOW_STOCK_THRESHOLD,
            ))
        )).scalar() or 0
        data["inventory"] = {
            "products": int(inventory[0] or 0),
            "stockUnits": int(inventory[1] or 0),
            "lowStock": int(low_stock),
        }

        return data

    async def get_timeseries(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> List[Dict[str, Any]]:
        """Revenue and invoice count per issue day."""
        validate_range(date_from, date_to)
        validate_span(date_from, date_to)

        query = select(
            Invoice.issue_date.label("period"),
            func.count(Invoice.id).label("invoices"),
            func.coalesce(func.sum(Invoice.grand_total), 0).label("revenue"),
        ).where(and_(
            *self._range_conditions(Invoice, "issue_date", date_from, date_to),
            Invoice.status != InvoiceStatus.CANCELLED.value,
        )).group_by(Invoice.issue_date).order_by(Invoice.issue_date)

        result = await self.db.execute(query)

        # Build a map from date->data for sparse results
        data_map = {
            str(row.period)[:10]: {"revenue": _number(row.revenue), "invoices": int(row.invoices)}
            for row in result.all()
        }

        if date_from and date_to:
            return fill_days(date_from, date_to, data_map)

        return [{"date": d, **values} for d, values in sorted(data_map.items())]
