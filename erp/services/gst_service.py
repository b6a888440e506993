"""
GST Return Service

Prepares GST returns from the organization's own invoices and payments:
- Period draft preview bucketed by GST treatment (B2B / B2C / Export / SEZ)
- Return generation (one stored return per period and return type)
- Filing status tracking
- Transaction search within a period
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any, List, Tuple, Iterable
from uuid import UUID

from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from erp.config import settings
from erp.core.enum_utils import enum_values, normalize_case
from erp.models.billing import Invoice, InvoiceStatus, GstTreatment, Payment
from erp.models.gst import GstReturn, GstReturnType, GstReturnStatus
from erp.services.gst_state_machine import GSTStatusError, parse_status, validate_transition


logger = logging.getLogger(__name__)

PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")

TWO_PLACES = Decimal("0.01")

TREATMENT_LABELS: Dict[str, str] = {
    GstTreatment.B2B.value: "B2B",
    GstTreatment.B2C.value: "B2C",
    GstTreatment.EXPORT.value: "Export",
    GstTreatment.SEZ.value: "SEZ",
}

# "all" in a filter means no filtering on that field
ALL = "all"


class GSTReturnError(Exception):
    """Custom exception for GST return errors."""
    def __init__(self, message: str, error_code: str = None, details: Dict = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# =============================================================================
# PURE HELPERS
# =============================================================================

def parse_period(period: Optional[str]) -> Tuple[date, date]:
    """
    Resolve a YYYY-MM period to its first and last day.

    Raises GSTReturnError for anything else, including month 00 or 13.
    """
    match = PERIOD_RE.match((period or "").strip())
    if not match:
        raise GSTReturnError("Period must be in YYYY-MM format", "INVALID_PERIOD")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise GSTReturnError("Period must be in YYYY-MM format", "INVALID_PERIOD")

    start_date = date(year, month, 1)
    if month == 12:
        end_date = date(year + 1, 1, 1) - timedelta(days=1)
    else:
        end_date = date(year, month + 1, 1) - timedelta(days=1)
    return start_date, end_date


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def invoice_preview(invoice) -> Dict[str, Any]:
    """Flat transaction row for an invoice; missing name or GSTIN read as N/A."""
    return {
        "invoice_number": invoice.invoice_number,
        "invoice_date": invoice.issue_date,
        "customer_name": invoice.customer_name or "N/A",
        "customer_gstin": invoice.customer_gstin or "N/A",
        "gst_treatment": invoice.gst_treatment,
        "status": invoice.status,
        "sub_total": _money(invoice.sub_total),
        "tax_amount": _money(invoice.tax_amount),
        "grand_total": _money(invoice.grand_total),
    }


def build_draft(
    period: str,
    period_start: date,
    period_end: date,
    invoices: Iterable,
    collections: Decimal = Decimal("0"),
) -> Dict[str, Any]:
    """
    Aggregate already-selected invoices into a draft.

    Only treatments that occur get a section. An empty invoice list yields
    zero totals and an empty section map.
    """
    sections: Dict[str, Dict[str, Any]] = {}
    totals = {
        "taxable_value": Decimal("0"),
        "tax": Decimal("0"),
        "cess": Decimal("0"),
        "grand_total": Decimal("0"),
        "invoices": 0,
        "collections": _money(collections),
    }
    previews: List[Dict[str, Any]] = []

    for invoice in invoices:
        treatment = invoice.gst_treatment or GstTreatment.B2C.value
        section = sections.setdefault(treatment, {
            "label": TREATMENT_LABELS.get(treatment, treatment.upper()),
            "count": 0,
            "taxable_value": Decimal("0"),
            "tax": Decimal("0"),
            "cess": Decimal("0"),
            "grand_total": Decimal("0"),
        })

        sub_total = _money(invoice.sub_total)
        tax = _money(invoice.tax_amount)
        cess = _money(invoice.cess_amount)
        grand_total = _money(invoice.grand_total)

        section["count"] += 1
        section["taxable_value"] += sub_total
        section["tax"] += tax
        section["cess"] += cess
        section["grand_total"] += grand_total

        totals["taxable_value"] += sub_total
        totals["tax"] += tax
        totals["cess"] += cess
        totals["grand_total"] += grand_total
        totals["invoices"] += 1

        previews.append(invoice_preview(invoice))

    return {
        "period": period,
        "period_start": period_start,
        "period_end": period_end,
        "totals": totals,
        "sections": sections,
        "invoices": previews,
    }


def summary_breakup(draft: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-safe breakup stored with a generated return."""
    return {
        "invoices": {
            treatment: {
                "count": section["count"],
                "value": float(section["taxable_value"]),
                "tax": float(section["tax"]),
            }
            for treatment, section in draft["sections"].items()
        },
        "collections": {"received": float(draft["totals"]["collections"])},
    }


def outstanding_liability(status: str, total_tax: Decimal) -> Decimal:
    """Tax still owed for a return: nothing once paid, the full tax otherwise."""
    if status == GstReturnStatus.PAID.value:
        return Decimal("0")
    return _money(total_tax)


# =============================================================================
# SERVICE
# =============================================================================

class GSTReturnService:
    """
    Service for GST return preparation within one organization.

    Every query is scoped to organization_id.
    """

    def __init__(self, db: AsyncSession, organization_id: UUID):
        self.db = db
        self.organization_id = organization_id

    async def _get_invoices_for_period(self, start_date: date, end_date: date) -> List[Invoice]:
        """Invoices of the period that count towards a return (cancelled ones do not)."""
        query = (
            select(Invoice)
            .where(
                and_(
                    Invoice.organization_id == self.organization_id,
                    Invoice.issue_date >= start_date,
                    Invoice.issue_date <= end_date,
                    Invoice.status != InvoiceStatus.CANCELLED.value,
                )
            )
            .order_by(Invoice.issue_date, Invoice.invoice_number)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _get_collections(self, invoice_ids: List[UUID]) -> Tuple[Decimal, int]:
        """Sum and count of payments received against the given invoices."""
        if not invoice_ids:
            return Decimal("0"), 0

        result = await self.db.execute(
            select(
                func.coalesce(func.sum(Payment.amount_received), 0),
                func.count(Payment.id),
            ).where(
                and_(
                    Payment.organization_id == self.organization_id,
                    Payment.invoice_id.in_(invoice_ids),
                )
            )
        )
        received, count = result.one()
        return _money(received), int(count or 0)

    async def build_draft(self, period: str) -> Dict[str, Any]:
        """Draft preview for a period. Nothing is stored."""
        start_date, end_date = parse_period(period)
        invoices = await self._get_invoices_for_period(start_date, end_date)
        collections, payment_count = await self._get_collections([inv.id for inv in invoices])

        draft = build_draft(period.strip(), start_date, end_date, invoices, collections)
        draft["payment_count"] = payment_count
        return draft

    async def get_return_by_key(self, period: str, return_type: str) -> Optional[GstReturn]:
        result = await self.db.execute(
            select(GstReturn).where(
                and_(
                    GstReturn.organization_id == self.organization_id,
                    GstReturn.period == period,
                    GstReturn.return_type == return_type,
                )
            )
        )
        return result.scalar_one_or_none()

    async def generate_return(
        self,
        period: str,
        return_type: str = GstReturnType.GSTR1.value,
        user_id: Optional[UUID] = None,
    ) -> GstReturn:
        """
        Compute the period draft and store it as the single return for
        (organization, period, return_type).

        A regenerated return keeps its status; its totals are replaced.
        """
        return_type = normalize_case(return_type or GstReturnType.GSTR1.value, GstReturnType)
        if return_type not in enum_values(GstReturnType):
            raise GSTReturnError(
                f"Invalid return type '{return_type}'. Allowed: {', '.join(enum_values(GstReturnType))}",
                "INVALID_RETURN_TYPE",
            )

        draft = await self.build_draft(period)
        period = draft["period"]
        totals = draft["totals"]

        gst_return = await self.get_return_by_key(period, return_type)
        created = gst_return is None
        if created:
            gst_return = GstReturn(
                organization_id=self.organization_id,
                period=period,
                return_type=return_type,
                status=GstReturnStatus.DRAFT.value,
            )
            self._apply_draft(gst_return, draft, user_id)
            try:
                async with self.db.begin_nested():
                    self.db.add(gst_return)
                    await self.db.flush()
            except IntegrityError:
                # Another request stored this period first; overwrite its totals
                logger.warning(
                    f"GST return insert conflict: org={self.organization_id} "
                    f"period={period} type={return_type}, updating existing record"
                )
                created = False
                gst_return = await self.get_return_by_key(period, return_type)
                if gst_return is None:
                    raise

        if not created:
            self._apply_draft(gst_return, draft, user_id)
            await self.db.flush()

        logger.info(
            f"GST return {'created' if created else 'regenerated'}: org={self.organization_id} "
            f"period={period} type={return_type} invoices={totals['invoices']} tax={totals['tax']}"
        )
        return gst_return

    @staticmethod
    def _apply_draft(gst_return: GstReturn, draft: Dict[str, Any], user_id: Optional[UUID]) -> None:
        totals = draft["totals"]
        gst_return.period_start = draft["period_start"]
        gst_return.period_end = draft["period_end"]
        gst_return.total_taxable_value = totals["taxable_value"]
        gst_return.total_tax = totals["tax"]
        gst_return.total_cess = totals["cess"]
        gst_return.gross_turnover = totals["grand_total"]
        gst_return.payments_received = totals["collections"]
        gst_return.total_invoices = totals["invoices"]
        gst_return.total_transactions = draft["payment_count"]
        gst_return.summary_breakup = summary_breakup(draft)
        gst_return.outstanding_tax_liability = outstanding_liability(gst_return.status, totals["tax"])
        gst_return.generated_by = user_id

    async def list_returns(self, page: int = 1, limit: int = 10) -> Tuple[List[GstReturn], int]:
        """Stored returns, newest period first."""
        base = select(GstReturn).where(GstReturn.organization_id == self.organization_id)

        total = (await self.db.execute(
            select(func.count()).select_from(base.subquery())
        )).scalar() or 0

        result = await self.db.execute(
            base.order_by(GstReturn.period.desc(), GstReturn.return_type)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_return(self, return_id: UUID) -> GstReturn:
        result = await self.db.execute(
            select(GstReturn).where(
                and_(
                    GstReturn.id == return_id,
                    GstReturn.organization_id == self.organization_id,
                )
            )
        )
        gst_return = result.scalar_one_or_none()
        if not gst_return:
            raise GSTReturnError("GST return not found", "NOT_FOUND")
        return gst_return

    async def update_status(
        self,
        return_id: UUID,
        status: str,
        notes: Optional[str] = None,
        reference_number: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> GstReturn:
        """Change filing status; stamps filed_at on entering filed."""
        gst_return = await self.get_return(return_id)

        try:
            new_status = parse_status(status)
            validate_transition(gst_return.status, new_status)
        except GSTStatusError as e:
            logger.warning(f"GST return {return_id} status change rejected: {e.message}")
            raise GSTReturnError(e.message, e.error_code)

        previous = gst_return.status
        gst_return.status = new_status
        if notes is not None:
            gst_return.notes = notes
        if reference_number is not None:
            gst_return.reference_number = reference_number
        if new_status == GstReturnStatus.FILED.value and (previous != new_status or gst_return.filed_at is None):
            gst_return.filed_at = datetime.now(timezone.utc)
        gst_return.outstanding_tax_liability = outstanding_liability(new_status, gst_return.total_tax)
        gst_return.status_updated_by = user_id

        await self.db.flush()

        logger.info(f"GST return {gst_return.period}/{gst_return.return_type} status {previous} -> {new_status}")
        return gst_return

    async def search_transactions(
        self,
        period: str,
        q: Optional[str] = None,
        treatment: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Invoices of a period matching free text and treatment/status filters."""
        start_date, end_date = parse_period(period)

        if limit is None:
            limit = settings.GST_TRANSACTION_LIMIT
        limit = max(1, min(limit, settings.GST_TRANSACTION_LIMIT_MAX))

        conditions = [
            Invoice.organization_id == self.organization_id,
            Invoice.issue_date >= start_date,
            Invoice.issue_date <= end_date,
        ]

        if q and q.strip():
            pattern = f"%{q.strip().lower()}%"
            conditions.append(or_(
                func.lower(Invoice.invoice_number).like(pattern),
                func.lower(func.coalesce(Invoice.customer_name, "")).like(pattern),
                func.lower(func.coalesce(Invoice.customer_gstin, "")).like(pattern),
            ))

        if treatment and treatment.strip().lower() != ALL:
            value = normalize_case(treatment, GstTreatment)
            if value not in enum_values(GstTreatment):
                raise GSTReturnError(f"Invalid treatment '{treatment}'", "INVALID_TREATMENT")
            conditions.append(Invoice.gst_treatment == value)

        if status and status.strip().lower() != ALL:
            value = normalize_case(status, InvoiceStatus)
            if value not in enum_values(InvoiceStatus):
                raise GSTReturnError(f"Invalid invoice status '{status}'", "INVALID_STATUS")
            conditions.append(Invoice.status == value)

        result = await self.db.execute(
            select(Invoice)
            .where(and_(*conditions))
            .order_by(Invoice.issue_date.desc(), Invoice.invoice_number.desc())
            .limit(limit)
        )
        items = [invoice_preview(inv) for inv in result.scalars().all()]

        return {
            "period": period.strip(),
            "count": len(items),
            "limit": limit,
            "items": items,
        }
