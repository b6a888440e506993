"""
Billing Service

Handles:
- Checkout: turn a cart into a GST invoice priced from the item catalogue
- Payments received against invoices
- Manual invoice status changes (cancellation restocks products)
"""
import logging
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Tuple, Dict, Any
from uuid import UUID

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erp.config import settings
from erp.core.enum_utils import get_enum_value
from erp.models.billing import Invoice, InvoiceItem, InvoiceStatus, GstTreatment, Payment, PaymentMode
from erp.models.customer import Customer
from erp.models.item import Item, StockReason
from erp.services.inventory_service import InventoryService, InventoryError
from erp.services.numbering import next_document_number


logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")

# Statuses that can be set by hand; Paid is reached through payments only
MANUAL_STATUSES = {
    InvoiceStatus.DRAFT.value,
    InvoiceStatus.SENT.value,
    InvoiceStatus.OVERDUE.value,
    InvoiceStatus.CANCELLED.value,
}


class BillingError(Exception):
    """Custom exception for billing errors."""
    def __init__(self, message: str, error_code: str = None, details: Dict = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


def _round(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def price_line(unit_price: Decimal, quantity: int, tax_rate: Decimal, cess_rate: Decimal) -> Dict[str, Decimal]:
    """Line amounts rounded to 2 places; rates are percentages."""
    sub_total = _round(Decimal(unit_price) * quantity)
    tax = _round(sub_total * Decimal(tax_rate) / HUNDRED)
    cess = _round(sub_total * Decimal(cess_rate or 0) / HUNDRED)
    return {
        "line_sub_total": sub_total,
        "line_tax": tax,
        "line_cess": cess,
        "line_total": sub_total + tax + cess,
    }


def default_treatment(customer_gstin: Optional[str]) -> str:
    """Registered buyers (with a GSTIN) are B2B, everyone else B2C."""
    return GstTreatment.B2B.value if customer_gstin else GstTreatment.B2C.value


class BillingService:
    """Invoices and payments for one organization."""

    def __init__(self, db: AsyncSession, organization_id: UUID):
        self.db = db
        self.organization_id = organization_id
        self.inventory = InventoryService(db, organization_id)

    # ==================== Invoices ====================

    async def get_invoice(self, invoice_id: UUID, with_items: bool = False) -> Invoice:
        query = select(Invoice).where(
            and_(Invoice.id == invoice_id, Invoice.organization_id == self.organization_id)
        )
        if with_items:
            query = query.options(selectinload(Invoice.items))
        result = await self.db.execute(query)
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise BillingError("Invoice not found", "NOT_FOUND")
        return invoice

    async def list_invoices(
        self,
        status: Optional[str] = None,
        issue_date: Optional[date] = None,
        customer_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Invoice], int]:
        query = select(Invoice).where(Invoice.organization_id == self.organization_id)
        if status:
            query = query.where(Invoice.status == status)
        if issue_date:
            query = query.where(Invoice.issue_date == issue_date)
        if customer_id:
            query = query.where(Invoice.customer_id == customer_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0

        result = await self.db.execute(
            query.order_by(Invoice.issue_date.desc(), Invoice.invoice_number.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def checkout(
        self,
        customer_id: UUID,
        line_items: List[Dict[str, Any]],
        gst_treatment: Optional[str] = None,
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Invoice:
        """
        Create a Sent invoice from cart lines [{item_id, quantity}].

        Products are decremented from stock; any shortage rejects the whole cart.
        """
        if not line_items:
            raise BillingError("Cart is empty", "EMPTY_CART")

        customer = (await self.db.execute(
            select(Customer).where(
                and_(Customer.id == customer_id, Customer.organization_id == self.organization_id)
            )
        )).scalar_one_or_none()
        if not customer:
            raise BillingError("Customer not found", "NOT_FOUND")

        item_ids = {line["item_id"] for line in line_items}
        items = {
            item.id: item
            for item in (await self.db.execute(
                select(Item).where(
                    and_(Item.id.in_(item_ids), Item.organization_id == self.organization_id)
                )
            )).scalars().all()
        }
        missing = item_ids - set(items)
        if missing:
            raise BillingError("Item not found", "NOT_FOUND", {"item_ids": [str(i) for i in missing]})

        # Check stock for the whole cart before touching anything
        requested: Dict[UUID, int] = {}
        for line in line_items:
            requested[line["item_id"]] = requested.get(line["item_id"], 0) + line["quantity"]
        for item_id, quantity in requested.items():
            item = items[item_id]
            if item.is_product and (item.stock_quantity or 0) < quantity:
                logger.warning(f"Checkout rejected: insufficient stock for {item.name}")
                raise BillingError(
                    f"Insufficient stock for '{item.name}'. Available: {item.stock_quantity or 0}, Requested: {quantity}",
                    "INSUFFICIENT_STOCK",
                )

        issue_date = issue_date or date.today()
        if due_date and due_date < issue_date:
            raise BillingError("Due date cannot be before issue date", "INVALID_DUE_DATE")

        invoice = Invoice(
            organization_id=self.organization_id,
            invoice_number=await next_document_number(
                self.db, Invoice, "invoice_number", self.organization_id, "INV", 5
            ),
            customer_id=customer.id,
            customer_name=customer.name,
            customer_gstin=customer.gstin,
            issue_date=issue_date,
            due_date=due_date or issue_date + timedelta(days=settings.INVOICE_DUE_DAYS),
            status=InvoiceStatus.SENT.value,
            gst_treatment=get_enum_value(gst_treatment) or default_treatment(customer.gstin),
            notes=notes,
            items=[],
        )

        sub_total = tax_amount = cess_amount = Decimal("0")
        for number, line in enumerate(line_items, start=1):
            item = items[line["item_id"]]
            amounts = price_line(item.unit_price, line["quantity"], item.tax_rate, item.cess_rate)
            invoice.items.append(InvoiceItem(
                item_id=item.id,
                line_number=number,
                name=item.name,
                item_type=item.item_type,
                hsn_sac_code=item.hsn_sac_code,
                quantity=line["quantity"],
                unit_price=item.unit_price,
                tax_rate=item.tax_rate,
                cess_rate=item.cess_rate or Decimal("0"),
                **amounts,
            ))
            sub_total += amounts["line_sub_total"]
            tax_amount += amounts["line_tax"]
            cess_amount += amounts["line_cess"]

        invoice.sub_total = sub_total
        invoice.tax_amount = tax_amount
        invoice.cess_amount = cess_amount
        invoice.grand_total = sub_total + tax_amount + cess_amount
        invoice.amount_paid = Decimal("0")
        invoice.balance_due = invoice.grand_total

        self.db.add(invoice)

        for line in line_items:
            item = items[line["item_id"]]
            if item.is_product:
                self.inventory.apply_movement(
                    item, -line["quantity"], StockReason.SALE, invoice.invoice_number
                )

        await self.db.flush()

        logger.info(
            f"Invoice {invoice.invoice_number} created: customer={customer.name} "
            f"lines={len(line_items)} total={invoice.grand_total}"
        )
        return invoice

    async def change_status(self, invoice_id: UUID, status: str) -> Invoice:
        """Manual status change. Cancelling returns products to stock."""
        invoice = await self.get_invoice(invoice_id, with_items=True)
        status = get_enum_value(status)

        if status not in MANUAL_STATUSES:
            raise BillingError("Invoices are marked Paid by recording payments", "INVALID_STATUS")

        if invoice.status == status:
            return invoice

        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise BillingError("Cancelled invoices cannot be changed", "INVALID_TRANSITION")

        if invoice.status == InvoiceStatus.PAID.value:
            raise BillingError("Paid invoices cannot be changed", "INVALID_TRANSITION")

        if status == InvoiceStatus.CANCELLED.value:
            if invoice.amount_paid and invoice.amount_paid > 0:
                logger.warning(f"Cancel rejected for {invoice.invoice_number}: payments recorded")
                raise BillingError("Invoice with payments cannot be cancelled", "HAS_PAYMENTS")
            await self._restock(invoice)
            invoice.balance_due = Decimal("0")

        previous = invoice.status
        invoice.status = status
        await self.db.flush()

        logger.info(f"Invoice {invoice.invoice_number} status {previous} -> {status}")
        return invoice

    async def _restock(self, invoice: Invoice) -> None:
        product_lines = [line for line in invoice.items if line.item_id is not None]
        if not product_lines:
            return

        items = {
            item.id: item
            for item in (await self.db.execute(
                select(Item).where(
                    and_(
                        Item.id.in_({line.item_id for line in product_lines}),
                        Item.organization_id == self.organization_id,
                    )
                )
            )).scalars().all()
        }
        for line in product_lines:
            item = items.get(line.item_id)
            if item is None or not item.is_product:
                continue
            try:
                self.inventory.apply_movement(
                    item, line.quantity, StockReason.CANCELLATION, invoice.invoice_number
                )
            except InventoryError as e:
                raise BillingError(e.message, e.error_code)

    # ==================== Payments ====================

    async def record_payment(
        self,
        invoice_id: UUID,
        amount_received: Decimal,
        payment_mode: str = PaymentMode.CASH.value,
        payment_date: Optional[date] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """Record a payment; the invoice becomes Paid when nothing is left due."""
        amount = _round(Decimal(amount_received))
        if amount <= 0:
            raise BillingError("Payment amount must be greater than zero", "INVALID_AMOUNT")

        invoice = await self.get_invoice(invoice_id)

        if invoice.status == InvoiceStatus.CANCELLED.value:
            logger.warning(f"Payment rejected: invoice {invoice.invoice_number} is cancelled")
            raise BillingError("Cannot record payment for a cancelled invoice", "INVOICE_CANCELLED")

        balance_due = Decimal(invoice.balance_due or 0)
        if amount > balance_due:
            logger.warning(
                f"Payment rejected: {amount} exceeds balance {balance_due} on {invoice.invoice_number}"
            )
            raise BillingError(
                f"Payment exceeds balance due ({balance_due})",
                "OVERPAYMENT",
                {"balance_due": str(balance_due)},
            )

        payment = Payment(
            organization_id=self.organization_id,
            payment_number=await next_document_number(
                self.db, Payment, "payment_number", self.organization_id, "PAY", 5
            ),
            invoice_id=invoice.id,
            customer_id=invoice.customer_id,
            amount_received=amount,
            payment_mode=get_enum_value(payment_mode),
            payment_date=payment_date or date.today(),
            reference=reference,
            notes=notes,
        )
        self.db.add(payment)

        invoice.amount_paid = Decimal(invoice.amount_paid or 0) + amount
        invoice.balance_due = balance_due - amount
        if invoice.balance_due <= 0:
            invoice.balance_due = Decimal("0")
            invoice.status = InvoiceStatus.PAID.value

        await self.db.flush()

        logger.info(
            f"Payment {payment.payment_number} of {amount} recorded on {invoice.invoice_number} "
            f"(balance {invoice.balance_due})"
        )
        return payment

    async def get_payment(self, payment_id: UUID) -> Payment:
        result = await self.db.execute(
            select(Payment).where(
                and_(Payment.id == payment_id, Payment.organization_id == self.organization_id)
            )
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise BillingError("Payment not found", "NOT_FOUND")
        return payment

    async def list_payments(
        self,
        invoice_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Payment], int]:
        """Payments, newest first."""
        query = select(Payment).where(Payment.organization_id == self.organization_id)
        if invoice_id:
            query = query.where(Payment.invoice_id == invoice_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0

        result = await self.db.execute(
            query.order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total
