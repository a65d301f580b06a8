# ==== BILLING SERVICE ==== #

"""
Billing service for point-of-sale invoices.

This module covers the invoice lifecycle (draft, completion with payments,
cancellation and returns), held carts and invoice numbering. Stock is
checked advisorily when an invoice is drafted and moved when it is
completed, cancelled or returned.
"""

import uuid
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.pricing import compute_line, money, summarize
from easybill.business.statuses import InvoiceStatus
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError, ValidationError
from easybill.observability.logging import get_logger, log_business_event
from easybill.observability.metrics import (
    invoice_amount_total,
    invoices_completed_total,
    invoices_created_total,
)
from easybill.observability.tracing import get_tracer
from easybill.repositories.invoices import HeldInvoiceRepository, InvoiceRepository
from easybill.schemas.billing import (
    CreateInvoiceRequest,
    HeldInvoiceResponse,
    HoldInvoiceRequest,
    InvoiceItemRequest,
    PaymentRequest,
)
from easybill.services.inventory import DEFAULT_STORE, InventoryService
from easybill.storage.models import HeldInvoice, Invoice, InvoiceItem, Payment, utcnow


logger = get_logger(__name__)
tracer = get_tracer(__name__)


def _item_amounts(item: InvoiceItemRequest, is_interstate: bool):
    return compute_line(
        item.quantity,
        item.unit_price,
        discount_type=item.discount_type.value if item.discount_type else None,
        discount_value=item.discount_value,
        discount_amount=item.discount_amount,
        tax_rate=item.tax_rate,
        tax_amount=item.tax_amount,
        cgst_rate=item.cgst_rate,
        sgst_rate=item.sgst_rate,
        igst_rate=item.igst_rate,
        cess_rate=item.cess_rate,
        is_interstate=is_interstate,
    )


def recalculate_totals(invoice: Invoice) -> None:
    """Recompute invoice totals from its stored lines and payments."""
    subtotal = sum((money(i.unit_price) * i.quantity for i in invoice.items), Decimal("0"))
    invoice.subtotal = money(subtotal)
    invoice.discount_amount = money(sum((money(i.discount_amount) for i in invoice.items), Decimal("0")))
    invoice.tax_amount = money(sum((money(i.tax_amount) for i in invoice.items), Decimal("0")))
    invoice.cgst_amount = money(sum((money(i.cgst_amount) for i in invoice.items), Decimal("0")))
    invoice.sgst_amount = money(sum((money(i.sgst_amount) for i in invoice.items), Decimal("0")))
    invoice.igst_amount = money(sum((money(i.igst_amount) for i in invoice.items), Decimal("0")))
    invoice.cess_amount = money(sum((money(i.cess_amount) for i in invoice.items), Decimal("0")))
    invoice.total_amount = money(invoice.subtotal - invoice.discount_amount + invoice.tax_amount)
    invoice.paid_amount = money(sum((money(p.amount) for p in invoice.payments), Decimal("0")))
    invoice.balance_amount = money(invoice.total_amount - invoice.paid_amount)


# ==== BILLING SERVICE CLASS ==== #


class BillingService:
    """
    Service for invoice operations within one tenant.

    Args:
        session: Request database session
        tenant_id: Tenant all invoices belong to
        user_id: Acting user, recorded as creator, completer or holder
    """

    def __init__(self, session: AsyncSession, tenant_id: str, user_id: Optional[str] = None):
        self.session = session
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.invoices = InvoiceRepository(session, tenant_id)
        self.held = HeldInvoiceRepository(session, tenant_id)
        self.inventory = InventoryService(session, tenant_id)

    # ==== INVOICE CREATION ==== #

    async def create_invoice(self, request: CreateInvoiceRequest) -> Invoice:
        """
        Draft an invoice from cart lines.

        Args:
            request (CreateInvoiceRequest): Customer, store and item details

        Returns:
            Invoice: DRAFT invoice with computed line and invoice totals

        Raises:
            BusinessError: INVALID_DISCOUNT for a discount above the line amount
        """
        with tracer.start_as_current_span("invoice_create") as span:
            span.set_attribute("tenant", self.tenant_id)
            span.set_attribute("item_count", len(request.items))

            store_id = request.store_id or DEFAULT_STORE
            await self._warn_on_shortage(request.items, store_id)

            invoice = Invoice(
                invoice_number=await self.next_invoice_number(),
                status=InvoiceStatus.DRAFT.value,
                store_id=store_id,
                counter_id=request.counter_id,
                customer_id=request.customer_id,
                customer_name=request.customer_name,
                customer_phone=request.customer_phone,
                customer_email=request.customer_email,
                is_interstate=request.is_interstate,
                notes=request.notes,
                created_by=self.user_id,
                items=[],
                payments=[],
            )

            for position, item in enumerate(request.items):
                amounts = _item_amounts(item, request.is_interstate)
                invoice.items.append(InvoiceItem(
                    tenant_id=self.tenant_id,
                    position=position,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    product_code=item.product_code,
                    barcode=item.barcode,
                    quantity=item.quantity,
                    unit_price=money(item.unit_price),
                    discount_type=item.discount_type.value if item.discount_type else None,
                    discount_value=item.discount_value,
                    discount_amount=amounts.discount,
                    tax_rate=item.tax_rate,
                    tax_amount=amounts.tax,
                    cgst_rate=item.cgst_rate,
                    cgst_amount=amounts.cgst,
                    sgst_rate=item.sgst_rate,
                    sgst_amount=amounts.sgst,
                    igst_rate=item.igst_rate,
                    igst_amount=amounts.igst,
                    cess_rate=item.cess_rate,
                    cess_amount=amounts.cess,
                    line_total=amounts.line_total,
                ))

            recalculate_totals(invoice)
            await self.invoices.add(invoice)

            span.set_attribute("invoice_number", invoice.invoice_number)
            invoices_created_total.labels(tenant=self.tenant_id).inc()
            logger.info(
                "Invoice drafted",
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                total=str(invoice.total_amount),
            )
            return invoice

    async def next_invoice_number(self) -> str:
        """``INV-YYYYMMDD-NNNNN`` numbered per tenant per UTC day, from 00001."""
        now = utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        count = await self.invoices.count_created_since(start_of_day)
        return f"INV-{now:%Y%m%d}-{count + 1:05d}"

    async def _warn_on_shortage(self, items: Iterable[InvoiceItemRequest], store_id: str) -> None:
        for item in items:
            if item.product_id is None:
                continue
            if not await self.inventory.check_stock_availability(item.product_id, item.quantity, store_id):
                logger.warning(
                    "Insufficient stock for invoice line",
                    product_id=item.product_id,
                    requested=item.quantity,
                    store_id=store_id,
                )

    # ==== COMPLETION ==== #

    async def complete_invoice(self, invoice_id: str, payments: List[PaymentRequest]) -> Invoice:
        """
        Record payments, complete the invoice and deduct stock.

        A remaining balance is allowed (credit sale) and only logged.

        Raises:
            BusinessError: INVALID_INVOICE_STATE unless DRAFT; PAYMENT_FAILED
                for a non-positive payment amount
        """
        with tracer.start_as_current_span("invoice_complete") as span:
            invoice = await self.get_invoice(invoice_id)
            span.set_attribute("invoice_number", invoice.invoice_number)

            if invoice.status != InvoiceStatus.DRAFT.value:
                raise BusinessError(
                    ErrorCodes.INVALID_INVOICE_STATE,
                    "Invoice %s is %s and cannot be completed",
                    invoice.invoice_number,
                    invoice.status,
                )

            for payment in payments:
                if payment.amount <= 0:
                    raise BusinessError(
                        ErrorCodes.PAYMENT_FAILED, "Payment amount must be positive, got %s", payment.amount
                    )
                invoice.payments.append(Payment(
                    tenant_id=self.tenant_id,
                    mode=payment.mode.value,
                    amount=money(payment.amount),
                    reference_number=payment.reference_number,
                    card_last4=payment.card_last4,
                    upi_id=payment.upi_id,
                    notes=payment.notes,
                    paid_at=utcnow(),
                ))

            recalculate_totals(invoice)
            if invoice.balance_amount > 0:
                logger.warning(
                    "Invoice completed with outstanding balance",
                    invoice_number=invoice.invoice_number,
                    balance=str(invoice.balance_amount),
                )

            invoice.status = InvoiceStatus.COMPLETED.value
            invoice.completed_by = self.user_id
            invoice.completed_at = utcnow()
            await self.invoices.save(invoice)

            for item in invoice.items:
                if item.product_id is not None:
                    await self.inventory.deduct_stock(
                        item.product_id, item.quantity, invoice.store_id or DEFAULT_STORE,
                        invoice.invoice_number, self.user_id,
                    )

            invoices_completed_total.labels(tenant=self.tenant_id).inc()
            invoice_amount_total.labels(tenant=self.tenant_id).inc(float(invoice.total_amount))
            log_business_event(
                "invoice_completed",
                self.tenant_id,
                invoice_number=invoice.invoice_number,
                total=str(invoice.total_amount),
                paid=str(invoice.paid_amount),
            )
            return invoice

    # ==== QUERIES ==== #

    async def get_invoice(self, invoice_id: str) -> Invoice:
        """Fetch an invoice; another tenant's invoice is reported as not found."""
        invoice = await self.invoices.get(invoice_id)
        if invoice is None or invoice.tenant_id != self.tenant_id:
            raise ResourceNotFoundError("Invoice", invoice_id)
        return invoice

    async def list_invoices(self, page: int = 0, size: int = 20) -> Tuple[List[Invoice], int]:
        return await self.invoices.newest_first(offset=page * size, limit=size)

    # ==== CANCELLATION AND RETURNS ==== #

    async def cancel_invoice(self, invoice_id: str, reason: str) -> Invoice:
        invoice = await self.get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.COMPLETED.value:
            raise ValidationError("Only completed invoices can be cancelled")

        invoice.status = InvoiceStatus.CANCELLED.value
        invoice.notes = self._append_note(invoice.notes, f"Cancelled by: {self.user_id}, Reason: {reason}")
        await self.invoices.save(invoice)

        for item in invoice.items:
            if item.product_id is not None:
                await self.inventory.reverse_stock_deduction(
                    item.product_id, item.quantity, invoice.store_id or DEFAULT_STORE,
                    invoice.invoice_number, self.user_id,
                )

        log_business_event("invoice_cancelled", self.tenant_id, invoice_number=invoice.invoice_number)
        return invoice

    async def process_return(self, invoice_id: str, item_ids: List[str], reason: str) -> Invoice:
        invoice = await self.get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.COMPLETED.value:
            raise ValidationError("Only completed invoices can be returned")

        by_id = {item.id: item for item in invoice.items}
        unknown = [item_id for item_id in item_ids if item_id not in by_id]
        if unknown:
            raise ValidationError(
                "Items do not belong to this invoice",
                field_errors={"item_ids": ", ".join(unknown)},
            )

        invoice.status = InvoiceStatus.RETURNED.value
        invoice.notes = self._append_note(invoice.notes, f"Returned by: {self.user_id}, Reason: {reason}")
        await self.invoices.save(invoice)

        reference = f"{invoice.invoice_number}-RTN"
        for item_id in dict.fromkeys(item_ids):
            item = by_id[item_id]
            if item.product_id is not None:
                await self.inventory.reverse_stock_deduction(
                    item.product_id, item.quantity, invoice.store_id or DEFAULT_STORE,
                    reference, self.user_id,
                )

        log_business_event(
            "invoice_returned", self.tenant_id,
            invoice_number=invoice.invoice_number, returned_items=len(item_ids),
        )
        return invoice

    @staticmethod
    def _append_note(existing: Optional[str], note: str) -> str:
        return f"{existing}\n{note}" if existing else note

    # ==== HELD INVOICES ==== #

    async def hold_invoice(self, request: HoldInvoiceRequest) -> HeldInvoiceResponse:
        held = await self.held.add(HeldInvoice(
            hold_reference="HOLD-" + uuid.uuid4().hex[:8].upper(),
            request_data=request.invoice.model_dump(mode="json"),
            customer_name=request.invoice.customer_name,
            notes=request.notes,
            held_by=self.user_id,
            held_at=utcnow(),
        ))
        logger.info("Invoice held", hold_reference=held.hold_reference)
        return self._held_summary(held)

    async def list_held_invoices(self) -> List[HeldInvoiceResponse]:
        return [self._held_summary(h) for h in await self.held.newest_first()]

    async def resume_held_invoice(self, hold_reference: str) -> CreateInvoiceRequest:
        held = await self._get_held(hold_reference)
        return CreateInvoiceRequest.model_validate(held.request_data)

    async def delete_held_invoice(self, hold_reference: str) -> None:
        await self.held.delete(await self._get_held(hold_reference))

    async def _get_held(self, hold_reference: str) -> HeldInvoice:
        held = await self.held.by_reference(hold_reference)
        if held is None:
            raise ResourceNotFoundError("Held invoice", hold_reference)
        return held

    def _held_summary(self, held: HeldInvoice) -> HeldInvoiceResponse:
        request = CreateInvoiceRequest.model_validate(held.request_data)
        totals = summarize(_item_amounts(item, request.is_interstate) for item in request.items)
        return HeldInvoiceResponse(
            hold_reference=held.hold_reference,
            customer_name=held.customer_name,
            item_count=len(request.items),
            estimated_total=totals.total,
            notes=held.notes,
            held_by=held.held_by,
            held_at=held.held_at,
        )
