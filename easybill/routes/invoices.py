# ==== INVOICE ROUTES MODULE ==== #

"""
Billing endpoints: invoice drafting, completion, cancellation and returns,
plus held (parked) carts.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import Role
from easybill.observability.tracing import get_tracer
from easybill.schemas.billing import (
    CancelInvoiceRequest,
    CompleteInvoiceRequest,
    CreateInvoiceRequest,
    HeldInvoiceResponse,
    HoldInvoiceRequest,
    InvoiceResponse,
    ReturnRequest,
)
from easybill.schemas.common import Page
from easybill.security.auth import AuthenticatedUser, get_current_user, require_roles
from easybill.services.billing import BillingService
from easybill.storage.db import get_db_session


router = APIRouter()
tracer = get_tracer(__name__)

require_supervisor = require_roles(Role.ADMIN, Role.MANAGER)


def _service(db: AsyncSession, user: AuthenticatedUser) -> BillingService:
    return BillingService(db, user.tenant_id, user.user_id)


# ==== HELD INVOICES ==== #


@router.post("/hold", response_model=HeldInvoiceResponse, status_code=201)
async def hold_invoice(
    payload: HoldInvoiceRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HeldInvoiceResponse:
    return await _service(db, user).hold_invoice(payload)


@router.get("/held", response_model=List[HeldInvoiceResponse])
async def list_held_invoices(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[HeldInvoiceResponse]:
    return await _service(db, user).list_held_invoices()


@router.get("/held/{hold_reference}", response_model=CreateInvoiceRequest)
async def resume_held_invoice(
    hold_reference: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CreateInvoiceRequest:
    return await _service(db, user).resume_held_invoice(hold_reference)


@router.delete("/held/{hold_reference}", status_code=204)
async def delete_held_invoice(
    hold_reference: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await _service(db, user).delete_held_invoice(hold_reference)
    return Response(status_code=204)


# ==== INVOICES ==== #


@router.post("", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    payload: CreateInvoiceRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceResponse:
    """
    Draft an invoice from cart lines.

    Args:
        payload (CreateInvoiceRequest): Customer, store and items
        user (AuthenticatedUser): Cashier creating the invoice
        db (AsyncSession): Database session dependency

    Returns:
        InvoiceResponse: DRAFT invoice with computed totals
    """
    with tracer.start_as_current_span("create_invoice_endpoint") as span:
        span.set_attribute("tenant", user.tenant_id)
        invoice = await _service(db, user).create_invoice(payload)
        return InvoiceResponse.model_validate(invoice)


@router.get("", response_model=Page[InvoiceResponse])
async def list_invoices(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Page[InvoiceResponse]:
    rows, total = await _service(db, user).list_invoices(page, size)
    return Page[InvoiceResponse](
        items=[InvoiceResponse.model_validate(i) for i in rows], total=total, page=page, size=size
    )


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceResponse:
    return InvoiceResponse.model_validate(await _service(db, user).get_invoice(invoice_id))


@router.post("/{invoice_id}/complete", response_model=InvoiceResponse)
async def complete_invoice(
    invoice_id: str,
    payload: CompleteInvoiceRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceResponse:
    with tracer.start_as_current_span("complete_invoice_endpoint") as span:
        span.set_attribute("invoice_id", invoice_id)
        span.set_attribute("payment_count", len(payload.payments))
        invoice = await _service(db, user).complete_invoice(invoice_id, payload.payments)
        return InvoiceResponse.model_validate(invoice)


@router.post("/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    invoice_id: str,
    payload: CancelInvoiceRequest,
    user: AuthenticatedUser = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceResponse:
    invoice = await _service(db, user).cancel_invoice(invoice_id, payload.reason)
    return InvoiceResponse.model_validate(invoice)


@router.post("/{invoice_id}/return", response_model=InvoiceResponse)
async def process_return(
    invoice_id: str,
    payload: ReturnRequest,
    user: AuthenticatedUser = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceResponse:
    invoice = await _service(db, user).process_return(invoice_id, payload.item_ids, payload.reason)
    return InvoiceResponse.model_validate(invoice)
