"""Supplier management endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import Role
from easybill.schemas.common import Page
from easybill.schemas.supplier import (
    CreditTermsRequest,
    DueDateResponse,
    PurchaseRequest,
    SupplierPaymentRequest,
    SupplierRequest,
    SupplierResponse,
)
from easybill.security.auth import AuthenticatedUser, get_current_user, require_roles
from easybill.services.suppliers import SupplierService
from easybill.storage.db import get_db_session


router = APIRouter()

require_purchasing = require_roles(Role.ADMIN, Role.MANAGER)


@router.post("", response_model=SupplierResponse, status_code=201)
async def create_supplier(
    payload: SupplierRequest,
    user: AuthenticatedUser = Depends(require_purchasing),
    db: AsyncSession = Depends(get_db_session),
) -> SupplierResponse:
    return SupplierResponse.model_validate(await SupplierService(db, user.tenant_id).create(payload))


@router.get("", response_model=Page[SupplierResponse])
async def list_suppliers(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Page[SupplierResponse]:
    rows, total = await SupplierService(db, user.tenant_id).list_suppliers(page, size)
    return Page[SupplierResponse](
        items=[SupplierResponse.model_validate(s) for s in rows], total=total, page=page, size=size
    )


@router.get("/search", response_model=List[SupplierResponse])
async def search_suppliers(
    q: str = Query(..., min_length=1),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[SupplierResponse]:
    return [SupplierResponse.model_validate(s) for s in await SupplierService(db, user.tenant_id).search(q)]


@router.get("/outstanding", response_model=List[SupplierResponse])
async def list_outstanding(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[SupplierResponse]:
    suppliers = await SupplierService(db, user.tenant_id).list_with_outstanding()
    return [SupplierResponse.model_validate(s) for s in suppliers]


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SupplierResponse:
    return SupplierResponse.model_validate(await SupplierService(db, user.tenant_id).get(supplier_id))


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: str,
    payload: SupplierRequest,
    user: AuthenticatedUser = Depends(require_purchasing),
    db: AsyncSession = Depends(get_db_session),
) -> SupplierResponse:
    return SupplierResponse.model_validate(await SupplierService(db, user.tenant_id).update(supplier_id, payload))


@router.delete("/{supplier_id}", status_code=204)
async def delete_supplier(
    supplier_id: str,
    user: AuthenticatedUser = Depends(require_purchasing),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await SupplierService(db, user.tenant_id).delete(supplier_id)
    return Response(status_code=204)


# ==== PURCHASES AND PAYMENTS ==== #


@router.post("/{supplier_id}/purchases", response_model=SupplierResponse)
async def record_purchase(
    supplier_id: str,
    payload: PurchaseRequest,
    user: AuthenticatedUser = Depends(require_purchasing),
    db: AsyncSession = Depends(get_db_session),
) -> SupplierResponse:
    supplier = await SupplierService(db, user.tenant_id).record_purchase(
        supplier_id, payload.amount, payload.is_paid
    )
    return SupplierResponse.model_validate(supplier)


@router.post("/{supplier_id}/payments", response_model=SupplierResponse)
async def record_payment(
    supplier_id: str,
    payload: SupplierPaymentRequest,
    user: AuthenticatedUser = Depends(require_purchasing),
    db: AsyncSession = Depends(get_db_session),
) -> SupplierResponse:
    supplier = await SupplierService(db, user.tenant_id).record_payment(supplier_id, payload.amount)
    return SupplierResponse.model_validate(supplier)


@router.get("/{supplier_id}/due-date", response_model=DueDateResponse)
async def get_due_date(
    supplier_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DueDateResponse:
    return await SupplierService(db, user.tenant_id).due_date(supplier_id)


# ==== STATUS AND TERMS ==== #


@router.post("/{supplier_id}/deactivate", response_model=SupplierResponse)
async def deactivate_supplier(
    supplier_id: str,
    user: AuthenticatedUser = Depends(require_purchasing),
    db: AsyncSession = Depends(get_db_session),
) -> SupplierResponse:
    return SupplierResponse.model_validate(await SupplierService(db, user.tenant_id).deactivate(supplier_id))


@router.post("/{supplier_id}/reactivate", response_model=SupplierResponse)
async def reactivate_supplier(
    supplier_id: str,
    user: AuthenticatedUser = Depends(require_purchasing),
    db: AsyncSession = Depends(get_db_session),
) -> SupplierResponse:
    return SupplierResponse.model_validate(await SupplierService(db, user.tenant_id).reactivate(supplier_id))


@router.put("/{supplier_id}/credit-terms", response_model=SupplierResponse)
async def update_credit_terms(
    supplier_id: str,
    payload: CreditTermsRequest,
    user: AuthenticatedUser = Depends(require_purchasing),
    db: AsyncSession = Depends(get_db_session),
) -> SupplierResponse:
    supplier = await SupplierService(db, user.tenant_id).update_credit_terms(supplier_id, payload.credit_days)
    return SupplierResponse.model_validate(supplier)
