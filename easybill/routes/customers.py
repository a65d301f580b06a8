"""Customer, wallet and loyalty endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import CustomerSegment, Role
from easybill.schemas.common import Page
from easybill.schemas.customer import (
    CustomerPurchaseRequest,
    CustomerRequest,
    CustomerResponse,
    CustomerStatistics,
    LoyaltyTransactionResponse,
    RedeemPointsRequest,
    WalletRequest,
    WalletTransactionResponse,
)
from easybill.security.auth import AuthenticatedUser, get_current_user, require_roles
from easybill.services.customers import CustomerService
from easybill.storage.db import get_db_session


router = APIRouter()

require_manager = require_roles(Role.ADMIN, Role.MANAGER)


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(
    payload: CustomerRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    return CustomerResponse.model_validate(await CustomerService(db, user.tenant_id).create(payload))


@router.get("", response_model=Page[CustomerResponse])
async def list_customers(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, min_length=1),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Page[CustomerResponse]:
    rows, total = await CustomerService(db, user.tenant_id).list_customers(page, size, search)
    return Page[CustomerResponse](
        items=[CustomerResponse.model_validate(c) for c in rows], total=total, page=page, size=size
    )


@router.get("/phone/{phone}", response_model=CustomerResponse)
async def get_customer_by_phone(
    phone: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    return CustomerResponse.model_validate(await CustomerService(db, user.tenant_id).get_by_phone(phone))


@router.get("/segment/{segment}", response_model=List[CustomerResponse])
async def list_by_segment(
    segment: CustomerSegment,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[CustomerResponse]:
    customers = await CustomerService(db, user.tenant_id).list_by_segment(segment)
    return [CustomerResponse.model_validate(c) for c in customers]


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    return CustomerResponse.model_validate(await CustomerService(db, user.tenant_id).get(customer_id))


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    payload: CustomerRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    return CustomerResponse.model_validate(await CustomerService(db, user.tenant_id).update(customer_id, payload))


@router.delete("/{customer_id}", status_code=204)
async def delete_customer(
    customer_id: str,
    user: AuthenticatedUser = Depends(require_manager),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await CustomerService(db, user.tenant_id).delete(customer_id)
    return Response(status_code=204)


@router.post("/{customer_id}/deactivate", response_model=CustomerResponse)
async def deactivate_customer(
    customer_id: str,
    user: AuthenticatedUser = Depends(require_manager),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    return CustomerResponse.model_validate(await CustomerService(db, user.tenant_id).deactivate(customer_id))


@router.post("/{customer_id}/reactivate", response_model=CustomerResponse)
async def reactivate_customer(
    customer_id: str,
    user: AuthenticatedUser = Depends(require_manager),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    return CustomerResponse.model_validate(await CustomerService(db, user.tenant_id).reactivate(customer_id))


@router.get("/{customer_id}/statistics", response_model=CustomerStatistics)
async def customer_statistics(
    customer_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerStatistics:
    return await CustomerService(db, user.tenant_id).statistics(customer_id)


# ==== PURCHASES AND LOYALTY ==== #


@router.post("/{customer_id}/purchases", response_model=CustomerResponse)
async def record_purchase(
    customer_id: str,
    payload: CustomerPurchaseRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    customer = await CustomerService(db, user.tenant_id).record_purchase(
        customer_id, payload.amount, payload.invoice_id
    )
    return CustomerResponse.model_validate(customer)


@router.post("/{customer_id}/loyalty/redeem", response_model=CustomerResponse)
async def redeem_points(
    customer_id: str,
    payload: RedeemPointsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    customer = await CustomerService(db, user.tenant_id).redeem_loyalty_points(customer_id, payload.points)
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}/loyalty/transactions", response_model=List[LoyaltyTransactionResponse])
async def loyalty_history(
    customer_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[LoyaltyTransactionResponse]:
    rows = await CustomerService(db, user.tenant_id).loyalty_history(customer_id)
    return [LoyaltyTransactionResponse.model_validate(t) for t in rows]


# ==== WALLET ==== #


@router.post("/{customer_id}/wallet/add", response_model=CustomerResponse)
async def add_to_wallet(
    customer_id: str,
    payload: WalletRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    customer = await CustomerService(db, user.tenant_id).add_to_wallet(
        customer_id, payload.amount, payload.invoice_id, payload.description
    )
    return CustomerResponse.model_validate(customer)


@router.post("/{customer_id}/wallet/deduct", response_model=CustomerResponse)
async def deduct_from_wallet(
    customer_id: str,
    payload: WalletRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    customer = await CustomerService(db, user.tenant_id).deduct_from_wallet(
        customer_id, payload.amount, payload.invoice_id, payload.description
    )
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}/wallet/transactions", response_model=List[WalletTransactionResponse])
async def wallet_history(
    customer_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[WalletTransactionResponse]:
    rows = await CustomerService(db, user.tenant_id).wallet_history(customer_id)
    return [WalletTransactionResponse.model_validate(t) for t in rows]
