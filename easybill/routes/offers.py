"""Promotional offer endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import OfferStatus, Role
from easybill.schemas.common import Page
from easybill.schemas.offer import CartRequest, DiscountResponse, OfferRequest, OfferResponse
from easybill.security.auth import AuthenticatedUser, get_current_user, require_roles
from easybill.services.offers import OfferService
from easybill.storage.db import get_db_session


router = APIRouter()

require_marketing = require_roles(Role.ADMIN, Role.MANAGER)


@router.post("", response_model=OfferResponse, status_code=201)
async def create_offer(
    payload: OfferRequest,
    user: AuthenticatedUser = Depends(require_marketing),
    db: AsyncSession = Depends(get_db_session),
) -> OfferResponse:
    return OfferResponse.model_validate(await OfferService(db, user.tenant_id).create(payload))


@router.get("", response_model=Page[OfferResponse])
async def list_offers(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    status: Optional[OfferStatus] = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Page[OfferResponse]:
    rows, total = await OfferService(db, user.tenant_id).list_offers(page, size, status)
    return Page[OfferResponse](
        items=[OfferResponse.model_validate(o) for o in rows], total=total, page=page, size=size
    )


@router.get("/active", response_model=List[OfferResponse])
async def active_offers(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[OfferResponse]:
    return [OfferResponse.model_validate(o) for o in await OfferService(db, user.tenant_id).active_offers()]


@router.post("/applicable", response_model=List[OfferResponse])
async def applicable_offers(
    payload: CartRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[OfferResponse]:
    offers = await OfferService(db, user.tenant_id).applicable_offers(payload)
    return [OfferResponse.model_validate(o) for o in offers]


@router.post("/best-combination", response_model=List[OfferResponse])
async def best_combination(
    payload: CartRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[OfferResponse]:
    offers = await OfferService(db, user.tenant_id).best_combination(payload)
    return [OfferResponse.model_validate(o) for o in offers]


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(
    offer_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OfferResponse:
    return OfferResponse.model_validate(await OfferService(db, user.tenant_id).get(offer_id))


@router.put("/{offer_id}", response_model=OfferResponse)
async def update_offer(
    offer_id: str,
    payload: OfferRequest,
    user: AuthenticatedUser = Depends(require_marketing),
    db: AsyncSession = Depends(get_db_session),
) -> OfferResponse:
    return OfferResponse.model_validate(await OfferService(db, user.tenant_id).update(offer_id, payload))


@router.delete("/{offer_id}", status_code=204)
async def delete_offer(
    offer_id: str,
    user: AuthenticatedUser = Depends(require_marketing),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await OfferService(db, user.tenant_id).delete(offer_id)
    return Response(status_code=204)


@router.post("/{offer_id}/activate", response_model=OfferResponse)
async def activate_offer(
    offer_id: str,
    user: AuthenticatedUser = Depends(require_marketing),
    db: AsyncSession = Depends(get_db_session),
) -> OfferResponse:
    return OfferResponse.model_validate(await OfferService(db, user.tenant_id).activate(offer_id))


@router.post("/{offer_id}/pause", response_model=OfferResponse)
async def pause_offer(
    offer_id: str,
    user: AuthenticatedUser = Depends(require_marketing),
    db: AsyncSession = Depends(get_db_session),
) -> OfferResponse:
    return OfferResponse.model_validate(await OfferService(db, user.tenant_id).pause(offer_id))


# ==== DISCOUNTS ==== #


@router.post("/{offer_id}/calculate", response_model=DiscountResponse)
async def calculate_discount(
    offer_id: str,
    payload: CartRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DiscountResponse:
    discount = await OfferService(db, user.tenant_id).calculate_discount(offer_id, payload)
    return DiscountResponse(offer_id=offer_id, purchase_amount=payload.purchase_amount, discount=discount)


@router.post("/{offer_id}/apply", response_model=DiscountResponse)
async def apply_offer(
    offer_id: str,
    payload: CartRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DiscountResponse:
    discount = await OfferService(db, user.tenant_id).apply_offer(offer_id, payload)
    return DiscountResponse(offer_id=offer_id, purchase_amount=payload.purchase_amount, discount=discount)
