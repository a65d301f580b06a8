# ==== TENANT ADMINISTRATION ROUTES ==== #

"""
Platform tenant administration. Every endpoint requires a platform
operator token (``ROLE_SUPER_ADMIN``).
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.observability.tracing import get_tracer
from easybill.schemas.common import Page
from easybill.schemas.tenant import TenantRequest, TenantResponse, TenantUpdateRequest
from easybill.security.auth import AuthenticatedUser, require_platform_admin
from easybill.services.tenants import TenantService
from easybill.storage.db import get_db_session


router = APIRouter()
tracer = get_tracer(__name__)


@router.post("", response_model=TenantResponse, status_code=201)
async def create_tenant(
    payload: TenantRequest,
    operator: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db_session),
) -> TenantResponse:
    """
    Create and provision a tenant.

    Args:
        payload (TenantRequest): Tenant details
        operator (AuthenticatedUser): Platform operator
        db (AsyncSession): Database session dependency

    Returns:
        TenantResponse: The tenant in TRIAL status
    """
    with tracer.start_as_current_span("create_tenant_endpoint") as span:
        span.set_attribute("operator", operator.user_id)
        return TenantResponse.model_validate(await TenantService(db).create(payload))


@router.get("", response_model=Page[TenantResponse])
async def list_tenants(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    operator: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Page[TenantResponse]:
    rows, total = await TenantService(db).list_tenants(page, size)
    return Page[TenantResponse](
        items=[TenantResponse.model_validate(t) for t in rows], total=total, page=page, size=size
    )


@router.get("/search", response_model=List[TenantResponse])
async def search_tenants(
    name: str = Query(..., min_length=1),
    operator: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[TenantResponse]:
    return [TenantResponse.model_validate(t) for t in await TenantService(db).search(name)]


@router.get("/slug/{slug}", response_model=TenantResponse)
async def get_tenant_by_slug(
    slug: str,
    operator: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db_session),
) -> TenantResponse:
    return TenantResponse.model_validate(await TenantService(db).get_by_slug(slug))


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: str,
    operator: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db_session),
) -> TenantResponse:
    return TenantResponse.model_validate(await TenantService(db).get_by_id(tenant_id))


@router.put("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: str,
    payload: TenantUpdateRequest,
    operator: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db_session),
) -> TenantResponse:
    return TenantResponse.model_validate(await TenantService(db).update(tenant_id, payload))


# ==== STATUS TRANSITIONS ==== #


@router.post("/{tenant_id}/activate", response_model=TenantResponse)
async def activate_tenant(
    tenant_id: str,
    operator: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db_session),
) -> TenantResponse:
    return TenantResponse.model_validate(await TenantService(db).activate(tenant_id))


@router.post("/{tenant_id}/suspend", response_model=TenantResponse)
async def suspend_tenant(
    tenant_id: str,
    operator: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db_session),
) -> TenantResponse:
    return TenantResponse.model_validate(await TenantService(db).suspend(tenant_id))


@router.post("/{tenant_id}/cancel", response_model=TenantResponse)
async def cancel_tenant(
    tenant_id: str,
    operator: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db_session),
) -> TenantResponse:
    return TenantResponse.model_validate(await TenantService(db).cancel(tenant_id))
