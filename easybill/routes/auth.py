# ==== AUTHENTICATION ROUTES ==== #

"""
Authentication endpoints: login, registration, self-service onboarding,
token refresh and logout.

These paths are tenant-optional at the gateway. When a tenant was resolved
for the request it is validated and canonicalised before use.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.observability.tracing import get_tracer
from easybill.schemas.auth import (
    LoginRequest,
    LoginResponse,
    OnboardRequest,
    RefreshRequest,
    RegisterRequest,
    UserInfo,
)
from easybill.schemas.common import MessageResponse
from easybill.security.auth import ensure_tenant_active
from easybill.services.auth import AuthService
from easybill.storage.db import get_db_session
from easybill.tenancy.context import get_current_tenant, set_current_tenant


router = APIRouter()
tracer = get_tracer(__name__)


async def _request_tenant(db: AsyncSession, explicit: Optional[str]) -> Optional[str]:
    identifier = get_current_tenant() or explicit
    if not identifier:
        return None
    tenant_id = await ensure_tenant_active(db, identifier)
    set_current_tenant(tenant_id)
    return tenant_id


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    """
    Authenticate with username or e-mail and password.

    Args:
        payload (LoginRequest): Credentials and optional tenant
        db (AsyncSession): Database session dependency

    Returns:
        LoginResponse: Access and refresh tokens
    """
    tenant_id = await _request_tenant(db, payload.tenant_id)
    return await AuthService(db).login(payload, tenant_id)


@router.post("/register", response_model=UserInfo, status_code=201)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserInfo:
    tenant_id = await _request_tenant(db, payload.tenant_id)
    return await AuthService(db).register(payload, tenant_id)


@router.post("/onboard", response_model=LoginResponse, status_code=201)
async def onboard(
    payload: OnboardRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    """Create a tenant with its first administrator and sign the administrator in."""
    with tracer.start_as_current_span("onboard_endpoint"):
        return await AuthService(db).onboard(payload)


@router.post("/refresh", response_model=LoginResponse)
async def refresh(
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    return await AuthService(db).refresh(payload.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout() -> MessageResponse:
    # Tokens are stateless; clients discard them
    return MessageResponse(message="Logged out successfully")
