# ==== AUTHENTICATION AND AUTHORIZATION ==== #

"""
Request authentication and authorization dependencies for EasyBill.

``get_current_user`` is the gateway check for every tenant API call:

1. a Bearer access token must be present and valid
2. the request must carry a tenant, and it must be the token's tenant
3. the tenant must exist and must not be suspended or cancelled

Tenant status lookups go through the ``tenantConfigs`` cache, which the
tenant service evicts whenever a tenant's status changes.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import BLOCKED_TENANT_STATUSES, Role
from easybill.errors import (
    BusinessError,
    ErrorCodes,
    ForbiddenError,
    ResourceNotFoundError,
    UnauthorizedError,
)
from easybill.observability.logging import get_logger
from easybill.observability.metrics import auth_failures_total
from easybill.repositories.tenants import TenantRecordRepository
from easybill.security.tokens import ACCESS_TOKEN, decode_token, extract_bearer
from easybill.storage.cache import TENANT_CONFIGS, cache_manager, evict_on_commit
from easybill.storage.db import get_db_session
from easybill.tenancy.context import get_current_tenant, set_current_tenant, set_current_user


logger = get_logger(__name__)


# ==== AUTHENTICATED PRINCIPAL ==== #


@dataclass
class AuthenticatedUser:
    user_id: str
    tenant_id: str
    roles: List[str] = field(default_factory=list)
    username: Optional[str] = None

    def has_role(self, *roles: str) -> bool:
        return any(role in self.roles for role in roles)

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN.value, Role.SUPER_ADMIN.value)


# ==== TENANT STATUS ==== #


async def load_tenant_config(session: AsyncSession, identifier: str) -> Tuple[str, str]:
    """Return ``(tenant_id, status)`` for a tenant id or slug.

    Raises:
        ResourceNotFoundError: TENANT_NOT_FOUND when neither matches
    """
    cache = cache_manager.get_cache(TENANT_CONFIGS)
    cached = cache.get(identifier)
    if cached is not None:
        return cached

    repo = TenantRecordRepository(session)
    tenant = await repo.get(identifier) or await repo.by_slug(identifier)
    if tenant is None:
        raise ResourceNotFoundError("Tenant", identifier, ErrorCodes.TENANT_NOT_FOUND)

    config = (tenant.id, tenant.status)
    cache.put(tenant.id, config)
    if tenant.slug != tenant.id:
        cache.put(tenant.slug, config)
    return config


def evict_tenant_config(session: AsyncSession, tenant_id: str, slug: Optional[str] = None) -> None:
    keys = (tenant_id, slug) if slug else (tenant_id,)
    evict_on_commit(session, TENANT_CONFIGS, *keys)


async def ensure_tenant_active(session: AsyncSession, identifier: str) -> str:
    """Return the canonical tenant id, rejecting blocked tenants.

    Raises:
        ResourceNotFoundError: TENANT_NOT_FOUND
        BusinessError: TENANT_SUSPENDED (mapped to 403)
    """
    tenant_id, status = await load_tenant_config(session, identifier)
    if status in BLOCKED_TENANT_STATUSES:
        raise BusinessError(ErrorCodes.TENANT_SUSPENDED, "Tenant %s is %s", tenant_id, status.lower())
    return tenant_id


async def require_tenant(
    db: AsyncSession = Depends(get_db_session),
) -> str:
    """FastAPI dependency returning the active, canonical tenant of the request."""
    identifier = get_current_tenant()
    if not identifier:
        raise BusinessError(ErrorCodes.INVALID_REQUEST, "Tenant could not be resolved for this request")

    tenant_id = await ensure_tenant_active(db, identifier)
    if tenant_id != identifier:
        # Slug or subdomain resolved; continue under the canonical id
        set_current_tenant(tenant_id)
    return tenant_id


# ==== USER AUTHENTICATION ==== #


def _decode_access_token(authorization: Optional[str]) -> dict:
    token = extract_bearer(authorization)
    if token is None:
        auth_failures_total.labels(reason="missing_token").inc()
        raise UnauthorizedError("Authorization header with Bearer token required")

    try:
        claims = decode_token(token)
    except UnauthorizedError as e:
        auth_failures_total.labels(reason=e.error_code.lower()).inc()
        raise

    if claims.get("type") != ACCESS_TOKEN:
        auth_failures_total.labels(reason="wrong_token_type").inc()
        raise UnauthorizedError("Invalid token type", ErrorCodes.INVALID_TOKEN)
    return claims


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    tenant_id: str = Depends(require_tenant),
) -> AuthenticatedUser:
    """
    Authenticate the caller for a tenant-scoped endpoint.

    Args:
        request (Request): Incoming request, receives ``state.user``
        authorization (Optional[str]): Authorization header with Bearer token
        tenant_id (str): Canonical tenant resolved for the request

    Returns:
        AuthenticatedUser: Principal built from the token claims

    Raises:
        UnauthorizedError: Missing, malformed, expired or non-access token
        ForbiddenError: Token issued for a different tenant
    """
    claims = _decode_access_token(authorization)

    if claims.get("tenantId") != tenant_id:
        auth_failures_total.labels(reason="tenant_mismatch").inc()
        logger.warning(
            "Token tenant does not match request tenant",
            token_tenant=claims.get("tenantId"),
            request_tenant=tenant_id,
        )
        raise ForbiddenError("Token is not valid for this tenant")

    user = AuthenticatedUser(
        user_id=claims["sub"],
        tenant_id=tenant_id,
        roles=list(claims.get("roles") or []),
        username=claims.get("username"),
    )
    set_current_user(user.user_id)
    request.state.user = user
    return user


def require_roles(*roles: str) -> Callable:
    """Dependency factory: the caller must hold at least one of ``roles``."""
    wanted = [r.value if isinstance(r, Role) else r for r in roles]

    async def _check(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if not user.has_role(*wanted, Role.SUPER_ADMIN.value):
            raise ForbiddenError("Insufficient privileges")
        return user

    return _check


require_admin = require_roles(Role.ADMIN)


# ==== PLATFORM ADMINISTRATION ==== #


def require_platform_admin(authorization: Optional[str] = Header(None)) -> AuthenticatedUser:
    """Require a platform operator token for tenant administration."""
    claims = _decode_access_token(authorization)
    roles = list(claims.get("roles") or [])
    if Role.SUPER_ADMIN.value not in roles:
        raise ForbiddenError("Platform administrator privileges required")

    return AuthenticatedUser(
        user_id=claims["sub"],
        tenant_id=claims.get("tenantId", ""),
        roles=roles,
        username=claims.get("username"),
    )
