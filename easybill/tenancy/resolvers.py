# ==== TENANT RESOLVERS ==== #

"""
Tenant resolution from incoming requests.

Resolvers are tried in ascending ``priority``. The first one that yields a
well-formed tenant id wins; malformed values are logged and skipped so a
later resolver can still identify the tenant.
"""

from typing import Iterable, List, Optional

from starlette.requests import Request

from easybill.errors import UnauthorizedError
from easybill.observability.logging import get_logger
from easybill.security.tokens import ACCESS_TOKEN, decode_token, extract_bearer
from easybill.settings import settings


logger = get_logger(__name__)

MAX_TENANT_ID_LENGTH = 64


def is_valid_tenant_id(tenant_id: str) -> bool:
    """Alphanumerics, hyphens and underscores, at most 64 characters."""
    if not tenant_id or len(tenant_id) > MAX_TENANT_ID_LENGTH:
        return False
    return all(c.isalnum() or c in "-_" for c in tenant_id)


# ==== RESOLVER IMPLEMENTATIONS ==== #


class TenantResolver:
    """Base resolver. Subclasses return a raw tenant id or None."""

    priority: int = 100

    def resolve(self, request: Request) -> Optional[str]:
        raise NotImplementedError


class HeaderTenantResolver(TenantResolver):
    priority = 10

    def __init__(self, header_name: Optional[str] = None):
        self.header_name = header_name or settings.TENANT_HEADER

    def resolve(self, request: Request) -> Optional[str]:
        value = request.headers.get(self.header_name)
        return value.strip() if value else None


class SubdomainTenantResolver(TenantResolver):
    """Resolve ``acme`` from ``acme.<base domain>``; ``www`` is ignored."""

    priority = 20

    def __init__(self, base_domain: Optional[str] = None):
        self.base_domain = (base_domain or settings.TENANT_BASE_DOMAIN).lower()

    def resolve(self, request: Request) -> Optional[str]:
        host = request.headers.get("host", "")
        host = host.split(":", 1)[0].lower()
        suffix = "." + self.base_domain
        if not host.endswith(suffix):
            return None

        subdomain = host[: -len(suffix)]
        if not subdomain or subdomain == "www" or "." in subdomain:
            return None
        return subdomain


class TokenClaimTenantResolver(TenantResolver):
    """Resolve from the ``tenantId`` claim of a valid bearer access token."""

    priority = 30

    def resolve(self, request: Request) -> Optional[str]:
        token = extract_bearer(request.headers.get("authorization"))
        if not token:
            return None
        try:
            claims = decode_token(token)
        except UnauthorizedError:
            # Authentication reports the bad token later; resolution just skips it
            return None
        if claims.get("type") != ACCESS_TOKEN:
            return None
        return claims.get("tenantId")


def default_resolvers() -> List[TenantResolver]:
    return [HeaderTenantResolver(), SubdomainTenantResolver(), TokenClaimTenantResolver()]


# ==== RESOLUTION CHAIN ==== #


def resolve_tenant(resolvers: Iterable[TenantResolver], request: Request) -> Optional[str]:
    """Run the resolver chain against ``request``.

    Args:
        resolvers: Resolvers to consult, in any order
        request: Incoming request

    Returns:
        First valid tenant id, or None when no resolver produced one
    """
    for resolver in sorted(resolvers, key=lambda r: r.priority):
        tenant_id = resolver.resolve(request)
        if not tenant_id:
            continue
        if is_valid_tenant_id(tenant_id):
            logger.debug(
                "Resolved tenant",
                resolver=type(resolver).__name__,
                resolved_tenant=tenant_id,
            )
            return tenant_id
        logger.warning(
            "Ignoring malformed tenant id",
            resolver=type(resolver).__name__,
            raw_value=tenant_id[:80],
        )
    return None
