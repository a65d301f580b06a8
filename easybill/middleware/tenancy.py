# ==== MULTI-TENANCY MIDDLEWARE ==== #

"""
Multi-tenancy middleware for request isolation in EasyBill.

The tenant of each request is resolved through the resolver chain (header,
subdomain, token claim), injected into the ASGI scope and bound to the
tenant context variable for the lifetime of the request. The context is
reset when the request finishes, whatever the outcome.
"""

import json
from typing import Iterable, Optional

from fastapi import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from easybill.errors import ErrorCodes
from easybill.observability.tracing import get_tracer
from easybill.tenancy.context import reset_current_tenant, set_current_tenant
from easybill.tenancy.resolvers import TenantResolver, default_resolvers, resolve_tenant


# ==== MODULE INITIALIZATION ==== #

tracer = get_tracer(__name__)

EXEMPT_PATHS = frozenset({
    "/healthz",
    "/readyz",
    "/info",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
})

# Paths that work without a tenant: login/onboarding and platform administration
TENANT_OPTIONAL_PREFIXES = (
    "/api/v1/auth/",
    "/api/v1/tenants",
)


# ==== UTILITY FUNCTIONS ==== #

def get_tenant_id(request: Request) -> Optional[str]:
    """Tenant injected into the request scope by the tenancy middleware."""
    return request.scope.get("tenant_id")


def correlation_id_of(scope: Scope) -> str:
    """Correlation id stored on the request state by the correlation middleware."""
    return scope.get("state", {}).get("correlation_id", "unknown")


# ==== TENANCY MIDDLEWARE CLASS ==== #

class TenancyMiddleware:
    """
    Resolve and bind the tenant of every HTTP request.

    Args:
        app: ASGI application instance
        require_tenant: Reject tenant-bound requests that resolve no tenant
        resolvers: Resolver chain, defaults to header, subdomain and token claim
    """

    def __init__(
        self,
        app: ASGIApp,
        require_tenant: bool = True,
        resolvers: Optional[Iterable[TenantResolver]] = None,
    ):
        self.app = app
        self.require_tenant = require_tenant
        self.resolvers = list(resolvers) if resolvers is not None else default_resolvers()
        self.exempt_paths = EXEMPT_PATHS

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope["path"]

        # ⚠️ Always allow OPTIONS requests (CORS preflight)
        if scope["method"] == "OPTIONS" or path in self.exempt_paths:
            await self.app(scope, receive, send)
            return

        # --► TENANT RESOLUTION
        tenant_id = resolve_tenant(self.resolvers, Request(scope))

        if not tenant_id:
            if self.require_tenant and not path.startswith(TENANT_OPTIONAL_PREFIXES):
                await self._send_error_response(send, 400, {
                    "error": "BusinessError",
                    "message": "Tenant ID is required",
                    "code": ErrorCodes.INVALID_REQUEST,
                    "correlation_id": correlation_id_of(scope),
                })
                return
            await self.app(scope, receive, send)
            return

        # --► SCOPE AND CONTEXT INJECTION
        scope["tenant_id"] = tenant_id
        token = set_current_tenant(tenant_id)
        try:
            await self.app(scope, receive, send)
        finally:
            reset_current_tenant(token)

    async def _send_error_response(self, send: Send, status: int, body: dict) -> None:
        """
        Send HTTP error response directly through ASGI.

        Args:
            send (Send): ASGI send callable
            status (int): HTTP status code
            body (dict): JSON error body
        """
        await send({
            "type": "http.response.start",
            "status": status,
            "headers": [
                [b"content-type", b"application/json"],
            ],
        })
        await send({
            "type": "http.response.body",
            "body": json.dumps(body).encode(),
        })
