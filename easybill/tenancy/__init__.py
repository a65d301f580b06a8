# ==== TENANCY PACKAGE ==== #

"""
Tenant context propagation and tenant resolution.

- context: contextvar-backed current tenant and user
- resolvers: header, subdomain and token-claim tenant resolvers
"""

from .context import (
    clear_current_tenant,
    get_current_tenant,
    has_current_tenant,
    set_current_tenant,
    tenant_scope,
)

__all__ = [
    "clear_current_tenant",
    "get_current_tenant",
    "has_current_tenant",
    "set_current_tenant",
    "tenant_scope",
]
