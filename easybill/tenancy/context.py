# ==== TENANT EXECUTION CONTEXT ==== #

"""
Per-execution tenant and user context.

Values live in ``contextvars`` slots. asyncio copies the current context
when a task is created, so a task spawned while serving a request sees the
tenant that was active at spawn time; later changes made by the parent are
invisible to tasks that already exist, and changes made inside a task never
leak back to the parent.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional


_current_tenant: ContextVar[Optional[str]] = ContextVar("easybill_tenant_id", default=None)
_current_user: ContextVar[Optional[str]] = ContextVar("easybill_user_id", default=None)


# ==== TENANT ==== #


def set_current_tenant(tenant_id: Optional[str]):
    """Set the tenant for the current execution context.

    Returns:
        Token usable with ``reset_current_tenant``
    """
    return _current_tenant.set(tenant_id)


def get_current_tenant() -> Optional[str]:
    return _current_tenant.get()


def has_current_tenant() -> bool:
    return bool(_current_tenant.get())


def clear_current_tenant() -> None:
    _current_tenant.set(None)


def reset_current_tenant(token) -> None:
    _current_tenant.reset(token)


@contextmanager
def tenant_scope(tenant_id: str) -> Iterator[str]:
    """Run a block as ``tenant_id`` and restore the previous tenant afterwards.

    Used by background jobs that have no request to resolve a tenant from.
    """
    token = _current_tenant.set(tenant_id)
    try:
        yield tenant_id
    finally:
        _current_tenant.reset(token)


# ==== USER ==== #


def set_current_user(user_id: Optional[str]):
    return _current_user.set(user_id)


def get_current_user_id() -> Optional[str]:
    return _current_user.get()


def clear_current_user() -> None:
    _current_user.set(None)


def reset_current_user(token) -> None:
    _current_user.reset(token)
