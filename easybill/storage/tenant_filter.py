# ==== TENANT ROW FILTER ==== #

"""
Session-level tenant isolation.

``TenantScopedMixin`` marks a model as owned by one tenant. Two listeners on
``TenantSession`` enforce isolation for every session the application opens:

- ``do_orm_execute`` adds ``tenant_id = :tenant`` loader criteria to ORM
  SELECTs (including joined and aliased entities and relationship loads).
- ``before_flush`` stamps the tenant on new rows and refuses to write rows
  that belong to a different tenant.

The active tenant is ``session.info["tenant_id"]`` when set, otherwise the
tenant of the current execution context. With no active tenant neither
listener filters, which is how platform-wide jobs read across tenants.
A single statement can opt out with ``execution_options(skip_tenant_filter=True)``.
"""

from typing import Optional

from sqlalchemy import String, event
from sqlalchemy.orm import Mapped, ORMExecuteState, Session, mapped_column, with_loader_criteria

from easybill.errors import TenantIsolationError
from easybill.tenancy.context import get_current_tenant


SKIP_TENANT_FILTER = "skip_tenant_filter"


class TenantScopedMixin:
    """Adds the owning tenant column to a model."""

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)


class TenantSession(Session):
    """Session class carrying the tenant listeners."""


def session_tenant(session: Session) -> Optional[str]:
    return session.info.get("tenant_id") or get_current_tenant()


@event.listens_for(TenantSession, "do_orm_execute")
def _apply_tenant_criteria(state: ORMExecuteState) -> None:
    if not state.is_select or state.is_column_load or state.is_relationship_load:
        return
    if state.execution_options.get(SKIP_TENANT_FILTER, False):
        return

    tenant_id = session_tenant(state.session)
    if not tenant_id:
        return

    state.statement = state.statement.options(
        with_loader_criteria(
            TenantScopedMixin,
            lambda cls: cls.tenant_id == tenant_id,
            include_aliases=True,
        )
    )


@event.listens_for(TenantSession, "before_flush")
def _stamp_and_guard_tenant(session: Session, flush_context, instances) -> None:
    tenant_id = session_tenant(session)

    for obj in list(session.new) + list(session.dirty):
        if not isinstance(obj, TenantScopedMixin):
            continue
        if not obj.tenant_id:
            if tenant_id:
                obj.tenant_id = tenant_id
            continue
        if tenant_id and obj.tenant_id != tenant_id:
            raise TenantIsolationError(tenant_id, obj.tenant_id)

    for obj in session.deleted:
        if isinstance(obj, TenantScopedMixin) and tenant_id and obj.tenant_id != tenant_id:
            raise TenantIsolationError(tenant_id, obj.tenant_id)
