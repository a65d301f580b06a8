# ==== TENANT SERVICE ==== #

"""
Tenant lifecycle management and provisioning.

Creating a tenant reserves its slug, applies plan limits, starts the trial
and provisions per-tenant defaults (schema name and default invoice
template). Status changes evict the gateway's cached tenant status.
"""

import datetime as dt
import re
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import PLAN_LIMITS, SubscriptionPlan, TenantStatus
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError, ValidationError
from easybill.observability.logging import get_logger, log_business_event
from easybill.observability.tracing import get_tracer
from easybill.repositories.metadata import InvoiceTemplateRepository
from easybill.repositories.tenants import TenantRecordRepository
from easybill.schemas.tenant import TenantRequest, TenantUpdateRequest
from easybill.security.auth import evict_tenant_config
from easybill.settings import settings
from easybill.storage.models import InvoiceTemplate, Tenant, utcnow
from easybill.tenancy.context import tenant_scope


logger = get_logger(__name__)
tracer = get_tracer(__name__)

SCHEMA_NAME_PATTERN = re.compile(r"^tenant_[a-z0-9_]+$")

DEFAULT_INVOICE_TEMPLATE = """<html>
<body>
  <h1>${tenant.name}</h1>
  <p>Invoice ${invoice.invoice_number} dated ${invoice.created_at}</p>
  <p>Customer: ${invoice.customer_name}</p>
  <p>Subtotal: ${invoice.subtotal}</p>
  <p>Discount: ${invoice.discount_amount}</p>
  <p>Tax: ${invoice.tax_amount}</p>
  <p><strong>Total: ${invoice.total_amount}</strong></p>
</body>
</html>"""


# ==== SLUGS AND SCHEMA NAMES ==== #


def generate_slug(name: str) -> str:
    """Derive a URL-safe slug: ``"Acme Store #1"`` becomes ``"acme-store-1"``.

    Raises:
        ValidationError: INVALID_TENANT_NAME when nothing usable remains
    """
    slug = (name or "").strip().lower()
    slug = re.sub(r"[^a-z0-9-]", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")
    if not slug:
        raise ValidationError("Tenant name must contain letters or digits", error_code=ErrorCodes.INVALID_TENANT_NAME)
    return slug


def schema_name_for(slug: str) -> str:
    schema_name = "tenant_" + slug.replace("-", "_")
    if not SCHEMA_NAME_PATTERN.match(schema_name):
        raise ValidationError(f"Invalid schema name: {schema_name}")
    return schema_name


# ==== TENANT SERVICE CLASS ==== #


class TenantService:
    """Platform-level tenant administration."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = TenantRecordRepository(session)

    # ==== CREATION AND PROVISIONING ==== #

    async def create(self, request: TenantRequest) -> Tenant:
        """
        Create, provision and start the trial of a new tenant.

        Args:
            request (TenantRequest): Tenant details

        Returns:
            Tenant: The tenant in TRIAL status

        Raises:
            BusinessError: TENANT_ALREADY_EXISTS when the slug is taken
        """
        with tracer.start_as_current_span("tenant_create") as span:
            span.set_attribute("slug", request.slug)

            if await self.repo.slug_exists(request.slug):
                raise BusinessError(
                    ErrorCodes.TENANT_ALREADY_EXISTS,
                    "Tenant with slug '%s' already exists",
                    request.slug,
                )

            now = utcnow()
            plan = request.plan.value if isinstance(request.plan, SubscriptionPlan) else request.plan
            default_users, default_stores = plan_limits(plan)

            tenant = Tenant(
                name=request.name,
                slug=request.slug,
                description=request.description,
                status=TenantStatus.PENDING.value,
                plan=plan,
                contact_email=request.contact_email,
                contact_phone=request.contact_phone,
                address=request.address,
                city=request.city,
                state=request.state,
                country=request.country,
                postal_code=request.postal_code,
                tax_number=request.tax_number,
                logo_url=request.logo_url,
                subscription_start=now,
                trial_end=now + dt.timedelta(days=settings.TRIAL_DAYS),
                max_users=request.max_users or default_users,
                max_stores=request.max_stores or default_stores,
            )
            await self.repo.add(tenant)

            await self.provision(tenant)

            tenant.status = TenantStatus.TRIAL.value
            await self.repo.save(tenant)
            span.set_attribute("tenant_id", tenant.id)

            log_business_event("tenant_created", tenant.id, slug=tenant.slug, plan=tenant.plan)
            return tenant

    async def provision(self, tenant: Tenant) -> None:
        """Assign the schema name and seed tenant defaults.

        Seed rows are written under the new tenant's scope so the session
        row guard accepts them regardless of the caller's tenant.
        """
        tenant.schema_name = schema_name_for(tenant.slug)

        with tenant_scope(tenant.id):
            templates = InvoiceTemplateRepository(self.session, tenant.id)
            await templates.add(InvoiceTemplate(
                name="Default Invoice",
                template_type="INVOICE",
                format="HTML",
                content=DEFAULT_INVOICE_TEMPLATE,
                variables=["tenant.name", "invoice.invoice_number", "invoice.total_amount"],
                is_default=True,
                active=True,
            ))

        logger.info("Tenant provisioned", provisioned_tenant=tenant.id, schema_name=tenant.schema_name)

    # ==== LOOKUPS ==== #

    async def get_by_id(self, tenant_id: str) -> Tenant:
        tenant = await self.repo.get(tenant_id)
        if tenant is None:
            raise ResourceNotFoundError("Tenant", tenant_id, ErrorCodes.TENANT_NOT_FOUND)
        return tenant

    async def get_by_slug(self, slug: str) -> Tenant:
        tenant = await self.repo.by_slug(slug)
        if tenant is None:
            raise ResourceNotFoundError("Tenant", slug, ErrorCodes.TENANT_NOT_FOUND)
        return tenant

    async def list_tenants(self, page: int = 0, size: int = 20) -> Tuple[List[Tenant], int]:
        return await self.repo.list_page(offset=page * size, limit=size)

    async def search(self, name: str) -> List[Tenant]:
        return await self.repo.search_by_name(name)

    # ==== UPDATES AND STATUS ==== #

    async def update(self, tenant_id: str, request: TenantUpdateRequest) -> Tenant:
        tenant = await self.get_by_id(tenant_id)
        changes = request.model_dump(exclude_unset=True)
        if "plan" in changes and changes["plan"] is not None:
            changes["plan"] = SubscriptionPlan(changes["plan"]).value
        for key, value in changes.items():
            setattr(tenant, key, value)
        await self.repo.save(tenant)
        return tenant

    async def activate(self, tenant_id: str) -> Tenant:
        tenant = await self.get_by_id(tenant_id)
        now = utcnow()
        tenant.subscription_start = now
        tenant.subscription_end = now + dt.timedelta(days=365)
        return await self._set_status(tenant, TenantStatus.ACTIVE)

    async def suspend(self, tenant_id: str) -> Tenant:
        return await self._set_status(await self.get_by_id(tenant_id), TenantStatus.SUSPENDED)

    async def cancel(self, tenant_id: str) -> Tenant:
        return await self._set_status(await self.get_by_id(tenant_id), TenantStatus.CANCELLED)

    async def _set_status(self, tenant: Tenant, status: TenantStatus) -> Tenant:
        previous = tenant.status
        tenant.status = status.value
        await self.repo.save(tenant)
        evict_tenant_config(self.session, tenant.id, tenant.slug)
        log_business_event(
            "tenant_status_changed", tenant.id, previous_status=previous, new_status=status.value
        )
        return tenant


def plan_limits(plan: Optional[str]) -> Tuple[int, int]:
    return PLAN_LIMITS.get(plan or SubscriptionPlan.BASIC.value, PLAN_LIMITS[SubscriptionPlan.BASIC.value])
