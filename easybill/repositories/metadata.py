"""Metadata definition persistence: plugins, rules, templates and workflows."""

from typing import List, Optional

from easybill.repositories.base import TenantRepository
from easybill.storage.models import BusinessRule, InvoiceTemplate, Plugin, WorkflowDefinition


class PluginRepository(TenantRepository[Plugin]):
    model = Plugin


class BusinessRuleRepository(TenantRepository[BusinessRule]):
    model = BusinessRule

    async def active_for(self, entity_type: str, trigger: str) -> List[BusinessRule]:
        return await self.list(
            BusinessRule.entity_type == entity_type,
            BusinessRule.trigger == trigger,
            BusinessRule.active.is_(True),
            order_by=(BusinessRule.priority.desc(), BusinessRule.id),
        )


class InvoiceTemplateRepository(TenantRepository[InvoiceTemplate]):
    model = InvoiceTemplate

    async def default_for(self, template_type: str) -> Optional[InvoiceTemplate]:
        return await self.first(
            InvoiceTemplate.template_type == template_type,
            InvoiceTemplate.is_default.is_(True),
            InvoiceTemplate.active.is_(True),
        )


class WorkflowRepository(TenantRepository[WorkflowDefinition]):
    model = WorkflowDefinition
