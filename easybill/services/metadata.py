# ==== METADATA SERVICE ==== #

"""
Tenant metadata definitions: plugins, business rules, invoice templates
and workflows.

Reads used on hot paths (active rules, templates, enabled plugins, active
workflows) go through the named in-process caches with tenant-qualified
keys. Every write evicts the affected tenant's entries from the cache of
its kind, immediately and again when the transaction ends.
"""

from typing import Any, Dict, List, Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.rules import execute_rules
from easybill.business.templating import render
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError
from easybill.observability.logging import get_logger
from easybill.observability.tracing import get_tracer
from easybill.repositories.base import TenantRepository
from easybill.repositories.metadata import (
    BusinessRuleRepository,
    InvoiceTemplateRepository,
    PluginRepository,
    WorkflowRepository,
)
from easybill.schemas.metadata import (
    BusinessRuleRequest,
    InvoiceTemplateRequest,
    PluginRequest,
    RenderResponse,
    RuleExecutionResponse,
    WorkflowRequest,
)
from easybill.storage.cache import (
    PLUGIN_DEFINITIONS,
    RULE_DEFINITIONS,
    TEMPLATE_DEFINITIONS,
    WORKFLOW_DEFINITIONS,
    cache_manager,
    evict_on_commit,
    tenant_key,
)
from easybill.storage.models import BusinessRule, InvoiceTemplate, Plugin, WorkflowDefinition


logger = get_logger(__name__)
tracer = get_tracer(__name__)


def _rule_definition(rule: BusinessRule) -> Dict[str, Any]:
    return {
        "name": rule.name,
        "condition": rule.condition or {},
        "actions": rule.actions or [],
        "priority": rule.priority,
    }


class MetadataService:
    """Definition CRUD and evaluation for one tenant."""

    def __init__(self, session: AsyncSession, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id
        self.plugins = PluginRepository(session, tenant_id)
        self.rules = BusinessRuleRepository(session, tenant_id)
        self.templates = InvoiceTemplateRepository(session, tenant_id)
        self.workflows = WorkflowRepository(session, tenant_id)

    # ==== SHARED HELPERS ==== #

    async def _ensure_unique_name(
        self, repo: TenantRepository, model: Type, name: str, exclude_id: Optional[int] = None
    ) -> None:
        criteria = [model.name == name]
        if exclude_id is not None:
            criteria.append(model.id != exclude_id)
        if await repo.exists(*criteria):
            raise BusinessError(
                ErrorCodes.DUPLICATE_RESOURCE,
                "%s with name '%s' already exists",
                model.__name__,
                name,
            )

    @staticmethod
    async def _require(repo: TenantRepository, label: str, entity_id: int):
        entity = await repo.get(entity_id)
        if entity is None:
            raise ResourceNotFoundError(label, entity_id)
        return entity

    def _evict(self, cache_name: str) -> None:
        evicted = evict_on_commit(self.session, cache_name, prefix=tenant_key(self.tenant_id, ""))
        if evicted:
            logger.debug("Metadata cache evicted", cache=cache_name, entries=evicted)

    # ==== PLUGINS ==== #

    async def create_plugin(self, request: PluginRequest) -> Plugin:
        await self._ensure_unique_name(self.plugins, Plugin, request.name)
        plugin = await self.plugins.add(Plugin(**request.model_dump()))
        self._evict(PLUGIN_DEFINITIONS)
        return plugin

    async def get_plugin(self, plugin_id: int) -> Plugin:
        return await self._require(self.plugins, "Plugin", plugin_id)

    async def list_plugins(self) -> List[Plugin]:
        return await self.plugins.list(order_by=(Plugin.name,))

    async def enabled_plugins(self) -> List[Dict[str, Any]]:
        cache = cache_manager.get_cache(PLUGIN_DEFINITIONS)
        key = tenant_key(self.tenant_id, "enabled")
        cached = cache.get(key)
        if cached is not None:
            return cached
        plugins = await self.plugins.list(Plugin.enabled.is_(True), order_by=(Plugin.name,))
        definitions = [
            {"name": p.name, "plugin_type": p.plugin_type, "version": p.version, "config": p.config}
            for p in plugins
        ]
        cache.put(key, definitions)
        return definitions

    async def update_plugin(self, plugin_id: int, request: PluginRequest) -> Plugin:
        plugin = await self.get_plugin(plugin_id)
        await self._ensure_unique_name(self.plugins, Plugin, request.name, exclude_id=plugin.id)
        for key, value in request.model_dump().items():
            setattr(plugin, key, value)
        await self.plugins.save(plugin)
        self._evict(PLUGIN_DEFINITIONS)
        return plugin

    async def delete_plugin(self, plugin_id: int) -> None:
        await self.plugins.delete(await self.get_plugin(plugin_id))
        self._evict(PLUGIN_DEFINITIONS)

    # ==== BUSINESS RULES ==== #

    async def create_rule(self, request: BusinessRuleRequest) -> BusinessRule:
        await self._ensure_unique_name(self.rules, BusinessRule, request.name)
        rule = BusinessRule()
        self._apply_rule_request(rule, request)
        await self.rules.add(rule)
        self._evict(RULE_DEFINITIONS)
        return rule

    @staticmethod
    def _apply_rule_request(rule: BusinessRule, request: BusinessRuleRequest) -> None:
        rule.name = request.name
        rule.description = request.description
        rule.entity_type = request.entity_type
        rule.trigger = request.trigger
        rule.condition = request.condition.model_dump() if request.condition else {}
        rule.actions = [action.model_dump() for action in request.actions]
        rule.priority = request.priority
        rule.active = request.active

    async def get_rule(self, rule_id: int) -> BusinessRule:
        return await self._require(self.rules, "Business rule", rule_id)

    async def list_rules(self) -> List[BusinessRule]:
        return await self.rules.list(order_by=(BusinessRule.entity_type, BusinessRule.priority.desc()))

    async def update_rule(self, rule_id: int, request: BusinessRuleRequest) -> BusinessRule:
        rule = await self.get_rule(rule_id)
        await self._ensure_unique_name(self.rules, BusinessRule, request.name, exclude_id=rule.id)
        self._apply_rule_request(rule, request)
        await self.rules.save(rule)
        self._evict(RULE_DEFINITIONS)
        return rule

    async def delete_rule(self, rule_id: int) -> None:
        await self.rules.delete(await self.get_rule(rule_id))
        self._evict(RULE_DEFINITIONS)

    async def active_rules(self, entity_type: str, trigger: str) -> List[Dict[str, Any]]:
        """Active rule definitions for an entity event, highest priority first."""
        cache = cache_manager.get_cache(RULE_DEFINITIONS)
        key = tenant_key(self.tenant_id, entity_type, trigger)
        cached = cache.get(key)
        if cached is not None:
            return cached
        definitions = [_rule_definition(r) for r in await self.rules.active_for(entity_type, trigger)]
        cache.put(key, definitions)
        return definitions

    async def apply_rules(self, entity_type: str, trigger: str, data: Dict[str, Any]) -> RuleExecutionResponse:
        with tracer.start_as_current_span("rules_apply") as span:
            span.set_attribute("entity_type", entity_type)
            span.set_attribute("trigger", trigger)

            result = execute_rules(await self.active_rules(entity_type, trigger), data)

            span.set_attribute("applied", len(result.executed))
            logger.info(
                "Business rules applied",
                entity_type=entity_type,
                trigger=trigger,
                applied=result.executed,
                failed=list(result.failed),
            )
            return RuleExecutionResponse(
                data=result.data,
                applied_rules=result.executed,
                skipped_rules=result.skipped,
                failed_rules=result.failed,
            )

    # ==== INVOICE TEMPLATES ==== #

    async def create_template(self, request: InvoiceTemplateRequest) -> InvoiceTemplate:
        await self._ensure_unique_name(self.templates, InvoiceTemplate, request.name)
        if request.is_default:
            await self._clear_default(request.template_type)
        template = await self.templates.add(InvoiceTemplate(**request.model_dump()))
        self._evict(TEMPLATE_DEFINITIONS)
        return template

    async def get_template(self, template_id: int) -> InvoiceTemplate:
        return await self._require(self.templates, "Invoice template", template_id)

    async def list_templates(self) -> List[InvoiceTemplate]:
        return await self.templates.list(order_by=(InvoiceTemplate.template_type, InvoiceTemplate.name))

    async def update_template(self, template_id: int, request: InvoiceTemplateRequest) -> InvoiceTemplate:
        template = await self.get_template(template_id)
        await self._ensure_unique_name(self.templates, InvoiceTemplate, request.name, exclude_id=template.id)
        if request.is_default and not template.is_default:
            await self._clear_default(request.template_type)
        for key, value in request.model_dump().items():
            setattr(template, key, value)
        await self.templates.save(template)
        self._evict(TEMPLATE_DEFINITIONS)
        return template

    async def delete_template(self, template_id: int) -> None:
        await self.templates.delete(await self.get_template(template_id))
        self._evict(TEMPLATE_DEFINITIONS)

    async def _clear_default(self, template_type: str) -> None:
        # One default per template type
        current = await self.templates.default_for(template_type)
        if current is not None:
            current.is_default = False
            await self.templates.save(current)

    async def default_template(self, template_type: str = "INVOICE") -> InvoiceTemplate:
        template = await self.templates.default_for(template_type)
        if template is None:
            raise ResourceNotFoundError("Default template", template_type)
        return template

    async def _template_definition(self, template_id: int) -> Dict[str, Any]:
        cache = cache_manager.get_cache(TEMPLATE_DEFINITIONS)
        key = tenant_key(self.tenant_id, template_id)
        cached = cache.get(key)
        if cached is not None:
            return cached
        template = await self.get_template(template_id)
        definition = {"id": template.id, "format": template.format, "content": template.content}
        cache.put(key, definition)
        return definition

    async def render_template(
        self, template_id: int, data: Dict[str, Any], user_id: Optional[str] = None
    ) -> RenderResponse:
        definition = await self._template_definition(template_id)
        return RenderResponse(
            template_id=definition["id"],
            format=definition["format"],
            content=render(definition["content"], data, self.tenant_id, user_id),
        )

    # ==== WORKFLOWS ==== #

    async def create_workflow(self, request: WorkflowRequest) -> WorkflowDefinition:
        await self._ensure_unique_name(self.workflows, WorkflowDefinition, request.name)
        workflow = WorkflowDefinition()
        self._apply_workflow_request(workflow, request)
        await self.workflows.add(workflow)
        self._evict(WORKFLOW_DEFINITIONS)
        return workflow

    @staticmethod
    def _apply_workflow_request(workflow: WorkflowDefinition, request: WorkflowRequest) -> None:
        workflow.name = request.name
        workflow.description = request.description
        workflow.entity_type = request.entity_type
        workflow.trigger = request.trigger
        workflow.steps = [s.model_dump() for s in sorted(request.steps, key=lambda s: s.step_order)]
        workflow.active = request.active

    async def get_workflow(self, workflow_id: int) -> WorkflowDefinition:
        return await self._require(self.workflows, "Workflow", workflow_id)

    async def list_workflows(self) -> List[WorkflowDefinition]:
        return await self.workflows.list(order_by=(WorkflowDefinition.name,))

    async def update_workflow(self, workflow_id: int, request: WorkflowRequest) -> WorkflowDefinition:
        workflow = await self.get_workflow(workflow_id)
        await self._ensure_unique_name(self.workflows, WorkflowDefinition, request.name, exclude_id=workflow.id)
        self._apply_workflow_request(workflow, request)
        await self.workflows.save(workflow)
        self._evict(WORKFLOW_DEFINITIONS)
        return workflow

    async def delete_workflow(self, workflow_id: int) -> None:
        await self.workflows.delete(await self.get_workflow(workflow_id))
        self._evict(WORKFLOW_DEFINITIONS)

    async def active_workflows(self, entity_type: str, trigger: str) -> List[Dict[str, Any]]:
        cache = cache_manager.get_cache(WORKFLOW_DEFINITIONS)
        key = tenant_key(self.tenant_id, entity_type, trigger)
        cached = cache.get(key)
        if cached is not None:
            return cached
        workflows = await self.workflows.list(
            WorkflowDefinition.entity_type == entity_type,
            WorkflowDefinition.trigger == trigger,
            WorkflowDefinition.active.is_(True),
            order_by=(WorkflowDefinition.name,),
        )
        definitions = [{"name": w.name, "steps": w.steps} for w in workflows]
        cache.put(key, definitions)
        return definitions
