"""Unit tests for plugins, business rules, invoice templates and workflows."""

import pytest

from factories.data_factories import MetadataFactory
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError
from easybill.schemas.metadata import (
    InvoiceTemplateRequest,
    PluginRequest,
    WorkflowRequest,
    WorkflowStep,
)
from easybill.services.metadata import MetadataService
from easybill.storage.cache import RULE_DEFINITIONS, cache_manager, tenant_key


metadata = MetadataFactory()

DISCOUNT_RULE = {
    "condition": {"field": "total", "operator": "gt", "value": 1000},
    "actions": [{"type": "set", "field": "discount", "value": 5}],
}


@pytest.fixture
def service(db_session, tenant) -> MetadataService:
    return MetadataService(db_session, tenant.id)


@pytest.mark.unit
class TestPlugins:

    async def test_crud(self, service):
        plugin = await service.create_plugin(PluginRequest(name="tally-export", plugin_type="EXPORT"))

        assert plugin.version == "1.0.0"
        assert [p.name for p in await service.list_plugins()] == ["tally-export"]

        updated = await service.update_plugin(
            plugin.id, PluginRequest(name="tally-export", plugin_type="EXPORT", version="2.0.0", enabled=False)
        )
        assert updated.version == "2.0.0"

        await service.delete_plugin(plugin.id)
        with pytest.raises(ResourceNotFoundError):
            await service.get_plugin(plugin.id)

    async def test_duplicate_name(self, service):
        await service.create_plugin(PluginRequest(name="sms", plugin_type="NOTIFY"))

        with pytest.raises(BusinessError) as exc_info:
            await service.create_plugin(PluginRequest(name="sms", plugin_type="NOTIFY"))

        assert exc_info.value.error_code == ErrorCodes.DUPLICATE_RESOURCE

    async def test_names_are_per_tenant(self, db_session, service, other_tenant):
        await service.create_plugin(PluginRequest(name="sms", plugin_type="NOTIFY"))

        other = await MetadataService(db_session, other_tenant.id).create_plugin(
            PluginRequest(name="sms", plugin_type="NOTIFY")
        )

        assert other.tenant_id == other_tenant.id

    async def test_enabled_plugins_follow_writes(self, service):
        sms = await service.create_plugin(PluginRequest(name="sms", plugin_type="NOTIFY", config={"sender": "EZB"}))
        await service.create_plugin(PluginRequest(name="legacy", plugin_type="EXPORT", enabled=False))

        assert await service.enabled_plugins() == [
            {"name": "sms", "plugin_type": "NOTIFY", "version": "1.0.0", "config": {"sender": "EZB"}}
        ]

        await service.update_plugin(sms.id, PluginRequest(name="sms", plugin_type="NOTIFY", enabled=False))

        assert await service.enabled_plugins() == []


@pytest.mark.unit
class TestBusinessRules:

    async def test_crud(self, service):
        rule = await service.create_rule(metadata.rule_request("bulk-discount", **DISCOUNT_RULE))

        assert rule.condition == {"field": "total", "operator": "gt", "value": 1000}
        assert rule.actions == [{"type": "set", "field": "discount", "value": 5}]
        assert [r.name for r in await service.list_rules()] == ["bulk-discount"]

        updated = await service.update_rule(rule.id, metadata.rule_request("bulk-discount", priority=7))
        assert updated.priority == 7
        assert updated.condition == {}

        await service.delete_rule(rule.id)
        with pytest.raises(ResourceNotFoundError):
            await service.get_rule(rule.id)

    async def test_rename_onto_existing_rule(self, service):
        await service.create_rule(metadata.rule_request("first"))
        second = await service.create_rule(metadata.rule_request("second"))

        with pytest.raises(BusinessError) as exc_info:
            await service.update_rule(second.id, metadata.rule_request("first"))

        assert exc_info.value.error_code == ErrorCodes.DUPLICATE_RESOURCE

    async def test_active_rules_by_priority(self, service):
        await service.create_rule(metadata.rule_request("low", priority=1))
        await service.create_rule(metadata.rule_request("high", priority=9))
        await service.create_rule(metadata.rule_request("off", priority=5, active=False))
        await service.create_rule(metadata.rule_request("other-trigger", trigger="AFTER_SAVE"))

        rules = await service.active_rules("INVOICE", "BEFORE_SAVE")

        assert [r["name"] for r in rules] == ["high", "low"]

    async def test_active_rules_are_cached_until_a_write(self, service, tenant):
        await service.create_rule(metadata.rule_request("first"))
        cache = cache_manager.get_cache(RULE_DEFINITIONS)
        key = tenant_key(tenant.id, "INVOICE", "BEFORE_SAVE")

        await service.active_rules("INVOICE", "BEFORE_SAVE")
        assert cache.contains(key)

        await service.create_rule(metadata.rule_request("second"))
        assert not cache.contains(key)
        assert len(await service.active_rules("INVOICE", "BEFORE_SAVE")) == 2

    async def test_entries_cached_during_write_are_dropped_on_commit(self, service, db_session, tenant):
        """Another reader caching pre-commit rows does not leave them behind."""
        cache = cache_manager.get_cache(RULE_DEFINITIONS)
        key = tenant_key(tenant.id, "INVOICE", "BEFORE_SAVE")

        await service.create_rule(metadata.rule_request("first"))
        cache.put(key, [])

        await db_session.commit()

        assert not cache.contains(key)
        assert [r["name"] for r in await service.active_rules("INVOICE", "BEFORE_SAVE")] == ["first"]

    async def test_entries_cached_during_write_are_dropped_on_rollback(self, service, db_session, tenant):
        cache = cache_manager.get_cache(RULE_DEFINITIONS)
        key = tenant_key(tenant.id, "INVOICE", "BEFORE_SAVE")

        await service.create_rule(metadata.rule_request("doomed"))
        cache.put(key, [{"name": "doomed"}])

        await db_session.rollback()

        assert not cache.contains(key)
        assert await service.active_rules("INVOICE", "BEFORE_SAVE") == []

    async def test_apply_rules(self, service):
        await service.create_rule(metadata.rule_request("bulk-discount", priority=2, **DISCOUNT_RULE))
        await service.create_rule(metadata.rule_request(
            "tag-large",
            priority=1,
            condition={"field": "discount", "operator": "eq", "value": 5},
            actions=[{"type": "add_tag", "value": "large-order"}],
        ))
        await service.create_rule(metadata.rule_request(
            "tiny", condition={"field": "total", "operator": "lt", "value": 10}
        ))

        result = await service.apply_rules("INVOICE", "BEFORE_SAVE", {"total": 1500})

        assert result.applied_rules == ["bulk-discount", "tag-large"]
        assert result.skipped_rules == ["tiny"]
        assert result.failed_rules == {}
        assert result.data == {"total": 1500, "discount": 5, "tags": ["large-order"]}

    async def test_apply_without_rules(self, service):
        result = await service.apply_rules("PRODUCT", "BEFORE_SAVE", {"name": "Ghee"})

        assert result.data == {"name": "Ghee"}
        assert result.applied_rules == []


@pytest.mark.unit
class TestTemplates:

    async def test_provisioned_default(self, service):
        template = await service.default_template()

        assert template.name == "Default Invoice"

    async def test_missing_default(self, service):
        with pytest.raises(ResourceNotFoundError, match="Default template"):
            await service.default_template("RECEIPT")

    async def test_new_default_replaces_previous(self, service):
        previous = await service.default_template()

        template = await service.create_template(InvoiceTemplateRequest(
            name="Thermal", content="<p>${invoice.invoice_number}</p>", is_default=True
        ))

        assert previous.is_default is False
        assert (await service.default_template()).id == template.id

    async def test_update_to_default(self, service):
        previous = await service.default_template()
        receipt = await service.create_template(InvoiceTemplateRequest(name="Receipt", content="x"))

        await service.update_template(
            receipt.id, InvoiceTemplateRequest(name="Receipt", content="y", is_default=True)
        )

        assert previous.is_default is False
        assert (await service.default_template()).content == "y"

    async def test_render(self, service, tenant):
        template = await service.create_template(InvoiceTemplateRequest(
            name="Plain", format="TEXT", content="${invoice.invoice_number} for ${customer} (${tenantId})"
        ))

        rendered = await service.render_template(
            template.id, {"invoice": {"invoice_number": "INV-1"}, "customer": "Asha"}
        )

        assert rendered.format == "TEXT"
        assert rendered.content == f"INV-1 for Asha ({tenant.id})"

    async def test_render_after_update_uses_new_content(self, service):
        template = await service.create_template(InvoiceTemplateRequest(name="Plain", content="v1 ${n}"))
        await service.render_template(template.id, {"n": 1})

        await service.update_template(template.id, InvoiceTemplateRequest(name="Plain", content="v2 ${n}"))

        assert (await service.render_template(template.id, {"n": 2})).content == "v2 2"

    async def test_list_and_delete(self, service):
        extra = await service.create_template(InvoiceTemplateRequest(name="A4", content="x"))

        assert {t.name for t in await service.list_templates()} == {"Default Invoice", "A4"}

        await service.delete_template(extra.id)
        with pytest.raises(ResourceNotFoundError):
            await service.render_template(extra.id, {})


@pytest.mark.unit
class TestWorkflows:

    @staticmethod
    def request(name: str, **overrides) -> WorkflowRequest:
        fields = {
            "name": name,
            "entity_type": "INVOICE",
            "trigger": "AFTER_COMPLETE",
            "steps": [
                WorkflowStep(step_order=2, name="notify", action="SEND_NOTIFICATION"),
                WorkflowStep(step_order=1, name="rules", action="APPLY_RULES"),
            ],
        }
        fields.update(overrides)
        return WorkflowRequest(**fields)

    async def test_steps_are_stored_in_order(self, service):
        workflow = await service.create_workflow(self.request("post-sale"))

        assert [s["name"] for s in workflow.steps] == ["rules", "notify"]

    async def test_active_workflows(self, service):
        await service.create_workflow(self.request("post-sale"))
        await service.create_workflow(self.request("paused", active=False))
        await service.create_workflow(self.request("on-cancel", trigger="AFTER_CANCEL"))

        workflows = await service.active_workflows("INVOICE", "AFTER_COMPLETE")

        assert [w["name"] for w in workflows] == ["post-sale"]

    async def test_update_and_delete(self, service):
        workflow = await service.create_workflow(self.request("post-sale"))
        await service.active_workflows("INVOICE", "AFTER_COMPLETE")

        await service.update_workflow(workflow.id, self.request("post-sale", active=False))
        assert await service.active_workflows("INVOICE", "AFTER_COMPLETE") == []

        await service.delete_workflow(workflow.id)
        assert await service.list_workflows() == []
