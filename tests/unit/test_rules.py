"""Unit tests for business rule evaluation and template rendering."""

import pytest

from easybill.business.rules import (
    RuleDefinitionError,
    apply_action,
    assign,
    evaluate_condition,
    execute_rules,
    lookup,
)
from easybill.business.templating import render


@pytest.mark.unit
class TestFieldAccess:

    def test_lookup_dotted_path(self):
        data = {"customer": {"tier": "GOLD", "address": {"city": "Pune"}}}

        assert lookup(data, "customer.address.city") == "Pune"
        assert lookup(data, "customer.phone") is None
        assert lookup(data, "customer.tier.level", "n/a") == "n/a"

    def test_assign_creates_intermediate_dicts(self):
        data = {"customer": "walk-in"}

        assign(data, "customer.discount.percent", 5)

        assert data == {"customer": {"discount": {"percent": 5}}}


@pytest.mark.unit
class TestEvaluateCondition:

    def test_empty_condition_matches(self):
        assert evaluate_condition(None, {}) is True
        assert evaluate_condition({}, {"a": 1}) is True

    def test_numeric_equality_ignores_representation(self):
        assert evaluate_condition({"field": "total", "operator": "eq", "value": "100"}, {"total": 100.0})

    def test_string_equality(self):
        condition = {"field": "customer.tier", "operator": "eq", "value": "GOLD"}

        assert evaluate_condition(condition, {"customer": {"tier": "GOLD"}})
        assert not evaluate_condition(condition, {"customer": {"tier": "SILVER"}})

    def test_ne_on_missing_field(self):
        assert evaluate_condition({"field": "coupon", "operator": "ne", "value": "X"}, {})
        assert evaluate_condition({"field": "coupon", "operator": "eq", "value": None}, {})

    @pytest.mark.parametrize("operator,value,expected", [
        ("gt", 1000, True),
        ("gte", 1500, True),
        ("lt", 1500, False),
        ("lte", "1500.00", True),
    ])
    def test_ordering_operators(self, operator, value, expected):
        data = {"invoice": {"total": "1500"}}

        assert evaluate_condition({"field": "invoice.total", "operator": operator, "value": value}, data) is expected

    def test_ordering_on_missing_field_is_false(self):
        assert not evaluate_condition({"field": "total", "operator": "gt", "value": 0}, {})

    def test_ordering_on_incomparable_values_is_false(self):
        assert not evaluate_condition({"field": "total", "operator": "gt", "value": 10}, {"total": "lots"})

    def test_in_operator(self):
        condition = {"field": "state", "operator": "in", "value": ["MH", "KA"]}

        assert evaluate_condition(condition, {"state": "MH"})
        assert not evaluate_condition(condition, {"state": "DL"})

    def test_in_operator_requires_list(self):
        with pytest.raises(RuleDefinitionError):
            evaluate_condition({"field": "state", "operator": "in", "value": "MH"}, {"state": "MH"})

    def test_contains_operator(self):
        assert evaluate_condition({"field": "notes", "operator": "contains", "value": "gift"}, {"notes": "a gift box"})
        assert evaluate_condition({"field": "tags", "operator": "contains", "value": "vip"}, {"tags": ["vip"]})
        assert not evaluate_condition({"field": "qty", "operator": "contains", "value": 1}, {"qty": 10})

    def test_unknown_operator(self):
        with pytest.raises(RuleDefinitionError, match="Unknown operator"):
            evaluate_condition({"field": "a", "operator": "matches", "value": 1}, {"a": 1})

    def test_condition_without_field(self):
        with pytest.raises(RuleDefinitionError):
            evaluate_condition({"operator": "eq", "value": 1}, {})


@pytest.mark.unit
class TestActions:

    def test_set_action(self):
        data = {}
        apply_action({"type": "set", "field": "discount.percent", "value": 10}, data)

        assert data == {"discount": {"percent": 10}}

    def test_add_tag_is_idempotent(self):
        data = {}
        apply_action({"type": "add_tag", "value": "vip"}, data)
        apply_action({"type": "add_tag", "value": "vip"}, data)

        assert data["tags"] == ["vip"]

    def test_unknown_action(self):
        with pytest.raises(RuleDefinitionError):
            apply_action({"type": "email"}, {})


@pytest.mark.unit
class TestExecuteRules:

    def test_rules_run_in_order_and_see_earlier_changes(self):
        rules = [
            {"name": "gold-tier", "condition": {"field": "total", "operator": "gte", "value": 1000},
             "actions": [{"type": "set", "field": "tier", "value": "GOLD"}]},
            {"name": "gold-tag", "condition": {"field": "tier", "operator": "eq", "value": "GOLD"},
             "actions": [{"type": "add_tag", "value": "priority"}]},
        ]

        result = execute_rules(rules, {"total": 1200})

        assert result.data == {"total": 1200, "tier": "GOLD", "tags": ["priority"]}
        assert result.executed == ["gold-tier", "gold-tag"]
        assert result.skipped == []

    def test_unmatched_rules_are_skipped(self):
        rules = [{"name": "big-spender", "condition": {"field": "total", "operator": "gt", "value": 5000},
                  "actions": [{"type": "add_tag", "value": "vip"}]}]

        result = execute_rules(rules, {"total": 10})

        assert result.skipped == ["big-spender"]
        assert "tags" not in result.data

    def test_failed_rule_leaves_payload_unchanged(self):
        rules = [
            {"name": "half-applied", "actions": [
                {"type": "set", "field": "flag", "value": True},
                {"type": "explode"},
            ]},
            {"name": "after", "actions": [{"type": "set", "field": "ran", "value": True}]},
        ]

        result = execute_rules(rules, {"total": 1})

        assert result.data == {"total": 1, "ran": True}
        assert "half-applied" in result.failed
        assert result.executed == ["after"]

    def test_input_is_not_mutated(self):
        original = {"nested": {"value": 1}}

        execute_rules([{"name": "r", "actions": [{"type": "set", "field": "nested.value", "value": 2}]}], original)

        assert original == {"nested": {"value": 1}}


@pytest.mark.unit
class TestRender:

    def test_substitutes_nested_values(self):
        assert render("Hello ${customer.name}!", {"customer": {"name": "Asha"}}) == "Hello Asha!"

    def test_missing_values_render_empty(self):
        assert render("Total: ${invoice.total}.", {}) == "Total: ."

    def test_context_fallbacks(self):
        assert render("${tenantId}/${userId}", {}, "t-1", "u-1") == "t-1/u-1"
        assert render("${tenantId}", {"tenantId": "override"}, "t-1") == "override"

    def test_whitespace_inside_placeholder(self):
        assert render("${ name }", {"name": "Ravi"}) == "Ravi"

    def test_empty_content(self):
        assert render(None, {"a": 1}) == ""
        assert render("", {"a": 1}) == ""

    def test_non_string_values(self):
        assert render("${qty} x ${price}", {"qty": 3, "price": 9.5}) == "3 x 9.5"
