# ==== BUSINESS RULE ENGINE ==== #

"""
Evaluation of tenant-defined business rules against plain dict payloads.

A rule has one optional condition ``{"field", "operator", "value"}`` and a
list of actions. Field paths are dotted (``customer.tier``). Rules run in
the order given (callers pass them sorted by priority, highest first); each
rule sees the payload as modified by the rules before it.
"""

import copy
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from easybill.observability.logging import get_logger


logger = get_logger(__name__)

_MISSING = object()


class RuleDefinitionError(ValueError):
    """Raised for malformed conditions or actions."""


# ==== FIELD ACCESS ==== #


def lookup(data: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Resolve a dotted path inside nested mappings."""
    current: Any = data
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return default
    return current


def assign(data: Dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted path, creating intermediate dicts as needed."""
    parts = path.split(".")
    current = data
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


# ==== CONDITIONS ==== #


def _as_number(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


def _compare(left: Any, right: Any) -> Optional[int]:
    ln, rn = _as_number(left), _as_number(right)
    if ln is not None and rn is not None:
        return (ln > rn) - (ln < rn)
    if isinstance(left, str) and isinstance(right, str):
        return (left > right) - (left < right)
    return None


def evaluate_condition(condition: Optional[Mapping[str, Any]], data: Mapping[str, Any]) -> bool:
    """Return True when ``data`` satisfies ``condition``. An empty condition always matches.

    Raises:
        RuleDefinitionError: Unknown operator or missing field name
    """
    if not condition:
        return True

    path = condition.get("field")
    if not path:
        raise RuleDefinitionError("Condition requires a field")
    operator = condition.get("operator", "eq")
    expected = condition.get("value")
    actual = lookup(data, path, _MISSING)

    if operator in ("eq", "ne"):
        if actual is _MISSING:
            equal = expected is None
        else:
            cmp = _compare(actual, expected)
            equal = cmp == 0 if cmp is not None else actual == expected
        return equal if operator == "eq" else not equal

    if actual is _MISSING or actual is None:
        return False

    if operator in ("gt", "gte", "lt", "lte"):
        cmp = _compare(actual, expected)
        if cmp is None:
            return False
        return {
            "gt": cmp > 0,
            "gte": cmp >= 0,
            "lt": cmp < 0,
            "lte": cmp <= 0,
        }[operator]

    if operator == "in":
        if not isinstance(expected, (list, tuple, set)):
            raise RuleDefinitionError("Operator 'in' requires a list value")
        return actual in expected

    if operator == "contains":
        if isinstance(actual, str):
            return str(expected) in actual
        if isinstance(actual, (list, tuple, set)):
            return expected in actual
        return False

    raise RuleDefinitionError(f"Unknown operator: {operator}")


# ==== ACTIONS ==== #


def apply_action(action: Mapping[str, Any], data: Dict[str, Any]) -> None:
    action_type = action.get("type", "set")
    target = action.get("field")

    if action_type == "set":
        if not target:
            raise RuleDefinitionError("Action 'set' requires a field")
        assign(data, target, copy.deepcopy(action.get("value")))
    elif action_type == "add_tag":
        tags = data.setdefault("tags", [])
        if not isinstance(tags, list):
            raise RuleDefinitionError("Payload 'tags' is not a list")
        if action.get("value") not in tags:
            tags.append(action.get("value"))
    else:
        raise RuleDefinitionError(f"Unknown action type: {action_type}")


# ==== EXECUTION ==== #


@dataclass
class RuleExecutionResult:
    data: Dict[str, Any]
    executed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


def execute_rules(rules: Iterable[Mapping[str, Any]], data: Mapping[str, Any]) -> RuleExecutionResult:
    """Evaluate ``rules`` in order against a copy of ``data``.

    A rule that fails is recorded in ``failed`` and leaves the payload as it
    was before that rule ran; later rules still execute.
    """
    result = RuleExecutionResult(data=copy.deepcopy(dict(data)))

    for rule in rules:
        name = rule["name"]
        try:
            if not evaluate_condition(rule.get("condition"), result.data):
                result.skipped.append(name)
                continue
            working = copy.deepcopy(result.data)
            for action in rule.get("actions") or []:
                apply_action(action, working)
            result.data = working
            result.executed.append(name)
        except RuleDefinitionError as e:
            logger.warning("Business rule failed", rule=name, error=str(e))
            result.failed[name] = str(e)

    return result
