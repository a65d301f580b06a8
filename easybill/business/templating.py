"""``${path}`` placeholder rendering for invoice and notification templates."""

import re
from typing import Any, Mapping, Optional

from easybill.business.rules import lookup


VARIABLE_PATTERN = re.compile(r"\$\{([^}]+)\}")


def render(
    content: Optional[str],
    data: Optional[Mapping[str, Any]] = None,
    tenant_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> str:
    """Substitute every ``${path}`` in ``content``.

    Paths are looked up in ``data`` (dotted paths reach nested mappings);
    ``tenantId`` and ``userId`` fall back to the given execution context.
    Unresolved placeholders render as an empty string.
    """
    if not content:
        return ""

    values = {"tenantId": tenant_id or "", "userId": user_id or ""}
    values.update(data or {})

    def _replace(match: re.Match) -> str:
        value = lookup(values, match.group(1).strip())
        return "" if value is None else str(value)

    return VARIABLE_PATTERN.sub(_replace, content)
