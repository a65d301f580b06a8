"""Unit tests for the notification retry flow."""

import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from factories.data_factories import MetadataFactory
from easybill.services.notifications import (
    NotificationDeliveryError,
    NotificationDispatcher,
    NotificationService,
)
from easybill.storage.db import get_session
from easybill.tenancy.context import get_current_tenant


def _passthrough(*args, **kwargs):
    """Stand-in for ``prefect.task``/``prefect.flow`` with or without arguments."""
    if len(args) == 1 and callable(args[0]) and not kwargs:
        return args[0]
    return lambda fn: fn


@pytest.fixture
def flow_module():
    """Flow module imported with Prefect decorators and run logger mocked out."""
    sys.modules.pop("flows.notification_retry", None)
    with patch("prefect.task", _passthrough), \
         patch("prefect.flow", _passthrough), \
         patch("prefect.get_run_logger", lambda: MagicMock()):
        import flows.notification_retry as module
    yield module
    sys.modules.pop("flows.notification_retry", None)


async def seed_failed(tenant_id: str, count: int = 1, retry_count: int = 0) -> None:
    dispatcher = AsyncMock(spec=NotificationDispatcher)
    dispatcher.dispatch.side_effect = NotificationDeliveryError("smtp down")
    async with get_session() as db:
        service = NotificationService(db, tenant_id, dispatcher)
        for _ in range(count):
            notification = await service.send(MetadataFactory.notification_request())
            notification.retry_count = retry_count


@pytest.mark.unit
class TestNotificationRetryFlow:

    async def test_find_tenants_with_failures(self, flow_module, tenant, other_tenant):
        await seed_failed(tenant.id)
        await seed_failed(other_tenant.id, retry_count=3)

        assert await flow_module.find_tenants_with_failures(3) == [tenant.id]

    async def test_retry_tenant_notifications(self, flow_module, tenant):
        await seed_failed(tenant.id, count=2)

        summary = await flow_module.retry_tenant_notifications(tenant.id, 3)

        assert summary == {"tenant_id": tenant.id, "retried": 2, "sent": 2, "failed": 0, "skipped": 0}
        assert get_current_tenant() is None

        async with get_session() as db:
            counts = await NotificationService(db, tenant.id).count_by_status()
        assert counts["SENT"] == 2
        assert counts["FAILED"] == 0

    async def test_still_failing_notifications_are_counted(self, flow_module, tenant):
        await seed_failed(tenant.id)
        failing = AsyncMock(spec=NotificationDispatcher)
        failing.dispatch.side_effect = NotificationDeliveryError("still down")

        with patch.object(flow_module, "NotificationService",
                          lambda db, tenant_id: NotificationService(db, tenant_id, failing)):
            summary = await flow_module.retry_tenant_notifications(tenant.id, 3)

        assert (summary["retried"], summary["sent"], summary["failed"]) == (1, 0, 1)

    async def test_raised_retry_ceiling_is_honoured(self, flow_module, tenant):
        """Notifications past the default ceiling are retried when the flow allows more."""
        await seed_failed(tenant.id, retry_count=3)

        assert await flow_module.find_tenants_with_failures(5) == [tenant.id]
        summary = await flow_module.retry_tenant_notifications(tenant.id, 5)

        assert summary == {"tenant_id": tenant.id, "retried": 1, "sent": 1, "failed": 0, "skipped": 0}

    async def test_flow_totals(self, flow_module, tenant, other_tenant):
        await seed_failed(tenant.id, count=2)
        await seed_failed(other_tenant.id)

        result = await flow_module.notification_retry_flow()

        assert [s["tenant_id"] for s in result["tenants"]] == sorted([tenant.id, other_tenant.id])
        assert result["totals"] == {"retried": 3, "sent": 3, "failed": 0, "skipped": 0}

    async def test_flow_with_nothing_to_do(self, flow_module, database):
        result = await flow_module.notification_retry_flow(max_retries=3)

        assert result == {"tenants": [], "totals": {"retried": 0, "sent": 0, "failed": 0, "skipped": 0}}
