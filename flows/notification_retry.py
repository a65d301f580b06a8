# ==== NOTIFICATION RETRY FLOW ==== #

"""
Scheduled re-delivery of failed notifications.

Finds every tenant with FAILED notifications under the retry limit and
retries them inside that tenant's scope, so the session row filter and
the repositories only ever see one tenant's rows at a time.
"""

import argparse
import asyncio
import time
from typing import Any, Dict, List, Optional

from prefect import flow, get_run_logger, task

from easybill.errors import BusinessError
from easybill.observability.logging import log_performance
from easybill.repositories.notifications import tenants_with_retryable
from easybill.services.notifications import NotificationService
from easybill.settings import settings
from easybill.storage.db import get_session
from easybill.tenancy.context import tenant_scope


@task(retries=2, retry_delay_seconds=30)
async def find_tenants_with_failures(max_retries: int) -> List[str]:
    """
    List tenants owning retryable notifications.

    Args:
        max_retries: Notifications retried this many times are left alone

    Returns:
        Tenant ids, sorted
    """
    logger = get_run_logger()
    async with get_session() as db:
        tenants = await tenants_with_retryable(db, max_retries)
    logger.info(f"Found {len(tenants)} tenants with retryable notifications")
    return tenants


@task
async def retry_tenant_notifications(tenant_id: str, max_retries: int) -> Dict[str, Any]:
    """
    Retry one tenant's failed notifications.

    Args:
        tenant_id: Tenant whose notifications are retried
        max_retries: Retry ceiling passed to the lookup

    Returns:
        Counts of retried, delivered and still failing notifications
    """
    logger = get_run_logger()
    summary = {"tenant_id": tenant_id, "retried": 0, "sent": 0, "failed": 0, "skipped": 0}

    with tenant_scope(tenant_id):
        async with get_session() as db:
            service = NotificationService(db, tenant_id)
            for notification in await service.find_retryable(max_retries):
                try:
                    await service.retry_notification(notification, max_retries=max_retries)
                except BusinessError as e:
                    logger.warning(f"Skipping notification {notification.id}: {e.formatted_message}")
                    summary["skipped"] += 1
                    continue

                summary["retried"] += 1
                if notification.status == "SENT":
                    summary["sent"] += 1
                else:
                    summary["failed"] += 1

    logger.info(
        f"Tenant {tenant_id}: retried {summary['retried']}, "
        f"sent {summary['sent']}, still failing {summary['failed']}"
    )
    return summary


@flow(name="notification-retry", log_prints=True)
async def notification_retry_flow(max_retries: Optional[int] = None) -> Dict[str, Any]:
    """
    Retry failed notifications for every tenant.

    Args:
        max_retries: Retry ceiling, ``NOTIFICATION_MAX_RETRIES`` by default

    Returns:
        Per-tenant summaries and overall totals
    """
    logger = get_run_logger()
    limit = settings.NOTIFICATION_MAX_RETRIES if max_retries is None else max_retries
    start_time = time.perf_counter()

    tenants = await find_tenants_with_failures(limit)
    summaries = []
    for tenant_id in tenants:
        summaries.append(await retry_tenant_notifications(tenant_id, limit))

    totals = {
        key: sum(s[key] for s in summaries)
        for key in ("retried", "sent", "failed", "skipped")
    }
    logger.info(f"Notification retry finished for {len(tenants)} tenants: {totals}")
    log_performance("notification_retry", time.perf_counter() - start_time, tenants=len(tenants), **totals)
    return {"tenants": summaries, "totals": totals}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Notification retry flow")
    parser.add_argument("--run", action="store_true", help="Run flow locally once")
    parser.add_argument("--serve", action="store_true", help="Serve flow on its cron schedule")
    parser.add_argument("--max-retries", type=int, default=None, help="Override retry ceiling")

    args = parser.parse_args()

    if args.serve:
        notification_retry_flow.serve(
            name=settings.PREFECT_DEPLOYMENT_NAME,
            tags=["notifications", "retry"],
            cron=settings.PREFECT_SCHEDULE_CRON,
        )
    elif args.run:
        print(asyncio.run(notification_retry_flow(max_retries=args.max_retries)))
    else:
        parser.print_help()
