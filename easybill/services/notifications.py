# ==== NOTIFICATION SERVICE ==== #

"""
Notification recording, delivery and retry.

Every notification is persisted whatever the delivery outcome. Delivery
POSTs the rendered notification to ``NOTIFICATION_WEBHOOK_URL`` when one is
configured; without a webhook the delivery is only logged. Transient HTTP
failures are retried with exponential backoff inside a single send.
"""

from typing import Dict, List, Optional, Tuple

import httpx
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from easybill.business.statuses import NotificationStatus
from easybill.business.templating import render
from easybill.errors import ResourceNotFoundError, ValidationError
from easybill.observability.logging import get_logger
from easybill.observability.metrics import notifications_total
from easybill.observability.tracing import get_tracer
from easybill.repositories.notifications import NotificationRepository
from easybill.schemas.notification import NotificationRequest
from easybill.settings import settings
from easybill.storage.models import Notification, utcnow


logger = get_logger(__name__)
tracer = get_tracer(__name__)


class NotificationDeliveryError(Exception):
    """Raised when a notification could not be handed to the delivery channel."""


# ==== DISPATCH ==== #


class NotificationDispatcher:
    """
    Hands rendered notifications to the delivery webhook.

    Args:
        webhook_url: Delivery endpoint; ``None`` logs deliveries instead
        timeout: Per-request timeout in seconds
        attempts: Delivery attempts per send, including the first
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: Optional[float] = None,
        attempts: Optional[int] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.NOTIFICATION_WEBHOOK_URL
        self.timeout = timeout or settings.NOTIFICATION_TIMEOUT_SECONDS
        self.attempts = max(1, attempts or settings.NOTIFICATION_DELIVERY_ATTEMPTS)

    async def dispatch(self, notification: Notification) -> None:
        """
        Deliver one notification.

        Raises:
            NotificationDeliveryError: Webhook unreachable or non-2xx after all attempts
        """
        payload = {
            "id": notification.id,
            "tenantId": notification.tenant_id,
            "type": notification.type,
            "recipient": notification.recipient,
            "subject": notification.subject,
            "message": notification.message,
        }

        if not self.webhook_url:
            logger.info(
                "Notification delivered to log channel",
                notification_id=notification.id,
                type=notification.type,
                recipient=notification.recipient,
            )
            return

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self.attempts),
                    wait=wait_exponential(multiplier=0.2, max=2),
                    retry=retry_if_exception_type(httpx.HTTPError),
                    reraise=True,
                ):
                    with attempt:
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(f"{type(e).__name__}: {e}") from e


# ==== NOTIFICATION SERVICE CLASS ==== #


class NotificationService:

    def __init__(
        self,
        session: AsyncSession,
        tenant_id: str,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.session = session
        self.tenant_id = tenant_id
        self.notifications = NotificationRepository(session, tenant_id)
        self.dispatcher = dispatcher or NotificationDispatcher()

    async def send(self, request: NotificationRequest) -> Notification:
        """
        Record, render and deliver a notification.

        Args:
            request (NotificationRequest): Channel, recipient and content

        Returns:
            Notification: Persisted with status SENT or FAILED
        """
        with tracer.start_as_current_span("notification_send") as span:
            span.set_attribute("type", request.type.value)

            data = request.template_data or {}
            notification = await self.notifications.add(Notification(
                type=request.type.value,
                recipient=request.recipient,
                subject=render(request.subject, data, self.tenant_id) if request.subject else None,
                message=render(request.message, data, self.tenant_id),
                template_data=request.template_data,
                status=NotificationStatus.PENDING.value,
                retry_count=0,
            ))

            await self._deliver(notification)
            span.set_attribute("status", notification.status)
            return notification

    async def _deliver(self, notification: Notification) -> None:
        try:
            await self.dispatcher.dispatch(notification)
        except NotificationDeliveryError as e:
            notification.status = NotificationStatus.FAILED.value
            notification.error_message = str(e)
            logger.error(
                "Notification delivery failed",
                notification_id=notification.id,
                retry_count=notification.retry_count,
                error=str(e),
            )
        else:
            notification.status = NotificationStatus.SENT.value
            notification.sent_at = utcnow()
            notification.error_message = None

        notifications_total.labels(type=notification.type, status=notification.status).inc()
        await self.notifications.save(notification)

    # ==== QUERIES ==== #

    async def get(self, notification_id: str) -> Notification:
        notification = await self.notifications.get(notification_id)
        if notification is None:
            raise ResourceNotFoundError("Notification", notification_id)
        return notification

    async def list_notifications(
        self,
        page: int = 0,
        size: int = 20,
        status: Optional[NotificationStatus] = None,
    ) -> Tuple[List[Notification], int]:
        criteria = [Notification.status == status.value] if status else []
        return await self.notifications.list_page(
            *criteria,
            offset=page * size,
            limit=size,
            order_by=(Notification.created_at.desc(),),
        )

    async def count_by_status(self) -> Dict[str, int]:
        return await self.notifications.count_by_status()

    # ==== RETRIES ==== #

    async def find_retryable(self, max_retries: Optional[int] = None) -> List[Notification]:
        limit = settings.NOTIFICATION_MAX_RETRIES if max_retries is None else max_retries
        return await self.notifications.retryable(limit)

    async def retry(self, notification_id: str) -> Notification:
        return await self.retry_notification(await self.get(notification_id))

    async def retry_notification(
        self, notification: Notification, max_retries: Optional[int] = None
    ) -> Notification:
        """Re-deliver a FAILED notification, counting the attempt."""
        limit = settings.NOTIFICATION_MAX_RETRIES if max_retries is None else max_retries
        if notification.status != NotificationStatus.FAILED.value:
            raise ValidationError("Only failed notifications can be retried")
        if notification.retry_count >= limit:
            raise ValidationError(
                "Notification has exhausted its retries",
                field_errors={"retry_count": str(notification.retry_count)},
            )

        notification.retry_count += 1
        await self._deliver(notification)
        logger.info(
            "Notification retried",
            notification_id=notification.id,
            retry_count=notification.retry_count,
            status=notification.status,
        )
        return notification
