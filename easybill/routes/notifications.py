"""Notification sending, history and retry endpoints."""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import NotificationStatus
from easybill.schemas.common import Page
from easybill.schemas.notification import NotificationRequest, NotificationResponse
from easybill.security.auth import AuthenticatedUser, get_current_user, require_admin
from easybill.services.notifications import NotificationService
from easybill.storage.db import get_db_session


router = APIRouter()


@router.post("/send", response_model=NotificationResponse, status_code=201)
async def send_notification(
    payload: NotificationRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    notification = await NotificationService(db, user.tenant_id).send(payload)
    return NotificationResponse.model_validate(notification)


@router.get("", response_model=Page[NotificationResponse])
async def list_notifications(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    status: Optional[NotificationStatus] = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Page[NotificationResponse]:
    rows, total = await NotificationService(db, user.tenant_id).list_notifications(page, size, status)
    return Page[NotificationResponse](
        items=[NotificationResponse.model_validate(n) for n in rows], total=total, page=page, size=size
    )


@router.get("/stats", response_model=Dict[str, int])
async def notification_stats(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, int]:
    return await NotificationService(db, user.tenant_id).count_by_status()


@router.get("/retryable", response_model=List[NotificationResponse])
async def list_retryable(
    user: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[NotificationResponse]:
    rows = await NotificationService(db, user.tenant_id).find_retryable()
    return [NotificationResponse.model_validate(n) for n in rows]


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    return NotificationResponse.model_validate(await NotificationService(db, user.tenant_id).get(notification_id))


@router.post("/{notification_id}/retry", response_model=NotificationResponse)
async def retry_notification(
    notification_id: str,
    user: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    notification = await NotificationService(db, user.tenant_id).retry(notification_id)
    return NotificationResponse.model_validate(notification)
