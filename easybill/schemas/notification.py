"""Pydantic schemas for notifications."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from easybill.business.statuses import NotificationType
from easybill.schemas.common import ORMModel


class NotificationRequest(BaseModel):
    type: NotificationType
    recipient: str = Field(..., min_length=1, max_length=255)
    subject: Optional[str] = Field(None, max_length=255)
    message: str = Field(..., min_length=1)
    template_data: Optional[Dict[str, Any]] = None


class NotificationResponse(ORMModel):
    id: str
    type: str
    recipient: str
    subject: Optional[str] = None
    message: str
    status: str
    retry_count: int
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: datetime
