# ==== PREFECT FLOWS PACKAGE ==== #

"""
Prefect flows for EasyBill background work.

- notification_retry_flow: periodic re-delivery of failed notifications
"""

from .notification_retry import notification_retry_flow

__all__ = [
    "notification_retry_flow",
]
