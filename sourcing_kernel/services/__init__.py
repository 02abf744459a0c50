"""Kernel service infrastructure."""

from sourcing_kernel.services.base import BaseService
from sourcing_kernel.services.notification import (
    InMemoryNotificationSink,
    Notification,
    NotificationSink,
    NullNotificationSink,
    dispatch_notifications,
)

__all__ = [
    "BaseService",
    "InMemoryNotificationSink",
    "Notification",
    "NotificationSink",
    "NullNotificationSink",
    "dispatch_notifications",
]
