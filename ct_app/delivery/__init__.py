"""
Notification delivery for stored analysis records.
"""
from .base import BaseNotifier, DeliveryResult, DeliveryStatus
from .dispatcher import NotificationDispatcher

__all__ = ["BaseNotifier", "DeliveryResult", "DeliveryStatus", "NotificationDispatcher"]
