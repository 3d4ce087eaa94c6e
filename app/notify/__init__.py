"""Instant notify-worker feature: cooldown state machine and delivery."""

from .cooldown import NotifyCooldown
from .delivery import (
    LoggingDelivery,
    NotificationDelivery,
    NotifyDeliveryError,
    WebhookDelivery,
    build_delivery,
)
from .types import (
    CooldownInfo,
    CooldownState,
    DeliveryStatus,
    NotifyResponse,
    NotifyStatus,
    RejectReason,
    WorkerNotification,
    WorkerStatus,
)

__all__ = [
    "NotifyCooldown",
    "LoggingDelivery",
    "NotificationDelivery",
    "NotifyDeliveryError",
    "WebhookDelivery",
    "build_delivery",
    "CooldownInfo",
    "CooldownState",
    "DeliveryStatus",
    "NotifyResponse",
    "NotifyStatus",
    "RejectReason",
    "WorkerNotification",
    "WorkerStatus",
]
