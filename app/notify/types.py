"""Vocabulary for the instant "notify worker" feature."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class NotifyStatus(str, Enum):
    """Per-worker notify button state."""
    READY = "ready"
    NOTIFYING = "notifying"
    NOTIFIED = "notified"
    COOLDOWN = "cooldown"


class DeliveryStatus(str, Enum):
    """Delivery state of a recorded notification."""
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    QUEUED = "queued"


class RejectReason(str, Enum):
    """Why a notify attempt did not succeed."""
    IN_FLIGHT = "in_flight"
    COOLDOWN = "cooldown"
    RATE_LIMITED = "rate_limited"
    DELIVERY_FAILED = "delivery_failed"


NOTIFY_MESSAGE = {
    "TITLE": "Customer Waiting",
    "BODY": "A customer is waiting for your response on ConnectO.",
    "SUCCESS": "Worker has been notified",
    "ERROR": "Failed to notify worker. Please try again.",
    "COOLDOWN": "Please wait before notifying again",
    "IN_FLIGHT": "A notification to this worker is already being sent",
    "RATE_LIMITED": "Too many notifications sent in the last hour",
}


@dataclass
class CooldownState:
    """Mutable notify state of one worker within the session."""
    worker_id: str
    last_notified_at: Optional[float] = None  # epoch seconds
    status: NotifyStatus = NotifyStatus.READY


class WorkerStatus(BaseModel):
    """Status snapshot derived from the clock at query time."""
    status: NotifyStatus
    cooldown_seconds_remaining: int = 0


class CooldownInfo(BaseModel):
    """Cooldown details for a worker."""
    is_on_cooldown: bool
    remaining_seconds: int = 0
    expires_at: Optional[float] = None


class NotifyResponse(BaseModel):
    """Outcome of a notify attempt."""
    success: bool
    notification_id: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[RejectReason] = None
    cooldown: Optional[CooldownInfo] = None


class WorkerNotification(BaseModel):
    """History record of a delivered notify."""
    id: str
    worker_id: str
    customer_id: Optional[str] = None
    job_id: Optional[str] = None
    type: str = "manual_notify"
    status: DeliveryStatus = DeliveryStatus.SENT
    triggered_at: datetime
