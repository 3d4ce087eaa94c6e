"""Notification delivery backends for the notify-worker feature."""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol

import requests

from app import config
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="notify/delivery")


class NotifyDeliveryError(Exception):
    """The delivery collaborator could not hand the message over."""


class NotificationDelivery(Protocol):
    """Anything that can push a message to a worker."""

    async def deliver(self, worker_id: str, message: str) -> bool:
        """Send `message` to `worker_id`; return whether it was accepted."""
        ...


class LoggingDelivery(NotificationDelivery):
    """Records the notification in the log only (no push channel configured)."""

    async def deliver(self, worker_id: str, message: str) -> bool:
        logger.info(f"[NOTIFICATION] Sending to worker {worker_id}: {message}")
        return True


class WebhookDelivery(NotificationDelivery):
    """POST notifications as JSON to a push gateway."""

    def __init__(self, url: str, *, timeout: float = 10.0, session: Optional[requests.Session] = None) -> None:
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, worker_id: str, message: str) -> bool:
        payload = {"worker_id": worker_id, "message": message, "type": "manual_notify"}
        try:
            resp = self.session.post(self.url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise NotifyDeliveryError(f"Webhook delivery failed: {exc}") from exc
        return True

    async def deliver(self, worker_id: str, message: str) -> bool:
        return await asyncio.to_thread(self._post, worker_id, message)


def build_delivery(settings: config.Settings | None = None) -> NotificationDelivery:
    """Pick the webhook when configured, else log-only delivery."""
    settings = settings or config.settings
    if settings.notify_webhook_url:
        logger.info("Using webhook notification delivery", extra={"url": mask_url(settings.notify_webhook_url)})
        return WebhookDelivery(settings.notify_webhook_url, timeout=settings.notify_timeout_seconds)
    logger.info("Using logging notification delivery")
    return LoggingDelivery()
