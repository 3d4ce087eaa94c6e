"""Per-worker notify rate limiting.

Each worker moves through READY -> NOTIFYING -> NOTIFIED -> COOLDOWN -> READY.
The READY -> NOTIFYING step happens before the delivery call is awaited, so a
second attempt for the same worker while one is in flight sees NOTIFYING and
is rejected. Cooldown status and remaining seconds are derived from
`last_notified_at` and the injected clock on every query; there is no running
timer. Successful notify timestamps are written to the key-value store so a
durable backend keeps cooldowns across restarts.
"""
from __future__ import annotations

import asyncio
import json
import math
import time
import uuid
from collections import OrderedDict, deque
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, List, Optional

from app.kv_store.base import KeyValueStore
from app.notify.delivery import NotificationDelivery
from app.notify.types import (
    NOTIFY_MESSAGE,
    CooldownInfo,
    CooldownState,
    NotifyResponse,
    NotifyStatus,
    RejectReason,
    WorkerNotification,
    WorkerStatus,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="notify/cooldown")

COOLDOWN_STORAGE_KEY = "worker_notify_cooldowns"
RATE_WINDOW_SECONDS = 3600
DEFAULT_HISTORY_PER_CUSTOMER = 50
DEFAULT_MAX_CUSTOMERS = 10_000

_TRANSITIONS: Dict[NotifyStatus, set[NotifyStatus]] = {
    NotifyStatus.READY: {NotifyStatus.NOTIFYING},
    NotifyStatus.NOTIFYING: {NotifyStatus.NOTIFIED, NotifyStatus.READY},
    NotifyStatus.NOTIFIED: {NotifyStatus.COOLDOWN},
    NotifyStatus.COOLDOWN: {NotifyStatus.READY},
}


class NotifyCooldown:
    """Session owner of the per-worker notify state machine."""

    def __init__(
        self,
        store: KeyValueStore,
        delivery: NotificationDelivery,
        *,
        cooldown_seconds: int = 300,
        max_per_hour: int = 10,
        clock: Callable[[], float] = time.time,
        history_per_customer: int = DEFAULT_HISTORY_PER_CUSTOMER,
        max_customers: int = DEFAULT_MAX_CUSTOMERS,
    ) -> None:
        if cooldown_seconds <= 0:
            raise ValueError("cooldown_seconds must be positive")
        self.store = store
        self.delivery = delivery
        self.cooldown_seconds = cooldown_seconds
        self.max_per_hour = max_per_hour
        self.clock = clock
        self._states: Dict[str, CooldownState] = {}
        # newest customers last; each deque holds at least an hour's cap of sends
        self._history: OrderedDict[str, Deque[WorkerNotification]] = OrderedDict()
        self._history_len = max(history_per_customer, max_per_hour, 1)
        self._max_customers = max_customers
        self._pending: Dict[str, int] = {}

    # -- persistence -------------------------------------------------------

    def _load_persisted(self) -> Dict[str, float]:
        """Read the worker_id -> last_notified_at map; corrupt data reads as empty."""
        raw = self.store.get(COOLDOWN_STORAGE_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
            return {str(k): float(v) for k, v in data.items()}
        except (ValueError, TypeError, AttributeError) as exc:
            logger.error("Failed to parse stored cooldowns: %s", exc)
            return {}

    def _write_persisted(self, data: Dict[str, float], now: float) -> None:
        live = {wid: ts for wid, ts in data.items() if now - ts < self.cooldown_seconds}
        self.store.set(COOLDOWN_STORAGE_KEY, json.dumps(live))

    # -- state machine -----------------------------------------------------

    def _state(self, worker_id: str, *, create: bool) -> Optional[CooldownState]:
        state = self._states.get(worker_id)
        if state is not None:
            return state
        last = self._load_persisted().get(worker_id)
        if last is None and not create:
            return None
        state = CooldownState(
            worker_id=worker_id,
            last_notified_at=last,
            status=NotifyStatus.COOLDOWN if last is not None else NotifyStatus.READY,
        )
        self._states[worker_id] = state
        return state

    @staticmethod
    def _transition(state: CooldownState, new_status: NotifyStatus) -> None:
        if new_status not in _TRANSITIONS[state.status]:
            raise RuntimeError(f"Illegal notify transition {state.status.value} -> {new_status.value}")
        logger.debug(f"Worker {state.worker_id}: {state.status.value} -> {new_status.value}")
        state.status = new_status

    def _elapsed(self, state: CooldownState, now: float) -> float:
        return now - state.last_notified_at if state.last_notified_at is not None else math.inf

    def _refresh(self, state: CooldownState, now: float) -> None:
        """Expire a finished cooldown."""
        if state.status == NotifyStatus.COOLDOWN and self._elapsed(state, now) >= self.cooldown_seconds:
            self._transition(state, NotifyStatus.READY)

    def _remaining(self, state: CooldownState, now: float) -> int:
        if state.status != NotifyStatus.COOLDOWN:
            return 0
        return math.ceil(max(0.0, self.cooldown_seconds - self._elapsed(state, now)))

    # -- queries -----------------------------------------------------------

    def get_worker_status(self, worker_id: str) -> WorkerStatus:
        """Current status and whole seconds of cooldown left."""
        now = self.clock()
        state = self._state(worker_id, create=False)
        if state is None:
            return WorkerStatus(status=NotifyStatus.READY, cooldown_seconds_remaining=0)
        self._refresh(state, now)
        return WorkerStatus(status=state.status, cooldown_seconds_remaining=self._remaining(state, now))

    def get_cooldown_info(self, worker_id: str) -> CooldownInfo:
        status = self.get_worker_status(worker_id)
        if status.status != NotifyStatus.COOLDOWN:
            return CooldownInfo(is_on_cooldown=False)
        state = self._states[worker_id]
        return CooldownInfo(
            is_on_cooldown=True,
            remaining_seconds=status.cooldown_seconds_remaining,
            expires_at=state.last_notified_at + self.cooldown_seconds,
        )

    def get_notification_history(self, customer_id: str, limit: int = 20) -> List[WorkerNotification]:
        """Successful notifies sent by a customer, newest first.

        Only the most recent `history_per_customer` sends are kept per customer,
        for at most `max_customers` customers; the least recently active
        customer is dropped first.
        """
        mine = self._history.get(customer_id)
        if not mine:
            return []
        return list(reversed(mine))[:limit]

    def _record(self, record: WorkerNotification) -> None:
        key = record.customer_id
        if not key:
            return
        mine = self._history.get(key)
        if mine is None:
            mine = deque(maxlen=self._history_len)
            self._history[key] = mine
        self._history.move_to_end(key)
        mine.append(record)
        while len(self._history) > self._max_customers:
            dropped, _ = self._history.popitem(last=False)
            logger.debug("Dropping notify history", extra={"customer_id": dropped})

    def _sent_in_last_hour(self, customer_id: str, now: float) -> int:
        recent = 0
        for n in reversed(self._history.get(customer_id, ())):
            if now - n.triggered_at.timestamp() >= RATE_WINDOW_SECONDS:
                break
            recent += 1
        return recent

    def _release_pending(self, customer_id: str) -> None:
        left = self._pending.get(customer_id, 0) - 1
        if left > 0:
            self._pending[customer_id] = left
        else:
            self._pending.pop(customer_id, None)

    def _rate_limited(self, customer_id: Optional[str], now: float) -> bool:
        """Completed sends in the last hour plus deliveries still in flight."""
        if not customer_id or self.max_per_hour <= 0:
            return False
        in_flight = self._pending.get(customer_id, 0)
        return self._sent_in_last_hour(customer_id, now) + in_flight >= self.max_per_hour

    # -- actions -----------------------------------------------------------

    async def open_notify(
        self,
        worker_id: str,
        customer_id: Optional[str] = None,
        job_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> NotifyResponse:
        """Send a notify to a worker unless one is in flight or cooling down."""
        now = self.clock()
        state = self._state(worker_id, create=True)
        self._refresh(state, now)

        if state.status == NotifyStatus.NOTIFYING:
            logger.info("Rejecting notify; delivery already in flight", extra={"worker_id": worker_id})
            return NotifyResponse(success=False, error=NOTIFY_MESSAGE["IN_FLIGHT"], reason=RejectReason.IN_FLIGHT)

        if state.status == NotifyStatus.COOLDOWN:
            info = self.get_cooldown_info(worker_id)
            minutes = math.ceil(info.remaining_seconds / 60)
            return NotifyResponse(
                success=False,
                error=f"Please wait {minutes} minutes before notifying again",
                reason=RejectReason.COOLDOWN,
                cooldown=info,
            )

        if self._rate_limited(customer_id, now):
            logger.info("Rejecting notify; hourly limit reached", extra={"customer_id": customer_id})
            return NotifyResponse(
                success=False, error=NOTIFY_MESSAGE["RATE_LIMITED"], reason=RejectReason.RATE_LIMITED
            )

        self._transition(state, NotifyStatus.NOTIFYING)
        if customer_id:
            self._pending[customer_id] = self._pending.get(customer_id, 0) + 1
        try:
            delivered = await self.delivery.deliver(worker_id, message or NOTIFY_MESSAGE["BODY"])
        except asyncio.CancelledError:
            self._transition(state, NotifyStatus.READY)
            raise
        except Exception as exc:
            logger.warning("Notify delivery raised: %s", exc, extra={"worker_id": worker_id})
            delivered = False
        finally:
            if customer_id:
                self._release_pending(customer_id)

        if not delivered:
            self._transition(state, NotifyStatus.READY)
            return NotifyResponse(success=False, error=NOTIFY_MESSAGE["ERROR"], reason=RejectReason.DELIVERY_FAILED)

        finished = self.clock()
        state.last_notified_at = finished
        self._transition(state, NotifyStatus.NOTIFIED)
        self._transition(state, NotifyStatus.COOLDOWN)

        persisted = self._load_persisted()
        persisted[worker_id] = finished
        self._write_persisted(persisted, finished)

        record = WorkerNotification(
            id=str(uuid.uuid4()),
            worker_id=worker_id,
            customer_id=customer_id,
            job_id=job_id,
            triggered_at=datetime.fromtimestamp(finished, tz=timezone.utc),
        )
        self._record(record)
        logger.info("Worker notified", extra={"worker_id": worker_id, "notification_id": record.id})
        return NotifyResponse(success=True, notification_id=record.id)

    def clear_cooldown(self, worker_id: str) -> None:
        """Drop a worker's cooldown (support/testing tool); in-flight sends are untouched."""
        state = self._states.get(worker_id)
        if state is not None and state.status == NotifyStatus.NOTIFYING:
            return
        if state is not None:
            if state.status == NotifyStatus.COOLDOWN:
                self._transition(state, NotifyStatus.READY)
            state.last_notified_at = None
        persisted = self._load_persisted()
        if persisted.pop(worker_id, None) is not None:
            self._write_persisted(persisted, self.clock())
