"""Single-timer scheduler that retries notifications when they fall due.

Rather than polling, the scheduler keeps at most one timer armed. When it
fires, a sweep fetches every ready notification, hands each one to the
processing callback, waits for all of them, and then re-arms the timer for
the earliest notification that is still pending.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from five_bells_shared.application.ports.clock import (
    AsyncioTimer,
    Clock,
    SystemClock,
    Timer,
    TimerHandle,
)
from five_bells_shared.application.repositories.notification import NotificationStore
from five_bells_shared.domain.entities.notification import Notification
from five_bells_shared.services.retry_policy import RetryPolicy

if TYPE_CHECKING:
    from five_bells_shared.config import Settings

logger = logging.getLogger(__name__)

MAX_TIMER_DELAY_SECONDS = (2**31 - 1) / 1000
DEFAULT_LOOKAHEAD = timedelta(milliseconds=100)
DEFAULT_ERROR_RETRY_DELAY = 1.0

ProcessNotification = Callable[[Notification], Coroutine[Any, Any, None]]


@dataclass(slots=True)
class SchedulerOptions:
    store: NotificationStore
    process_notification: ProcessNotification
    log: logging.Logger = logger
    clock: Clock = field(default_factory=SystemClock)
    timer: Timer = field(default_factory=AsyncioTimer)
    # Fetching slightly ahead of now batches notifications that fall due together.
    lookahead: timedelta = DEFAULT_LOOKAHEAD
    error_retry_delay: float = DEFAULT_ERROR_RETRY_DELAY
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: NotificationStore,
        process_notification: ProcessNotification,
        **kwargs: Any,
    ) -> SchedulerOptions:
        return cls(
            store=store,
            process_notification=process_notification,
            lookahead=timedelta(milliseconds=settings.NOTIFICATION_LOOKAHEAD_MS),
            error_retry_delay=settings.NOTIFICATION_ERROR_RETRY_SECONDS,
            **kwargs,
        )


class NotificationScheduler:
    def __init__(self, options: SchedulerOptions) -> None:
        self._store = options.store
        self._process_notification = options.process_notification
        self._log = options.log
        self._clock = options.clock
        self._timer = options.timer
        self._lookahead = options.lookahead
        self._error_retry_delay = options.error_retry_delay
        self._retry_policy = options.retry_policy

        self._running = False
        # Bumped on every start/stop so stale re-arms can be discarded.
        self._generation = 0
        self._handle: TimerHandle | None = None
        self._wake_at: datetime | None = None
        self._sweep: asyncio.Task[None] | None = None
        self._wake_requested = False

    def is_enabled(self) -> bool:
        return self._running

    def start(self) -> None:
        """Arm an immediate sweep. Must be called from a running event loop."""
        if self._running:
            return
        self._running = True
        self._generation += 1
        self._arm(0)

    def stop(self) -> None:
        """Cancel the armed timer. A sweep already in flight is left to finish."""
        if not self._running:
            return
        self._running = False
        self._generation += 1
        self._wake_requested = False
        self._cancel_timer()

    async def schedule_processing(self) -> None:
        """Re-arm the timer for the earliest pending notification.

        Call this after storing a notification with a future ``retry_at``,
        otherwise it will not be retried until some other sweep runs.
        """
        if not self._running:
            return
        generation = self._generation
        try:
            delay = await self._get_time_to_earliest_notification()
        except Exception:
            self._log.exception(
                "Failed to look up earliest notification, retrying in %.1fs",
                self._error_retry_delay,
            )
            delay = self._error_retry_delay

        if generation != self._generation:
            return
        if delay is None:
            self._log.debug("No pending notifications, timer left unarmed")
            return

        self._arm_unless_sooner(delay)

    async def retry_notification(self, notification: Notification) -> bool:
        """Push ``notification`` back by its next backoff step.

        Returns ``False`` when the retry budget is spent and the
        notification has been deleted instead.
        """
        retries = notification.retry_count = (notification.retry_count or 0) + 1
        if self._retry_policy.should_abandon(retries):
            self._log.info(
                "Abandoning notification %s after %d retries", notification.id, retries,
            )
            await self._store.delete_notification(notification)
            return False

        notification.retry_at = self._retry_policy.next_retry_at(retries, self._clock.now())
        await self._store.update_notification(notification)
        self._log.debug(
            "Notification %s retry %d scheduled at %s",
            notification.id, retries, notification.retry_at.isoformat(),
        )
        return True

    async def process_queue(self) -> None:
        """Run one sweep: process every ready notification, then re-arm."""
        generation = self._generation
        try:
            notifications = await self._get_ready_notifications()
        except Exception:
            self._log.exception(
                "Failed to fetch ready notifications, retrying in %.1fs",
                self._error_retry_delay,
            )
            if self._running and generation == self._generation:
                self._arm_unless_sooner(self._error_retry_delay)
            return

        self._log.debug("Processing %d notifications", len(notifications))
        await asyncio.gather(*(self._process_one(n) for n in notifications))
        await self.schedule_processing()

        if self._wake_requested and self._running:
            self._wake_requested = False
            self._arm(0)

    async def wait_idle(self) -> None:
        """Wait for the sweep in flight, if any, to finish."""
        sweep = self._sweep
        if sweep is not None and not sweep.done():
            await asyncio.wait({sweep})

    def _arm(self, delay: float) -> None:
        self._cancel_timer()
        self._wake_at = self._clock.now() + timedelta(seconds=delay)
        self._handle = self._timer.call_later(delay, self._on_timer)

    def _arm_unless_sooner(self, delay: float) -> None:
        """Arm for ``delay`` unless the armed timer already fires no later."""
        wake_at = self._clock.now() + timedelta(seconds=delay)
        if self._handle is not None and self._wake_at is not None and self._wake_at <= wake_at:
            return
        self._arm(delay)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._wake_at = None

    def _on_timer(self) -> None:
        self._handle = None
        self._wake_at = None
        if not self._running:
            return
        if self._sweep is not None and not self._sweep.done():
            self._wake_requested = True
            return
        self._sweep = asyncio.create_task(self.process_queue(), name="notification-sweep")

    async def _process_one(self, notification: Notification) -> None:
        try:
            await self._process_notification(notification)
        except Exception:
            self._log.exception("Failed to process notification %s", notification.id)

    async def _get_ready_notifications(self) -> list[Notification]:
        return await self._store.get_ready_notifications(self._clock.now() + self._lookahead)

    async def _get_time_to_earliest_notification(self) -> float | None:
        # Read the clock before querying so the delay can't go negative.
        now = self._clock.now()
        earliest = await self._store.get_earliest_notification()
        if earliest is None or earliest.retry_at is None:
            return None
        delay = (earliest.retry_at - now).total_seconds()
        return max(0.0, min(delay, MAX_TIMER_DELAY_SECONDS))
