"""Shared test fixtures."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from five_bells_shared.domain.entities.notification import Notification
from five_bells_shared.services.uri_manager import UriManager

EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_notification(
    *,
    retry_count: int = 0,
    retry_at: datetime | None = None,
    payload: dict[str, Any] | None = None,
) -> Notification:
    return Notification(
        id=uuid.uuid4(),
        retry_count=retry_count,
        retry_at=retry_at,
        payload=payload or {},
    )


@dataclass
class FakeClock:
    current: datetime = EPOCH

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@dataclass
class FakeTimerHandle:
    delay: float
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeTimer:
    """Records timers instead of scheduling them; tests fire them by hand."""
    handles: list[FakeTimerHandle] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimerHandle:
        handle = FakeTimerHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def armed(self) -> list[FakeTimerHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire(self) -> FakeTimerHandle:
        armed = self.armed
        assert len(armed) == 1, f"expected exactly one armed timer, got {len(armed)}"
        handle = armed[0]
        handle.fired = True
        handle.callback()
        return handle


@dataclass
class FakeNotificationStore:
    _records: dict[uuid.UUID, Notification] = field(default_factory=dict)
    updated: list[Notification] = field(default_factory=list)
    deleted: list[Notification] = field(default_factory=list)
    fail_ready: bool = False
    fail_earliest: bool = False

    async def add_notification(self, notification: Notification) -> None:
        self._records[notification.id] = notification

    async def get_ready_notifications(self, ready_before: datetime) -> list[Notification]:
        if self.fail_ready:
            raise RuntimeError("store unavailable")
        return [
            n for n in self._records.values()
            if n.retry_at is None or n.retry_at < ready_before
        ]

    async def get_earliest_notification(self) -> Notification | None:
        if self.fail_earliest:
            raise RuntimeError("store unavailable")
        pending = [n for n in self._records.values() if n.retry_at is not None]
        if not pending:
            return None
        return min(pending, key=lambda n: n.retry_at)

    async def update_notification(self, notification: Notification) -> None:
        self._records[notification.id] = notification
        self.updated.append(notification)

    async def delete_notification(self, notification: Notification) -> None:
        self._records.pop(notification.id, None)
        self.deleted.append(notification)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def store() -> FakeNotificationStore:
    return FakeNotificationStore()


@pytest.fixture
def uri_manager() -> UriManager:
    return UriManager("http://localhost/base")
