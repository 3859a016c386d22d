from __future__ import annotations

from datetime import datetime
from typing import Protocol

from five_bells_shared.domain.entities.notification import Notification


class NotificationStore(Protocol):
    async def add_notification(self, notification: Notification) -> None: ...

    async def get_ready_notifications(self, ready_before: datetime) -> list[Notification]:
        """Notifications with no ``retry_at`` or one earlier than ``ready_before``."""
        ...

    async def get_earliest_notification(self) -> Notification | None:
        """The pending notification with the smallest non-null ``retry_at``."""
        ...

    async def update_notification(self, notification: Notification) -> None: ...

    async def delete_notification(self, notification: Notification) -> None: ...
