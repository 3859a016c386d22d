from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from five_bells_shared.domain.entities.notification import Notification
from five_bells_shared.infrastructure.db.mappers.notification import (
    notification_to_entity,
    notification_to_model,
)
from five_bells_shared.infrastructure.db.models.notification import NotificationModel


class SqlAlchemyNotificationStore:
    """Implements application.repositories.notification.NotificationStore.

    The scheduler runs outside any request, so every call opens and commits
    its own session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_notification(self, notification: Notification) -> None:
        async with self._session_factory() as session:
            model = notification_to_model(notification)
            session.add(model)
            await session.commit()
            notification.created_at = model.created_at

    async def get_ready_notifications(self, ready_before: datetime) -> list[Notification]:
        stmt = (
            select(NotificationModel)
            .where(
                NotificationModel.retry_at.is_(None)
                | (NotificationModel.retry_at < ready_before)
            )
            .order_by(NotificationModel.created_at.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [notification_to_entity(r) for r in result.scalars().all()]

    async def get_earliest_notification(self) -> Notification | None:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.retry_at.is_not(None))
            .order_by(NotificationModel.retry_at.asc())
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalars().first()
            return notification_to_entity(row) if row is not None else None

    async def update_notification(self, notification: Notification) -> None:
        stmt = (
            update(NotificationModel)
            .where(NotificationModel.id == notification.id)
            .values(
                retry_count=notification.retry_count,
                retry_at=notification.retry_at,
                payload=notification.payload,
            )
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def delete_notification(self, notification: Notification) -> None:
        stmt = delete(NotificationModel).where(NotificationModel.id == notification.id)
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()
