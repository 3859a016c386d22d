from __future__ import annotations

from datetime import datetime, timezone

from five_bells_shared.domain.entities.notification import Notification
from five_bells_shared.infrastructure.db.models.notification import NotificationModel


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands timestamps back without tzinfo
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def notification_to_entity(model: NotificationModel) -> Notification:
    return Notification(
        id=model.id,
        retry_count=model.retry_count or 0,
        retry_at=_as_utc(model.retry_at),
        payload=dict(model.payload or {}),
        created_at=_as_utc(model.created_at),
    )


def notification_to_model(entity: Notification) -> NotificationModel:
    model = NotificationModel(
        id=entity.id,
        retry_count=entity.retry_count or 0,
        retry_at=entity.retry_at,
        payload=entity.payload,
    )
    if entity.created_at is not None:
        model.created_at = entity.created_at
    return model
