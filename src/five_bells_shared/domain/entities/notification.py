from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(slots=True)
class Notification:
    """A delivery attempt queued for (re)processing.

    ``retry_at`` of ``None`` means the notification is ready now.
    """

    id: UUID
    retry_count: int = 0
    retry_at: datetime | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
