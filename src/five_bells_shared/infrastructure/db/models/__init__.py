"""Import all models so Base.metadata knows every table."""
from five_bells_shared.infrastructure.db.models.notification import NotificationModel

__all__ = [
    "NotificationModel",
]
