from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class NotificationVariant(str, Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """Non-blocking, user-facing message raised by a module operation."""

    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT
    created_at: datetime
