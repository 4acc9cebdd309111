from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Tuple

from src.dashboard.domain.models.notification import Notification, NotificationVariant

logger = logging.getLogger("notifications")


class Notifier:
    """Collects non-blocking notifications raised by one module instance.

    This is the server-side counterpart of a UI toast: operations never raise
    for recoverable failures, they record a notification and return a failure
    indicator instead.
    """

    def __init__(self) -> None:
        self._notifications: List[Notification] = []

    @property
    def notifications(self) -> Tuple[Notification, ...]:
        return tuple(self._notifications)

    def notify(
        self,
        title: str,
        description: str,
        variant: NotificationVariant = NotificationVariant.DEFAULT,
    ) -> Notification:
        notification = Notification(
            title=title,
            description=description,
            variant=variant,
            created_at=datetime.now(timezone.utc),
        )
        self._notifications.append(notification)

        if variant == NotificationVariant.DESTRUCTIVE:
            logger.warning("%s: %s", title, description)
        else:
            logger.info("%s: %s", title, description)
        return notification

    def success(self, title: str, description: str) -> Notification:
        return self.notify(title, description)

    def failure(self, title: str, description: str) -> Notification:
        return self.notify(title, description, NotificationVariant.DESTRUCTIVE)

    def drain(self) -> List[Notification]:
        drained = list(self._notifications)
        self._notifications.clear()
        return drained
