"""
Notification fan-out.

Every notification is sent to each configured channel. Delivery is
best-effort: a failing channel is logged and the others still get it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List

from pronote_bot.models import Notification

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """A channel that accepts a title and a message."""

    name = "notifier"

    @abstractmethod
    def send(self, title: str, message: str) -> bool:
        """Send a notification, returning True if it was delivered."""
        pass


class NotifierGroup:
    """Sends each notification to a list of channels."""

    def __init__(self, notifiers: Iterable[Notifier] = ()):
        self.notifiers: List[Notifier] = list(notifiers)

    def __len__(self) -> int:
        return len(self.notifiers)

    def send(self, notification: Notification) -> int:
        """
        Send a notification to every channel.

        Args:
            notification: The notification to send

        Returns:
            int: Number of channels that accepted it
        """
        delivered = 0
        for notifier in self.notifiers:
            try:
                if notifier.send(notification.title, notification.message):
                    delivered += 1
                else:
                    logger.warning(
                        f"{notifier.name} failed to send: {notification.title}"
                    )
            except Exception as e:
                logger.error(f"Error sending via {notifier.name}: {e}")
        return delivered
