"""
Notification Collaborators

The alert evaluator only decides WHEN to notify. How a notification is
shown to the user belongs to the embedding UI, which supplies a Notifier.
"""

from abc import ABC, abstractmethod

import structlog


class Notifier(ABC):
    """Receives over-limit notifications."""

    @abstractmethod
    def notify(self, title: str, body: str) -> None:
        """
        Deliver one notification.

        Args:
            title: Short headline
            body: Human-readable details
        """
        pass


class LoggingNotifier(Notifier):
    """Writes notifications to the structured log. Used when no UI is attached."""

    def __init__(self):
        self._logger = structlog.get_logger(__name__)

    def notify(self, title: str, body: str) -> None:
        self._logger.warning("budget_notification", title=title, body=body)


class RecordingNotifier(Notifier):
    """Keeps every notification in memory, oldest first."""

    def __init__(self):
        self.notifications: list[tuple[str, str]] = []

    def notify(self, title: str, body: str) -> None:
        self.notifications.append((title, body))
