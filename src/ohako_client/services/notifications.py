"""Transient user-facing notifications."""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Literal, Protocol

NotificationLevel = Literal["success", "error"]

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A short message shown to the user and then dismissed."""

    level: NotificationLevel
    message: str


class Notifier(Protocol):
    """Interface for surfacing notifications to the user."""

    def success(self, message: str) -> None:
        """Report a completed action."""

    def error(self, message: str) -> None:
        """Report a failed action."""


@dataclass
class RecordingNotifier(Notifier):
    """Keeps the most recent notifications for a display layer to render."""

    history: int = 20
    _entries: deque[Notification] = field(init=False)

    def __post_init__(self) -> None:
        self._entries = deque(maxlen=self.history)

    @property
    def entries(self) -> list[Notification]:
        return list(self._entries)

    def success(self, message: str) -> None:
        _logger.info("Notify: %s", message)
        self._entries.append(Notification(level="success", message=message))

    def error(self, message: str) -> None:
        _logger.warning("Notify: %s", message)
        self._entries.append(Notification(level="error", message=message))

    def drain(self) -> list[Notification]:
        """Return pending notifications and clear them."""
        entries = list(self._entries)
        self._entries.clear()
        return entries
