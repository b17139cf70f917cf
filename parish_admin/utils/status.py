"""Transient status messages (toasts) shown to the volunteer."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class StatusLevel(str, Enum):
    """Severity of a status message."""

    INFO = "info"
    SUCCESS = "success"
    WARN = "warn"
    ERROR = "error"


_LOG_LEVELS = {
    StatusLevel.INFO: logging.INFO,
    StatusLevel.SUCCESS: logging.INFO,
    StatusLevel.WARN: logging.WARNING,
    StatusLevel.ERROR: logging.ERROR,
}


@dataclass
class StatusMessage:
    message: str
    level: StatusLevel = StatusLevel.INFO
    ms: int = 1500
    at: float = field(default_factory=time.time)


class StatusBus:
    """Fan-out of status messages to listeners.

    The last message is kept so callers without a listener (tests, scripts)
    can still inspect it.
    """

    def __init__(self):
        self._listeners: list[Callable[[StatusMessage], None]] = []
        self.last: StatusMessage | None = None

    def set_status(self, message: str, level: StatusLevel | str = StatusLevel.INFO, ms: int = 1500) -> StatusMessage:
        status = StatusMessage(message=message, level=StatusLevel(level), ms=ms)
        self.last = status
        logger.log(_LOG_LEVELS[status.level], "status: %s", message)
        for listener in list(self._listeners):
            listener(status)
        return status

    def on_status(self, listener: Callable[[StatusMessage], None]) -> Callable[[], None]:
        """Subscribe ``listener``; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
