# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: User-visible notification channel.
One transient message at a time; a newer message replaces the current one
and restarts its lifetime. Failures elsewhere report here instead of raising.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from roster.core.config import settings
from roster.core.logging import get_logger
from roster.metrics.prometheus import NOTIFICATIONS_SHOWN

logger = get_logger(__name__)

NOTIFICATION_KINDS: tuple[str, ...] = ("success", "error", "warning")

ICONS: dict[str, str] = {"success": "✓", "error": "✕", "warning": "⚠"}


@dataclass(frozen=True)
class Notification:
    kind: str
    message: str
    created_at: str
    shown_at: float

    @property
    def icon(self) -> str:
        return ICONS.get(self.kind, "")

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "created_at": self.created_at}


class Notifier:
    """Holds the single currently visible notification."""

    def __init__(
        self,
        duration: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._duration = settings.NOTIFICATION_DURATION if duration is None else duration
        self._clock = clock
        self._current: Optional[Notification] = None

    def notify(self, message: str, kind: str = "success") -> Notification:
        if kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind '{kind}'")
        self._current = Notification(
            kind=kind,
            message=message,
            created_at=datetime.now(timezone.utc).isoformat(),
            shown_at=self._clock(),
        )
        NOTIFICATIONS_SHOWN.labels(kind=kind).inc()
        if kind == "error":
            logger.warning("Notification [%s]: %s", kind, message)
        else:
            logger.info("Notification [%s]: %s", kind, message)
        return self._current

    def success(self, message: str) -> Notification:
        return self.notify(message, "success")

    def error(self, message: str) -> Notification:
        return self.notify(message, "error")

    def warning(self, message: str) -> Notification:
        return self.notify(message, "warning")

    def current(self) -> Optional[Notification]:
        """The visible notification, or None once it has auto-dismissed."""
        if self._current is None:
            return None
        if self._clock() - self._current.shown_at >= self._duration:
            self._current = None
        return self._current

    def dismiss(self) -> None:
        self._current = None
