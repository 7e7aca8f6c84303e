"""Progress notifications."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

__all__ = ["Observer", "LoggingObserver", "NullObserver", "notify"]

logger = logging.getLogger(__name__)

INFO = "info"
MIGRATION_EXECUTED = "migration_executed"


@runtime_checkable
class Observer(Protocol):
    def notify(self, event: str, payload: Any) -> None:
        ...


class NullObserver:
    def notify(self, event: str, payload: Any) -> None:
        pass


class LoggingObserver:
    """Writes milestones to the standard logging tree."""

    def __init__(self, log: logging.Logger = logger) -> None:
        self._log = log

    def notify(self, event: str, payload: Any) -> None:
        if event == MIGRATION_EXECUTED:
            self._log.info(
                f"Executed migration {payload['name']} {payload['direction']}"
            )
        elif event == INFO:
            self._log.info(payload)
        else:
            self._log.debug(f"{event}: {payload}")


def notify(observer: Observer | None, event: str, payload: Any) -> None:
    """Send a notification; a missing or broken observer never affects the run."""
    if observer is None:
        return
    try:
        observer.notify(event, payload)
    except Exception:
        logger.warning(f"Observer failed handling '{event}'", exc_info=True)
