"""User-facing alert queue: coalescing duplicates, length-based expiry, logging."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from swapdesk.logging.logger import HumanLogger

ALERT_MIN_MS = 4000
ALERT_MAX_MS = 12000
SHORT_MESSAGE = 20
LONG_MESSAGE = 200


class AlertType(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Alert:
    """One visible alert; ``count`` grows as identical alerts coalesce into it."""

    id: int
    type: AlertType
    message: str
    expires_at: float
    count: int = 1


def alert_duration_ms(message: str, min_ms: int = ALERT_MIN_MS, max_ms: int = ALERT_MAX_MS) -> float:
    """Display time interpolated on message length between ``min_ms`` and ``max_ms``."""
    length = len(message)
    if length <= SHORT_MESSAGE:
        return float(min_ms)
    if length >= LONG_MESSAGE:
        return float(max_ms)
    ratio = (length - SHORT_MESSAGE) / (LONG_MESSAGE - SHORT_MESSAGE)
    return min_ms + (max_ms - min_ms) * ratio


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class AlertQueue:
    """Ordered alerts owned by the application context."""

    def __init__(
        self,
        min_ms: int = ALERT_MIN_MS,
        max_ms: int = ALERT_MAX_MS,
        logger: HumanLogger | None = None,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        if min_ms <= 0 or max_ms < min_ms:
            raise ValueError("alert durations must satisfy 0 < min_ms <= max_ms")
        self.min_ms = min_ms
        self.max_ms = max_ms
        self.logger = logger
        self.clock = clock
        self.alerts: list[Alert] = []
        self._counter = 0
        self._listeners: list[Callable[[list[Alert]], None]] = []

    def open(self, alert_type: AlertType | str, message: str) -> Alert:
        """Queue an alert, or re-arm and count up an identical one already showing."""
        kind = AlertType(alert_type)
        expires_at = self.clock() + alert_duration_ms(message, self.min_ms, self.max_ms)
        alert = self._find(kind, message)
        if alert is not None:
            alert.count += 1
            alert.expires_at = expires_at
        else:
            self._counter += 1
            alert = Alert(id=self._counter, type=kind, message=message, expires_at=expires_at)
            self.alerts.append(alert)
        if self.logger is not None:
            self.logger.alert(kind.value, message, alert.count)
        self._notify()
        return alert

    def info(self, message: str) -> Alert:
        return self.open(AlertType.INFO, message)

    def warning(self, message: str) -> Alert:
        return self.open(AlertType.WARNING, message)

    def error(self, message: str) -> Alert:
        return self.open(AlertType.ERROR, message)

    def close(self, alert_id: int) -> bool:
        remaining = [alert for alert in self.alerts if alert.id != alert_id]
        if len(remaining) == len(self.alerts):
            return False
        self.alerts = remaining
        self._notify()
        return True

    def expire(self, now: float | None = None) -> list[Alert]:
        """Drop alerts whose display time has elapsed; returns the dropped ones."""
        current = self.clock() if now is None else now
        expired = [alert for alert in self.alerts if alert.expires_at <= current]
        if expired:
            self.alerts = [alert for alert in self.alerts if alert.expires_at > current]
            self._notify()
        return expired

    def subscribe(self, listener: Callable[[list[Alert]], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _find(self, kind: AlertType, message: str) -> Alert | None:
        for alert in self.alerts:
            if alert.type == kind and alert.message == message:
                return alert
        return None

    def _notify(self) -> None:
        snapshot = list(self.alerts)
        for listener in list(self._listeners):
            listener(snapshot)
