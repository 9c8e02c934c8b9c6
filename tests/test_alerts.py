from __future__ import annotations

import pytest

from swapdesk.logging.alerts import Alert, AlertQueue, AlertType, alert_duration_ms


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingLogger:
    def __init__(self) -> None:
        self.lines: list[tuple[str, str, int]] = []

    def alert(self, kind: str, message: str, count: int = 1) -> None:
        self.lines.append((kind, message, count))


def test_duration_scales_with_message_length() -> None:
    assert alert_duration_ms("short") == 4000
    assert alert_duration_ms("x" * 20) == 4000
    assert alert_duration_ms("x" * 110) == 8000
    assert alert_duration_ms("x" * 500) == 12000


def test_identical_alerts_coalesce_and_rearm() -> None:
    clock = FakeClock()
    queue = AlertQueue(clock=clock)

    first = queue.error("Swap server error: down")
    clock.now = 1000.0
    second = queue.error("Swap server error: down")

    assert first is second
    assert second.count == 2
    assert second.expires_at == 1000.0 + alert_duration_ms("Swap server error: down")
    assert len(queue.alerts) == 1


def test_same_message_with_other_type_is_separate() -> None:
    queue = AlertQueue(clock=FakeClock())

    queue.info("Copied")
    queue.warning("Copied")

    assert [alert.type for alert in queue.alerts] == [AlertType.INFO, AlertType.WARNING]
    assert [alert.id for alert in queue.alerts] == [1, 2]


def test_expire_drops_elapsed_alerts() -> None:
    clock = FakeClock()
    queue = AlertQueue(clock=clock)
    queue.info("short")
    queue.info("x" * 300)

    expired = queue.expire(now=5000.0)

    assert [alert.message for alert in expired] == ["short"]
    assert len(queue.alerts) == 1
    assert queue.expire(now=5001.0) == []


def test_close_by_id() -> None:
    queue = AlertQueue(clock=FakeClock())
    alert = queue.info("hello")

    assert queue.close(alert.id)
    assert not queue.close(alert.id)
    assert queue.alerts == []


def test_listeners_receive_snapshots_until_unsubscribed() -> None:
    queue = AlertQueue(clock=FakeClock())
    seen: list[list[Alert]] = []
    unsubscribe = queue.subscribe(seen.append)

    queue.info("one")
    unsubscribe()
    queue.info("two")

    assert len(seen) == 1
    assert [alert.message for alert in seen[0]] == ["one"]


def test_alerts_are_logged_with_their_count() -> None:
    logger = RecordingLogger()
    queue = AlertQueue(logger=logger, clock=FakeClock())

    queue.warning("slow")
    queue.warning("slow")

    assert logger.lines == [("warning", "slow", 1), ("warning", "slow", 2)]


def test_invalid_durations_are_rejected() -> None:
    with pytest.raises(ValueError, match="alert durations"):
        AlertQueue(min_ms=5000, max_ms=1000)
