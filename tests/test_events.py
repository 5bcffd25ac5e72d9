"""
Tests for the event bus.
"""
from core.events import EventBus, Notice, OctaveToggled


def test_publish_by_type():
    bus = EventBus()
    notices, toggles = [], []
    bus.subscribe(Notice, notices.append)
    bus.subscribe(OctaveToggled, toggles.append)

    bus.publish(Notice("hello"))
    assert notices == [Notice("hello", "info")]
    assert toggles == []


def test_unsubscribe():
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(Notice, received.append)
    unsubscribe()
    unsubscribe()
    bus.publish(Notice("x"))
    assert received == []


def test_failing_handler_does_not_stop_delivery(capsys):
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(Notice, broken)
    bus.subscribe(Notice, received.append)
    bus.publish(Notice("x"))

    assert received == [Notice("x")]
    assert "[EVENTS]" in capsys.readouterr().out
