"""
Tests for the event bus.
"""

import pytest

from idle_combat.core.constants import CombatResult
from idle_combat.core.event_system import (
    CombatEndedEvent,
    EventBus,
    EventType,
    ExperienceAwardedEvent,
)


def ended():
    return CombatEndedEvent(result=CombatResult.VICTORY, turns=3)


def test_listeners_receive_their_event_type(event_bus):
    received = []
    event_bus.subscribe(EventType.COMBAT_ENDED, received.append)
    event_bus.emit(ended())
    event_bus.emit(ExperienceAwardedEvent(amount=5))
    assert len(received) == 1
    assert received[0].turns == 3


def test_priority_order(event_bus):
    """
    Test that listeners run by decreasing priority, ties in subscription order.
    """
    calls = []
    event_bus.subscribe(EventType.COMBAT_ENDED, lambda e: calls.append("low"), priority=-1)
    event_bus.subscribe(EventType.COMBAT_ENDED, lambda e: calls.append("first"))
    event_bus.subscribe(EventType.COMBAT_ENDED, lambda e: calls.append("high"), priority=5)
    event_bus.subscribe(EventType.COMBAT_ENDED, lambda e: calls.append("second"))
    event_bus.emit(ended())
    assert calls == ["high", "first", "second", "low"]


def test_once_listener_called_once(event_bus):
    received = []
    event_bus.subscribe(EventType.COMBAT_ENDED, received.append, once=True)
    event_bus.emit(ended())
    event_bus.emit(ended())
    assert len(received) == 1
    assert event_bus.listener_count(EventType.COMBAT_ENDED) == 0


def test_unsubscribe(event_bus):
    received = []
    unsubscribe = event_bus.subscribe(EventType.COMBAT_ENDED, received.append)
    unsubscribe()
    event_bus.emit(ended())
    assert received == []


def test_failing_listener_does_not_stop_delivery(event_bus):
    """
    Test that an exception in one listener is logged and the others still run.
    """
    received = []

    def broken(event):
        raise RuntimeError("boom")

    event_bus.subscribe(EventType.COMBAT_ENDED, broken, priority=1)
    event_bus.subscribe(EventType.COMBAT_ENDED, received.append)
    event_bus.emit(ended())
    assert len(received) == 1


def test_non_callable_listener_rejected(event_bus):
    with pytest.raises(TypeError):
        event_bus.subscribe(EventType.COMBAT_ENDED, "not a function")


def test_history_is_bounded():
    bus = EventBus(max_history=2)
    for amount in range(3):
        bus.emit(ExperienceAwardedEvent(amount=amount))
    assert [event.amount for event in bus.history] == [1, 2]
    bus.clear()
    assert len(bus.history) == 0
