"""
Event system module for the combat engine.

Defines the outcome events published by the combat session controller and
the boss phase controller, and a small synchronous dispatcher delivering
them to subscribed listeners.
"""

from collections import deque
from collections.abc import Callable
from enum import Enum
from itertools import count
from typing import Any

from catchery import log_debug, log_warning
from pydantic import BaseModel, Field

from idle_combat.core.constants import CombatantSlot, CombatResult, DamageType


class EventType(Enum):
    """Enumeration of available event types."""

    COMBAT_STARTED = "combat_started"  # A session was opened
    COMBAT_ENDED = "combat_ended"  # A session was resolved
    DAMAGE_APPLIED = "damage_applied"  # A hit landed (or missed)
    HEAL_APPLIED = "heal_applied"  # A combatant healed
    STATUS_TICK = "status_tick"  # A damage over time effect ticked
    BOSS_PHASE_CHANGED = "boss_phase_changed"  # A boss entered a new phase
    BOSS_DEFEATED = "boss_defeated"  # A boss was beaten and rewards rolled
    PLAYER_LEVELED_UP = "player_leveled_up"  # The player gained a level
    EXPERIENCE_AWARDED = "experience_awarded"  # Experience granted on victory
    MATERIALS_AWARDED = "materials_awarded"  # Materials dropped on victory


class CombatEvent(BaseModel):
    """Base class for all combat events."""

    event_type: EventType = Field(description="The type of the event.")
    session_id: str | None = Field(
        default=None,
        description="Session the event belongs to, if any.",
    )


class CombatStartedEvent(CombatEvent):
    """Event data for COMBAT_STARTED."""

    event_type: EventType = Field(default=EventType.COMBAT_STARTED)
    player_name: str = Field(description="Name of the player.")
    opponent_name: str = Field(description="Name of the opponent.")
    opponent_level: int = Field(description="Level of the opponent.")
    is_boss: bool = Field(default=False, description="Whether the opponent is a boss.")

    def __str__(self) -> str:
        return f"CombatStartedEvent({self.player_name} vs {self.opponent_name})"


class CombatEndedEvent(CombatEvent):
    """Event data for COMBAT_ENDED."""

    event_type: EventType = Field(default=EventType.COMBAT_ENDED)
    result: CombatResult = Field(description="How the session ended.")
    turns: int = Field(default=0, description="Number of turns taken.")
    damage_taken: int = Field(default=0, description="Damage taken by the player.")

    def __str__(self) -> str:
        return f"CombatEndedEvent({self.result.name}, turns={self.turns})"


class DamageAppliedEvent(CombatEvent):
    """Event data for DAMAGE_APPLIED."""

    event_type: EventType = Field(default=EventType.DAMAGE_APPLIED)
    source: CombatantSlot = Field(description="Slot of the attacker.")
    target: CombatantSlot = Field(description="Slot of the target.")
    amount: int = Field(description="Hit points removed from the target.")
    damage_type: DamageType = Field(default=DamageType.PHYSICAL)
    is_miss: bool = Field(default=False)
    is_critical: bool = Field(default=False)
    target_hp: int = Field(description="Remaining hit points of the target.")
    description: str = Field(default="", description="Human-readable outcome.")

    def __str__(self) -> str:
        return (
            f"DamageAppliedEvent({self.source.name} -> {self.target.name}, "
            f"amount={self.amount}, type={self.damage_type})"
        )


class HealAppliedEvent(CombatEvent):
    """Event data for HEAL_APPLIED."""

    event_type: EventType = Field(default=EventType.HEAL_APPLIED)
    target: CombatantSlot = Field(description="Slot of the healed combatant.")
    amount: int = Field(description="Hit points actually restored.")
    overheal: int = Field(default=0, description="Healing lost to the max HP cap.")
    target_hp: int = Field(description="Hit points after healing.")

    def __str__(self) -> str:
        return f"HealAppliedEvent({self.target.name}, amount={self.amount})"


class StatusTickEvent(CombatEvent):
    """Event data for STATUS_TICK."""

    event_type: EventType = Field(default=EventType.STATUS_TICK)
    target: CombatantSlot = Field(description="Slot of the afflicted combatant.")
    effect_name: str = Field(description="Name of the status effect.")
    amount: int = Field(description="Hit points removed by the tick.")
    remaining_turns: int = Field(description="Ticks left after this one.")
    target_hp: int = Field(description="Remaining hit points of the target.")

    def __str__(self) -> str:
        return f"StatusTickEvent({self.effect_name} on {self.target.name}, amount={self.amount})"


class BossPhaseChangedEvent(CombatEvent):
    """Event data for BOSS_PHASE_CHANGED."""

    event_type: EventType = Field(default=EventType.BOSS_PHASE_CHANGED)
    boss_id: str = Field(description="Identifier of the boss.")
    phase_index: int = Field(description="Index of the new phase.")
    phase_name: str = Field(description="Name of the new phase.")
    damage_multiplier: float = Field(description="Damage multiplier of the new phase.")

    def __str__(self) -> str:
        return f"BossPhaseChangedEvent({self.boss_id}, phase={self.phase_name})"


class BossDefeatedEvent(CombatEvent):
    """Event data for BOSS_DEFEATED."""

    event_type: EventType = Field(default=EventType.BOSS_DEFEATED)
    boss_id: str = Field(description="Identifier of the boss.")
    boss_name: str = Field(description="Name of the boss.")
    experience: int = Field(default=0, description="Experience reward.")
    materials: dict[str, int] = Field(default_factory=dict)
    equipment: list[str] = Field(default_factory=list)

    def __str__(self) -> str:
        return f"BossDefeatedEvent({self.boss_name})"


class PlayerLeveledUpEvent(CombatEvent):
    """Event data for PLAYER_LEVELED_UP."""

    event_type: EventType = Field(default=EventType.PLAYER_LEVELED_UP)
    old_level: int = Field(description="Level before the level up.")
    new_level: int = Field(description="Level after the level up.")
    max_hp: int = Field(description="New base max HP.")
    attack: int = Field(description="New base attack.")
    defense: int = Field(description="New base defense.")

    def __str__(self) -> str:
        return f"PlayerLeveledUpEvent({self.old_level} -> {self.new_level})"


class ExperienceAwardedEvent(CombatEvent):
    """Event data for EXPERIENCE_AWARDED."""

    event_type: EventType = Field(default=EventType.EXPERIENCE_AWARDED)
    amount: int = Field(description="Experience granted.")

    def __str__(self) -> str:
        return f"ExperienceAwardedEvent(amount={self.amount})"


class MaterialsAwardedEvent(CombatEvent):
    """Event data for MATERIALS_AWARDED."""

    event_type: EventType = Field(default=EventType.MATERIALS_AWARDED)
    materials: list[Any] = Field(
        default_factory=list,
        description="The MaterialDrop entries rolled on victory.",
    )

    def __str__(self) -> str:
        return f"MaterialsAwardedEvent(count={len(self.materials)})"


EventListener = Callable[[CombatEvent], None]


class _Subscription:
    """A registered listener."""

    __slots__ = ("id", "callback", "priority", "once")

    def __init__(
        self, id: int, callback: EventListener, priority: int, once: bool
    ) -> None:
        self.id = id
        self.callback = callback
        self.priority = priority
        self.once = once


class EventBus:
    """
    Synchronous in-process event dispatcher.

    Listeners are called in decreasing priority order, ties in subscription
    order. A failing listener is logged and does not prevent the remaining
    listeners from receiving the event.
    """

    def __init__(self, max_history: int = 100) -> None:
        self._listeners: dict[EventType, list[_Subscription]] = {}
        self._ids = count(1)
        self.history: deque[CombatEvent] = deque(maxlen=max_history)

    def subscribe(
        self,
        event_type: EventType,
        callback: EventListener,
        priority: int = 0,
        once: bool = False,
    ) -> Callable[[], None]:
        """
        Registers a listener.

        Args:
            event_type (EventType):
                The event type to listen for.
            callback (EventListener):
                Called with the event.
            priority (int):
                Higher priorities are called first.
            once (bool):
                Remove the listener after its first call.

        Returns:
            Callable[[], None]:
                A function removing the listener.

        Raises:
            TypeError: If the callback is not callable.

        """
        if not callable(callback):
            raise TypeError("Event callback must be callable")
        subscription = _Subscription(next(self._ids), callback, priority, once)
        listeners = self._listeners.setdefault(event_type, [])
        listeners.append(subscription)
        listeners.sort(key=lambda s: (-s.priority, s.id))
        return lambda: self.unsubscribe(event_type, subscription.id)

    def unsubscribe(self, event_type: EventType, subscription_id: int) -> None:
        """Removes a listener by its subscription id."""
        listeners = self._listeners.get(event_type)
        if not listeners:
            return
        self._listeners[event_type] = [s for s in listeners if s.id != subscription_id]
        if not self._listeners[event_type]:
            del self._listeners[event_type]

    def emit(self, event: CombatEvent) -> None:
        """
        Delivers an event to every listener of its type.

        Args:
            event (CombatEvent):
                The event to deliver.

        """
        self.history.append(event)
        log_debug(f"Emitting {event}", {"event_type": event.event_type.value})
        for subscription in list(self._listeners.get(event.event_type, [])):
            if subscription.once:
                self.unsubscribe(event.event_type, subscription.id)
            try:
                subscription.callback(event)
            except Exception as e:
                log_warning(
                    f"Listener for {event.event_type.value} raised: {e}",
                    {
                        "event_type": event.event_type.value,
                        "listener": getattr(subscription.callback, "__name__", "?"),
                    },
                    e,
                )

    def listener_count(self, event_type: EventType) -> int:
        """Returns the number of listeners registered for an event type."""
        return len(self._listeners.get(event_type, []))

    def clear(self) -> None:
        """Removes every listener and forgets the history."""
        self._listeners.clear()
        self.history.clear()
