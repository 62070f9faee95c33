"""
User interface module for the combat engine.

Provides the console components of the interactive demo: a prompt letting the
player pick the action of each turn, and a narrator printing the combat
events as they are emitted.
"""

from typing import Any

from prompt_toolkit import ANSI, PromptSession
from rich.table import Table

from idle_combat.combat.combat_manager import CombatSession
from idle_combat.core.constants import ActionType, CombatantSlot, CombatResult
from idle_combat.core.event_system import (
    BossDefeatedEvent,
    BossPhaseChangedEvent,
    CombatEndedEvent,
    CombatStartedEvent,
    DamageAppliedEvent,
    EventBus,
    EventType,
    ExperienceAwardedEvent,
    HealAppliedEvent,
    MaterialsAwardedEvent,
    PlayerLeveledUpEvent,
    StatusTickEvent,
)
from idle_combat.core.utils import ccapture, cprint, crule, make_bar
from idle_combat.entities.combatant import Combatant

# one session keeps history
session: PromptSession = PromptSession(erase_when_done=True)

# Actions offered to the player, in menu order.
PLAYER_ACTIONS: list[tuple[ActionType, str]] = [
    (ActionType.ATTACK, "Strike the opponent"),
    (ActionType.DEFEND, "Halve the next hit"),
    (ActionType.FLEE, "Leave the fight"),
]


class PlayerInterface:
    """
    Command-line interface for player interactions.

    Shows the state of both combatants and a Rich table of the available
    actions, then reads the choice with prompt_toolkit.
    """

    def choose_action(self, combat: CombatSession) -> ActionType:
        """
        Asks the player for the action of the current turn.

        Args:
            combat (CombatSession): The session waiting for the player.

        Returns:
            ActionType: The chosen action.

        """
        table = Table(title="Actions", pad_edge=False)
        table.add_column("#", style="cyan")
        table.add_column("Action", style="bold")
        table.add_column("Effect", style="magenta")
        for i, (action, effect) in enumerate(PLAYER_ACTIONS, 1):
            table.add_row(str(i), action.value.capitalize(), effect)
        prompt = (
            "\n"
            + ccapture(self.status_line(combat.player))
            + "\n"
            + ccapture(self.status_line(combat.opponent))
            + "\n"
            + ccapture(table)
            + "\nAction > "
        )
        while True:
            answer = session.prompt(ANSI(prompt))
            if not answer:
                continue
            index = self.get_digit_choice(answer) - 1
            if 0 <= index < len(PLAYER_ACTIONS):
                return PLAYER_ACTIONS[index][0]
            if answer.lower() == "q":
                return ActionType.FLEE

    @staticmethod
    def status_line(combatant: Combatant) -> str:
        """Formats the name, level and hit points of a combatant."""
        ratio = combatant.hp_ratio()
        color = "green" if ratio > 0.5 else "yellow" if ratio > 0.25 else "red"
        return (
            f"[bold]{combatant.name}[/] (Lv {combatant.level}) "
            f"{make_bar(combatant.hp, combatant.max_hp, color=color)} "
            f"{combatant.hp}/{combatant.max_hp}"
        )

    @staticmethod
    def get_digit_choice(answer: str) -> int:
        """
        Convert a single digit string input to its integer value.

        Args:
            answer (str): User input string to parse.

        Returns:
            int: The integer value of the digit (0-9), or -1 if invalid input.

        """
        if isinstance(answer, str) and len(answer) == 1 and answer.isdigit():
            return int(answer)
        return -1


class CombatNarrator:
    """Prints the events of an event bus to the console."""

    def __init__(self, event_bus: EventBus, player_name: str = "Hero") -> None:
        self.player_name = player_name
        self.opponent_name = "Opponent"
        self._unsubscribers = [
            event_bus.subscribe(event_type, self.narrate) for event_type in EventType
        ]

    def close(self) -> None:
        """Stops printing events."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _name(self, slot: CombatantSlot) -> str:
        if slot == CombatantSlot.PLAYER:
            return f"[bold green]{self.player_name}[/]"
        return f"[bold red]{self.opponent_name}[/]"

    def narrate(self, event: Any) -> None:
        """Prints one event."""
        if isinstance(event, CombatStartedEvent):
            self.player_name = event.player_name
            self.opponent_name = event.opponent_name
            title = "Boss" if event.is_boss else "Encounter"
            crule(
                f":crossed_swords:  {title}: {event.opponent_name} (Lv {event.opponent_level})",
                style="bold green",
            )
        elif isinstance(event, DamageAppliedEvent):
            source, target = self._name(event.source), self._name(event.target)
            if event.is_miss:
                cprint(f"    {source} misses {target}.")
            else:
                critical = " [bold yellow]critical[/]" if event.is_critical else ""
                cprint(
                    f"    {source} hits {target} for [bold]{event.amount}[/]{critical} "
                    f"{event.damage_type.value} damage ({event.target_hp} HP left). "
                    f"[dim]{event.description}[/]"
                )
        elif isinstance(event, HealAppliedEvent):
            cprint(
                f"    {self._name(event.target)} heals [bold green]{event.amount}[/] HP "
                f"({event.target_hp} HP)."
            )
        elif isinstance(event, StatusTickEvent):
            cprint(
                f"    {self._name(event.target)} suffers [bold]{event.amount}[/] "
                f"from {event.effect_name} ({event.remaining_turns} turns left)."
            )
        elif isinstance(event, BossPhaseChangedEvent):
            cprint(
                f"    [bold magenta]{self.opponent_name} enters {event.phase_name}![/] "
                f"(damage x{event.damage_multiplier})"
            )
        elif isinstance(event, BossDefeatedEvent):
            loot = ", ".join(
                [f"{amount} {name}" for name, amount in event.materials.items()]
                + event.equipment
            )
            cprint(f"    [bold yellow]{event.boss_name} defeated![/] Loot: {loot or 'none'}")
        elif isinstance(event, ExperienceAwardedEvent):
            cprint(f"    Gained [bold cyan]{event.amount}[/] experience.")
        elif isinstance(event, MaterialsAwardedEvent):
            if event.materials:
                loot = ", ".join(f"{drop.quantity} {drop.material_id}" for drop in event.materials)
                cprint(f"    Materials: {loot}.")
        elif isinstance(event, PlayerLeveledUpEvent):
            cprint(
                f"    [bold yellow]Level up![/] {event.old_level} -> {event.new_level} "
                f"(HP {event.max_hp}, ATK {event.attack}, DEF {event.defense})"
            )
        elif isinstance(event, CombatEndedEvent):
            style = {
                CombatResult.VICTORY: "bold green",
                CombatResult.DEFEAT: "bold red",
                CombatResult.FLEE: "bold yellow",
            }[event.result]
            crule(
                f"{event.result.value.capitalize()} after {event.turns} turns "
                f"({event.damage_taken} damage taken)",
                style=style,
            )
