"""
Turn scheduler driving a combat session in real time.

The combat manager never waits by itself. The scheduler honors the delays it
reports, asks a player policy what to do on the player turns, and applies
the pending opponent actions once their thinking time elapsed.
"""

import time
from collections.abc import Callable

from catchery import log_debug, log_warning

from idle_combat.combat.combat_manager import CombatManager, CombatSession
from idle_combat.core.constants import ActionType, CombatantSlot, CombatResult
from idle_combat.entities.combatant import OpponentDescriptor

# Chooses the player action for the current turn.
PlayerPolicy = Callable[[CombatSession], ActionType]


def always_attack(session: CombatSession) -> ActionType:
    """The idle policy: the player attacks every turn."""
    return ActionType.ATTACK


class TurnScheduler:
    """Runs sessions of a combat manager until they resolve."""

    def __init__(
        self,
        manager: CombatManager,
        player_policy: PlayerPolicy = always_attack,
        sleep: Callable[[float], None] = time.sleep,
        max_turns: int | None = None,
    ) -> None:
        """
        Initialize the TurnScheduler.

        Args:
            manager (CombatManager):
                The manager owning the sessions.
            player_policy (PlayerPolicy):
                Chooses the player action on each player turn.
            sleep (Callable[[float], None]):
                Waits for the given number of seconds.
            max_turns (int | None):
                Turn limit after which the player flees, unlimited when None.

        """
        self.manager = manager
        self.player_policy = player_policy
        self.sleep = sleep
        self.max_turns = max_turns

    def run(self, descriptor: OpponentDescriptor) -> CombatResult | None:
        """
        Starts a session and drives it to its resolution.

        Args:
            descriptor (OpponentDescriptor):
                The opponent to fight.

        Returns:
            CombatResult | None:
                How the session ended, None if it could not start.

        """
        session = self.manager.start(descriptor)
        if session is None:
            return None
        while self.manager.session is session:
            self._step(session)
        return session.result

    def _step(self, session: CombatSession) -> None:
        """Performs the next thing the session is waiting for."""
        if self.max_turns is not None and session.turn_number > self.max_turns:
            log_warning(
                f"Turn limit of {self.max_turns} reached, fleeing",
                {"session_id": session.session_id, "turns": session.turn_number},
            )
            self.manager.flee()
            return

        if session.awaiting_advance:
            self.sleep(session.advance_delay)
            self.manager.advance()
            return

        if session.pending_action is not None:
            self.sleep(session.pending_action.delay)
            self.manager.apply_pending_action()
            return

        if session.current_slot == CombatantSlot.PLAYER:
            action = self.player_policy(session)
            log_debug(
                f"Player chose to {action.value}",
                {"session_id": session.session_id, "turn": session.turn_number},
            )
            if action == ActionType.DEFEND:
                self.manager.player_defend()
            elif action == ActionType.FLEE:
                self.manager.flee()
            else:
                self.manager.player_attack()
            return

        # Nothing to wait for on the opponent turn means it cannot act.
        log_warning(
            "Opponent turn without a pending action, fleeing",
            {"session_id": session.session_id, "turn": session.turn_number},
        )
        self.manager.flee()
