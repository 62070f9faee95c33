"""
Tests for the turn scheduler.
"""

import pytest

from idle_combat.combat.combat_manager import CombatManager
from idle_combat.combat.turn_scheduler import TurnScheduler, always_attack
from idle_combat.core.config import CombatConfig
from idle_combat.core.constants import ActionType, CombatantSlot, CombatResult
from idle_combat.core.event_system import DamageAppliedEvent


@pytest.fixture
def waits():
    return []


@pytest.fixture
def manager(player_store, event_bus, scripted_rng):
    config = CombatConfig(player_action_delay=0.5, opponent_action_delay=1.0, use_decision_delay=False)
    return CombatManager(player_store, event_bus=event_bus, config=config, rng=scripted_rng())


def test_always_attack_wins_against_goblin(manager, goblin, waits):
    scheduler = TurnScheduler(manager, sleep=waits.append)
    assert scheduler.run(goblin) == CombatResult.VICTORY
    assert manager.session is None
    assert waits == []


def test_scheduler_honors_delays(manager, goblin, waits, recorded_events):
    """
    Test that the scheduler waits the reported delays between the turns.
    """
    sturdy = goblin.model_copy(update={"hp": 60, "max_hp": 60})
    scheduler = TurnScheduler(manager, sleep=waits.append)
    assert scheduler.run(sturdy) == CombatResult.VICTORY
    # attack, advance, opponent thinking, advance, attack
    assert waits == [0.5, 1.0, 0.5]
    sources = [e.source for e in recorded_events if isinstance(e, DamageAppliedEvent)]
    assert sources == [CombatantSlot.PLAYER, CombatantSlot.OPPONENT, CombatantSlot.PLAYER]


def test_policy_can_flee(manager, goblin, waits):
    scheduler = TurnScheduler(manager, player_policy=lambda session: ActionType.FLEE, sleep=waits.append)
    assert scheduler.run(goblin) == CombatResult.FLEE


def test_turn_limit_flees(manager, goblin, waits):
    scheduler = TurnScheduler(
        manager,
        player_policy=lambda session: ActionType.DEFEND,
        sleep=waits.append,
        max_turns=4,
    )
    assert scheduler.run(goblin) == CombatResult.FLEE


def test_run_refuses_second_session(manager, goblin, waits):
    manager.start(goblin)
    scheduler = TurnScheduler(manager, sleep=waits.append)
    assert scheduler.run(goblin) is None


def test_always_attack_policy(manager, goblin):
    session = manager.start(goblin)
    assert always_attack(session) == ActionType.ATTACK
