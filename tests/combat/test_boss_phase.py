"""
Tests for the boss phase controller.
"""

import pytest

from idle_combat.combat.boss_phase import BOSS_ABILITY_EFFECTS, BossPhaseController
from idle_combat.core.event_system import BossDefeatedEvent, BossPhaseChangedEvent, EventType
from idle_combat.entities.boss import BossDefinition


@pytest.fixture
def controller(guardian_definition, event_bus):
    return BossPhaseController(guardian_definition, event_bus=event_bus, session_id="s1")


def single_phase_boss(abilities):
    return BossDefinition(
        id="oddity",
        name="Oddity",
        base_hp=50,
        base_damage=10,
        phases=[{"name": "Only", "hp_threshold": 1.0, "abilities": abilities}],
    )


def test_starts_in_first_phase(controller):
    assert controller.phase_index == 0
    assert controller.abilities == ["slash", "root_bind"]
    assert controller.damage_multiplier == 1.0
    assert controller.current_phase.name == "Guardian Mode"


def test_phase_changes_at_threshold(controller):
    """
    Test that a phase activates once the HP ratio is at or below its threshold.
    """
    assert controller.update_phase(41, 100) is None
    assert controller.phase_index == 0
    change = controller.update_phase(40, 100)
    assert change is not None
    assert (change.previous_index, change.index) == (0, 1)
    assert controller.abilities == ["fury_swipe", "thorn_storm"]
    assert controller.damage_multiplier == 1.5


def test_big_hit_skips_to_deepest_phase(controller, recorded_events):
    """
    Test that crossing several thresholds at once enters the deepest phase only.
    """
    change = controller.update_phase(19, 100)
    assert change.index == 2
    phase_events = [e for e in recorded_events if isinstance(e, BossPhaseChangedEvent)]
    assert len(phase_events) == 1
    assert phase_events[0].phase_index == 2
    assert phase_events[0].phase_name == "Last Stand"
    assert phase_events[0].session_id == "s1"


def test_phase_never_decreases(controller):
    controller.update_phase(30, 100)
    assert controller.phase_index == 1
    assert controller.update_phase(100, 100) is None
    assert controller.phase_index == 1
    assert controller.update_phase(35, 100) is None
    assert controller.phase_index == 1


def test_boss_action_uses_phase_and_ability_multipliers(controller, scripted_rng):
    action = controller.compute_boss_action(scripted_rng([0.0]))
    assert action.ability_id == "slash"
    assert action.damage == 18
    assert action.description == BOSS_ABILITY_EFFECTS["slash"].description

    controller.update_phase(39, 100)
    action = controller.compute_boss_action(scripted_rng([0.99]))
    assert action.ability_id == "thorn_storm"
    # 18 * 1.5 phase * 1.5 ability
    assert action.damage == 40


def test_boss_action_uses_scaled_damage(guardian_definition, scripted_rng):
    controller = BossPhaseController(guardian_definition, base_damage=20)
    action = controller.compute_boss_action(scripted_rng([0.0]))
    assert action.ability_id == "slash"
    assert action.damage == 20


def test_unknown_ability_is_a_plain_attack(scripted_rng):
    controller = BossPhaseController(single_phase_boss(["mystery"]))
    action = controller.compute_boss_action(scripted_rng([0.0]))
    assert action.ability_id == "mystery"
    assert action.damage == 10
    assert action.description == "attacks"


def test_phase_without_abilities_attacks(scripted_rng):
    controller = BossPhaseController(single_phase_boss([]))
    action = controller.compute_boss_action(scripted_rng())
    assert action.ability_id == "attack"
    assert action.damage == 10


def test_rewards_roll_each_entry(controller, scripted_rng):
    rewards = controller.roll_rewards(scripted_rng([0.5, 0.9, 0.1]))
    assert rewards.experience == 250
    assert rewards.materials == {"rare_wood": 3}
    assert rewards.equipment == ["Guardian's Sword"]


def test_defeat_emits_and_releases(controller, event_bus, scripted_rng):
    """
    Test that a defeat is reported once and releases the encounter state.
    """
    defeated = []
    event_bus.subscribe(EventType.BOSS_DEFEATED, defeated.append)

    result = controller.defeat(scripted_rng([0.5, 0.5, 0.5]))
    assert result.boss_id == "forest_guardian"
    assert result.rewards.materials == {"rare_wood": 3, "guardian_essence": 1}
    assert len(defeated) == 1
    assert isinstance(defeated[0], BossDefeatedEvent)
    assert defeated[0].experience == 250

    assert not controller.active
    assert controller.defeat() is None
    assert controller.compute_boss_action() is None
    assert controller.update_phase(0, 100) is None
    assert len(defeated) == 1


def test_three_phase_scenario(recorded_events, event_bus):
    """
    Test thresholds [1.0, 0.5, 0.2]: phase 1 at 41%, then straight to phase 2 at 19%.
    """
    definition = BossDefinition(
        id="warden",
        name="Warden",
        base_hp=100,
        base_damage=10,
        phases=[
            {"name": "Calm", "hp_threshold": 1.0},
            {"name": "Angry", "hp_threshold": 0.5},
            {"name": "Desperate", "hp_threshold": 0.2},
        ],
    )
    controller = BossPhaseController(definition, event_bus=event_bus)
    controller.update_phase(41, 100)
    assert controller.phase_index == 1
    change = controller.update_phase(19, 100)
    assert (change.previous_index, change.index) == (1, 2)
    assert [e.phase_index for e in recorded_events if isinstance(e, BossPhaseChangedEvent)] == [1, 2]
