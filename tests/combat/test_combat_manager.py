"""
Tests for the combat session controller.

Unless stated otherwise the random source returns 0.5, which lands every
hit, never crits and rolls zero variance: the player deals 37 damage to the
goblin (attack 20 against defense 3) and takes 11 (attack 8 against defense 5).
"""

import pytest

from idle_combat.combat.combat_manager import ActiveStatusEffect, CombatManager
from idle_combat.core.constants import (
    AbilityType,
    ActionType,
    AIType,
    CombatantSlot,
    CombatPhase,
    CombatResult,
    DamageType,
    Difficulty,
)
from idle_combat.core.event_system import (
    BossDefeatedEvent,
    BossPhaseChangedEvent,
    CombatEndedEvent,
    CombatStartedEvent,
    DamageAppliedEvent,
    ExperienceAwardedEvent,
    HealAppliedEvent,
    MaterialsAwardedEvent,
    PlayerLeveledUpEvent,
    StatusTickEvent,
)
from idle_combat.entities.combatant import Ability, DropEntry, OpponentDescriptor
from idle_combat.entities.player import (
    EquipmentBonuses,
    InMemoryPlayerStore,
    PlayerState,
    PrestigeUpgrades,
    StaticBonusProvider,
)
from idle_combat.entities.profiles import StatusEffect


@pytest.fixture
def manager(player_store, event_bus, fast_config, scripted_rng):
    return CombatManager(
        player_store,
        event_bus=event_bus,
        config=fast_config,
        rng=scripted_rng(),
    )


@pytest.fixture
def sturdy_goblin(goblin):
    return goblin.model_copy(update={"hp": 100, "max_hp": 100})


def events_of(events, event_class):
    return [event for event in events if isinstance(event, event_class)]


# ============================================================================
# LIFECYCLE
# ============================================================================


def test_start_opens_player_turn(manager, goblin, recorded_events):
    session = manager.start(goblin)
    assert session is not None
    assert session.phase == CombatPhase.ACTION
    assert session.current_slot == CombatantSlot.PLAYER
    assert session.turn_number == 1
    assert session.round == 1
    assert not session.has_phases
    started = events_of(recorded_events, CombatStartedEvent)
    assert len(started) == 1
    assert started[0].opponent_name == "Goblin"
    assert started[0].session_id == session.session_id


def test_start_rejected_while_in_combat(manager, goblin):
    session = manager.start(goblin)
    assert manager.start(goblin) is None
    assert manager.session is session


def test_session_owns_a_copy_of_the_opponent(manager, goblin):
    manager.start(goblin)
    manager.player_attack()
    assert goblin.hp == 30


def test_actions_without_session_are_rejected(manager):
    assert manager.player_attack() is None
    assert manager.player_defend() is False
    assert manager.advance() is None
    assert manager.flee() is False
    assert manager.apply_pending_action() is None


# ============================================================================
# TURN FLOW
# ============================================================================


def test_turns_alternate_strictly(manager, sturdy_goblin, player_store):
    """
    Test that the player cannot act again before the opponent acted.
    """
    session = manager.start(sturdy_goblin)
    outcome = manager.player_attack()
    assert outcome.damage == 37
    assert session.opponent.hp == 63
    assert session.awaiting_advance

    assert manager.player_attack() is None
    assert manager.player_defend() is False

    pending = manager.advance()
    assert pending is not None
    assert pending.action == ActionType.ATTACK
    assert session.current_slot == CombatantSlot.OPPONENT
    assert session.turn_number == 2
    assert manager.player_attack() is None

    outcome = manager.apply_pending_action()
    assert outcome.damage == 11
    assert player_store.player.hp == 89
    assert session.damage_taken == 11
    assert session.opponent_last_action == ActionType.ATTACK

    assert manager.advance() is None
    assert session.current_slot == CombatantSlot.PLAYER
    assert session.turn_number == 3
    assert session.round == 2


def test_advance_requires_resolved_turn(manager, goblin):
    manager.start(goblin)
    assert manager.advance() is None
    assert manager.session.current_slot == CombatantSlot.PLAYER


def test_pending_action_is_applied_once(manager, sturdy_goblin, player_store):
    manager.start(sturdy_goblin)
    manager.player_defend()
    pending = manager.advance()
    manager.apply_pending_action(pending)
    assert manager.apply_pending_action(pending) is None
    assert player_store.player.hp == 95


def test_defend_halves_next_hit(manager, sturdy_goblin, player_store, recorded_events):
    session = manager.start(sturdy_goblin)
    assert manager.player_defend()
    assert session.player_defending
    manager.advance()
    outcome = manager.apply_pending_action()
    assert outcome.damage == 5
    assert player_store.player.hp == 95
    assert not session.player_defending
    damage = events_of(recorded_events, DamageAppliedEvent)[-1]
    assert damage.target == CombatantSlot.PLAYER
    assert damage.amount == 5


def test_opponent_defend_halves_player_hit(manager, sturdy_goblin):
    session = manager.start(sturdy_goblin)
    session.opponent_defending = True
    outcome = manager.player_attack()
    assert outcome.damage == 18
    assert not session.opponent_defending


def test_player_snapshot_includes_bonuses(player_store, event_bus, fast_config, goblin):
    bonuses = StaticBonusProvider(
        equipment=EquipmentBonuses(attack=5),
        prestige=PrestigeUpgrades(combat_damage=1),
    )
    manager = CombatManager(player_store, bonuses, event_bus, fast_config)
    assert manager.get_effective_player_stats().attack == 27
    session = manager.start(goblin)
    assert session.player.attack == 27


# ============================================================================
# FLEE AND STALE ACTIONS
# ============================================================================


def test_flee_discards_pending_action(manager, sturdy_goblin, player_store, recorded_events):
    """
    Test that an action pending when the player flees is never applied.
    """
    manager.start(sturdy_goblin)
    manager.player_defend()
    pending = manager.advance()
    assert manager.flee()

    ended = events_of(recorded_events, CombatEndedEvent)
    assert len(ended) == 1
    assert ended[0].result == CombatResult.FLEE
    assert manager.session is None

    emitted = len(recorded_events)
    assert manager.apply_pending_action(pending) is None
    assert len(recorded_events) == emitted
    assert player_store.player.hp == 100


def test_stale_action_from_previous_session_is_ignored(manager, sturdy_goblin, player_store):
    manager.start(sturdy_goblin)
    manager.player_defend()
    stale = manager.advance()
    manager.flee()

    session = manager.start(sturdy_goblin)
    manager.player_defend()
    current = manager.advance()
    assert stale.turn_number == current.turn_number

    assert manager.apply_pending_action(stale) is None
    assert session.pending_action is current
    assert player_store.player.hp == 100
    manager.apply_pending_action()
    assert player_store.player.hp == 95


def test_flee_has_no_reward_nor_penalty(manager, goblin, player_store):
    manager.start(goblin)
    manager.flee()
    assert player_store.player.exp == 0
    assert player_store.player.hp == 100


# ============================================================================
# RESOLUTION
# ============================================================================


def test_victory_awards_experience(manager, goblin, player_store, recorded_events):
    session = manager.start(goblin)
    manager.player_attack()
    assert manager.session is None
    assert session.result == CombatResult.VICTORY
    assert session.opponent.hp == 0
    assert player_store.player.exp == 10
    assert events_of(recorded_events, ExperienceAwardedEvent)[0].amount == 10
    ended = events_of(recorded_events, CombatEndedEvent)[0]
    assert ended.result == CombatResult.VICTORY
    assert ended.turns == 1
    assert ended.damage_taken == 0


def test_victory_rolls_material_drops(manager, goblin, recorded_events):
    goblin.drop_table = [
        DropEntry(material_id="cloth", base_chance=0.6, min_quantity=1, max_quantity=3)
    ]
    manager.start(goblin)
    manager.player_attack()
    awarded = events_of(recorded_events, MaterialsAwardedEvent)
    assert len(awarded) == 1
    assert [(drop.material_id, drop.quantity) for drop in awarded[0].materials] == [
        ("cloth", 2)
    ]


def test_experience_multiplier_from_prestige(
    player_store, event_bus, fast_config, goblin, scripted_rng
):
    bonuses = StaticBonusProvider(prestige=PrestigeUpgrades(experience_gain=2))
    manager = CombatManager(player_store, bonuses, event_bus, fast_config, scripted_rng())
    manager.start(goblin)
    manager.player_attack()
    assert player_store.player.exp == 15


def test_level_up_on_victory(manager, goblin, player_store, recorded_events):
    player_store.update_player(exp=95)
    manager.start(goblin)
    manager.player_attack()
    player = player_store.player
    assert player.level == 2
    assert player.exp == 5
    assert player.max_hp == 120
    assert player.hp == 120
    assert player.attack == 13
    assert player.defense == 7
    level_ups = events_of(recorded_events, PlayerLeveledUpEvent)
    assert [(e.old_level, e.new_level) for e in level_ups] == [(1, 2)]


def test_level_up_repeats_while_experience_allows(manager, goblin, player_store, recorded_events):
    player_store.update_player(exp=390)
    manager.start(goblin)
    manager.player_attack()
    assert player_store.player.level == 3
    assert player_store.player.exp == 100
    assert len(events_of(recorded_events, PlayerLeveledUpEvent)) == 2


def test_defeat_restores_half_hp(manager, sturdy_goblin, player_store, recorded_events):
    player_store.update_player(hp=4)
    session = manager.start(sturdy_goblin)
    manager.player_defend()
    manager.advance()
    manager.apply_pending_action()
    assert session.result == CombatResult.DEFEAT
    assert manager.session is None
    assert player_store.player.hp == 50
    assert player_store.player.exp == 0
    assert events_of(recorded_events, CombatEndedEvent)[0].result == CombatResult.DEFEAT


# ============================================================================
# OPPONENT ABILITIES
# ============================================================================


def test_opponent_heals_itself(manager, player_store, recorded_events):
    acolyte = OpponentDescriptor(
        name="Acolyte",
        hp=50,
        max_hp=100,
        attack=5,
        ai_type=AIType.HEALER,
        difficulty=Difficulty.NIGHTMARE,
        abilities=[Ability(name="Mend", type=AbilityType.HEAL, heal_power=20)],
    )
    session = manager.start(acolyte)
    manager.player_defend()
    pending = manager.advance()
    assert pending.action == ActionType.HEAL
    outcome = manager.apply_pending_action()
    assert outcome.heal_amount == 20
    assert session.opponent.hp == 70
    heal = events_of(recorded_events, HealAppliedEvent)[0]
    assert heal.target == CombatantSlot.OPPONENT
    assert heal.target_hp == 70


def test_status_effect_ticks_at_turn_start(manager, player_store, recorded_events, scripted_rng):
    """
    Test that a poison applied by an ability ticks when the player turn starts.
    """
    viper = OpponentDescriptor(
        name="Viper",
        hp=100,
        max_hp=100,
        attack=8,
        ai_type=AIType.AGGRESSIVE,
        difficulty=Difficulty.NIGHTMARE,
        abilities=[
            Ability(
                name="Venom Bite",
                damage=2,
                damage_type=DamageType.MAGICAL,
                status_effect=StatusEffect(
                    name="Poison",
                    base_damage=4,
                    damage_type=DamageType.TRUE,
                    duration=2,
                ),
            )
        ],
    )
    # special roll, mistake roll, ability usage roll, delay roll
    manager.rng = scripted_rng([0.0, 0.5, 0.0, 0.5])
    session = manager.start(viper)
    manager.player_defend()
    pending = manager.advance()
    assert pending.action == ActionType.SPECIAL
    outcome = manager.apply_pending_action()
    # (10 * 2 - 5) halved by the defend stance
    assert outcome.damage == 7
    assert player_store.player.hp == 93
    assert len(session.status_effects[CombatantSlot.PLAYER]) == 1

    manager.advance()
    assert player_store.player.hp == 89
    tick = events_of(recorded_events, StatusTickEvent)[0]
    assert tick.amount == 4
    assert tick.remaining_turns == 1

    manager.player_defend()
    manager.advance()
    manager.apply_pending_action()
    manager.advance()
    assert len(events_of(recorded_events, StatusTickEvent)) == 2
    assert session.status_effects[CombatantSlot.PLAYER] == []


def test_status_tick_can_end_the_fight(manager, sturdy_goblin, player_store):
    player_store.update_player(hp=10)
    session = manager.start(sturdy_goblin)
    manager.player_defend()
    manager.advance()
    manager.apply_pending_action()
    assert player_store.player.hp == 5

    poison = StatusEffect(name="Poison", base_damage=5, damage_type=DamageType.TRUE)
    session.status_effects[CombatantSlot.PLAYER].append(
        ActiveStatusEffect(effect=poison, remaining_turns=poison.duration)
    )
    assert manager.advance() is None
    assert manager.session is None
    assert session.result == CombatResult.DEFEAT


# ============================================================================
# BOSSES
# ============================================================================


def test_boss_session_follows_phases(event_bus, fast_config, guardian_definition, scripted_rng, recorded_events):
    """
    Test a full boss encounter: phase change, boss action and defeat rewards.
    """
    store = InMemoryPlayerStore(PlayerState(attack=100))
    manager = CombatManager(store, event_bus=event_bus, config=fast_config, rng=scripted_rng())
    boss = OpponentDescriptor(
        name="Forest Guardian",
        hp=150,
        max_hp=150,
        attack=18,
        defense=8,
        magic_defense=8,
        level=5,
        exp_reward=250,
        boss=guardian_definition,
        boss_damage=18,
    )
    session = manager.start(boss)
    assert session.has_phases
    assert session.phase_controller.phase_index == 0

    outcome = manager.player_attack()
    assert outcome.damage == 115
    assert session.opponent.hp == 35
    assert session.phase_controller.phase_index == 1
    assert len(events_of(recorded_events, BossPhaseChangedEvent)) == 1

    pending = manager.advance()
    assert pending.boss_action.ability_id == "thorn_storm"
    manager.apply_pending_action()
    assert store.player.hp == 60

    manager.advance()
    manager.player_attack()
    assert session.result == CombatResult.VICTORY
    assert not session.phase_controller.active
    assert "forest_guardian" in store.defeated_bosses
    defeated = events_of(recorded_events, BossDefeatedEvent)
    assert len(defeated) == 1
    assert defeated[0].materials["rare_wood"] == 3
    assert events_of(recorded_events, ExperienceAwardedEvent)[0].amount == 250
    assert store.player.level == 2
    assert store.player.exp == 150
