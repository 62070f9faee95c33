"""
Tests for the player state and effective stats.
"""

from idle_combat.core.constants import AbilityType
from idle_combat.entities.combatant import Ability, Combatant, DropEntry
from idle_combat.entities.player import (
    EquipmentBonuses,
    InMemoryPlayerStore,
    PlayerState,
    PrestigeUpgrades,
    compute_effective_luck,
    compute_effective_stats,
)


def test_effective_stats_without_bonuses():
    stats = compute_effective_stats(PlayerState())
    assert (stats.max_hp, stats.attack, stats.defense) == (100, 10, 5)
    assert stats.crit_chance == 0.1


def test_equipment_added_before_prestige():
    """
    Test that equipment bonuses are added before the prestige multipliers apply.
    """
    player = PlayerState(attack=10, defense=5, max_hp=100)
    stats = compute_effective_stats(
        player,
        EquipmentBonuses(attack=10, defense=5, max_hp=20),
        PrestigeUpgrades(combat_damage=2, defense_boost=1, health_boost=2),
    )
    assert stats.attack == 24
    assert stats.defense == 11
    assert stats.max_hp == 156


def test_critical_chance_is_additive_and_capped():
    stats = compute_effective_stats(
        PlayerState(crit_chance=0.1),
        EquipmentBonuses(crit_chance=0.05),
        PrestigeUpgrades(critical_chance=2),
    )
    assert abs(stats.crit_chance - 0.25) < 1e-9
    capped = compute_effective_stats(
        PlayerState(crit_chance=0.9), prestige=PrestigeUpgrades(critical_chance=10)
    )
    assert capped.crit_chance == 1.0


def test_current_hp_kept_below_max():
    stats = compute_effective_stats(PlayerState(hp=80, max_hp=100))
    assert stats.hp == 80


def test_effective_luck():
    luck = compute_effective_luck(
        PlayerState(luck=2), EquipmentBonuses(luck=3), PrestigeUpgrades(luck_bonus=1)
    )
    assert luck == 6


def test_store_returns_copies():
    store = InMemoryPlayerStore()
    player = store.get_player()
    player.hp = 1
    assert store.player.hp == 100
    updated = store.update_player(hp=40, exp=12)
    assert (updated.hp, updated.exp) == (40, 12)
    store.record_boss_defeated("forest_guardian")
    assert store.defeated_bosses == {"forest_guardian"}


def test_combatant_clamps_hit_points():
    combatant = Combatant(name="Dummy", hp=150, max_hp=100)
    assert combatant.hp == 100
    assert combatant.apply_damage(130) == 100
    assert combatant.hp == 0
    assert not combatant.is_alive()
    assert combatant.apply_healing(250) == 100
    assert combatant.hp == 100


def test_combatant_defaults_to_full_health():
    assert Combatant(name="Fresh", max_hp=40).hp == 40


def test_combatant_corrects_invalid_enums():
    combatant = Combatant(name="Odd", ai_type="sneaky", difficulty="hard", element="plasma")
    assert combatant.ai_type.value == "balanced"
    assert combatant.difficulty.value == "HARD"
    assert combatant.element.value == "physical"


def test_ability_lookup():
    combatant = Combatant(
        name="Caster",
        abilities=[
            Ability(name="Bolt", damage=4),
            Ability(name="Mend", type=AbilityType.HEAL, heal_power=15),
        ],
    )
    assert combatant.can_heal
    assert combatant.get_ability(5) is None
    assert combatant.first_ability_of_type(AbilityType.HEAL).name == "Mend"
    profile = combatant.attack_profile(combatant.abilities[0])
    assert profile.attack == 14
    heal = combatant.heal_profile(combatant.abilities[1], default_percentage=25)
    assert heal.heal_power == 15 and heal.is_percentage
    assert combatant.heal_profile(None, default_percentage=25).heal_power == 25


def test_drop_entry_orders_quantities():
    entry = DropEntry(material_id="ore", min_quantity=4, max_quantity=2)
    assert (entry.min_quantity, entry.max_quantity) == (2, 4)
    assert DropEntry.model_validate({"materialId": "ore", "baseChance": 2}).base_chance == 1.0
