"""
Damage module for the combat engine.

Pure functions computing attack damage, healing, damage over time,
experience rewards and material drops. The only non-determinism comes from
the random source passed by the caller, and every function substitutes the
documented defaults for missing or out-of-range inputs instead of raising.
"""

import math
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from catchery import log_warning
from pydantic import BaseModel, Field, ValidationError

from idle_combat.core.constants import DamageType, Element
from idle_combat.core.utils import (
    RandomSource,
    resolve_rng,
    roll_chance,
    roll_int,
    roll_variance,
)
from idle_combat.core.validation import ensure_int_at_least
from idle_combat.entities.combatant import DropEntry
from idle_combat.entities.profiles import (
    AttackProfile,
    DefenseProfile,
    ExperienceProfile,
    HealProfile,
    MitigationProfile,
    StatusEffect,
    VitalsProfile,
)

# Minimum probability of landing a hit, whatever the evasion.
MIN_HIT_CHANCE = 0.05
# Maximum probability of a material drop, whatever the luck.
MAX_DROP_CHANCE = 0.95

# Attacker element -> defender element -> multiplier. Unlisted pairs are 1.0.
ELEMENT_EFFECTIVENESS: Mapping[Element, Mapping[Element, float]] = {
    Element.FIRE: {
        Element.ICE: 2.0,
        Element.FIRE: 0.5,
    },
    Element.ICE: {
        Element.FIRE: 0.5,
        Element.ICE: 0.5,
        Element.LIGHTNING: 2.0,
    },
    Element.LIGHTNING: {
        Element.ICE: 0.5,
        Element.LIGHTNING: 0.5,
        Element.DARK: 2.0,
    },
    Element.DARK: {
        Element.LIGHTNING: 0.5,
        Element.LIGHT: 0.5,
    },
    Element.LIGHT: {
        Element.DARK: 2.0,
    },
    Element.PHYSICAL: {},
}

_P = TypeVar("_P", bound=BaseModel)


class DamageOutcome(BaseModel):
    """Result of one offensive action."""

    damage: int = Field(default=0, description="Final damage, 0 on a miss.")
    is_miss: bool = Field(default=False, description="Whether the attack missed.")
    is_critical: bool = Field(default=False, description="Whether the hit was critical.")
    damage_type: DamageType = Field(default=DamageType.PHYSICAL)
    element: Element = Field(default=Element.PHYSICAL)
    effectiveness: float = Field(
        default=1.0,
        description="Elemental multiplier applied to the hit.",
    )
    base_damage: int = Field(default=0, description="Damage before the random variance.")
    variance: int = Field(default=0, description="Random offset added to the base damage.")


class HealOutcome(BaseModel):
    """Result of one healing computation."""

    heal_amount: int = Field(description="Hit points actually restored.")
    computed_amount: int = Field(description="Healing before the max HP cap.")
    new_hp: int = Field(description="Hit points after healing.")
    is_overheal: bool = Field(description="Whether part of the heal was lost.")
    overheal_amount: int = Field(description="Healing lost to the max HP cap.")


class StatusTick(BaseModel):
    """Per-tick and total damage of a status effect."""

    tick_damage: int
    total_damage: int
    damage_type: DamageType
    duration: int
    stack_count: int


class MaterialDrop(BaseModel):
    """A material rolled from a drop table."""

    material_id: str
    quantity: int
    rarity: str = "common"


def _as_profile(value: Any, model: type[_P]) -> _P:
    """Turns a profile, a mapping or None into the requested profile model."""
    if isinstance(value, model):
        return value
    if value is None:
        return model()
    if isinstance(value, Mapping):
        return model.model_validate(dict(value))
    if isinstance(value, BaseModel):
        return model.model_validate(value.model_dump())
    return model.model_validate(value, from_attributes=True)


def get_element_effectiveness(attack_element: Any, defend_element: Any) -> float:
    """
    Looks up the elemental multiplier of an attack.

    Args:
        attack_element (Any):
            Element of the attack, as a member or its value.
        defend_element (Any):
            Element of the defender, as a member or its value.

    Returns:
        float:
            The multiplier, 1.0 for any unknown element or unlisted pair.

    """
    try:
        attack_element = Element(attack_element)
        defend_element = Element(defend_element)
    except ValueError:
        return 1.0
    return ELEMENT_EFFECTIVENESS.get(attack_element, {}).get(defend_element, 1.0)


def _effective_defense(damage_type: DamageType, defense: int, magic_defense: int) -> int:
    if damage_type == DamageType.TRUE:
        return 0
    if damage_type == DamageType.MAGICAL:
        return magic_defense
    return defense


def compute_damage(
    attacker: AttackProfile | Mapping[str, Any] | None,
    defender: DefenseProfile | Mapping[str, Any] | None,
    rng: RandomSource | None = None,
) -> DamageOutcome:
    """
    Computes the damage of one attack.

    The attack first rolls to hit at max(0.05, accuracy - evasion). On a hit,
    the base damage is (attack * 2 - defense) scaled by 10% per level of
    difference, then the elemental multiplier, a critical hit roll and a
    +-10% integer variance are applied in this order.

    Args:
        attacker (AttackProfile | Mapping[str, Any] | None):
            Offensive stats of the attacker.
        defender (DefenseProfile | Mapping[str, Any] | None):
            Defensive stats of the defender.
        rng (RandomSource | None):
            The random source, the module default when None.

    Returns:
        DamageOutcome:
            The outcome, with damage >= 1 on a hit and 0 on a miss.

    """
    rng = resolve_rng(rng)
    atk = _as_profile(attacker, AttackProfile)
    dfn = _as_profile(defender, DefenseProfile)

    hit_chance = max(MIN_HIT_CHANCE, atk.accuracy - dfn.evasion)
    if not roll_chance(rng, hit_chance):
        return DamageOutcome(
            damage=0,
            is_miss=True,
            damage_type=atk.damage_type,
            element=atk.element,
        )

    defense = _effective_defense(atk.damage_type, dfn.defense, dfn.magic_defense)
    level_modifier = 1.0 + 0.1 * (atk.level - dfn.level)
    damage = max(1, math.floor((atk.attack * 2 - defense) * level_modifier))

    effectiveness = get_element_effectiveness(atk.element, dfn.element)
    damage = math.floor(damage * effectiveness)

    is_critical = roll_chance(rng, atk.crit_chance)
    if is_critical:
        damage = math.floor(damage * atk.crit_multiplier)

    variance = roll_variance(rng, damage, 0.1)

    return DamageOutcome(
        damage=max(1, damage + variance),
        is_miss=False,
        is_critical=is_critical,
        damage_type=atk.damage_type,
        element=atk.element,
        effectiveness=effectiveness,
        base_damage=damage,
        variance=variance,
    )


def compute_healing(
    healer: HealProfile | Mapping[str, Any] | None,
    target: VitalsProfile | Mapping[str, Any] | None,
    rng: RandomSource | None = None,
) -> HealOutcome:
    """
    Computes one heal, capped at the target max HP.

    Args:
        healer (HealProfile | Mapping[str, Any] | None):
            Heal power, level and whether the power is a percentage.
        target (VitalsProfile | Mapping[str, Any] | None):
            Current and maximum hit points of the target.
        rng (RandomSource | None):
            The random source, the module default when None.

    Returns:
        HealOutcome:
            The applied healing and the overheal accounting.

    """
    rng = resolve_rng(rng)
    heal = _as_profile(healer, HealProfile)
    vitals = _as_profile(target, VitalsProfile)
    current_hp = min(vitals.current_hp, vitals.max_hp)

    if heal.is_percentage:
        amount = math.floor(vitals.max_hp * heal.heal_power / 100)
    else:
        amount = math.floor(heal.heal_power * (1.0 + 0.1 * (heal.level - 1)))
    amount = max(0, amount + roll_variance(rng, amount, 0.05))

    actual = min(amount, vitals.max_hp - current_hp)
    return HealOutcome(
        heal_amount=actual,
        computed_amount=amount,
        new_hp=current_hp + actual,
        is_overheal=amount > actual,
        overheal_amount=amount - actual,
    )


def compute_status_tick(
    effect: StatusEffect | Mapping[str, Any] | None,
    target: MitigationProfile | DefenseProfile | Mapping[str, Any] | None,
) -> StatusTick:
    """
    Computes the damage of a damage over time effect.

    Args:
        effect (StatusEffect | Mapping[str, Any] | None):
            The status effect.
        target (MitigationProfile | DefenseProfile | Mapping[str, Any] | None):
            Defenses of the afflicted combatant. Missing defenses count as 0.

    Returns:
        StatusTick:
            The damage of each tick and of the whole effect.

    """
    status = _as_profile(effect, StatusEffect)
    dfn = _as_profile(target, MitigationProfile)

    tick = math.floor(
        status.base_damage * status.stack_count * (1.0 + 0.05 * (status.level - 1))
    )
    if status.damage_type != DamageType.TRUE:
        if status.damage_type == DamageType.PHYSICAL:
            tick -= math.floor(dfn.defense / 4)
        else:
            tick -= math.floor(dfn.magic_defense / 4)
    tick = max(1, tick)

    return StatusTick(
        tick_damage=tick,
        total_damage=tick * status.duration,
        damage_type=status.damage_type,
        duration=status.duration,
        stack_count=status.stack_count,
    )


def compute_experience(defeated: Any, victor: Any) -> int:
    """
    Computes the experience granted for defeating a combatant.

    Args:
        defeated (Any):
            The defeated combatant, or a mapping with ``level`` and
            ``exp_reward`` (also read as ``rewardBase`` or ``baseExpReward``).
        victor (Any):
            The winner, or a mapping with ``level``.

    Returns:
        int:
            The experience, at least 1.

    """
    loser = _as_profile(defeated, ExperienceProfile)
    enemy_level = loser.level
    reward_base = loser.exp_reward
    player_level = _as_profile(victor, ExperienceProfile).level

    exp = reward_base * enemy_level
    difference = enemy_level - player_level
    if difference > 0:
        exp = math.floor(exp * (1.0 + difference * 0.2))
    elif difference < -5:
        exp = math.floor(exp * 0.5)
    return max(1, exp)


def roll_material_drops(
    drop_table: Iterable[DropEntry | Mapping[str, Any]] | None,
    luck: int = 0,
    rng: RandomSource | None = None,
) -> list[MaterialDrop]:
    """
    Rolls every entry of a drop table independently.

    Args:
        drop_table (Iterable[DropEntry | Mapping[str, Any]] | None):
            The drop table of the defeated combatant.
        luck (int):
            Luck points, each adding 1% to every drop chance.
        rng (RandomSource | None):
            The random source, the module default when None.

    Returns:
        list[MaterialDrop]:
            The materials that dropped, in table order.

    """
    rng = resolve_rng(rng)
    luck = ensure_int_at_least(luck, "luck", 0, min_val=0)
    drops: list[MaterialDrop] = []
    for entry in drop_table or []:
        if not isinstance(entry, DropEntry):
            try:
                entry = DropEntry.model_validate(dict(entry))
            except ValidationError as e:
                log_warning(
                    "Skipping invalid drop table entry.",
                    {"entry": dict(entry), "error": str(e)},
                )
                continue
        chance = min(MAX_DROP_CHANCE, entry.base_chance + 0.01 * luck)
        if roll_chance(rng, chance):
            drops.append(
                MaterialDrop(
                    material_id=entry.material_id,
                    quantity=roll_int(rng, entry.min_quantity, entry.max_quantity),
                    rarity=entry.rarity,
                )
            )
    return drops


def describe_damage(outcome: DamageOutcome) -> str:
    """
    Describes a damage outcome for display.

    Args:
        outcome (DamageOutcome):
            The outcome to describe.

    Returns:
        str:
            "Miss!" or the damage followed by the critical and effectiveness
            notes.

    """
    if outcome.is_miss:
        return "Miss!"
    description = f"{outcome.damage}"
    if outcome.is_critical:
        description += " (Critical!)"
    if outcome.effectiveness > 1.0:
        description += " (Super Effective!)"
    elif outcome.effectiveness < 1.0:
        description += " (Not Very Effective...)"
    return description
