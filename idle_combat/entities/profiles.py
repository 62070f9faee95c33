"""
Stat profiles consumed by the combat math library.

Each profile carries its documented defaults and corrects out-of-range input
instead of rejecting it, so a partial descriptor (or a plain dictionary)
always produces a usable profile.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from idle_combat.core.constants import (
    CRITICAL_HIT_CHANCE,
    CRITICAL_HIT_MULTIPLIER,
    DamageType,
    Element,
)
from idle_combat.core.validation import (
    ensure_enum,
    ensure_int_at_least,
    ensure_number_in_range,
)


class AttackProfile(BaseModel):
    """Offensive side of a damage computation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    attack: int = Field(default=10, description="Attack power.")
    damage_type: DamageType = Field(
        default=DamageType.PHYSICAL,
        description="How the attack is mitigated.",
    )
    element: Element = Field(
        default=Element.PHYSICAL,
        description="Elemental affinity of the attack.",
    )
    crit_chance: float = Field(
        default=CRITICAL_HIT_CHANCE,
        description="Probability of a critical hit.",
    )
    crit_multiplier: float = Field(
        default=CRITICAL_HIT_MULTIPLIER,
        description="Damage multiplier of a critical hit.",
    )
    level: int = Field(default=1, description="Attacker level.")
    accuracy: float = Field(default=0.9, description="Base hit probability.")

    @field_validator("attack", mode="before")
    @classmethod
    def _check_attack(cls, value: Any) -> int:
        return ensure_int_at_least(value, "attack", 10, min_val=0)

    @field_validator("damage_type", mode="before")
    @classmethod
    def _check_damage_type(cls, value: Any) -> DamageType:
        return ensure_enum(value, DamageType, "damage_type", DamageType.PHYSICAL)

    @field_validator("element", mode="before")
    @classmethod
    def _check_element(cls, value: Any) -> Element:
        return ensure_enum(value, Element, "element", Element.PHYSICAL)

    @field_validator("crit_chance", mode="before")
    @classmethod
    def _check_crit_chance(cls, value: Any) -> float:
        return ensure_number_in_range(
            value, "crit_chance", CRITICAL_HIT_CHANCE, min_val=0.0, max_val=1.0
        )

    @field_validator("crit_multiplier", mode="before")
    @classmethod
    def _check_crit_multiplier(cls, value: Any) -> float:
        return ensure_number_in_range(
            value, "crit_multiplier", CRITICAL_HIT_MULTIPLIER, min_val=1.0
        )

    @field_validator("level", mode="before")
    @classmethod
    def _check_level(cls, value: Any) -> int:
        return ensure_int_at_least(value, "level", 1, min_val=1)

    @field_validator("accuracy", mode="before")
    @classmethod
    def _check_accuracy(cls, value: Any) -> float:
        return ensure_number_in_range(value, "accuracy", 0.9, min_val=0.0, max_val=1.0)


class DefenseProfile(BaseModel):
    """Defensive side of a damage computation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    defense: int = Field(default=5, description="Physical defense.")
    magic_defense: int = Field(default=5, description="Magical defense.")
    element: Element = Field(
        default=Element.PHYSICAL,
        description="Elemental affinity of the defender.",
    )
    level: int = Field(default=1, description="Defender level.")
    evasion: float = Field(default=0.1, description="Probability offset to dodge.")

    @field_validator("defense", "magic_defense", mode="before")
    @classmethod
    def _check_defense(cls, value: Any) -> int:
        return ensure_int_at_least(value, "defense", 5, min_val=0)

    @field_validator("element", mode="before")
    @classmethod
    def _check_element(cls, value: Any) -> Element:
        return ensure_enum(value, Element, "element", Element.PHYSICAL)

    @field_validator("level", mode="before")
    @classmethod
    def _check_level(cls, value: Any) -> int:
        return ensure_int_at_least(value, "level", 1, min_val=1)

    @field_validator("evasion", mode="before")
    @classmethod
    def _check_evasion(cls, value: Any) -> float:
        return ensure_number_in_range(value, "evasion", 0.1, min_val=0.0, max_val=1.0)


class MitigationProfile(BaseModel):
    """Defenses mitigating a damage over time tick. Missing values mitigate nothing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    defense: int = Field(default=0, description="Physical defense.")
    magic_defense: int = Field(default=0, description="Magical defense.")

    @field_validator("defense", "magic_defense", mode="before")
    @classmethod
    def _check_defense(cls, value: Any) -> int:
        return ensure_int_at_least(value, "defense", 0, min_val=0)


class HealProfile(BaseModel):
    """Source side of a healing computation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    heal_power: int = Field(
        default=10,
        description="Flat heal amount, or percentage of max HP when is_percentage.",
    )
    level: int = Field(default=1, description="Healer level (+10% per level).")
    is_percentage: bool = Field(
        default=False,
        description="Whether heal_power is a percentage of the target max HP.",
    )

    @field_validator("heal_power", mode="before")
    @classmethod
    def _check_heal_power(cls, value: Any) -> int:
        return ensure_int_at_least(value, "heal_power", 10, min_val=0)

    @field_validator("level", mode="before")
    @classmethod
    def _check_level(cls, value: Any) -> int:
        return ensure_int_at_least(value, "level", 1, min_val=1)


class VitalsProfile(BaseModel):
    """Hit points of a healing target."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_hp: int = Field(default=100, description="Maximum hit points.")
    current_hp: int = Field(default=50, description="Current hit points.")

    @field_validator("max_hp", mode="before")
    @classmethod
    def _check_max_hp(cls, value: Any) -> int:
        return ensure_int_at_least(value, "max_hp", 100, min_val=1)

    @field_validator("current_hp", mode="before")
    @classmethod
    def _check_current_hp(cls, value: Any) -> int:
        return ensure_int_at_least(value, "current_hp", 50, min_val=0)


class StatusEffect(BaseModel):
    """A damage-over-time effect such as poison or burning."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(default="Affliction", description="Display name of the effect.")
    base_damage: int = Field(default=5, description="Damage per tick per stack.")
    damage_type: DamageType = Field(
        default=DamageType.MAGICAL,
        description="How each tick is mitigated.",
    )
    duration: int = Field(default=3, description="Number of ticks.")
    stack_count: int = Field(default=1, description="Number of stacks.")
    level: int = Field(default=1, description="Level of the source (+5% per level).")

    @field_validator("base_damage", mode="before")
    @classmethod
    def _check_base_damage(cls, value: Any) -> int:
        return ensure_int_at_least(value, "base_damage", 5, min_val=0)

    @field_validator("damage_type", mode="before")
    @classmethod
    def _check_damage_type(cls, value: Any) -> DamageType:
        return ensure_enum(value, DamageType, "damage_type", DamageType.MAGICAL)

    @field_validator("duration", mode="before")
    @classmethod
    def _check_duration(cls, value: Any) -> int:
        return ensure_int_at_least(value, "duration", 3, min_val=0)

    @field_validator("stack_count", "level", mode="before")
    @classmethod
    def _check_positive(cls, value: Any) -> int:
        return ensure_int_at_least(value, "stack_count/level", 1, min_val=1)


class ExperienceProfile(BaseModel):
    """Level and experience reward of either side of a victory."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    level: int = Field(default=1, description="Combatant level.")
    exp_reward: int = Field(
        default=10,
        validation_alias=AliasChoices(
            "exp_reward", "expReward", "reward_base", "rewardBase", "baseExpReward"
        ),
        description="Experience granted per level of the defeated combatant.",
    )

    @field_validator("level", mode="before")
    @classmethod
    def _check_level(cls, value: Any) -> int:
        return ensure_int_at_least(value, "level", 1, min_val=1)

    @field_validator("exp_reward", mode="before")
    @classmethod
    def _check_exp_reward(cls, value: Any) -> int:
        return ensure_int_at_least(value, "exp_reward", 10, min_val=0)
