"""
Combatant models.

A combatant is anything taking part in a combat session: the player snapshot
built from effective stats, a plain enemy or a boss. Opponents are described
by an ``OpponentDescriptor``, which adds rewards and the optional boss phase
table on top of the combat stats.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from idle_combat.core.constants import (
    CRITICAL_HIT_CHANCE,
    CRITICAL_HIT_MULTIPLIER,
    AbilityType,
    AIType,
    DamageType,
    Difficulty,
    Element,
)
from idle_combat.core.validation import (
    ensure_enum,
    ensure_int_at_least,
    ensure_number_in_range,
)
from idle_combat.entities.boss import BossDefinition
from idle_combat.entities.profiles import (
    AttackProfile,
    DefenseProfile,
    HealProfile,
    StatusEffect,
)


class Ability(BaseModel):
    """A special ability available to a non-player combatant."""

    name: str = Field(description="Display name of the ability.")
    type: AbilityType = Field(
        default=AbilityType.ATTACK,
        description="What the ability does when used.",
    )
    damage: int = Field(
        default=0,
        description="Attack bonus added to the user's attack for attack-type abilities.",
    )
    heal_power: int | None = Field(
        default=None,
        description="Heal power for heal-type abilities, None for the configured default.",
    )
    is_percentage: bool = Field(
        default=True,
        description="Whether heal_power is a percentage of max HP.",
    )
    element: Element | None = Field(
        default=None,
        description="Element of the ability, None to use the user's element.",
    )
    damage_type: DamageType = Field(
        default=DamageType.MAGICAL,
        description="How the ability damage is mitigated.",
    )
    status_effect: StatusEffect | None = Field(
        default=None,
        description="Damage over time applied to the target on hit.",
    )

    @field_validator("type", mode="before")
    @classmethod
    def _check_type(cls, value: Any) -> AbilityType:
        return ensure_enum(value, AbilityType, "ability type", AbilityType.ATTACK)

    @field_validator("damage", mode="before")
    @classmethod
    def _check_damage(cls, value: Any) -> int:
        return ensure_int_at_least(value, "ability damage", 0, min_val=0)

    @field_validator("element", mode="before")
    @classmethod
    def _check_element(cls, value: Any) -> Element | None:
        if value is None:
            return None
        return ensure_enum(value, Element, "ability element", Element.PHYSICAL)

    @field_validator("damage_type", mode="before")
    @classmethod
    def _check_damage_type(cls, value: Any) -> DamageType:
        return ensure_enum(value, DamageType, "ability damage_type", DamageType.MAGICAL)

    @property
    def is_defensive(self) -> bool:
        """Whether this is a defend or buff ability."""
        return self.type in (AbilityType.DEFEND, AbilityType.BUFF)


class DropEntry(BaseModel):
    """One row of a material drop table."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    material_id: str = Field(description="Identifier of the dropped material.")
    base_chance: float = Field(default=0.1, description="Drop probability before luck.")
    min_quantity: int = Field(default=1, description="Minimum quantity dropped.")
    max_quantity: int = Field(default=1, description="Maximum quantity dropped.")
    rarity: str = Field(default="common", description="Rarity tag of the material.")

    @field_validator("base_chance", mode="before")
    @classmethod
    def _check_chance(cls, value: Any) -> float:
        return ensure_number_in_range(value, "base_chance", 0.1, min_val=0.0, max_val=1.0)

    @field_validator("min_quantity", "max_quantity", mode="before")
    @classmethod
    def _check_quantity(cls, value: Any) -> int:
        return ensure_int_at_least(value, "quantity", 1, min_val=0)

    @model_validator(mode="after")
    def _order_quantities(self) -> DropEntry:
        if self.max_quantity < self.min_quantity:
            self.min_quantity, self.max_quantity = self.max_quantity, self.min_quantity
        return self


class Combatant(BaseModel):
    """Any entity with hit points taking part in a combat session."""

    name: str = Field(description="Display name of the combatant.")
    hp: int = Field(default=100, description="Current hit points.")
    max_hp: int = Field(default=100, description="Maximum hit points.")
    attack: int = Field(default=10, description="Attack power.")
    defense: int = Field(default=5, description="Physical defense.")
    magic_defense: int = Field(default=5, description="Magical defense.")
    element: Element = Field(default=Element.PHYSICAL, description="Elemental affinity.")
    damage_type: DamageType = Field(
        default=DamageType.PHYSICAL,
        description="Damage type of the plain attack.",
    )
    crit_chance: float = Field(
        default=CRITICAL_HIT_CHANCE,
        description="Probability of a critical hit.",
    )
    crit_multiplier: float = Field(
        default=CRITICAL_HIT_MULTIPLIER,
        description="Damage multiplier of a critical hit.",
    )
    accuracy: float = Field(default=0.9, description="Base hit probability.")
    evasion: float = Field(default=0.1, description="Probability offset to dodge.")
    level: int = Field(default=1, description="Combatant level.")
    abilities: list[Ability] = Field(
        default_factory=list,
        description="Special abilities, empty when the combatant has none.",
    )
    ai_type: AIType = Field(
        default=AIType.BALANCED,
        description="Behavior profile driving the decision engine.",
    )
    difficulty: Difficulty = Field(
        default=Difficulty.NORMAL,
        description="Difficulty modulating the decision engine.",
    )

    @model_validator(mode="before")
    @classmethod
    def _default_hp(cls, data: Any) -> Any:
        # Missing hp means a fresh combatant at full health.
        if isinstance(data, dict) and data.get("hp") is None:
            data = {**data, "hp": data.get("max_hp", 100)}
        return data

    @field_validator("max_hp", mode="before")
    @classmethod
    def _check_max_hp(cls, value: Any) -> int:
        return ensure_int_at_least(value, "max_hp", 100, min_val=1)

    @field_validator("element", mode="before")
    @classmethod
    def _check_element(cls, value: Any) -> Element:
        return ensure_enum(value, Element, "element", Element.PHYSICAL)

    @field_validator("damage_type", mode="before")
    @classmethod
    def _check_damage_type(cls, value: Any) -> DamageType:
        return ensure_enum(value, DamageType, "damage_type", DamageType.PHYSICAL)

    @field_validator("ai_type", mode="before")
    @classmethod
    def _check_ai_type(cls, value: Any) -> AIType:
        return ensure_enum(value, AIType, "ai_type", AIType.BALANCED)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _check_difficulty(cls, value: Any) -> Difficulty:
        return ensure_enum(value, Difficulty, "difficulty", Difficulty.NORMAL)

    @field_validator("abilities", mode="before")
    @classmethod
    def _check_abilities(cls, value: Any) -> Any:
        return value if value is not None else []

    def model_post_init(self, _: Any) -> None:
        """Clamps hit points into [0, max_hp]."""
        self.hp = max(0, min(self.hp, self.max_hp))

    # ============================================================================
    # HIT POINTS
    # ============================================================================

    def hp_ratio(self) -> float:
        """Returns the current HP as a fraction of max HP."""
        return (self.hp / self.max_hp) if self.max_hp > 0 else 0.0

    def is_alive(self) -> bool:
        """Returns True while the combatant has hit points left."""
        return self.hp > 0

    def apply_damage(self, amount: int) -> int:
        """
        Removes hit points, never going below zero.

        Args:
            amount (int):
                The damage to apply.

        Returns:
            int:
                The hit points actually removed.

        """
        taken = max(0, min(amount, self.hp))
        self.hp -= taken
        return taken

    def apply_healing(self, amount: int) -> int:
        """
        Restores hit points, never going above max HP.

        Args:
            amount (int):
                The healing to apply.

        Returns:
            int:
                The hit points actually restored.

        """
        restored = max(0, min(amount, self.max_hp - self.hp))
        self.hp += restored
        return restored

    # ============================================================================
    # ABILITIES
    # ============================================================================

    @property
    def can_heal(self) -> bool:
        """Whether the combatant has at least one heal ability."""
        return any(ability.type == AbilityType.HEAL for ability in self.abilities)

    @property
    def can_special(self) -> bool:
        """Whether the combatant has any ability at all."""
        return len(self.abilities) > 0

    def get_ability(self, index: int | None) -> Ability | None:
        """Returns the ability at the given index, or None when out of range."""
        if index is None or not 0 <= index < len(self.abilities):
            return None
        return self.abilities[index]

    def first_ability_of_type(self, ability_type: AbilityType) -> Ability | None:
        """Returns the first ability of the given type, if any."""
        for ability in self.abilities:
            if ability.type == ability_type:
                return ability
        return None

    # ============================================================================
    # MATH PROFILES
    # ============================================================================

    def attack_profile(self, ability: Ability | None = None) -> AttackProfile:
        """
        Projects the combatant onto the offensive inputs of the math library.

        Args:
            ability (Ability | None):
                An attack ability adding its damage to the attack, and
                overriding element and damage type.

        Returns:
            AttackProfile:
                The attack profile.

        """
        if ability is None:
            return AttackProfile(
                attack=self.attack,
                damage_type=self.damage_type,
                element=self.element,
                crit_chance=self.crit_chance,
                crit_multiplier=self.crit_multiplier,
                level=self.level,
                accuracy=self.accuracy,
            )
        return AttackProfile(
            attack=self.attack + ability.damage,
            damage_type=ability.damage_type,
            element=ability.element or self.element,
            crit_chance=self.crit_chance,
            crit_multiplier=self.crit_multiplier,
            level=self.level,
            accuracy=self.accuracy,
        )

    def defense_profile(self) -> DefenseProfile:
        """Projects the combatant onto the defensive inputs of the math library."""
        return DefenseProfile(
            defense=self.defense,
            magic_defense=self.magic_defense,
            element=self.element,
            level=self.level,
            evasion=self.evasion,
        )

    def heal_profile(self, ability: Ability | None, default_percentage: int) -> HealProfile:
        """
        Projects a heal ability onto the healing inputs of the math library.

        Args:
            ability (Ability | None):
                The heal ability, None for a generic heal.
            default_percentage (int):
                Percentage heal used when the ability has no heal power.

        Returns:
            HealProfile:
                The heal profile.

        """
        if ability is None or ability.heal_power is None:
            return HealProfile(
                heal_power=default_percentage,
                level=self.level,
                is_percentage=True,
            )
        return HealProfile(
            heal_power=ability.heal_power,
            level=self.level,
            is_percentage=ability.is_percentage,
        )


class OpponentDescriptor(Combatant):
    """An enemy or boss as supplied by the enemy provider at session start."""

    enemy_type: str = Field(default="", description="Catalog identifier of the enemy.")
    stage: int | None = Field(default=None, description="Stage the enemy belongs to.")
    exp_reward: int = Field(
        default=10,
        description="Experience reward base, multiplied by the level.",
    )
    drop_table: list[DropEntry] = Field(
        default_factory=list,
        description="Material drop table rolled on victory.",
    )
    boss: BossDefinition | None = Field(
        default=None,
        description="Phase table and rewards, set only for bosses.",
    )
    boss_damage: int = Field(
        default=0,
        description="Level-scaled base damage of the boss actions.",
    )

    @field_validator("exp_reward", mode="before")
    @classmethod
    def _check_exp_reward(cls, value: Any) -> int:
        return ensure_int_at_least(value, "exp_reward", 10, min_val=0)

    @property
    def is_boss(self) -> bool:
        """Whether the descriptor carries a phase table."""
        return self.boss is not None and len(self.boss.phases) > 0
