"""
Player state and the collaborators the combat engine reads it from.

The player is persisted outside the engine. The session controller reads the
base stats through a ``PlayerStore`` and the equipment and prestige bonuses
through a ``BonusProvider`` every time it needs effective stats, and writes
hit points, experience and level back through the store.
"""

import math
from typing import Any, Protocol

from pydantic import BaseModel, Field

from idle_combat.core.constants import (
    CRITICAL_HIT_CHANCE,
    CRITICAL_HIT_MULTIPLIER,
    DamageType,
    Element,
)
from idle_combat.entities.combatant import Combatant


class PlayerState(BaseModel):
    """Persisted base stats of the player."""

    name: str = Field(default="Hero", description="Display name of the player.")
    hp: int = Field(default=100, ge=0, description="Current hit points.")
    max_hp: int = Field(default=100, ge=1, description="Base maximum hit points.")
    attack: int = Field(default=10, ge=0, description="Base attack.")
    defense: int = Field(default=5, ge=0, description="Base defense.")
    magic_defense: int = Field(default=5, ge=0, description="Base magical defense.")
    level: int = Field(default=1, ge=1, description="Player level.")
    exp: int = Field(default=0, ge=0, description="Experience towards the next level.")
    crit_chance: float = Field(default=CRITICAL_HIT_CHANCE, ge=0.0, le=1.0)
    crit_multiplier: float = Field(default=CRITICAL_HIT_MULTIPLIER, ge=1.0)
    accuracy: float = Field(default=0.9, ge=0.0, le=1.0)
    evasion: float = Field(default=0.1, ge=0.0, le=1.0)
    element: Element = Field(default=Element.PHYSICAL)
    damage_type: DamageType = Field(default=DamageType.PHYSICAL)
    luck: int = Field(default=0, ge=0, description="Luck points, +1% drop chance each.")


class EquipmentBonuses(BaseModel):
    """Additive stat bonuses granted by the equipped items."""

    attack: int = 0
    defense: int = 0
    magic_defense: int = 0
    max_hp: int = 0
    crit_chance: float = 0.0
    crit_multiplier: float = 0.0
    accuracy: float = 0.0
    evasion: float = 0.0
    luck: int = 0


class PrestigeUpgrades(BaseModel):
    """Purchased prestige upgrade levels."""

    combat_damage: int = Field(default=0, ge=0, description="+10% attack per level.")
    health_boost: int = Field(default=0, ge=0, description="+15% max HP per level.")
    defense_boost: int = Field(default=0, ge=0, description="+10% defense per level.")
    critical_chance: int = Field(default=0, ge=0, description="+5% crit chance per level.")
    experience_gain: int = Field(default=0, ge=0, description="+25% experience per level.")
    luck_bonus: int = Field(default=0, ge=0, description="+1 luck point per level.")

    @property
    def damage_multiplier(self) -> float:
        return 1.0 + self.combat_damage * 0.1

    @property
    def health_multiplier(self) -> float:
        return 1.0 + self.health_boost * 0.15

    @property
    def defense_multiplier(self) -> float:
        return 1.0 + self.defense_boost * 0.1

    @property
    def critical_chance_bonus(self) -> float:
        return self.critical_chance * 0.05

    @property
    def experience_multiplier(self) -> float:
        return 1.0 + self.experience_gain * 0.25


class PlayerStore(Protocol):
    """Persistence layer owning the player state."""

    def get_player(self) -> PlayerState: ...

    def update_player(self, **changes: Any) -> PlayerState: ...

    def record_boss_defeated(self, boss_id: str) -> None: ...


class BonusProvider(Protocol):
    """Equipment and prestige bookkeeping."""

    def get_equipment_bonuses(self) -> EquipmentBonuses: ...

    def get_prestige_upgrades(self) -> PrestigeUpgrades: ...


class InMemoryPlayerStore:
    """A player store keeping the state in memory."""

    def __init__(self, player: PlayerState | None = None) -> None:
        self.player: PlayerState = player or PlayerState()
        self.defeated_bosses: set[str] = set()

    def get_player(self) -> PlayerState:
        """Returns a copy of the stored player state."""
        return self.player.model_copy()

    def update_player(self, **changes: Any) -> PlayerState:
        """
        Updates the stored player state.

        Args:
            **changes: Field values to overwrite.

        Returns:
            PlayerState: A copy of the updated state.

        """
        self.player = self.player.model_copy(update=changes)
        return self.get_player()

    def record_boss_defeated(self, boss_id: str) -> None:
        """Remembers a defeated boss for unlock gating."""
        self.defeated_bosses.add(boss_id)


class StaticBonusProvider:
    """A bonus provider returning fixed bonuses."""

    def __init__(
        self,
        equipment: EquipmentBonuses | None = None,
        prestige: PrestigeUpgrades | None = None,
    ) -> None:
        self.equipment = equipment or EquipmentBonuses()
        self.prestige = prestige or PrestigeUpgrades()

    def get_equipment_bonuses(self) -> EquipmentBonuses:
        return self.equipment

    def get_prestige_upgrades(self) -> PrestigeUpgrades:
        return self.prestige


def compute_effective_stats(
    player: PlayerState,
    equipment: EquipmentBonuses | None = None,
    prestige: PrestigeUpgrades | None = None,
) -> Combatant:
    """
    Builds the combat snapshot of the player.

    Equipment bonuses are added to the base stats first, then the prestige
    multipliers are applied and the result floored. Critical chance bonuses
    are additive.

    Args:
        player (PlayerState):
            The persisted base stats.
        equipment (EquipmentBonuses | None):
            Additive bonuses of the equipped items.
        prestige (PrestigeUpgrades | None):
            Purchased prestige upgrades.

    Returns:
        Combatant:
            The player with effective stats.

    """
    equipment = equipment or EquipmentBonuses()
    prestige = prestige or PrestigeUpgrades()

    attack = math.floor((player.attack + equipment.attack) * prestige.damage_multiplier)
    defense = math.floor(
        (player.defense + equipment.defense) * prestige.defense_multiplier
    )
    magic_defense = math.floor(
        (player.magic_defense + equipment.magic_defense) * prestige.defense_multiplier
    )
    max_hp = math.floor((player.max_hp + equipment.max_hp) * prestige.health_multiplier)
    crit_chance = min(
        1.0,
        player.crit_chance + equipment.crit_chance + prestige.critical_chance_bonus,
    )

    return Combatant(
        name=player.name,
        hp=min(player.hp, max(1, max_hp)),
        max_hp=max(1, max_hp),
        attack=max(0, attack),
        defense=max(0, defense),
        magic_defense=max(0, magic_defense),
        element=player.element,
        damage_type=player.damage_type,
        crit_chance=max(0.0, crit_chance),
        crit_multiplier=max(1.0, player.crit_multiplier + equipment.crit_multiplier),
        accuracy=min(1.0, max(0.0, player.accuracy + equipment.accuracy)),
        evasion=min(1.0, max(0.0, player.evasion + equipment.evasion)),
        level=player.level,
    )


def compute_effective_luck(
    player: PlayerState,
    equipment: EquipmentBonuses | None = None,
    prestige: PrestigeUpgrades | None = None,
) -> int:
    """Returns the luck points used for material drop rolls."""
    equipment = equipment or EquipmentBonuses()
    prestige = prestige or PrestigeUpgrades()
    return max(0, player.luck + equipment.luck + prestige.luck_bonus)
