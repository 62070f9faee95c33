"""
Boss phase controller.

Tracks the phase of one boss encounter from the hit points reported by the
session controller, exposes the ability set and damage multiplier of the
active phase, computes the boss actions and rolls the rewards on defeat. It
never owns the boss hit points.
"""

import math
from collections.abc import Mapping

from catchery import log_debug, log_warning
from pydantic import BaseModel, Field

from idle_combat.core.event_system import (
    BossDefeatedEvent,
    BossPhaseChangedEvent,
    EventBus,
)
from idle_combat.core.utils import RandomSource, pick, resolve_rng, roll_chance
from idle_combat.entities.boss import BossDefinition, BossPhase


class BossAbilityEffect(BaseModel):
    """Fixed damage multiplier and flavor text of a boss ability."""

    multiplier: float = Field(default=1.0)
    description: str = Field(default="attacks")


# Effect used for any ability missing from the table below.
UNKNOWN_ABILITY_EFFECT = BossAbilityEffect(multiplier=1.0, description="attacks")

BOSS_ABILITY_EFFECTS: Mapping[str, BossAbilityEffect] = {
    # Forest Guardian
    "slash": BossAbilityEffect(multiplier=1.0, description="slashes with vine-covered claws"),
    "root_bind": BossAbilityEffect(multiplier=0.7, description="binds you with roots, reducing damage"),
    "fury_swipe": BossAbilityEffect(multiplier=1.3, description="swipes in fury"),
    "thorn_storm": BossAbilityEffect(multiplier=1.5, description="summons a storm of thorns"),
    # Mountain King
    "boulder_throw": BossAbilityEffect(multiplier=1.2, description="hurls a massive boulder"),
    "stone_shield": BossAbilityEffect(multiplier=0.5, description="blocks with stone shield"),
    "earthquake": BossAbilityEffect(multiplier=1.6, description="causes the ground to shake"),
    "rock_avalanche": BossAbilityEffect(multiplier=1.8, description="triggers a rock avalanche"),
    # Desert Pharaoh
    "sand_blast": BossAbilityEffect(multiplier=1.1, description="blasts with sand"),
    "mummy_summon": BossAbilityEffect(multiplier=0.8, description="summons mummy minions"),
    "solar_beam": BossAbilityEffect(multiplier=1.7, description="fires a concentrated solar beam"),
    "sand_storm": BossAbilityEffect(multiplier=1.4, description="creates a blinding sandstorm"),
    "death_curse": BossAbilityEffect(multiplier=2.0, description="casts a deadly curse"),
    "pharaoh_resurrection": BossAbilityEffect(multiplier=0.3, description="attempts resurrection magic"),
    # Ice Empress
    "ice_shard": BossAbilityEffect(multiplier=1.0, description="fires ice shards"),
    "frost_armor": BossAbilityEffect(multiplier=0.6, description="strengthens frost armor"),
    "blizzard": BossAbilityEffect(multiplier=1.5, description="summons a fierce blizzard"),
    "ice_prison": BossAbilityEffect(multiplier=1.2, description="traps you in ice"),
    "absolute_zero": BossAbilityEffect(multiplier=2.2, description="unleashes absolute zero"),
    "ice_resurrection": BossAbilityEffect(multiplier=0.4, description="attempts ice resurrection"),
    # Crystal Dragon
    "crystal_breath": BossAbilityEffect(multiplier=1.3, description="breathes crystal shards"),
    "wing_buffet": BossAbilityEffect(multiplier=1.0, description="attacks with powerful wings"),
    "prism_beam": BossAbilityEffect(multiplier=1.6, description="fires a prism beam"),
    "crystal_storm": BossAbilityEffect(multiplier=1.8, description="creates a crystal storm"),
    "flame_crystal_breath": BossAbilityEffect(multiplier=2.0, description="breathes flaming crystals"),
    "tail_smash": BossAbilityEffect(multiplier=1.7, description="smashes with crystal tail"),
    "dragon_nova": BossAbilityEffect(multiplier=2.8, description="unleashes dragon nova"),
    "crystal_rebirth": BossAbilityEffect(multiplier=0.5, description="attempts crystal rebirth"),
}


class PhaseChange(BaseModel):
    """A transition to a later phase."""

    previous_index: int
    index: int
    phase: BossPhase


class BossAction(BaseModel):
    """The action of a boss for one turn."""

    ability_id: str = Field(description="Identifier of the ability used.")
    damage: int = Field(description="Damage dealt before the target's defend stance.")
    description: str = Field(description="Flavor text of the ability.")


class BossRewards(BaseModel):
    """Rewards rolled on boss defeat."""

    experience: int = 0
    materials: dict[str, int] = Field(default_factory=dict)
    equipment: list[str] = Field(default_factory=list)


class BossDefeat(BaseModel):
    """Terminal result of a boss encounter."""

    boss_id: str
    boss_name: str
    rewards: BossRewards


class BossPhaseController:
    """
    Phase state machine of one boss encounter.

    Phases are only ever entered in increasing index order. The controller
    is released after the boss is defeated and ignores any further call.
    """

    def __init__(
        self,
        definition: BossDefinition,
        base_damage: int | None = None,
        event_bus: EventBus | None = None,
        session_id: str | None = None,
    ) -> None:
        """
        Initializes the controller in the first phase.

        Args:
            definition (BossDefinition):
                The boss catalog entry.
            base_damage (int | None):
                Level-scaled damage of the boss actions, the definition base
                damage when None.
            event_bus (EventBus | None):
                Bus receiving the phase change and defeat events.
            session_id (str | None):
                Session the events belong to.

        """
        self.definition: BossDefinition | None = definition
        self.base_damage = base_damage if base_damage is not None else definition.base_damage
        self.event_bus = event_bus
        self.session_id = session_id
        self.phase_index = 0
        first = definition.phases[0] if definition.phases else None
        self.abilities: list[str] = list(first.abilities) if first else []
        self.damage_multiplier: float = first.damage_multiplier if first else 1.0

    @property
    def active(self) -> bool:
        """Whether the encounter state is still held."""
        return self.definition is not None

    @property
    def current_phase(self) -> BossPhase | None:
        if self.definition is None or not self.definition.phases:
            return None
        return self.definition.phases[self.phase_index]

    def update_phase(self, hp: int, max_hp: int) -> PhaseChange | None:
        """
        Synchronizes the phase with the boss hit points.

        Phases are scanned from the last one downward, so a hit crossing
        several thresholds enters the deepest reached phase in one step.

        Args:
            hp (int):
                Current hit points of the boss.
            max_hp (int):
                Maximum hit points of the boss.

        Returns:
            PhaseChange | None:
                The transition, None when the phase did not change.

        """
        if self.definition is None:
            log_warning(
                "Phase update on a released boss encounter",
                {"hp": hp, "max_hp": max_hp},
            )
            return None
        ratio = (hp / max_hp) if max_hp > 0 else 0.0
        phases = self.definition.phases
        for index in range(len(phases) - 1, -1, -1):
            if index <= self.phase_index:
                break
            if ratio <= phases[index].hp_threshold:
                return self._enter_phase(index)
        return None

    def _enter_phase(self, index: int) -> PhaseChange:
        assert self.definition is not None
        phase = self.definition.phases[index]
        change = PhaseChange(previous_index=self.phase_index, index=index, phase=phase)
        self.phase_index = index
        self.abilities = list(phase.abilities)
        self.damage_multiplier = phase.damage_multiplier
        log_debug(
            f"{self.definition.name} entered phase {index + 1}: {phase.name}",
            {"boss_id": self.definition.id, "phase": index},
        )
        if self.event_bus is not None:
            self.event_bus.emit(
                BossPhaseChangedEvent(
                    session_id=self.session_id,
                    boss_id=self.definition.id,
                    phase_index=index,
                    phase_name=phase.name,
                    damage_multiplier=phase.damage_multiplier,
                )
            )
        return change

    def compute_boss_action(self, rng: RandomSource | None = None) -> BossAction | None:
        """
        Computes the boss action for one turn.

        Args:
            rng (RandomSource | None):
                The random source, the module default when None.

        Returns:
            BossAction | None:
                A random ability of the active phase, None once released.

        """
        if self.definition is None:
            log_warning("Boss action requested on a released boss encounter", {})
            return None
        rng = resolve_rng(rng)
        if not self.abilities:
            return BossAction(
                ability_id="attack",
                damage=self.base_damage,
                description=UNKNOWN_ABILITY_EFFECT.description,
            )
        ability_id = pick(rng, self.abilities)
        effect = BOSS_ABILITY_EFFECTS.get(ability_id)
        if effect is None:
            log_warning(
                f"Unknown boss ability '{ability_id}', using a plain attack",
                {"boss_id": self.definition.id, "ability_id": ability_id},
            )
            effect = UNKNOWN_ABILITY_EFFECT
        damage = math.floor(self.base_damage * self.damage_multiplier * effect.multiplier)
        return BossAction(
            ability_id=ability_id,
            damage=damage,
            description=effect.description,
        )

    def roll_rewards(self, rng: RandomSource | None = None) -> BossRewards:
        """
        Rolls every material and equipment reward against its own chance.

        Args:
            rng (RandomSource | None):
                The random source, the module default when None.

        Returns:
            BossRewards:
                The fixed experience and the rewards that dropped.

        """
        rng = resolve_rng(rng)
        if self.definition is None:
            return BossRewards()
        table = self.definition.rewards
        rewards = BossRewards(experience=table.experience)
        for material in table.materials:
            if roll_chance(rng, material.chance):
                rewards.materials[material.type] = (
                    rewards.materials.get(material.type, 0) + material.amount
                )
        for equipment in table.equipment:
            if roll_chance(rng, equipment.chance):
                rewards.equipment.append(equipment.type)
        return rewards

    def defeat(self, rng: RandomSource | None = None) -> BossDefeat | None:
        """
        Reports the boss defeat and releases the encounter state.

        Args:
            rng (RandomSource | None):
                The random source, the module default when None.

        Returns:
            BossDefeat | None:
                The defeat with its reward rolls, None if already released.

        """
        if self.definition is None:
            log_warning("Defeat reported twice for the same boss encounter", {})
            return None
        definition = self.definition
        result = BossDefeat(
            boss_id=definition.id,
            boss_name=definition.name,
            rewards=self.roll_rewards(rng),
        )
        if self.event_bus is not None:
            self.event_bus.emit(
                BossDefeatedEvent(
                    session_id=self.session_id,
                    boss_id=definition.id,
                    boss_name=definition.name,
                    experience=result.rewards.experience,
                    materials=dict(result.rewards.materials),
                    equipment=list(result.rewards.equipment),
                )
            )
        self.release()
        return result

    def release(self) -> None:
        """Forgets all encounter state."""
        self.definition = None
        self.abilities = []
        self.damage_multiplier = 1.0
        self.event_bus = None
