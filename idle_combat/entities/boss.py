"""
Boss definition models.

A boss definition is static catalog data: the ordered phase table, the base
stats scaled at encounter start, the reward table and the number of stage
victories needed before the boss can be challenged.
"""

from pydantic import BaseModel, Field, field_validator


class BossPhase(BaseModel):
    """A named hit point threshold exposing its own abilities."""

    name: str = Field(description="Display name of the phase.")
    hp_threshold: float = Field(
        ge=0.0,
        le=1.0,
        description="HP fraction at or below which the phase activates.",
    )
    abilities: list[str] = Field(
        default_factory=list,
        description="Ability identifiers usable during the phase.",
    )
    damage_multiplier: float = Field(
        default=1.0,
        description="Multiplier applied to every ability of the phase.",
    )


class MaterialReward(BaseModel):
    """A material rolled on boss defeat."""

    type: str = Field(description="Identifier of the material.")
    amount: int = Field(default=1, ge=0, description="Quantity awarded.")
    chance: float = Field(default=1.0, ge=0.0, le=1.0, description="Drop probability.")


class EquipmentReward(BaseModel):
    """An equipment piece rolled on boss defeat."""

    type: str = Field(description="Name of the equipment piece.")
    chance: float = Field(default=1.0, ge=0.0, le=1.0, description="Drop probability.")


class BossRewardTable(BaseModel):
    """Everything a boss can award on defeat."""

    experience: int = Field(default=0, ge=0, description="Fixed experience reward.")
    materials: list[MaterialReward] = Field(default_factory=list)
    equipment: list[EquipmentReward] = Field(default_factory=list)


class BossDefinition(BaseModel):
    """Static description of a multi-phase boss."""

    id: str = Field(description="Unique boss identifier.")
    name: str = Field(description="Display name of the boss.")
    description: str = Field(default="", description="Flavor text.")
    stage: int = Field(default=1, description="Stage guarded by the boss.")
    level: int = Field(default=1, ge=1, description="Boss level.")
    base_hp: int = Field(ge=1, description="Hit points before level scaling.")
    base_damage: int = Field(ge=0, description="Action damage before level scaling.")
    defense: int = Field(default=0, ge=0, description="Physical defense.")
    phases: list[BossPhase] = Field(
        default_factory=list,
        description="Phases ordered by decreasing HP threshold.",
    )
    rewards: BossRewardTable = Field(default_factory=BossRewardTable)
    unlock_victories: int = Field(
        default=0,
        ge=0,
        description="Stage victories required before the boss is unlocked.",
    )

    @field_validator("phases")
    @classmethod
    def _sort_phases(cls, phases: list[BossPhase]) -> list[BossPhase]:
        # Phase indices must follow decreasing thresholds.
        return sorted(phases, key=lambda phase: phase.hp_threshold, reverse=True)
