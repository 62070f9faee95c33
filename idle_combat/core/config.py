"""
Configuration for the combat session controller.

The tunables live in a pydantic model so they can be overridden from a JSON
file, the same way game content is loaded by the content repository.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError


class LevelCurve(BaseModel):
    """Player stats as a function of the player level."""

    base_max_hp: int = Field(default=100, description="Max HP at level 1.")
    max_hp_per_level: int = Field(default=20, description="Max HP gained per level.")
    base_attack: int = Field(default=10, description="Attack at level 1.")
    attack_per_level: int = Field(default=3, description="Attack gained per level.")
    base_defense: int = Field(default=5, description="Defense at level 1.")
    defense_per_level: int = Field(default=2, description="Defense gained per level.")

    def stats_for_level(self, level: int) -> dict[str, int]:
        """
        Computes the base stats of a player at the given level.

        Args:
            level (int):
                The player level.

        Returns:
            dict[str, int]:
                The max_hp, attack and defense values for that level.

        """
        bonus = max(0, level - 1)
        return {
            "max_hp": self.base_max_hp + bonus * self.max_hp_per_level,
            "attack": self.base_attack + bonus * self.attack_per_level,
            "defense": self.base_defense + bonus * self.defense_per_level,
        }


class CombatConfig(BaseModel):
    """Tunables of the combat session controller."""

    player_action_delay: float = Field(
        default=0.5,
        ge=0.0,
        description="Seconds between a resolved action and the next turn.",
    )
    opponent_action_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Seconds between the opponent decision and its application.",
    )
    use_decision_delay: bool = Field(
        default=True,
        description="Use the decision engine thinking delay instead of the fixed opponent delay.",
    )
    defend_damage_factor: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Multiplier applied to a hit against a defending combatant.",
    )
    exp_per_level: int = Field(
        default=100,
        ge=1,
        description="Experience required per current level to level up.",
    )
    defeat_hp_fraction: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Fraction of max HP the player keeps after a defeat.",
    )
    default_heal_percentage: int = Field(
        default=25,
        ge=0,
        description="Percentage heal used by heal abilities without a heal power.",
    )
    level_curve: LevelCurve = Field(
        default_factory=LevelCurve,
        description="Player stats per level, applied on level up.",
    )


def load_config(path: Path, overrides: dict[str, Any] | None = None) -> CombatConfig:
    """
    Loads a combat configuration from a JSON file.

    Args:
        path (Path):
            The JSON file containing a single object.
        overrides (dict[str, Any] | None):
            Values taking precedence over the file content.

    Returns:
        CombatConfig:
            The validated configuration.

    Raises:
        ValueError: If the file is missing, malformed or invalid.

    """
    try:
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Expected object in {path}, got {type(data).__name__}")
        data.update(overrides or {})
        return CombatConfig(**data)
    except (json.JSONDecodeError, FileNotFoundError, ValidationError) as e:
        raise ValueError(f"File {path} raised an error: {e}") from e
