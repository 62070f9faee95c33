import json
import math
from collections.abc import Callable
from pathlib import Path
from typing import Any

from catchery import log_debug, log_warning
from pydantic import BaseModel, Field

from idle_combat.core.constants import AIType, DamageType, Difficulty, Element
from idle_combat.entities.boss import BossDefinition
from idle_combat.entities.combatant import Ability, DropEntry, OpponentDescriptor

# Directory holding the catalogs shipped with the package.
DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class BaseStats(BaseModel):
    """Level 1 stats of an enemy, or their per-level growth."""

    hp: float = 0
    attack: float = 0
    defense: float = 0


class EnemyDefinition(BaseModel):
    """Catalog entry of a plain enemy."""

    id: str = Field(description="Unique enemy identifier.")
    name: str = Field(description="Display name.")
    description: str = Field(default="", description="Flavor text.")
    stage: int = Field(default=1, description="Stage the enemy appears in.")
    ai_type: AIType = Field(default=AIType.BALANCED)
    difficulty: Difficulty = Field(default=Difficulty.NORMAL)
    element: Element = Field(default=Element.PHYSICAL)
    damage_type: DamageType = Field(default=DamageType.PHYSICAL)
    evasion: float = Field(default=0.1)
    accuracy: float = Field(default=0.9)
    base_stats: BaseStats = Field(description="Stats at level 1.")
    level_scaling: BaseStats = Field(
        default_factory=BaseStats,
        description="Stats gained per level above 1.",
    )
    exp_reward: int = Field(default=10, description="Experience reward base at level 1.")
    abilities: list[Ability] = Field(default_factory=list)
    drops: list[DropEntry] = Field(default_factory=list)


class ContentRepository:
    """
    Registry of the enemy and boss catalogs.

    Every repository owns its own catalogs, so tests can load alternative
    data directories side by side.
    """

    enemies: dict[str, EnemyDefinition]
    bosses: dict[int, BossDefinition]

    def __init__(self, data_dir: Path | None = None) -> None:
        """
        Initialize the ContentRepository.

        Args:
            data_dir (Path | None):
                The directory containing the catalogs, the packaged data
                when None.

        """
        self.data_dir = data_dir or DEFAULT_DATA_DIR
        self.reload(self.data_dir)

    def reload(self, root: Path) -> None:
        """
        (Re)load all JSON catalogs from disk.

        Args:
            root (Path):
                The directory containing data files to load.

        """
        self.enemies = _load_json_file(
            root / "enemies.json",
            self._load_enemies,
            "enemies",
        )
        self.bosses = _load_json_file(
            root / "bosses.json",
            self._load_bosses,
            "bosses",
        )

    # ============================================================================
    # ENEMIES
    # ============================================================================

    def get_enemy(self, enemy_type: str) -> EnemyDefinition | None:
        """Get an enemy definition by identifier, or None if not found."""
        entry = self.enemies.get(enemy_type)
        if entry is None:
            log_warning(
                f"Enemy type '{enemy_type}' not found in ContentRepository.",
                {"enemy_type": enemy_type},
            )
        return entry

    def get_enemies_for_stage(self, stage: int) -> list[str]:
        """Returns the identifiers of the enemies appearing in a stage."""
        return [key for key, enemy in self.enemies.items() if enemy.stage == stage]

    def create_enemy(self, enemy_type: str, level: int = 1) -> OpponentDescriptor | None:
        """
        Creates a level-scaled enemy.

        Each stat grows linearly with the level and is floored, the
        experience reward grows by 20% per level above 1.

        Args:
            enemy_type (str):
                The enemy identifier.
            level (int):
                The enemy level.

        Returns:
            OpponentDescriptor | None:
                The enemy, None if the identifier is unknown.

        """
        definition = self.get_enemy(enemy_type)
        if definition is None:
            return None
        level = max(1, level)
        bonus = level - 1
        base, scaling = definition.base_stats, definition.level_scaling
        max_hp = max(1, math.floor(base.hp + scaling.hp * bonus))
        return OpponentDescriptor(
            name=definition.name,
            hp=max_hp,
            max_hp=max_hp,
            attack=math.floor(base.attack + scaling.attack * bonus),
            defense=math.floor(base.defense + scaling.defense * bonus),
            magic_defense=math.floor(base.defense + scaling.defense * bonus),
            element=definition.element,
            damage_type=definition.damage_type,
            accuracy=definition.accuracy,
            evasion=definition.evasion,
            level=level,
            abilities=[ability.model_copy(deep=True) for ability in definition.abilities],
            ai_type=definition.ai_type,
            difficulty=definition.difficulty,
            enemy_type=definition.id,
            stage=definition.stage,
            exp_reward=math.floor(definition.exp_reward * (1 + bonus * 0.2)),
            drop_table=[drop.model_copy() for drop in definition.drops],
        )

    @staticmethod
    def create_default_enemy() -> OpponentDescriptor:
        """Creates the fallback enemy used when no catalog entry is available."""
        return OpponentDescriptor(
            name="Forest Goblin",
            hp=30,
            max_hp=30,
            attack=8,
            defense=3,
            magic_defense=3,
            level=1,
            ai_type=AIType.AGGRESSIVE,
            enemy_type="forest_goblin",
            stage=1,
        )

    # ============================================================================
    # BOSSES
    # ============================================================================

    def get_boss(self, stage: int) -> BossDefinition | None:
        """Get the boss guarding a stage, or None if there is none."""
        return self.bosses.get(stage)

    def is_boss_unlocked(self, stage: int, stage_victories: int) -> bool:
        """Whether enough stage victories were collected to challenge the boss."""
        boss = self.bosses.get(stage)
        if boss is None:
            return False
        return stage_victories >= boss.unlock_victories

    def create_boss(self, stage: int, player_level: int = 1) -> OpponentDescriptor | None:
        """
        Creates a boss scaled to the player level.

        Hit points and damage grow by 10% per player level above 1.

        Args:
            stage (int):
                The stage guarded by the boss.
            player_level (int):
                The level of the challenging player.

        Returns:
            OpponentDescriptor | None:
                The boss, None if the stage has no boss.

        """
        definition = self.get_boss(stage)
        if definition is None:
            log_warning(
                f"Boss not found for stage {stage}",
                {"stage": stage, "player_level": player_level},
            )
            return None
        multiplier = 1 + (max(1, player_level) - 1) * 0.1
        max_hp = max(1, math.floor(definition.base_hp * multiplier))
        damage = math.floor(definition.base_damage * multiplier)
        return OpponentDescriptor(
            name=definition.name,
            hp=max_hp,
            max_hp=max_hp,
            attack=damage,
            defense=definition.defense,
            magic_defense=definition.defense,
            level=definition.level,
            enemy_type=definition.id,
            stage=definition.stage,
            exp_reward=definition.rewards.experience,
            boss=definition.model_copy(deep=True),
            boss_damage=damage,
        )

    # ============================================================================
    # LOADERS
    # ============================================================================

    @staticmethod
    def _load_enemies(data: list[dict]) -> dict[str, EnemyDefinition]:
        """
        Load enemies from JSON data.

        Args:
            data (list[dict]): List of enemy data dictionaries.

        Returns:
            dict[str, EnemyDefinition]: Dictionary mapping identifiers to enemies.

        Raises:
            ValueError: If duplicate identifiers are found.

        """
        enemies: dict[str, EnemyDefinition] = {}
        for enemy_data in data:
            enemy = EnemyDefinition(**enemy_data)
            if enemy.id in enemies:
                raise ValueError(f"Duplicate enemy id: {enemy.id}")
            enemies[enemy.id] = enemy
        return enemies

    @staticmethod
    def _load_bosses(data: list[dict]) -> dict[int, BossDefinition]:
        """
        Load bosses from JSON data.

        Args:
            data (list[dict]): List of boss data dictionaries.

        Returns:
            dict[int, BossDefinition]: Dictionary mapping stages to bosses.

        Raises:
            ValueError: If two bosses guard the same stage, or a boss has no phase.

        """
        bosses: dict[int, BossDefinition] = {}
        for boss_data in data:
            boss = BossDefinition(**boss_data)
            if boss.stage in bosses:
                raise ValueError(f"Duplicate boss for stage {boss.stage}: {boss.id}")
            if not boss.phases:
                raise ValueError(f"Boss {boss.id} has no phases")
            bosses[boss.stage] = boss
        return bosses


def _load_json_file(
    filepath: Path,
    loader_func: Callable[[list[dict]], dict[Any, Any]],
    description: str,
) -> dict[Any, Any]:
    """Helper to load and validate JSON files"""
    try:
        log_debug(
            f"Loading {description} using {loader_func.__name__}",
            {"filepath": str(filepath)},
        )
        # Validate file path
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")
        if not filepath.is_file():
            raise ValueError(f"Not a file: {filepath}")
        # Load and validate JSON
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
        if not data:
            raise ValueError(f"Empty data list in {filepath}")
        if not isinstance(data, list):
            raise ValueError(f"Expected list in {filepath}, got {type(data).__name__}")
        return loader_func(data)
    except (json.JSONDecodeError, FileNotFoundError, ValueError) as e:
        raise ValueError(f"File {filepath} raised an error: {e}") from e
