"""
Shared fixtures for the combat engine tests.
"""

import pytest

from idle_combat.core.config import CombatConfig
from idle_combat.core.constants import AbilityType, AIType, Difficulty
from idle_combat.core.event_system import EventBus
from idle_combat.entities.boss import BossDefinition
from idle_combat.entities.combatant import Ability, Combatant, OpponentDescriptor
from idle_combat.entities.player import InMemoryPlayerStore, PlayerState


class ScriptedRandom:
    """A random source replaying a fixed sequence, then a default value."""

    def __init__(self, values=(), default=0.5):
        self.values = list(values)
        self.default = default
        self.calls = 0

    def random(self):
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return self.default


@pytest.fixture
def scripted_rng():
    """Factory building scripted random sources."""
    return ScriptedRandom


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def recorded_events(event_bus):
    """Every event emitted on the bus, in order."""
    return event_bus.history


@pytest.fixture
def player_store():
    return InMemoryPlayerStore(
        PlayerState(name="Hero", hp=100, max_hp=100, attack=20, defense=5, magic_defense=5)
    )


@pytest.fixture
def fast_config():
    """A configuration without pacing delays."""
    return CombatConfig(
        player_action_delay=0.0,
        opponent_action_delay=0.0,
        use_decision_delay=False,
    )


@pytest.fixture
def goblin():
    return OpponentDescriptor(
        name="Goblin",
        hp=30,
        max_hp=30,
        attack=8,
        defense=3,
        magic_defense=3,
        level=1,
        ai_type=AIType.AGGRESSIVE,
        difficulty=Difficulty.NIGHTMARE,
        enemy_type="goblin",
        exp_reward=10,
    )


@pytest.fixture
def healer_actor():
    return Combatant(
        name="Acolyte",
        hp=100,
        max_hp=100,
        abilities=[
            Ability(name="Mend", type=AbilityType.HEAL, heal_power=20),
            Ability(name="Ward", type=AbilityType.DEFEND),
            Ability(name="Smite", type=AbilityType.ATTACK, damage=6),
        ],
    )


@pytest.fixture
def guardian_definition():
    return BossDefinition(
        id="forest_guardian",
        name="Forest Guardian",
        stage=1,
        level=5,
        base_hp=150,
        base_damage=18,
        defense=8,
        unlock_victories=7,
        phases=[
            {
                "name": "Guardian Mode",
                "hp_threshold": 1.0,
                "abilities": ["slash", "root_bind"],
                "damage_multiplier": 1.0,
            },
            {
                "name": "Enraged Mode",
                "hp_threshold": 0.4,
                "abilities": ["fury_swipe", "thorn_storm"],
                "damage_multiplier": 1.5,
            },
            {
                "name": "Last Stand",
                "hp_threshold": 0.2,
                "abilities": ["thorn_storm"],
                "damage_multiplier": 2.0,
            },
        ],
        rewards={
            "experience": 250,
            "materials": [
                {"type": "rare_wood", "amount": 3, "chance": 1.0},
                {"type": "guardian_essence", "amount": 1, "chance": 0.8},
            ],
            "equipment": [
                {"type": "Guardian's Sword", "chance": 0.3},
            ],
        },
    )
