"""
Decision engine driving non-player combatants.

A decision is taken in four steps: the situation is assessed from both
combatants, the rules of the actor behavior profile are evaluated in order
(first match wins), the difficulty may inject a mistake or veto a special
ability, and finally a thinking delay is attached for the caller to pace the
turn with.
"""

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from idle_combat.core.constants import (
    CRITICAL_HP_THRESHOLD,
    LOW_HP_THRESHOLD,
    AbilityType,
    ActionType,
    AIType,
    Difficulty,
)
from idle_combat.core.utils import RandomSource, pick, resolve_rng, roll_chance, roll_int
from idle_combat.entities.combatant import Combatant

# =============================================================================
# Support Models
# =============================================================================


class CombatContext(BaseModel):
    """What the session controller knows about the ongoing encounter."""

    turn_count: int = Field(default=0, description="Turns taken so far.")
    opponent_last_action: ActionType | None = Field(
        default=None,
        description="Last action of the combatant facing the actor.",
    )


class Situation(BaseModel):
    """Snapshot of the encounter from the point of view of the actor."""

    actor_hp_ratio: float
    opponent_hp_ratio: float
    actor_is_low: bool
    opponent_is_low: bool
    actor_is_critical: bool
    opponent_is_critical: bool
    can_heal: bool
    can_special: bool
    turn_count: int = 0
    opponent_last_action: ActionType | None = None


class ActionDecision(BaseModel):
    """The single action a combatant commits to for one turn."""

    action: ActionType = Field(description="The chosen action.")
    priority: float = Field(description="Weight of the decision, for debugging only.")
    reasoning: str = Field(description="Human-readable justification.")
    ability_index: int | None = Field(
        default=None,
        description="Index of the ability to use for a special action.",
    )
    delay: float = Field(default=0.0, description="Thinking time in seconds.")
    is_mistake: bool = Field(default=False, description="Whether a mistake replaced the decision.")


class DifficultyModifiers(BaseModel):
    """How a difficulty level modulates the decisions."""

    reaction_time: float = Field(description="Base thinking time in seconds.")
    mistake_chance: float = Field(description="Probability of a suboptimal decision.")
    ability_usage: float = Field(description="Probability of keeping a special ability.")


DIFFICULTY_MODIFIERS: Mapping[Difficulty, DifficultyModifiers] = {
    Difficulty.EASY: DifficultyModifiers(
        reaction_time=2.0, mistake_chance=0.3, ability_usage=0.1
    ),
    Difficulty.NORMAL: DifficultyModifiers(
        reaction_time=1.5, mistake_chance=0.15, ability_usage=0.25
    ),
    Difficulty.HARD: DifficultyModifiers(
        reaction_time=1.0, mistake_chance=0.05, ability_usage=0.4
    ),
    Difficulty.NIGHTMARE: DifficultyModifiers(
        reaction_time=0.5, mistake_chance=0.0, ability_usage=0.6
    ),
}

# Upper bound (exclusive) of the random jitter added to the reaction time.
DELAY_JITTER = 0.5

AI_DESCRIPTIONS: Mapping[AIType, str] = {
    AIType.AGGRESSIVE: "Focuses on dealing maximum damage",
    AIType.DEFENSIVE: "Prioritizes survival and healing",
    AIType.BALANCED: "Uses a mix of offensive and defensive tactics",
    AIType.SMART: "Makes optimal decisions based on situation",
    AIType.BERSERKER: "Becomes more aggressive as HP decreases",
    AIType.HEALER: "Focuses on healing and support abilities",
}


def assess_situation(
    actor: Combatant,
    opponent: Combatant,
    context: CombatContext | None = None,
) -> Situation:
    """
    Assesses the encounter from the point of view of the actor.

    Args:
        actor (Combatant):
            The combatant taking the decision.
        opponent (Combatant):
            The combatant it is facing.
        context (CombatContext | None):
            Turn count and last action of the opponent.

    Returns:
        Situation:
            The situation snapshot.

    """
    context = context or CombatContext()
    actor_ratio = actor.hp_ratio()
    opponent_ratio = opponent.hp_ratio()
    return Situation(
        actor_hp_ratio=actor_ratio,
        opponent_hp_ratio=opponent_ratio,
        actor_is_low=actor_ratio < LOW_HP_THRESHOLD,
        opponent_is_low=opponent_ratio < LOW_HP_THRESHOLD,
        actor_is_critical=actor_ratio < CRITICAL_HP_THRESHOLD,
        opponent_is_critical=opponent_ratio < CRITICAL_HP_THRESHOLD,
        can_heal=actor.can_heal,
        can_special=actor.can_special,
        turn_count=context.turn_count,
        opponent_last_action=context.opponent_last_action,
    )


# =============================================================================
# Ability Selection
# =============================================================================


def get_best_offensive_ability(actor: Combatant) -> int:
    """Returns the index of the attack ability with the highest damage, 0 if none."""
    best_index = 0
    best_damage = 0
    for index, ability in enumerate(actor.abilities):
        if ability.type == AbilityType.ATTACK and ability.damage > best_damage:
            best_damage = ability.damage
            best_index = index
    return best_index


def get_best_defensive_ability(actor: Combatant) -> int | None:
    """Returns the index of the first defend or buff ability, None if none."""
    for index, ability in enumerate(actor.abilities):
        if ability.is_defensive:
            return index
    return None


def get_best_ability(situation: Situation, actor: Combatant, rng: RandomSource) -> int:
    """
    Picks an ability index for a strategic special action.

    Args:
        situation (Situation):
            The current situation.
        actor (Combatant):
            The combatant using the ability.
        rng (RandomSource):
            The random source.

    Returns:
        int:
            Offensive when the opponent is low, defensive when the actor is
            low, random otherwise.

    """
    if situation.opponent_is_low:
        return get_best_offensive_ability(actor)
    if situation.actor_is_low:
        defensive = get_best_defensive_ability(actor)
        return defensive if defensive is not None else 0
    return roll_int(rng, 0, len(actor.abilities) - 1)


def should_use_ability(situation: Situation, actor: Combatant, rng: RandomSource) -> bool:
    """Whether a smart combatant should spend its turn on an ability."""
    if not actor.abilities:
        return False
    if situation.turn_count < 2:
        return False
    if situation.opponent_is_low:
        return roll_chance(rng, 0.8)
    return roll_chance(rng, 0.3)


# =============================================================================
# Behavior Rules
# =============================================================================

Rule = Callable[[Situation, Combatant, RandomSource], ActionDecision | None]


def _decision(action: ActionType, priority: float, reasoning: str, **kwargs: Any) -> ActionDecision:
    return ActionDecision(action=action, priority=priority, reasoning=reasoning, **kwargs)


# ---- Aggressive ----


def _aggressive_emergency_heal(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.actor_is_critical and s.can_heal:
        return _decision(ActionType.HEAL, 0.9, "Critical HP - emergency heal")
    return None


def _aggressive_special(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.can_special and roll_chance(rng, 0.4):
        return _decision(
            ActionType.SPECIAL,
            0.8,
            "Use special ability to maximize damage",
            ability_index=0,
        )
    return None


def _aggressive_attack(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    return _decision(ActionType.ATTACK, 1.0, "Aggressive - always attack")


# ---- Defensive ----


def _defensive_heal(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.actor_is_low and s.can_heal:
        return _decision(ActionType.HEAL, 0.9, "Low HP - prioritize healing")
    return None


def _defensive_guard(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.opponent_last_action == ActionType.ATTACK and roll_chance(rng, 0.6):
        return _decision(ActionType.DEFEND, 0.7, "Opponent attacked last turn - defend")
    return None


def _defensive_attack(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    return _decision(ActionType.ATTACK, 0.5, "Safe to attack")


# ---- Balanced ----


def _balanced_heal(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.actor_is_low and s.can_heal:
        return _decision(ActionType.HEAL, 0.8, "Low HP - heal")
    return None


def _balanced_press(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.opponent_is_low and roll_chance(rng, 0.7):
        return _decision(ActionType.ATTACK, 0.9, "Opponent is vulnerable - attack")
    return None


def _balanced_special(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.can_special and roll_chance(rng, 0.25):
        return _decision(
            ActionType.SPECIAL,
            0.6,
            "Good opportunity for special ability",
            ability_index=roll_int(rng, 0, len(actor.abilities) - 1),
        )
    return None


def _balanced_stance(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if roll_chance(rng, 0.7):
        return _decision(ActionType.ATTACK, 0.7, "Standard attack")
    return _decision(ActionType.DEFEND, 0.3, "Defensive stance")


# ---- Smart ----


def _smart_must_heal(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.actor_is_critical and s.can_heal:
        return _decision(ActionType.HEAL, 1.0, "Critical HP - must heal")
    return None


def _smart_finish(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if not s.opponent_is_critical:
        return None
    if s.can_special:
        return _decision(
            ActionType.SPECIAL,
            0.95,
            "Opponent critical - use strongest attack",
            ability_index=get_best_offensive_ability(actor),
        )
    return _decision(ActionType.ATTACK, 0.9, "Opponent critical - finish them")


def _smart_heal(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.actor_is_low and s.can_heal:
        return _decision(ActionType.HEAL, 0.8, "Low HP - heal before continuing")
    return None


def _smart_ability(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.can_special and should_use_ability(s, actor, rng):
        return _decision(
            ActionType.SPECIAL,
            0.7,
            "Strategic ability use",
            ability_index=get_best_ability(s, actor, rng),
        )
    return None


def _smart_brace(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.opponent_last_action == ActionType.SPECIAL and roll_chance(rng, 0.8):
        return _decision(ActionType.DEFEND, 0.6, "Opponent may use powerful attack - defend")
    return None


def _smart_attack(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    return _decision(ActionType.ATTACK, 0.5, "Standard attack")


# ---- Berserker ----


def _berserker_last_resort(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.actor_hp_ratio < 0.1 and s.can_heal and roll_chance(rng, 0.3):
        return _decision(ActionType.HEAL, 0.6, "Last resort heal")
    return None


def _berserker_rage(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    aggression = 1.0 - s.actor_hp_ratio
    if s.can_special and roll_chance(rng, aggression):
        return _decision(
            ActionType.SPECIAL,
            0.8 + aggression * 0.2,
            f"Berserker rage - aggression level {aggression:.2f}",
            ability_index=0,
        )
    return None


def _berserker_attack(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    aggression = 1.0 - s.actor_hp_ratio
    return _decision(
        ActionType.ATTACK,
        0.8 + aggression * 0.2,
        f"Berserker attack - aggression level {aggression:.2f}",
    )


# ---- Healer ----


def _healer_heal(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.actor_hp_ratio < 0.7 and s.can_heal:
        return _decision(ActionType.HEAL, 0.9, "Healer - maintain high HP")
    return None


def _healer_support(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if s.can_special and roll_chance(rng, 0.4):
        defensive = get_best_defensive_ability(actor)
        if defensive is not None:
            return _decision(
                ActionType.SPECIAL,
                0.7,
                "Use defensive ability",
                ability_index=defensive,
            )
    return None


def _healer_guard(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    if roll_chance(rng, 0.6):
        return _decision(ActionType.DEFEND, 0.5, "Healer - defensive stance")
    return None


def _healer_attack(s: Situation, actor: Combatant, rng: RandomSource) -> ActionDecision | None:
    return _decision(ActionType.ATTACK, 0.3, "Healer - weak attack")


BEHAVIOR_RULES: Mapping[AIType, tuple[Rule, ...]] = {
    AIType.AGGRESSIVE: (
        _aggressive_emergency_heal,
        _aggressive_special,
        _aggressive_attack,
    ),
    AIType.DEFENSIVE: (
        _defensive_heal,
        _defensive_guard,
        _defensive_attack,
    ),
    AIType.BALANCED: (
        _balanced_heal,
        _balanced_press,
        _balanced_special,
        _balanced_stance,
    ),
    AIType.SMART: (
        _smart_must_heal,
        _smart_finish,
        _smart_heal,
        _smart_ability,
        _smart_brace,
        _smart_attack,
    ),
    AIType.BERSERKER: (
        _berserker_last_resort,
        _berserker_rage,
        _berserker_attack,
    ),
    AIType.HEALER: (
        _healer_heal,
        _healer_support,
        _healer_guard,
        _healer_attack,
    ),
}


def evaluate_rules(
    ai_type: AIType,
    situation: Situation,
    actor: Combatant,
    rng: RandomSource,
) -> ActionDecision:
    """
    Evaluates the rules of a behavior profile, first match wins.

    Args:
        ai_type (AIType):
            The behavior profile.
        situation (Situation):
            The current situation.
        actor (Combatant):
            The combatant taking the decision.
        rng (RandomSource):
            The random source.

    Returns:
        ActionDecision:
            The matching decision, a plain attack at 0.5 if none matched.

    """
    for rule in BEHAVIOR_RULES.get(ai_type, BEHAVIOR_RULES[AIType.BALANCED]):
        decision = rule(situation, actor, rng)
        if decision is not None:
            return decision
    return _decision(ActionType.ATTACK, 0.5, "No rule matched - attack")


# =============================================================================
# Difficulty Modulation
# =============================================================================


def make_mistake(
    decision: ActionDecision,
    situation: Situation,
    rng: RandomSource,
) -> ActionDecision:
    """
    Replaces a decision with a suboptimal one.

    A heal taken at critical HP is never replaced.

    Args:
        decision (ActionDecision):
            The original decision.
        situation (Situation):
            The current situation.
        rng (RandomSource):
            The random source.

    Returns:
        ActionDecision:
            The mistake, or the original decision when it is life-saving.

    """
    if situation.actor_is_critical and decision.action == ActionType.HEAL:
        return decision
    mistakes = (
        (ActionType.DEFEND, 0.2, "Mistake - unnecessary defend"),
        (ActionType.ATTACK, 0.3, "Mistake - suboptimal attack"),
    )
    action, priority, reasoning = pick(rng, mistakes)
    return _decision(action, priority, reasoning, is_mistake=True)


def apply_difficulty_modifiers(
    decision: ActionDecision,
    modifiers: DifficultyModifiers,
    situation: Situation,
    rng: RandomSource,
) -> ActionDecision:
    """
    Applies the mistake roll and the special ability veto of a difficulty.

    Args:
        decision (ActionDecision):
            The profile decision.
        modifiers (DifficultyModifiers):
            The difficulty table entry.
        situation (Situation):
            The current situation.
        rng (RandomSource):
            The random source.

    Returns:
        ActionDecision:
            The modulated decision.

    """
    if roll_chance(rng, modifiers.mistake_chance):
        return make_mistake(decision, situation, rng)
    if decision.action == ActionType.SPECIAL and not roll_chance(rng, modifiers.ability_usage):
        return _decision(
            ActionType.ATTACK,
            decision.priority * 0.8,
            "Difficulty modifier - no special ability",
        )
    return decision


def decide(
    actor: Combatant,
    opponent: Combatant,
    context: CombatContext | None = None,
    rng: RandomSource | None = None,
) -> ActionDecision:
    """
    Decides the action of a non-player combatant for one turn.

    Args:
        actor (Combatant):
            The combatant taking the decision.
        opponent (Combatant):
            The combatant it is facing.
        context (CombatContext | None):
            Turn count and last action of the opponent.
        rng (RandomSource | None):
            The random source, the module default when None.

    Returns:
        ActionDecision:
            The decision, with its thinking delay.

    """
    rng = resolve_rng(rng)
    situation = assess_situation(actor, opponent, context)
    modifiers = DIFFICULTY_MODIFIERS.get(
        actor.difficulty, DIFFICULTY_MODIFIERS[Difficulty.NORMAL]
    )
    decision = evaluate_rules(actor.ai_type, situation, actor, rng)
    decision = apply_difficulty_modifiers(decision, modifiers, situation, rng)
    decision.delay = modifiers.reaction_time + rng.random() * DELAY_JITTER
    return decision


def describe_ai(ai_type: AIType) -> str:
    """Returns a short description of a behavior profile."""
    return AI_DESCRIPTIONS.get(ai_type, "Unknown AI behavior")
