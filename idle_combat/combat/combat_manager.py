"""
Combat session controller.

Runs one encounter at a time between the player and an opponent through the
states ``idle -> preparation -> action(player) -> action(opponent) -> ... ->
resolution -> idle``. The controller never waits: after each resolved action
it reports a delay, and the host calls ``advance()`` once the delay elapsed.
The opponent action is computed when its turn starts and applied when the
host calls ``apply_pending_action()``.
"""

import math
from typing import Any
from uuid import uuid4

from catchery import log_debug, log_warning
from pydantic import BaseModel, ConfigDict, Field

from idle_combat.combat.boss_phase import BossAction, BossPhaseController
from idle_combat.combat.damage import (
    DamageOutcome,
    HealOutcome,
    compute_damage,
    compute_experience,
    compute_healing,
    compute_status_tick,
    describe_damage,
    roll_material_drops,
)
from idle_combat.combat.npc_ai import ActionDecision, CombatContext, decide
from idle_combat.core.config import CombatConfig
from idle_combat.core.constants import (
    AbilityType,
    ActionType,
    CombatantSlot,
    CombatPhase,
    CombatResult,
    opposite_slot,
)
from idle_combat.core.event_system import (
    CombatEndedEvent,
    CombatEvent,
    CombatStartedEvent,
    DamageAppliedEvent,
    EventBus,
    ExperienceAwardedEvent,
    HealAppliedEvent,
    MaterialsAwardedEvent,
    PlayerLeveledUpEvent,
    StatusTickEvent,
)
from idle_combat.core.utils import RandomSource, resolve_rng
from idle_combat.entities.combatant import Ability, Combatant, OpponentDescriptor
from idle_combat.entities.player import (
    BonusProvider,
    EquipmentBonuses,
    PlayerStore,
    PrestigeUpgrades,
    compute_effective_luck,
    compute_effective_stats,
)
from idle_combat.entities.profiles import StatusEffect, VitalsProfile


class ActiveStatusEffect(BaseModel):
    """A status effect currently ticking on a combatant."""

    effect: StatusEffect
    remaining_turns: int = Field(description="Ticks left before the effect expires.")


class PendingAction(BaseModel):
    """An opponent action computed at the start of its turn, not yet applied."""

    session_id: str = Field(description="Session the action belongs to.")
    turn_number: int = Field(description="Turn the action was computed in.")
    action: ActionType = Field(description="The action to resolve.")
    decision: ActionDecision | None = Field(
        default=None,
        description="The decision engine output, for plain enemies.",
    )
    boss_action: BossAction | None = Field(
        default=None,
        description="The boss ability, for bosses.",
    )
    delay: float = Field(default=0.0, description="Seconds to wait before applying it.")


class CombatSession(BaseModel):
    """The live state of one encounter."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str = Field(default_factory=lambda: uuid4().hex)
    player: Combatant = Field(description="Snapshot of the player effective stats.")
    opponent: OpponentDescriptor = Field(description="The opponent, owned by the session.")
    phase_controller: BossPhaseController | None = Field(default=None, exclude=True)
    turn_order: list[CombatantSlot] = Field(
        default_factory=lambda: [CombatantSlot.PLAYER, CombatantSlot.OPPONENT]
    )
    turn_index: int = 0
    phase: CombatPhase = CombatPhase.PREPARATION
    turn_number: int = Field(default=0, description="Turn slots entered so far.")
    round: int = Field(default=0, description="Player turns started so far.")
    player_defending: bool = False
    opponent_defending: bool = False
    awaiting_advance: bool = Field(
        default=False,
        description="Whether the current turn is resolved and waits for advance().",
    )
    advance_delay: float = Field(default=0.0, description="Seconds to wait before advance().")
    pending_action: PendingAction | None = None
    player_last_action: ActionType | None = None
    opponent_last_action: ActionType | None = None
    damage_taken: int = Field(default=0, description="Damage taken by the player.")
    status_effects: dict[CombatantSlot, list[ActiveStatusEffect]] = Field(
        default_factory=lambda: {CombatantSlot.PLAYER: [], CombatantSlot.OPPONENT: []}
    )
    result: CombatResult | None = None

    @property
    def current_slot(self) -> CombatantSlot:
        return self.turn_order[self.turn_index]

    @property
    def has_phases(self) -> bool:
        """Whether the opponent is driven by a phase controller."""
        return self.phase_controller is not None and self.phase_controller.active

    @property
    def is_over(self) -> bool:
        return self.result is not None

    def combatant(self, slot: CombatantSlot) -> Combatant:
        if slot == CombatantSlot.PLAYER:
            return self.player
        return self.opponent


class CombatManager:
    """
    Orchestrates combat sessions between the player and one opponent.

    The manager owns the active session and the opponent hit points. The
    player hit points are written back to the player store after every
    change, and every effective stats read goes through the store and the
    bonus provider.
    """

    def __init__(
        self,
        player_store: PlayerStore,
        bonus_provider: BonusProvider | None = None,
        event_bus: EventBus | None = None,
        config: CombatConfig | None = None,
        rng: RandomSource | None = None,
    ) -> None:
        """
        Initialize the CombatManager.

        Args:
            player_store (PlayerStore):
                Persistence layer owning the player state.
            bonus_provider (BonusProvider | None):
                Equipment and prestige bonuses, none when None.
            event_bus (EventBus | None):
                Bus receiving the outcome events.
            config (CombatConfig | None):
                Tunables, the defaults when None.
            rng (RandomSource | None):
                Random source shared by every roll of the encounters.

        """
        self.player_store = player_store
        self.bonus_provider = bonus_provider
        self.event_bus = event_bus
        self.config = config or CombatConfig()
        self.rng = resolve_rng(rng)
        self.session: CombatSession | None = None

    # ============================================================================
    # HELPERS
    # ============================================================================

    @property
    def in_combat(self) -> bool:
        return self.session is not None

    def _emit(self, event: CombatEvent) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event)

    def _equipment(self) -> EquipmentBonuses:
        if self.bonus_provider is None:
            return EquipmentBonuses()
        return self.bonus_provider.get_equipment_bonuses()

    def _prestige(self) -> PrestigeUpgrades:
        if self.bonus_provider is None:
            return PrestigeUpgrades()
        return self.bonus_provider.get_prestige_upgrades()

    def _reject(self, message: str, **context: Any) -> None:
        log_warning(message, {"in_combat": self.in_combat, **context})

    def _player_can_act(self, action: str) -> bool:
        session = self.session
        if session is None:
            self._reject(f"Cannot {action}: no combat in progress", action=action)
            return False
        if session.phase != CombatPhase.ACTION:
            self._reject(
                f"Cannot {action} during the {session.phase.value} phase",
                action=action,
                phase=session.phase.value,
            )
            return False
        if session.current_slot != CombatantSlot.PLAYER or session.awaiting_advance:
            self._reject(
                f"Cannot {action}: not the player's turn",
                action=action,
                slot=session.current_slot.value,
                awaiting_advance=session.awaiting_advance,
            )
            return False
        return True

    def get_effective_player_stats(self) -> Combatant:
        """
        Reads the player stats with equipment and prestige bonuses applied.

        Returns:
            Combatant:
                The player snapshot used for combat.

        """
        return compute_effective_stats(
            self.player_store.get_player(),
            self._equipment(),
            self._prestige(),
        )

    # ============================================================================
    # SESSION LIFECYCLE
    # ============================================================================

    def start(self, descriptor: OpponentDescriptor) -> CombatSession | None:
        """
        Opens a session against the given opponent.

        Args:
            descriptor (OpponentDescriptor):
                The opponent, copied into the session.

        Returns:
            CombatSession | None:
                The new session, in the player's action state, or None if a
                session is already active.

        """
        if self.session is not None:
            self._reject(
                "Combat already in progress",
                session_id=self.session.session_id,
                opponent=descriptor.name,
            )
            return None

        session = CombatSession(
            player=self.get_effective_player_stats(),
            opponent=descriptor.model_copy(deep=True),
        )
        if session.opponent.is_boss:
            assert session.opponent.boss is not None
            session.phase_controller = BossPhaseController(
                session.opponent.boss,
                base_damage=session.opponent.boss_damage or session.opponent.attack,
                event_bus=self.event_bus,
                session_id=session.session_id,
            )
            session.phase_controller.update_phase(
                session.opponent.hp, session.opponent.max_hp
            )
        self.session = session

        log_debug(
            f"Combat started: {session.player.name} vs {session.opponent.name}",
            {"session_id": session.session_id, "is_boss": session.has_phases},
        )
        self._emit(
            CombatStartedEvent(
                session_id=session.session_id,
                player_name=session.player.name,
                opponent_name=session.opponent.name,
                opponent_level=session.opponent.level,
                is_boss=session.has_phases,
            )
        )
        self._enter_slot(session)
        return session

    def _enter_slot(self, session: CombatSession) -> None:
        """Starts the turn of the current slot."""
        session.phase = CombatPhase.ACTION
        session.turn_number += 1
        slot = session.current_slot
        if slot == CombatantSlot.PLAYER:
            session.round += 1
        else:
            # A defend stance only lasts until the owner's next turn.
            session.opponent_defending = False

        self._tick_status_effects(session, slot)
        if session.is_over:
            return

        if slot == CombatantSlot.OPPONENT:
            session.pending_action = self._compute_opponent_action(session)

    def _finish_action(self, session: CombatSession, delay: float) -> None:
        session.awaiting_advance = True
        session.advance_delay = delay

    def advance(self) -> PendingAction | None:
        """
        Moves to the next turn slot once the current one is resolved.

        Entering a slot ticks the status effects of that side. Entering the
        opponent slot also computes its action and stores it as pending.

        Returns:
            PendingAction | None:
                The pending opponent action when the opponent turn started.

        """
        session = self.session
        if session is None:
            self._reject("Cannot advance: no combat in progress")
            return None
        if not session.awaiting_advance:
            self._reject(
                "Cannot advance: the current turn is not resolved",
                slot=session.current_slot.value,
            )
            return None
        session.awaiting_advance = False
        session.advance_delay = 0.0
        session.turn_index = (session.turn_index + 1) % len(session.turn_order)
        self._enter_slot(session)
        if session.is_over:
            return None
        return session.pending_action

    def flee(self) -> bool:
        """
        Ends the session without reward nor penalty.

        Any pending opponent action is discarded.

        Returns:
            bool:
                True if a session was ended.

        """
        session = self.session
        if session is None:
            self._reject("Cannot flee: no combat in progress")
            return False
        session.player_last_action = ActionType.FLEE
        self._resolve(session, CombatResult.FLEE)
        return True

    # ============================================================================
    # PLAYER ACTIONS
    # ============================================================================

    def player_attack(self) -> DamageOutcome | None:
        """
        Attacks the opponent with the player effective stats.

        Returns:
            DamageOutcome | None:
                The applied outcome, None if the player cannot act.

        """
        if not self._player_can_act("attack"):
            return None
        session = self.session
        assert session is not None

        session.player = self.get_effective_player_stats()
        outcome = compute_damage(
            session.player.attack_profile(),
            session.opponent.defense_profile(),
            self.rng,
        )
        if session.opponent_defending and not outcome.is_miss:
            outcome.damage = max(
                1, math.floor(outcome.damage * self.config.defend_damage_factor)
            )
        session.opponent_defending = False
        session.player_last_action = ActionType.ATTACK

        self._damage(session, CombatantSlot.OPPONENT, outcome)
        if not session.is_over:
            self._finish_action(session, self.config.player_action_delay)
        return outcome

    def player_defend(self) -> bool:
        """
        Halves the next hit the player takes.

        Returns:
            bool:
                True if the stance was taken.

        """
        if not self._player_can_act("defend"):
            return False
        session = self.session
        assert session is not None
        session.player_defending = True
        session.player_last_action = ActionType.DEFEND
        self._finish_action(session, self.config.player_action_delay)
        return True

    # ============================================================================
    # OPPONENT ACTIONS
    # ============================================================================

    def _compute_opponent_action(self, session: CombatSession) -> PendingAction:
        if session.has_phases:
            assert session.phase_controller is not None
            boss_action = session.phase_controller.compute_boss_action(self.rng)
            return PendingAction(
                session_id=session.session_id,
                turn_number=session.turn_number,
                action=ActionType.SPECIAL,
                boss_action=boss_action,
                delay=self.config.opponent_action_delay,
            )
        decision = decide(
            session.opponent,
            session.player,
            CombatContext(
                turn_count=session.round,
                opponent_last_action=session.player_last_action,
            ),
            self.rng,
        )
        log_debug(
            f"{session.opponent.name} decided to {decision.action.value}: {decision.reasoning}",
            {"priority": decision.priority, "is_mistake": decision.is_mistake},
        )
        delay = decision.delay if self.config.use_decision_delay else self.config.opponent_action_delay
        return PendingAction(
            session_id=session.session_id,
            turn_number=session.turn_number,
            action=decision.action,
            decision=decision,
            delay=delay,
        )

    def apply_pending_action(
        self, pending: PendingAction | None = None
    ) -> DamageOutcome | HealOutcome | None:
        """
        Applies the pending opponent action.

        An action computed for a session that has ended, or for another turn,
        is silently discarded.

        Args:
            pending (PendingAction | None):
                The action to apply, the session's pending action when None.

        Returns:
            DamageOutcome | HealOutcome | None:
                The outcome of the action, None for defend stances and
                discarded actions.

        """
        session = self.session
        if session is None:
            log_debug("Discarding pending action: no combat in progress", {})
            return None
        pending = pending or session.pending_action
        if pending is None:
            self._reject("No pending opponent action to apply")
            return None
        if (
            pending.session_id != session.session_id
            or pending.turn_number != session.turn_number
            or session.pending_action is None
        ):
            log_debug(
                "Discarding stale pending action",
                {
                    "pending_session": pending.session_id,
                    "pending_turn": pending.turn_number,
                    "session_id": session.session_id,
                    "turn_number": session.turn_number,
                },
            )
            return None
        session.pending_action = None

        if pending.boss_action is not None:
            outcome: DamageOutcome | HealOutcome | None = self._apply_boss_action(
                session, pending.boss_action
            )
        else:
            outcome = self._apply_decision(session, pending)
        session.opponent_last_action = pending.action

        if not session.is_over:
            session.player_defending = False
            self._finish_action(session, self.config.player_action_delay)
        return outcome

    def _apply_boss_action(self, session: CombatSession, action: BossAction) -> DamageOutcome:
        outcome = DamageOutcome(
            damage=action.damage,
            damage_type=session.opponent.damage_type,
            element=session.opponent.element,
            base_damage=action.damage,
        )
        self._damage(session, CombatantSlot.PLAYER, outcome, description=action.description)
        return outcome

    def _apply_decision(
        self, session: CombatSession, pending: PendingAction
    ) -> DamageOutcome | HealOutcome | None:
        opponent = session.opponent
        action = pending.action

        if action == ActionType.SPECIAL:
            index = pending.decision.ability_index if pending.decision else None
            ability = opponent.get_ability(index)
            if ability is None:
                log_warning(
                    f"{opponent.name} has no ability at index {index}, attacking instead",
                    {"opponent": opponent.name, "ability_index": index},
                )
                return self._opponent_attack(session, None)
            if ability.type == AbilityType.ATTACK:
                return self._opponent_attack(session, ability)
            if ability.type == AbilityType.HEAL:
                return self._opponent_heal(session, ability)
            session.opponent_defending = True
            return None

        if action == ActionType.HEAL:
            return self._opponent_heal(session, opponent.first_ability_of_type(AbilityType.HEAL))
        if action == ActionType.DEFEND:
            session.opponent_defending = True
            return None
        if action == ActionType.FLEE:
            self._resolve(session, CombatResult.FLEE)
            return None
        return self._opponent_attack(session, None)

    def _opponent_attack(self, session: CombatSession, ability: Ability | None) -> DamageOutcome:
        session.player = self.get_effective_player_stats()
        outcome = compute_damage(
            session.opponent.attack_profile(ability),
            session.player.defense_profile(),
            self.rng,
        )
        self._damage(session, CombatantSlot.PLAYER, outcome)
        if (
            not session.is_over
            and not outcome.is_miss
            and ability is not None
            and ability.status_effect is not None
        ):
            effect = ability.status_effect.model_copy(update={"level": session.opponent.level})
            session.status_effects[CombatantSlot.PLAYER].append(
                ActiveStatusEffect(effect=effect, remaining_turns=effect.duration)
            )
        return outcome

    def _opponent_heal(self, session: CombatSession, ability: Ability | None) -> HealOutcome:
        opponent = session.opponent
        outcome = compute_healing(
            opponent.heal_profile(ability, self.config.default_heal_percentage),
            VitalsProfile(max_hp=opponent.max_hp, current_hp=opponent.hp),
            self.rng,
        )
        opponent.apply_healing(outcome.heal_amount)
        self._emit(
            HealAppliedEvent(
                session_id=session.session_id,
                target=CombatantSlot.OPPONENT,
                amount=outcome.heal_amount,
                overheal=outcome.overheal_amount,
                target_hp=opponent.hp,
            )
        )
        return outcome

    # ============================================================================
    # DAMAGE APPLICATION
    # ============================================================================

    def _damage(
        self,
        session: CombatSession,
        target: CombatantSlot,
        outcome: DamageOutcome,
        description: str | None = None,
    ) -> None:
        """
        Applies an outcome to a combatant and resolves the session on a kill.

        A hit on a defending player is reduced by the defend factor.

        """
        if target == CombatantSlot.PLAYER and session.player_defending and not outcome.is_miss:
            outcome.damage = math.floor(outcome.damage * self.config.defend_damage_factor)

        taken = self._remove_hp(session, target, outcome.damage)
        self._emit(
            DamageAppliedEvent(
                session_id=session.session_id,
                source=opposite_slot(target),
                target=target,
                amount=taken,
                damage_type=outcome.damage_type,
                is_miss=outcome.is_miss,
                is_critical=outcome.is_critical,
                target_hp=session.combatant(target).hp,
                description=description or describe_damage(outcome),
            )
        )
        self._check_knockout(session, target)

    def _remove_hp(self, session: CombatSession, target: CombatantSlot, amount: int) -> int:
        """Removes hit points and keeps the store and the phase controller in sync."""
        combatant = session.combatant(target)
        taken = combatant.apply_damage(amount)
        if target == CombatantSlot.PLAYER:
            session.damage_taken += taken
            self.player_store.update_player(hp=combatant.hp)
        elif session.has_phases:
            assert session.phase_controller is not None
            session.phase_controller.update_phase(combatant.hp, combatant.max_hp)
        return taken

    def _check_knockout(self, session: CombatSession, target: CombatantSlot) -> None:
        if session.combatant(target).is_alive():
            return
        if target == CombatantSlot.OPPONENT:
            self._resolve(session, CombatResult.VICTORY)
        else:
            self._resolve(session, CombatResult.DEFEAT)

    def _tick_status_effects(self, session: CombatSession, slot: CombatantSlot) -> None:
        """Ticks every status effect of one side, expiring the finished ones."""
        active = session.status_effects[slot]
        if not active:
            return
        combatant = session.combatant(slot)
        remaining: list[ActiveStatusEffect] = []
        for status in active:
            tick = compute_status_tick(status.effect, combatant.defense_profile())
            taken = self._remove_hp(session, slot, tick.tick_damage)
            status.remaining_turns -= 1
            self._emit(
                StatusTickEvent(
                    session_id=session.session_id,
                    target=slot,
                    effect_name=status.effect.name,
                    amount=taken,
                    remaining_turns=status.remaining_turns,
                    target_hp=combatant.hp,
                )
            )
            if status.remaining_turns > 0:
                remaining.append(status)
            if not combatant.is_alive():
                break
        session.status_effects[slot] = remaining
        self._check_knockout(session, slot)

    # ============================================================================
    # RESOLUTION
    # ============================================================================

    def _resolve(self, session: CombatSession, result: CombatResult) -> None:
        """Ends the session with the given result and returns to idle."""
        session.phase = CombatPhase.RESOLUTION
        session.result = result
        session.pending_action = None
        session.awaiting_advance = False

        if result == CombatResult.VICTORY:
            self._handle_victory(session)
        elif result == CombatResult.DEFEAT:
            self._handle_defeat(session)

        if session.phase_controller is not None:
            session.phase_controller.release()

        log_debug(
            f"Combat ended: {result.value}",
            {"session_id": session.session_id, "turns": session.turn_number},
        )
        self._emit(
            CombatEndedEvent(
                session_id=session.session_id,
                result=result,
                turns=session.turn_number,
                damage_taken=session.damage_taken,
            )
        )
        self.session = None

    def _handle_victory(self, session: CombatSession) -> None:
        prestige = self._prestige()
        player = self.player_store.get_player()
        is_boss = session.has_phases

        if is_boss:
            assert session.phase_controller is not None and session.opponent.boss is not None
            defeat = session.phase_controller.defeat(self.rng)
            base_exp = defeat.rewards.experience if defeat else 0
            self.player_store.record_boss_defeated(session.opponent.boss.id)
        else:
            base_exp = compute_experience(session.opponent, player)

        exp = math.floor(base_exp * prestige.experience_multiplier)
        player = self.player_store.update_player(exp=player.exp + exp)
        self._emit(ExperienceAwardedEvent(session_id=session.session_id, amount=exp))

        if not is_boss:
            luck = compute_effective_luck(player, self._equipment(), prestige)
            drops = roll_material_drops(session.opponent.drop_table, luck, self.rng)
            self._emit(
                MaterialsAwardedEvent(session_id=session.session_id, materials=drops)
            )

        self._check_level_up(session)

    def _check_level_up(self, session: CombatSession) -> None:
        """Levels the player up as long as the experience allows it."""
        player = self.player_store.get_player()
        while player.exp >= player.level * self.config.exp_per_level:
            required = player.level * self.config.exp_per_level
            new_level = player.level + 1
            stats = self.config.level_curve.stats_for_level(new_level)
            previous_level = player.level
            player = self.player_store.update_player(
                level=new_level,
                max_hp=stats["max_hp"],
                hp=stats["max_hp"],
                attack=stats["attack"],
                defense=stats["defense"],
                exp=player.exp - required,
            )
            self._emit(
                PlayerLeveledUpEvent(
                    session_id=session.session_id,
                    old_level=previous_level,
                    new_level=new_level,
                    max_hp=stats["max_hp"],
                    attack=stats["attack"],
                    defense=stats["defense"],
                )
            )

    def _handle_defeat(self, session: CombatSession) -> None:
        player = self.player_store.get_player()
        self.player_store.update_player(
            hp=math.floor(player.max_hp * self.config.defeat_hp_fraction)
        )
