"""
Main entry point for the idle combat engine demo.

Loads the enemy and boss catalogs, then fights every enemy of the first
stages followed by the stage boss. The player picks each action from a menu,
or lets the hero attack on its own when started with ``--auto``.
"""

import logging
import sys

from idle_combat.combat.combat_manager import CombatManager
from idle_combat.combat.turn_scheduler import TurnScheduler, always_attack
from idle_combat.core.constants import CombatResult
from idle_combat.core.content import ContentRepository
from idle_combat.core.event_system import EventBus
from idle_combat.core.logging import logger, setup_logging
from idle_combat.core.utils import cprint, crule
from idle_combat.entities.player import InMemoryPlayerStore, PlayerState
from idle_combat.ui.cli_interface import CombatNarrator, PlayerInterface

# Number of stages visited by the demo.
DEMO_STAGES = 2


def run_stage(
    stage: int,
    repo: ContentRepository,
    store: InMemoryPlayerStore,
    scheduler: TurnScheduler,
) -> bool:
    """
    Fights every enemy of a stage, then its boss.

    Args:
        stage (int): The stage to fight.
        repo (ContentRepository): The enemy and boss catalogs.
        store (InMemoryPlayerStore): The player state.
        scheduler (TurnScheduler): Drives the sessions.

    Returns:
        bool: False if the player fled or was defeated.

    """
    crule(f"Stage {stage}", style="bold green")
    enemy_types = repo.get_enemies_for_stage(stage)
    if not enemy_types:
        cprint(f"Stage {stage} has no enemies.", style="yellow")
        return True

    # Cycle through the stage enemies until the boss is unlocked.
    victories = 0
    while victories < len(enemy_types) or not repo.is_boss_unlocked(stage, victories):
        if repo.get_boss(stage) is None and victories >= len(enemy_types):
            return True
        enemy_type = enemy_types[victories % len(enemy_types)]
        enemy = repo.create_enemy(enemy_type, level=store.player.level)
        if enemy is None or scheduler.run(enemy) != CombatResult.VICTORY:
            return False
        victories += 1
        logger.debug("Stage %d: %d victories", stage, victories)

    boss = repo.create_boss(stage, player_level=store.player.level)
    if boss is None:
        return True
    logger.info("Stage %d: boss %s unlocked", stage, boss.name)
    return scheduler.run(boss) == CombatResult.VICTORY


def main() -> None:
    """Runs the interactive demo."""
    setup_logging(logging.WARNING)
    auto = "--auto" in sys.argv[1:]

    crule("Idle Combat", style="bold green")
    cprint("Loading repository...", style="bold green")
    repo = ContentRepository()

    store = InMemoryPlayerStore(PlayerState(name="Hero"))
    event_bus = EventBus()
    narrator = CombatNarrator(event_bus, store.player.name)
    manager = CombatManager(store, event_bus=event_bus)
    interface = PlayerInterface()
    scheduler = TurnScheduler(
        manager,
        player_policy=always_attack if auto else interface.choose_action,
    )

    try:
        for stage in range(1, DEMO_STAGES + 1):
            if not run_stage(stage, repo, store, scheduler):
                break
        player = store.get_player()
        crule(
            f"{player.name}: level {player.level}, {player.exp} exp, "
            f"{player.hp}/{player.max_hp} HP",
            style="bold green",
            characters="=",
        )
    except KeyboardInterrupt:
        cprint("")
        crule(":crossed_swords:  Combat Interrupted", style="bold red")
    finally:
        narrator.close()


if __name__ == "__main__":
    main()
