"""
Entity models for the idle combat engine.

This module contains the combatants, the boss definitions and the player
state with its equipment and prestige bonuses.
"""
