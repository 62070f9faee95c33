"""
Combat system module for the idle combat engine.

This module handles the combat math, the enemy decision engine, the boss
phase controller, the session controller and the turn scheduler.
"""
