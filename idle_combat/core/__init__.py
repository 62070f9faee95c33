"""
Core system module for the idle combat engine.

This module contains the fundamental components shared by the engine: game
constants, configuration, validation helpers, the event bus, content loading
and console utilities.
"""
