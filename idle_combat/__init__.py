"""
Idle combat engine package.

This package contains the turn-based combat resolution engine of an
incremental role-playing game: combat math, enemy decision making, boss
phases, the session controller and a small console demo.
"""
