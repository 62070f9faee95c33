"""
User interface module for the idle combat engine.
"""
