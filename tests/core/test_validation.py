"""
Tests for the input correction helpers.
"""

from idle_combat.core.constants import AIType, Difficulty
from idle_combat.core.validation import (
    ensure_enum,
    ensure_int_at_least,
    ensure_number_in_range,
)


def test_number_passthrough_and_default():
    assert ensure_number_in_range(0.4, "chance", 0.1, 0.0, 1.0) == 0.4
    assert ensure_number_in_range(None, "chance", 0.1, 0.0, 1.0) == 0.1
    assert ensure_number_in_range("high", "chance", 0.1, 0.0, 1.0) == 0.1
    assert ensure_number_in_range(True, "chance", 0.1, 0.0, 1.0) == 0.1


def test_number_clamped_to_range():
    assert ensure_number_in_range(-2, "chance", 0.1, 0.0, 1.0) == 0.0
    assert ensure_number_in_range(3, "chance", 0.1, 0.0, 1.0) == 1.0


def test_int_truncates_floats():
    assert ensure_int_at_least(7.9, "attack", 10) == 7
    assert ensure_int_at_least(-4, "attack", 10) == 0
    assert ensure_int_at_least(0, "level", 1, min_val=1) == 1


def test_enum_accepts_values_and_names():
    assert ensure_enum("smart", AIType, "ai_type", AIType.BALANCED) == AIType.SMART
    assert ensure_enum("HEALER", AIType, "ai_type", AIType.BALANCED) == AIType.HEALER
    assert ensure_enum("hard", Difficulty, "difficulty", Difficulty.NORMAL) == Difficulty.HARD
    assert ensure_enum(Difficulty.EASY, Difficulty, "difficulty", Difficulty.NORMAL) == Difficulty.EASY


def test_enum_unknown_falls_back():
    assert ensure_enum("sneaky", AIType, "ai_type", AIType.BALANCED) == AIType.BALANCED
    assert ensure_enum(None, AIType, "ai_type", AIType.BALANCED) == AIType.BALANCED
    assert ensure_enum(3, AIType, "ai_type", AIType.BALANCED) == AIType.BALANCED
