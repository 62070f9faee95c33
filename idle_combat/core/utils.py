"""
Utilities module for the combat engine.

Provides console printing with rich formatting and the small random helpers
shared by the math library, the decision engine and the boss controller.
Every helper draws exclusively from ``rng.random()``, so a caller can drive
the whole engine with any object exposing that single method.
"""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import Any, Protocol, TypeVar

from rich.console import Console
from rich.rule import Rule

_console = Console(markup=True, width=120, force_terminal=True, force_jupyter=False)

# Random source used when the caller does not provide one.
DEFAULT_RNG = random.Random()

_T = TypeVar("_T")


class RandomSource(Protocol):
    """Anything able to produce uniform floats in [0, 1)."""

    def random(self) -> float: ...


def cprint(*args: Any, **kwargs: Any) -> None:
    """
    Custom print function to handle colored output.

    Args:
        *args: Arguments to pass to the console print function.
        **kwargs: Keyword arguments to pass to the console print function.

    """
    _console.print(*args, **kwargs)


def crule(*args: Any, **kwargs: Any) -> None:
    """
    Custom print function to handle colored output with a rule.

    Args:
        *args: Arguments to pass to the Rule constructor.
        **kwargs: Keyword arguments to pass to the Rule constructor.

    """
    _console.print(Rule(*args, **kwargs))


def ccapture(content: Any) -> str:
    """
    Captures console output as a string.

    Args:
        content (Any): The content to capture.

    Returns:
        str: The captured output as a string.

    """
    with _console.capture() as capture:
        _console.print(content, markup=True, end="")
    return capture.get()


def make_bar(current: int, maximum: int, length: int = 10, color: str = "white") -> str:
    """
    Creates a visual progress bar representation.

    Args:
        current (int): The current value.
        maximum (int): The maximum value.
        length (int): The length of the bar in characters. Defaults to 10.
        color (str): The color for the filled portion. Defaults to "white".

    Returns:
        str: A formatted progress bar string.

    """
    ratio = (current / maximum) if maximum > 0 else 0.0
    filled = max(0, min(length, int(ratio * length)))
    empty = length - filled
    bar = f"[{color}]" + "▮" * filled
    if empty > 0:
        bar += "[dim white]" + "▯" * empty + "[/]"
    bar += "[/]"
    return bar


# ---- Random helpers ----


def resolve_rng(rng: RandomSource | None) -> RandomSource:
    """Returns the given random source, or the module default."""
    return rng if rng is not None else DEFAULT_RNG


def roll_chance(rng: RandomSource, chance: float) -> bool:
    """Returns True with the given probability."""
    return rng.random() < chance


def roll_int(rng: RandomSource, low: int, high: int) -> int:
    """
    Draws a uniform integer in [low, high].

    Args:
        rng (RandomSource): The random source.
        low (int): Lower bound (inclusive).
        high (int): Upper bound (inclusive).

    Returns:
        int: The drawn integer.

    """
    if high < low:
        low, high = high, low
    return min(high, low + math.floor(rng.random() * (high - low + 1)))


def roll_variance(rng: RandomSource, amount: int, ratio: float) -> int:
    """
    Draws a uniform integer offset in [-v, v] with v = floor(amount * ratio).

    Args:
        rng (RandomSource): The random source.
        amount (int): The value the variance is relative to.
        ratio (float): The variance ratio (0.1 for +-10%).

    Returns:
        int: The drawn offset.

    """
    variance = math.floor(amount * ratio)
    return roll_int(rng, -variance, variance)


def pick(rng: RandomSource, items: Sequence[_T]) -> _T:
    """Picks a uniformly random element of a non-empty sequence."""
    return items[roll_int(rng, 0, len(items) - 1)]
