"""
Input correction helpers.

The combat engine never raises on malformed descriptor input: every helper
here returns either the value it was given or a documented default, logging
a warning through catchery whenever a correction took place.
"""

from enum import Enum
from typing import Any, TypeVar

from catchery import log_warning

E = TypeVar("E", bound=Enum)


def ensure_number_in_range(
    value: Any,
    param_name: str,
    default: float,
    min_val: float | None = None,
    max_val: float | None = None,
    context: dict[str, Any] | None = None,
) -> float:
    """
    Ensures a value is a number within the given range.

    Missing or non-numeric values are replaced by the default, numbers out of
    range are clamped to the closest bound.

    Args:
        value: The value to validate.
        param_name: Human-readable parameter name for diagnostics.
        default: Value used when the input is missing or not numeric.
        min_val: Minimum allowed value (inclusive), None for no minimum.
        max_val: Maximum allowed value (inclusive), None for no maximum.
        context: Additional context for logging.

    Returns:
        float: The corrected value.
    """
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        log_warning(
            f"{param_name} must be a number, got: {value!r}, using {default}",
            {
                **(context or {}),
                "param_name": param_name,
                "value": value,
                "type": type(value).__name__,
                "corrected_to": default,
            },
        )
        return default
    if min_val is not None and value < min_val:
        log_warning(
            f"{param_name} below {min_val}, got: {value}, clamping",
            {**(context or {}), "param_name": param_name, "value": value},
        )
        return min_val
    if max_val is not None and value > max_val:
        log_warning(
            f"{param_name} above {max_val}, got: {value}, clamping",
            {**(context or {}), "param_name": param_name, "value": value},
        )
        return max_val
    return value


def ensure_int_at_least(
    value: Any,
    param_name: str,
    default: int,
    min_val: int = 0,
    context: dict[str, Any] | None = None,
) -> int:
    """
    Ensures a value is an integer greater than or equal to min_val.

    Floats are truncated, anything else non-numeric becomes the default.

    Args:
        value: The value to validate.
        param_name: Human-readable parameter name for diagnostics.
        default: Value used when the input is missing or not numeric.
        min_val: Minimum allowed value (inclusive).
        context: Additional context for logging.

    Returns:
        int: The corrected integer value.
    """
    number = ensure_number_in_range(
        value, param_name, default, min_val=min_val, context=context
    )
    return int(number)


def ensure_enum(
    value: Any,
    enum_class: type[E],
    param_name: str,
    default: E,
    context: dict[str, Any] | None = None,
) -> E:
    """
    Ensures a value is a member of the given enumeration.

    Accepts members, their values (case-insensitive for strings) and their
    names. Unknown keys fall back to the default.

    Args:
        value: The value to validate.
        enum_class: The expected enum class.
        param_name: Human-readable parameter name for diagnostics.
        default: Member used when the value is missing or unknown.
        context: Additional context for logging.

    Returns:
        The matching enum member or the default.
    """
    if value is None:
        return default
    if isinstance(value, enum_class):
        return value
    if isinstance(value, str):
        for member in enum_class:
            if isinstance(member.value, str) and member.value.lower() == value.lower():
                return member
            if member.name == value.upper():
                return member
    log_warning(
        f"Unknown {param_name} {value!r} for {enum_class.__name__}, using {default}",
        {
            **(context or {}),
            "param_name": param_name,
            "value": value,
            "corrected_to": default,
        },
    )
    return default
