"""Input validation helpers for report parameters."""

from __future__ import annotations

from typing import Any

from story_analytics.domain.exceptions import InvalidParameterError


def validate_count(name: str, value: Any, default: int) -> int:
    """Return ``value`` as a non-negative int, or ``default`` when it is None.

    Booleans, floats and strings are rejected rather than coerced.
    """

    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameterError(
            f"{name} must be an integer", context={name: value}
        )
    if value < 0:
        raise InvalidParameterError(
            f"{name} must be non-negative", context={name: value}
        )
    return value


def validate_days(days: Any, default: int = 30) -> int:
    return validate_count("days", days, default)


def validate_limit(limit: Any, default: int = 5) -> int:
    return validate_count("limit", limit, default)
