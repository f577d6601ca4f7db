"""Presentation helpers for rounding and chart labels."""

from __future__ import annotations

import math
from datetime import date

COST_PLACES = 4
CURRENCY_PLACES = 2


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going toward +infinity."""

    return int(math.floor(value + 0.5))


def round_amount(value: float, places: int = COST_PLACES) -> float:
    """Round a currency amount for presentation only."""

    scale = 10**places
    rounded = round_half_up(value * scale) / scale
    return rounded + 0.0  # normalizes -0.0


def percentage(part: float, whole: float) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def chart_label(day: date) -> str:
    return day.strftime("%m-%d")
